from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from app.studiodesk.core.logging import log_json

logger = logging.getLogger("studiodesk.realtime")


class ChangeOperation(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    operation: ChangeOperation
    workspace_id: str | None
    record_id: str | None = None


ChangeCallback = Callable[[ChangeEvent], None]


def normalize_workspace_id(workspace_id) -> str | None:
    if workspace_id is None:
        return None
    try:
        return str(uuid.UUID(str(workspace_id)))
    except ValueError:
        return str(workspace_id)


class SubscriptionError(RuntimeError):
    pass


class Subscription:
    def __init__(self, hub: "ChangeHub", table: str, workspace_id: str, callback: ChangeCallback):
        self.table = table
        self.workspace_id = workspace_id
        self.callback = callback
        self._hub = hub
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        return (
            self.active
            and change.table == self.table
            and normalize_workspace_id(change.workspace_id) == self.workspace_id
        )

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._hub._remove(self)


class ChangeHub:
    """In-process change feed: table + workspace scoped subscriptions.

    ``publish`` may be called from any thread; callbacks run on the publishing
    thread and must hand work over to their own loop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)
        self._closed = False

    def subscribe(self, table: str, workspace_id: str, callback: ChangeCallback) -> Subscription:
        with self._lock:
            if self._closed:
                raise SubscriptionError(f"change hub is closed, cannot subscribe to {table}")
            subscription = Subscription(self, table, normalize_workspace_id(workspace_id), callback)
            self._subscriptions[table].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            bucket = self._subscriptions.get(subscription.table, [])
            if subscription in bucket:
                bucket.remove(subscription)

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(bucket) for bucket in self._subscriptions.values())

    def publish(self, change: ChangeEvent) -> int:
        with self._lock:
            targets = [sub for sub in self._subscriptions.get(change.table, []) if sub.matches(change)]
        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(change)
                delivered += 1
            except Exception as exc:
                log_json(
                    logger,
                    {
                        "event": "realtime_callback_failed",
                        "table": change.table,
                        "workspace_id": change.workspace_id,
                        "error_class": exc.__class__.__name__,
                        "error": str(exc),
                    },
                    level=logging.ERROR,
                )
        return delivered

    def close(self) -> None:
        with self._lock:
            for bucket in self._subscriptions.values():
                for subscription in bucket:
                    subscription.active = False
            self._subscriptions.clear()
            self._closed = True


change_hub = ChangeHub()
