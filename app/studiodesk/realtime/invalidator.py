from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from app.studiodesk.core.logging import log_json
from app.studiodesk.core.metrics import metrics
from app.studiodesk.listing.config import FilterConfig
from app.studiodesk.realtime.hub import (
    ChangeEvent,
    ChangeHub,
    Subscription,
    SubscriptionError,
    normalize_workspace_id,
)

logger = logging.getLogger("studiodesk.realtime")


class RealtimeInvalidator:
    """Turns change notifications on a list's tables into reload requests.

    Notifications are re-posted onto ``loop`` so ``on_change`` always runs on
    the controller's event loop. A failed subscription is logged and skipped;
    nothing retries it until the next ``attach``.
    """

    def __init__(
        self,
        config: FilterConfig,
        hub: ChangeHub,
        on_change: Callable[[ChangeEvent], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.config = config
        self._hub = hub
        self._on_change = on_change
        self._loop = loop
        self._subscriptions: list[Subscription] = []
        self.workspace_id: str | None = None

    @property
    def tables(self) -> tuple[str, ...]:
        return (self.config.table, *self.config.related_tables)

    @property
    def attached(self) -> bool:
        return bool(self._subscriptions)

    def attach(self, workspace_id: str) -> None:
        self.detach()
        self.workspace_id = normalize_workspace_id(workspace_id)
        for table in self.tables:
            try:
                subscription = self._hub.subscribe(table, self.workspace_id, self._relay)
            except SubscriptionError as exc:
                log_json(
                    logger,
                    {
                        "event": "realtime_subscribe_failed",
                        "entity": self.config.entity,
                        "table": table,
                        "workspace_id": self.workspace_id,
                        "error": str(exc),
                    },
                    level=logging.WARNING,
                )
                continue
            self._subscriptions.append(subscription)

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self.workspace_id = None

    def _relay(self, change: ChangeEvent) -> None:
        metrics.increment_realtime_invalidation(change.table)
        if self._loop is None:
            self._on_change(change)
            return
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._on_change, change)
