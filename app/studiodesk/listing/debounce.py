from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Emits the latest pushed value once no new value has arrived for ``delay_ms``.

    Only the most recent value survives; every push restarts the timer. Must be
    used from within a running event loop.
    """

    def __init__(self, delay_ms: int, on_settle: Callable[[T], None]):
        self.delay_ms = max(0, delay_ms)
        self._on_settle = on_settle
        self._handle: asyncio.TimerHandle | None = None
        self._latest: T | None = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def push(self, value: T) -> None:
        self._latest = value
        self._pending = True
        self._cancel_timer()
        if self.delay_ms == 0:
            self._settle()
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000, self._settle)

    def flush(self) -> None:
        if not self._pending:
            return
        self._cancel_timer()
        self._settle()

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending = False

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _settle(self) -> None:
        self._handle = None
        self._pending = False
        self._on_settle(self._latest)
