from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from app.studiodesk.core.config import settings
from app.studiodesk.core.error_catalog import AppError
from app.studiodesk.core.logging import log_json
from app.studiodesk.core.metrics import metrics
from app.studiodesk.listing.backend import ListBackend
from app.studiodesk.listing.config import FilterConfig, ListRequest, ListScope, PageResult, Row, SortDir
from app.studiodesk.listing.debounce import Debouncer
from app.studiodesk.listing.tasks import TaskTracker
from app.studiodesk.realtime.hub import ChangeEvent, ChangeHub
from app.studiodesk.realtime.invalidator import RealtimeInvalidator

logger = logging.getLogger("studiodesk.listing")


class LoadKind(str, Enum):
    FULL = "full"
    APPEND = "append"
    PAGE_JUMP = "page_jump"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"


Notifier = Callable[[Notification], None]


def _log_notification(notification: Notification) -> None:
    log_json(
        logger,
        {"event": "notification", "title": notification.title, "description": notification.description},
        level=logging.WARNING,
    )


@dataclass
class ListOptions:
    page_size: int | None = None
    realtime: bool | None = None
    initial_filters: Iterable[str] = ()
    initial_search_term: str = ""
    debounce_ms: int = field(default_factory=lambda: settings.SEARCH_DEBOUNCE_MS)


@dataclass
class FilterState:
    search_term: str = ""
    debounced_search_term: str = ""
    search_active: bool = False
    active_filters: frozenset[str] = frozenset()
    sort_by: str = "created_at"
    sort_dir: SortDir = "desc"
    current_page: int = 0
    page_size: int = 50
    total_count: int = 0
    rows: list[Row] = field(default_factory=list)
    all_loaded: bool = False
    loading: bool = False
    pagination_loading: bool = False
    is_first_load: bool = True


def _describe_error(error: Exception) -> str:
    if isinstance(error, AppError):
        return error.error.message
    return str(error) or error.__class__.__name__


class ListController:
    """Filtered, paginated, realtime-invalidated view over one list config.

    One instance per mounted list screen. Search, filter and sort changes reset
    pagination immediately and trigger a full reload; ``load_more`` appends the
    next page; ``go_to_page`` replaces the buffer with a single page. Every
    fetch is tagged with a sequence number and only the latest dispatched fetch
    may write state. Fetch errors become notifications, never exceptions.
    """

    def __init__(
        self,
        config: FilterConfig,
        scope: ListScope,
        backend: ListBackend,
        *,
        options: ListOptions | None = None,
        hub: ChangeHub | None = None,
        notifier: Notifier | None = None,
    ):
        options = options or ListOptions()
        initial_term = options.initial_search_term or ""
        self.config = config
        self.scope = scope
        self.state = FilterState(
            search_term=initial_term,
            debounced_search_term=initial_term,
            search_active=bool(initial_term.strip()),
            active_filters=frozenset(options.initial_filters),
            sort_by=config.default_sort,
            sort_dir=config.default_sort_dir,
            page_size=config.clamp_page_size(options.page_size),
        )
        self._backend = backend
        self._hub = hub
        self._notify = notifier or _log_notification
        self._realtime = config.realtime if options.realtime is None else options.realtime
        self._debouncer: Debouncer[str] = Debouncer(options.debounce_ms, self._on_search_settled)
        self._tasks = TaskTracker(name=config.entity)
        self._invalidator: RealtimeInvalidator | None = None
        self._sequence = 0
        self._in_flight: LoadKind | None = None
        self._started = False
        self._closed = False

    # lifecycle

    async def __aenter__(self) -> "ListController":
        await self.start()
        return self

    async def __aexit__(self, *_exc) -> None:
        self.close()

    async def start(self) -> None:
        if self._started or self._closed:
            return
        self._started = True
        self._attach_realtime()
        await self._reload()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._detach_realtime()
        self._tasks.cancel_all()
        self._in_flight = None
        self.state.loading = False
        self.state.pagination_loading = False

    async def wait_idle(self) -> None:
        await self._tasks.wait_idle()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def realtime_attached(self) -> bool:
        return self._invalidator is not None and self._invalidator.attached

    # read side

    @property
    def rows(self) -> list[Row]:
        return self.state.rows

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def pagination_loading(self) -> bool:
        return self.state.pagination_loading

    @property
    def is_first_load(self) -> bool:
        return self.state.is_first_load

    @property
    def is_busy(self) -> bool:
        return self._in_flight is not None

    @property
    def search_term(self) -> str:
        return self.state.search_term

    @property
    def search_active(self) -> bool:
        return self.state.search_active

    @property
    def active_filters(self) -> frozenset[str]:
        return self.state.active_filters

    @property
    def sort_by(self) -> str:
        return self.state.sort_by

    @property
    def sort_dir(self) -> SortDir:
        return self.state.sort_dir

    @property
    def total_count(self) -> int:
        return self.state.total_count

    @property
    def filtered_count(self) -> int:
        return self.state.total_count

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def page_size(self) -> int:
        return self.state.page_size

    @property
    def all_loaded(self) -> bool:
        return self.state.all_loaded

    # search

    def set_search_term(self, term: str) -> None:
        self.state.search_term = term
        self._debouncer.push(term)

    def _on_search_settled(self, term: str) -> None:
        if term == self.state.debounced_search_term:
            return
        self.state.debounced_search_term = term
        self._reset_pagination()
        if self.state.search_active:
            self._schedule_reload("search_settled")

    async def apply_search(self) -> None:
        if not self.state.search_term.strip():
            return
        self._debouncer.cancel()
        self.state.debounced_search_term = self.state.search_term
        self.state.search_active = True
        await self._reload()

    async def clear_search(self) -> None:
        was_active = self.state.search_active
        self._debouncer.cancel()
        self.state.search_term = ""
        self.state.debounced_search_term = ""
        self.state.search_active = False
        if was_active:
            await self._reload()

    # filters and sort

    async def set_active_filters(
        self,
        filters: Iterable[str] | Callable[[frozenset[str]], Iterable[str]],
    ) -> None:
        resolved = filters(self.state.active_filters) if callable(filters) else filters
        new_filters = frozenset(resolved)
        if new_filters == self.state.active_filters:
            return
        self.state.active_filters = new_filters
        await self._reload()

    async def set_sort_by(self, sort_by: str) -> None:
        resolved = self.config.resolve_sort(sort_by)
        if resolved == self.state.sort_by:
            return
        self.state.sort_by = resolved
        await self._reload()

    async def set_sort_dir(self, sort_dir: SortDir) -> None:
        if sort_dir == self.state.sort_dir:
            return
        self.state.sort_dir = sort_dir
        await self._reload()

    async def toggle_sort_dir(self) -> None:
        await self.set_sort_dir("asc" if self.state.sort_dir == "desc" else "desc")

    # pagination

    async def load_more(self) -> bool:
        if self.state.all_loaded or self._in_flight is not None:
            return False
        return await self._dispatch(LoadKind.APPEND, self.state.current_page + 1)

    async def go_to_page(self, page: int) -> bool:
        total = self.state.total_count
        if total <= 0:
            return False
        max_page = math.ceil(total / self.state.page_size) - 1
        target = max(0, min(page, max_page))
        if target == self.state.current_page or self._in_flight is not None:
            return False
        return await self._dispatch(LoadKind.PAGE_JUMP, target)

    async def set_page_size(self, page_size: int) -> None:
        self.state.page_size = self.config.clamp_page_size(page_size)
        await self._reload()

    async def refetch(self) -> None:
        await self._reload()

    async def invalidate(self) -> None:
        await self._reload()

    async def change_scope(self, scope: ListScope) -> None:
        if scope == self.scope:
            return
        self._detach_realtime()
        self.scope = scope
        self.state.rows = []
        self.state.total_count = 0
        self.state.is_first_load = True
        if self._started and not self._closed:
            self._attach_realtime()
        await self._reload()

    # realtime

    def _attach_realtime(self) -> None:
        if not self._realtime or self._hub is None or not self.scope.workspace_id:
            return
        self._invalidator = RealtimeInvalidator(
            self.config,
            self._hub,
            self._on_change,
            loop=asyncio.get_running_loop(),
        )
        self._invalidator.attach(self.scope.workspace_id)

    def _detach_realtime(self) -> None:
        if self._invalidator is not None:
            self._invalidator.detach()
            self._invalidator = None

    def _on_change(self, change: ChangeEvent) -> None:
        log_json(
            logger,
            {
                "event": "list_invalidated",
                "entity": self.config.entity,
                "table": change.table,
                "operation": change.operation.value,
                "workspace_id": change.workspace_id,
            },
            level=logging.DEBUG,
        )
        self._schedule_reload(f"realtime:{change.table}")

    # fetch machinery

    def _reset_pagination(self) -> None:
        self.state.current_page = 0
        self.state.all_loaded = False

    def _schedule_reload(self, reason: str) -> None:
        if self._closed:
            return
        self._reset_pagination()
        self._tasks.spawn(self._dispatch(LoadKind.FULL, 0), label=reason)

    async def _reload(self) -> None:
        self._reset_pagination()
        await self._dispatch(LoadKind.FULL, 0)

    def _build_request(self, page: int) -> ListRequest:
        return ListRequest(
            search_term=self.state.debounced_search_term,
            search_active=self.state.search_active,
            filters=self.state.active_filters,
            sort_by=self.state.sort_by,
            sort_dir=self.state.sort_dir,
            page=page,
            page_size=self.state.page_size,
        )

    def _is_current(self, sequence: int) -> bool:
        return sequence == self._sequence and not self._closed

    async def _dispatch(self, kind: LoadKind, page: int) -> bool:
        if self._closed:
            return False
        if not self.scope.workspace_id:
            self._sequence += 1
            self._in_flight = None
            self.state.loading = False
            self.state.pagination_loading = False
            return False

        self._sequence += 1
        sequence = self._sequence
        previous_page = self.state.current_page
        request = self._build_request(page)
        self.state.current_page = page
        if kind is LoadKind.PAGE_JUMP:
            self.state.all_loaded = False
        self._in_flight = kind
        if kind is LoadKind.FULL:
            self.state.loading = True
            self.state.pagination_loading = False
        else:
            self.state.pagination_loading = True

        started = time.perf_counter()
        try:
            result = await self._backend.fetch_page(self.config, self.scope, request)
        except Exception as exc:
            latency_ms = (time.perf_counter() - started) * 1000
            if not self._is_current(sequence):
                self._discard(kind, sequence, latency_ms, outcome="stale_error")
                return False
            self._fail(kind, request, previous_page, exc, latency_ms)
        else:
            latency_ms = (time.perf_counter() - started) * 1000
            if not self._is_current(sequence):
                self._discard(kind, sequence, latency_ms, outcome="stale")
                return False
            self._apply(kind, request, result, latency_ms)
        finally:
            if self._is_current(sequence):
                self._in_flight = None
                self.state.loading = False
                self.state.pagination_loading = False
        return True

    def _apply(self, kind: LoadKind, request: ListRequest, result: PageResult, latency_ms: float) -> None:
        rows = list(result.rows)
        if kind is LoadKind.APPEND:
            self.state.rows = [*self.state.rows, *rows]
        else:
            self.state.rows = rows
        self.state.total_count = result.total_count
        self.state.all_loaded = len(rows) < request.page_size
        self.state.is_first_load = False
        metrics.record_list_fetch(entity=self.config.entity, kind=kind.value, outcome="ok", latency_ms=latency_ms)
        log_json(
            logger,
            {
                "event": "list_fetch",
                "entity": self.config.entity,
                "kind": kind.value,
                "page": request.page,
                "rows": len(rows),
                "buffered_rows": len(self.state.rows),
                "total_count": result.total_count,
                "all_loaded": self.state.all_loaded,
                "latency_ms": round(latency_ms, 2),
            },
            level=logging.DEBUG,
        )

    def _fail(
        self,
        kind: LoadKind,
        request: ListRequest,
        previous_page: int,
        error: Exception,
        latency_ms: float,
    ) -> None:
        if kind is LoadKind.APPEND:
            self.state.current_page = previous_page
        else:
            self.state.rows = []
        metrics.record_list_fetch(entity=self.config.entity, kind=kind.value, outcome="error", latency_ms=latency_ms)
        log_json(
            logger,
            {
                "event": "list_fetch_failed",
                "entity": self.config.entity,
                "kind": kind.value,
                "page": request.page,
                "workspace_id": self.scope.workspace_id,
                "error_class": error.__class__.__name__,
                "error": str(error),
            },
            level=logging.ERROR,
        )
        notification = Notification(
            title="Error loading data",
            description=_describe_error(error),
            variant="destructive",
        )
        try:
            self._notify(notification)
        except Exception as exc:
            log_json(
                logger,
                {"event": "notification_failed", "entity": self.config.entity, "error": str(exc)},
                level=logging.ERROR,
            )

    def _discard(self, kind: LoadKind, sequence: int, latency_ms: float, *, outcome: str) -> None:
        metrics.increment_stale_response(self.config.entity)
        metrics.record_list_fetch(entity=self.config.entity, kind=kind.value, outcome=outcome, latency_ms=latency_ms)
        log_json(
            logger,
            {
                "event": "list_stale_response",
                "entity": self.config.entity,
                "kind": kind.value,
                "sequence": sequence,
                "latest_sequence": self._sequence,
                "closed": self._closed,
            },
            level=logging.DEBUG,
        )
