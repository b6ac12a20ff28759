from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date
from typing import Protocol

from sqlalchemy.orm import Session

from app.studiodesk.listing.config import FilterConfig, ListRequest, ListScope, PageResult
from app.studiodesk.listing.repository import ListingRepository


class ListBackend(Protocol):
    async def fetch_page(self, config: FilterConfig, scope: ListScope, request: ListRequest) -> PageResult: ...


class SqlAlchemyListBackend:
    """Runs each page fetch in a worker thread with a session of its own."""

    def __init__(self, session_factory: Callable[[], Session], *, today: Callable[[], date] | None = None):
        self._session_factory = session_factory
        self._today = today

    async def fetch_page(self, config: FilterConfig, scope: ListScope, request: ListRequest) -> PageResult:
        return await asyncio.to_thread(self._fetch_page_sync, config, scope, request)

    def _fetch_page_sync(self, config: FilterConfig, scope: ListScope, request: ListRequest) -> PageResult:
        db = self._session_factory()
        try:
            return ListingRepository(db, today=self._today).fetch_page(config, scope, request)
        finally:
            db.close()
