from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.studiodesk.core.error_catalog import AppError, ErrorCatalog
from app.studiodesk.core.logging import log_json
from app.studiodesk.listing.config import FilterConfig, ListRequest, ListScope, PageResult, Row
from app.studiodesk.listing.query import build_list_query, restrict_ids, staff_role_ids_query, utc_today

logger = logging.getLogger("studiodesk.listing")


def row_to_dict(record) -> Row:
    mapper = sa_inspect(record).mapper
    return {attr.key: getattr(record, attr.key) for attr in mapper.column_attrs}


class ListingRepository:
    def __init__(self, db: Session, *, today: Callable[[], date] | None = None):
        self.db = db
        self._today = today or utc_today

    def fetch_page(self, config: FilterConfig, scope: ListScope, request: ListRequest) -> PageResult:
        restricted_ids = self._resolve_staff_role_ids(config, scope, request)
        list_query = build_list_query(
            config,
            scope,
            request,
            restricted_ids=restricted_ids,
            today=self._today(),
        )
        try:
            total_count = self.db.execute(list_query.count).scalar_one()
            records = self.db.execute(list_query.rows).scalars().all()
            rows = [row_to_dict(record) for record in records]
            if config.enrich is not None:
                rows = config.enrich(self.db, rows)
        except SQLAlchemyError as exc:
            raise AppError(
                ErrorCatalog.QUERY_FAILED,
                details={"table": config.table, "type": exc.__class__.__name__},
            ) from exc

        log_json(
            logger,
            {
                "event": "list_query",
                "entity": config.entity,
                "workspace_id": scope.workspace_id,
                "page": request.page,
                "page_size": request.page_size,
                "sort_by": list_query.sort_by,
                "sort_dir": request.sort_dir,
                "filters": sorted(request.filters),
                "ignored_filters": list(list_query.ignored_filters),
                "rows": len(rows),
                "total_count": total_count,
            },
            level=logging.DEBUG,
        )
        return PageResult(rows=rows, total_count=total_count)

    def _resolve_staff_role_ids(
        self,
        config: FilterConfig,
        scope: ListScope,
        request: ListRequest,
    ) -> list[str] | None:
        ids_query = staff_role_ids_query(config, scope, request)
        if ids_query is None:
            return None
        try:
            event_ids = self.db.execute(ids_query).scalars().all()
        except SQLAlchemyError as exc:
            raise AppError(
                ErrorCatalog.JOIN_STEP_FAILED,
                details={"table": "event_staff_assignments", "type": exc.__class__.__name__},
            ) from exc
        return restrict_ids(event_ids)
