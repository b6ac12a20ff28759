from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import and_, false, func, or_, select
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from app.studiodesk.core.scope import is_elevated
from app.studiodesk.db.models import Client, EventStaffAssignment
from app.studiodesk.listing.config import (
    FilterConfig,
    FilterKind,
    ListRequest,
    ListScope,
    QuotationStatus,
    Visibility,
)

logger = logging.getLogger("studiodesk.listing.query")

NIL_UUID = "00000000-0000-0000-0000-000000000000"
_UNSAFE_SEARCH_CHARS = re.compile(r"[,()]")


@dataclass(frozen=True)
class ListQuery:
    rows: Select
    count: Select
    sort_by: str
    ignored_filters: tuple[str, ...]


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def sanitize_search_term(term: str) -> str:
    return _UNSAFE_SEARCH_CHARS.sub(" ", term.strip()).strip()


def effective_search_term(request: ListRequest) -> str | None:
    if not request.search_active:
        return None
    term = sanitize_search_term(request.search_term)
    return term or None


def scope_clause(
    config: FilterConfig,
    scope: ListScope,
    elevated_roles: Iterable[str] | None = None,
) -> ColumnElement[bool]:
    model = config.model
    if config.visibility is Visibility.WORKSPACE or is_elevated(scope.role, elevated_roles):
        return model.firm_id == scope.workspace_id
    if not scope.user_id or not config.assignee_columns:
        return false()
    return or_(*(getattr(model, column) == scope.user_id for column in config.assignee_columns))


def staff_role_ids_query(config: FilterConfig, scope: ListScope, request: ListRequest) -> Select | None:
    roles = sorted({spec.role for spec in config.specs_of(FilterKind.STAFF_ROLE, request.filters)})
    if not roles:
        return None
    return (
        select(EventStaffAssignment.event_id)
        .where(
            EventStaffAssignment.firm_id == scope.workspace_id,
            EventStaffAssignment.role.in_(roles),
        )
        .distinct()
    )


def restrict_ids(ids: Iterable) -> list[str]:
    unique = sorted({str(value) for value in ids if value is not None})
    return unique or [NIL_UUID]


def quotation_status_clause(model: type, statuses: set[QuotationStatus], today: date) -> ColumnElement[bool]:
    if QuotationStatus.CONVERTED in statuses:
        return model.converted_to_event.is_not(None)
    expired = model.valid_until < today
    if QuotationStatus.EXPIRED in statuses:
        validity = expired
    else:
        validity = or_(model.valid_until.is_(None), ~expired)
    return and_(model.converted_to_event.is_(None), validity)


def search_clause(config: FilterConfig, term: str) -> ColumnElement[bool] | None:
    model = config.model
    clauses = [getattr(model, column).icontains(term, autoescape=True) for column in config.search_columns]
    if config.search_client_name:
        clauses.append(
            model.client_id.in_(select(Client.id).where(Client.name.icontains(term, autoescape=True)))
        )
    if not clauses:
        return None
    return or_(*clauses)


def build_list_query(
    config: FilterConfig,
    scope: ListScope,
    request: ListRequest,
    *,
    restricted_ids: list[str] | None = None,
    today: date | None = None,
    elevated_roles: Iterable[str] | None = None,
) -> ListQuery:
    model = config.model
    today = today or utc_today()
    query = select(model).where(scope_clause(config, scope, elevated_roles))

    if restricted_ids is not None:
        query = query.where(model.id.in_(restricted_ids))

    if config.uses_quotation_status:
        statuses = {spec.status for spec in config.specs_of(FilterKind.QUOTATION_STATUS, request.filters)}
        query = query.where(quotation_status_clause(model, statuses, today))

    term = effective_search_term(request)
    if term:
        clause = search_clause(config, term)
        if clause is not None:
            query = query.where(clause)

    grouped: dict[str, set[str]] = {}
    ignored: list[str] = []
    for key in sorted(request.filters):
        spec = config.filters.get(key)
        if spec is None:
            ignored.append(key)
            continue
        if spec.kind is FilterKind.COLUMN:
            grouped.setdefault(spec.column, set()).add(spec.value)
        elif spec.kind is FilterKind.PREDICATE:
            query = query.where(spec.build(model, today))
    for column in sorted(grouped):
        query = query.where(getattr(model, column).in_(sorted(grouped[column])))
    if ignored:
        logger.debug("ignoring unknown filter keys %s for %s", ignored, config.entity)

    count = select(func.count()).select_from(query.subquery())

    sort_by = config.resolve_sort(request.sort_by)
    sort_column = getattr(model, sort_by)
    sort_column = sort_column.desc() if request.sort_dir == "desc" else sort_column.asc()
    start, _end = request.window
    rows = query.order_by(sort_column, model.id.asc()).offset(start).limit(request.page_size)
    return ListQuery(rows=rows, count=count, sort_by=sort_by, ignored_filters=tuple(ignored))
