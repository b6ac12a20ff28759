from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Literal

from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

Row = dict[str, Any]
SortDir = Literal["asc", "desc"]


class Visibility(str, Enum):
    WORKSPACE = "workspace"
    ASSIGNED = "assigned"


class FilterKind(str, Enum):
    COLUMN = "column"
    PREDICATE = "predicate"
    STAFF_ROLE = "staff_role"
    QUOTATION_STATUS = "quotation_status"


class QuotationStatus(str, Enum):
    CONVERTED = "converted"
    PENDING = "pending"
    VALID = "valid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ColumnFilter:
    """Equality on one column; keys sharing a column are OR-ed together."""

    column: str
    value: str
    label: str | None = None
    kind: ClassVar[FilterKind] = FilterKind.COLUMN

    @property
    def display_label(self) -> str:
        return self.label or self.value


@dataclass(frozen=True)
class PredicateFilter:
    """Custom where-clause builder, called with the mapped model and today's date."""

    build: Callable[[type, date], ColumnElement[bool]]
    label: str
    kind: ClassVar[FilterKind] = FilterKind.PREDICATE

    @property
    def display_label(self) -> str:
        return self.label


@dataclass(frozen=True)
class StaffRoleFilter:
    """Rows having at least one staff assignment in ``role`` (resolved before the main query)."""

    role: str
    label: str | None = None
    kind: ClassVar[FilterKind] = FilterKind.STAFF_ROLE

    @property
    def display_label(self) -> str:
        return self.label or self.role


@dataclass(frozen=True)
class QuotationStatusFilter:
    status: QuotationStatus
    label: str | None = None
    kind: ClassVar[FilterKind] = FilterKind.QUOTATION_STATUS

    @property
    def display_label(self) -> str:
        return self.label or self.status.value.title()


FilterSpec = ColumnFilter | PredicateFilter | StaffRoleFilter | QuotationStatusFilter


@dataclass(frozen=True)
class SortOption:
    key: str
    label: str


@dataclass(frozen=True, eq=False)
class FilterConfig:
    entity: str
    model: type
    search_columns: tuple[str, ...]
    sort_options: tuple[SortOption, ...]
    filters: Mapping[str, FilterSpec] = field(default_factory=dict)
    default_sort: str = "created_at"
    default_sort_dir: SortDir = "desc"
    page_size: int = 50
    max_page_size: int = 200
    realtime: bool = True
    visibility: Visibility = Visibility.WORKSPACE
    assignee_columns: tuple[str, ...] = ()
    search_client_name: bool = False
    related_tables: tuple[str, ...] = ()
    enrich: Callable[[Session, list[Row]], list[Row]] | None = None

    @property
    def table(self) -> str:
        return self.model.__tablename__

    @property
    def sort_keys(self) -> tuple[str, ...]:
        return tuple(option.key for option in self.sort_options)

    @property
    def uses_quotation_status(self) -> bool:
        return any(spec.kind is FilterKind.QUOTATION_STATUS for spec in self.filters.values())

    def resolve_sort(self, sort_by: str | None) -> str:
        if sort_by and sort_by in self.sort_keys:
            return sort_by
        return self.default_sort

    def clamp_page_size(self, page_size: int | None) -> int:
        if not page_size or page_size < 1:
            return self.page_size
        return min(page_size, self.max_page_size)

    def specs_of(self, kind: FilterKind, keys: frozenset[str]) -> list[FilterSpec]:
        return [self.filters[key] for key in sorted(keys) if key in self.filters and self.filters[key].kind is kind]


@dataclass(frozen=True)
class ListScope:
    workspace_id: str | None
    user_id: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class ListRequest:
    search_term: str = ""
    search_active: bool = False
    filters: frozenset[str] = frozenset()
    sort_by: str = "created_at"
    sort_dir: SortDir = "desc"
    page: int = 0
    page_size: int = 50

    @property
    def window(self) -> tuple[int, int]:
        start = self.page * self.page_size
        return start, start + self.page_size - 1


@dataclass
class PageResult:
    rows: list[Row]
    total_count: int
