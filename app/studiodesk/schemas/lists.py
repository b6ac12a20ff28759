from typing import Any, Literal

from pydantic import BaseModel


class ListMeta(BaseModel):
    entity: str
    page: int
    page_size: int
    sort_by: str
    sort_dir: Literal["asc", "desc"]
    total_count: int
    filtered_count: int
    all_loaded: bool


class ListResponse(BaseModel):
    meta: ListMeta
    rows: list[dict[str, Any]]
    trace_id: str


class SortOptionOut(BaseModel):
    key: str
    label: str


class FilterOptionOut(BaseModel):
    key: str
    label: str
    kind: str


class ListOptionsResponse(BaseModel):
    entity: str
    table: str
    search_columns: list[str]
    sort_options: list[SortOptionOut]
    filters: list[FilterOptionOut]
    default_sort: str
    default_sort_dir: Literal["asc", "desc"]
    page_size: int
    max_page_size: int
    realtime: bool
    related_tables: list[str]


class ListCatalogResponse(BaseModel):
    entities: list[str]
