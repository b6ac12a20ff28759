from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from app.studiodesk.core.config import settings
from app.studiodesk.core.deps import require_list_scope
from app.studiodesk.db.session import get_db
from app.studiodesk.listing.config import ListRequest, ListScope
from app.studiodesk.listing.entities import LIST_CONFIGS, get_config
from app.studiodesk.listing.repository import ListingRepository
from app.studiodesk.schemas.lists import (
    FilterOptionOut,
    ListCatalogResponse,
    ListMeta,
    ListOptionsResponse,
    ListResponse,
    SortOptionOut,
)

router = APIRouter()


@router.get("/studiodesk/lists", response_model=ListCatalogResponse)
def list_catalog(_scope: ListScope = Depends(require_list_scope)):
    return ListCatalogResponse(entities=sorted(LIST_CONFIGS))


@router.get("/studiodesk/lists/{entity}", response_model=ListResponse)
def list_entity(
    entity: str,
    request: Request,
    scope: ListScope = Depends(require_list_scope),
    db=Depends(get_db),
    q: str | None = None,
    filters: list[str] = Query(default=[]),
    sort_by: str | None = None,
    sort_dir: Literal["asc", "desc"] | None = None,
    page: int = Query(0, ge=0),
    page_size: int | None = Query(None, ge=1, le=settings.LIST_MAX_PAGE_SIZE),
):
    config = get_config(entity)
    search_term = q or ""
    list_request = ListRequest(
        search_term=search_term,
        search_active=bool(search_term.strip()),
        filters=frozenset(filters),
        sort_by=config.resolve_sort(sort_by),
        sort_dir=sort_dir or config.default_sort_dir,
        page=page,
        page_size=config.clamp_page_size(page_size),
    )
    result = ListingRepository(db).fetch_page(config, scope, list_request)
    meta = ListMeta(
        entity=config.entity,
        page=list_request.page,
        page_size=list_request.page_size,
        sort_by=list_request.sort_by,
        sort_dir=list_request.sort_dir,
        total_count=result.total_count,
        filtered_count=result.total_count,
        all_loaded=len(result.rows) < list_request.page_size,
    )
    return ListResponse(meta=meta, rows=result.rows, trace_id=getattr(request.state, "trace_id", ""))


@router.get("/studiodesk/lists/{entity}/options", response_model=ListOptionsResponse)
def list_options(entity: str, _scope: ListScope = Depends(require_list_scope)):
    config = get_config(entity)
    return ListOptionsResponse(
        entity=config.entity,
        table=config.table,
        search_columns=list(config.search_columns),
        sort_options=[SortOptionOut(key=option.key, label=option.label) for option in config.sort_options],
        filters=[
            FilterOptionOut(key=key, label=spec.display_label, kind=spec.kind.value)
            for key, spec in config.filters.items()
        ],
        default_sort=config.default_sort,
        default_sort_dir=config.default_sort_dir,
        page_size=config.page_size,
        max_page_size=config.max_page_size,
        realtime=config.realtime,
        related_tables=list(config.related_tables),
    )
