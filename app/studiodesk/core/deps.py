from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.studiodesk.core.context import RequestContext, build_request_context, get_request_context
from app.studiodesk.core.error_catalog import AppError, ErrorCatalog
from app.studiodesk.core.security import TokenData, decode_token, oauth2_scheme
from app.studiodesk.listing.config import ListScope


def get_current_token_data(token: str | None = Depends(oauth2_scheme)) -> TokenData:
    if not token:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def require_request_context(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
) -> RequestContext:
    context = build_request_context(
        user_id=token_data.sub,
        workspace_id=token_data.firm_id,
        role=token_data.role,
        trace_id=getattr(request.state, "trace_id", ""),
    )
    request.state.context = context
    return context


def require_list_scope(context: RequestContext = Depends(require_request_context)) -> ListScope:
    if not context.workspace_id:
        raise AppError(ErrorCatalog.WORKSPACE_SCOPE_REQUIRED)
    return ListScope(workspace_id=context.workspace_id, user_id=context.user_id, role=context.role)


__all__ = [
    "get_current_token_data",
    "get_request_context",
    "require_request_context",
    "require_list_scope",
]
