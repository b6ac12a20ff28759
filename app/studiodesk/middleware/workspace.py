from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.studiodesk.core.context import build_request_context
from app.studiodesk.core.security import decode_token


class WorkspaceContextMiddleware(BaseHTTPMiddleware):
    """Exposes workspace/user/role from the bearer token for request logging.

    Authorization itself happens in the route dependencies; an unreadable
    token only leaves the context empty here.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.workspace_id = None
        request.state.user_id = None
        request.state.role = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
            except JWTError:
                payload = {}
            request.state.workspace_id = payload.get("firm_id")
            request.state.user_id = payload.get("sub")
            request.state.role = payload.get("role")

        request.state.context = build_request_context(
            user_id=request.state.user_id,
            workspace_id=request.state.workspace_id,
            role=request.state.role,
            trace_id=getattr(request.state, "trace_id", ""),
        )

        return await call_next(request)
