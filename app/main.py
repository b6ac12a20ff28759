from fastapi import FastAPI

from app.studiodesk.api import api_router
from app.studiodesk.core.config import settings
from app.studiodesk.core.errors import setup_exception_handlers
from app.studiodesk.core.logging import configure_logging
from app.studiodesk.middleware.observability import ObservabilityMiddleware
from app.studiodesk.middleware.trace import TraceIdMiddleware
from app.studiodesk.middleware.workspace import WorkspaceContextMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(WorkspaceContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
