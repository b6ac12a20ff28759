import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.studiodesk.core.config import settings
from app.studiodesk.core.db_timing import current_db_stats, record_statement
from app.studiodesk.db.models import Base
from app.studiodesk.realtime.capture import install_change_capture
from app.studiodesk.realtime.hub import change_hub

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, echo=False, future=True, connect_args=connect_args)


@event.listens_for(engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if current_db_stats() is None:
        return
    conn.info["query_start_time"] = time.perf_counter()


@event.listens_for(engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = conn.info.pop("query_start_time", None)
    if start is None:
        return
    record_statement((time.perf_counter() - start) * 1000)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
change_capture = install_change_capture(SessionLocal, change_hub) if settings.REALTIME_ENABLED else None


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
