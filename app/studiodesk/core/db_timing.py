from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass


@dataclass
class DbStats:
    time_ms: float = 0.0
    statements: int = 0


_db_stats: ContextVar[DbStats | None] = ContextVar("db_stats", default=None)


def start_db_stats() -> object:
    return _db_stats.set(DbStats())


def stop_db_stats(token: object) -> None:
    _db_stats.reset(token)


def record_statement(delta_ms: float) -> None:
    stats = _db_stats.get()
    if stats is None:
        return
    stats.time_ms += delta_ms
    stats.statements += 1


def current_db_stats() -> DbStats | None:
    return _db_stats.get()
