from __future__ import annotations

import json
import logging

from app.studiodesk.core.config import settings

_NOISY_LOGGERS = ("sqlalchemy.engine", "multipart")


def configure_logging(level: str | None = None) -> None:
    resolved = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format="%(message)s")
    logging.getLogger("studiodesk").setLevel(resolved)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))


def log_json(logger: logging.Logger, payload: dict, level: int = logging.INFO) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
