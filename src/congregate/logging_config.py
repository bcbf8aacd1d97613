from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from logging.config import dictConfig
from typing import Any

from congregate.settings import Settings, get_settings

_LEVEL_NAMES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_NO_REQUEST = "-"

_request_id: ContextVar[str | None] = ContextVar("congregate_request_id", default=None)


def normalize_log_level(raw_level: str) -> str:
    level = raw_level.strip().upper()
    return level if level in _LEVEL_NAMES else "INFO"


def set_request_id(request_id: str) -> Token[str | None]:
    return _request_id.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    """Stamp every record with the id of the HTTP request being served, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or _NO_REQUEST
        return True


def _escape(value: object) -> str:
    # Titles, names and notes come from users; one record must stay one line.
    return str(value).encode("unicode_escape").decode("ascii")


def format_log_fields(**fields: object) -> str:
    return " ".join(
        f"{key}={_escape(fields[key])}" for key in sorted(fields) if fields[key] is not None
    )


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record; ``log_with_fields`` values become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", _NO_REQUEST),
            "message": getattr(record, "event", None) or record.getMessage(),
        }
        fields: Mapping[str, object] = getattr(record, "fields", {})
        for key, value in fields.items():
            if value is not None and key not in payload:
                payload[key] = value if isinstance(value, int | float | bool) else str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def log_with_fields(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    exc_info: Any | None = None,
    **fields: object,
) -> None:
    """Log ``message`` followed by sorted ``key=value`` pairs.

    The raw fields also travel on the record (``record.fields``) so the JSON
    formatter can emit them as structured keys instead of text.
    """

    extra = {"event": message, "fields": fields}
    field_text = format_log_fields(**fields)
    if field_text:
        logger.log(level, "%s %s", message, field_text, exc_info=exc_info, extra=extra)
    else:
        logger.log(level, "%s", message, exc_info=exc_info, extra=extra)


def build_logging_config(settings: Settings) -> dict[str, Any]:
    level = normalize_log_level(settings.log_level)
    # SQL echo is far too chatty at INFO; only surface it when debugging.
    sql_level = "INFO" if level == "DEBUG" else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_context": {"()": RequestContextFilter}},
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)s %(name)s req=%(request_id)s %(message)s",
            },
            "json": {"()": JsonLogFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "filters": ["request_context"],
                "formatter": "json" if settings.log_json else "plain",
            }
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "congregate": {"level": level},
            "sqlalchemy.engine": {"level": sql_level},
            **{name: {"level": level} for name in ("uvicorn", "uvicorn.error", "uvicorn.access")},
        },
    }


def configure_logging(settings: Settings | None = None) -> None:
    dictConfig(build_logging_config(settings if settings is not None else get_settings()))
