from __future__ import annotations

import logging
import sys

import structlog

from .context import get_request_id

# Third-party loggers that are chatty at INFO (connection pools, SDK retries).
_QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "openai")

_CONFIGURED = False


def _add_request_id(_: logging.Logger, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


def _service_tagger(service: str):
    def _add_service(_: logging.Logger, __: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service)
        return event_dict

    return _add_service


def configure_logging(*, level: str | int = "INFO", service: str = "kings-canvas-api") -> None:
    """
    Route stdlib logging and structlog through one JSON formatter on stdout.

    Every event carries `service`, and `request_id` while a request is in flight.
    Safe to call more than once; only the first call takes effect.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper() or "INFO")
        if not isinstance(level, int):
            level = logging.INFO

    shared = [
        _add_request_id,
        _service_tagger(service),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_log = logging.getLogger(name)
        server_log.handlers = []
        server_log.propagate = True
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
