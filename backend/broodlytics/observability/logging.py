from __future__ import annotations

import logging
from typing import Any, Dict

import structlog

from broodlytics import __version__
from broodlytics.config import get_settings

# engine events carry gram weights and gains; three decimals is finer than any scale
FLOAT_PRECISION = 3


def configure_logging(level: str | None = None) -> None:
    """Route stdlib + structlog output to stdout as one JSON object per line."""
    settings = get_settings()
    log_level = (level or settings.LOG_LEVEL).upper()

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _rename_event_key,
            service_context(settings.ENV),
            _round_floats,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def service_context(env: str):
    """Processor stamping every event with the service name, environment and version."""

    def _add(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", "broodlytics")
        event_dict.setdefault("env", env)
        event_dict.setdefault("version", __version__)
        return event_dict

    return _add


def _round_floats(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, FLOAT_PRECISION)
    return event_dict


def _rename_event_key(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    if "event" in event_dict:
        return event_dict
    msg = event_dict.pop("msg", None)
    if msg is not None:
        event_dict["event"] = msg
    return event_dict
