"""
Structured logging for the dashboard data layer.

Every event carries the session user and, inside a mutation, the mutation id,
so one optimistic update can be followed from dispatch to settlement.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
mutation_id_var: ContextVar[Optional[str]] = ContextVar('mutation_id', default=None)

_CONTEXT_VARS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "mutation_id": mutation_id_var,
}


def configure_logging(app_name: str, log_level: str = "info", json_logs: bool = True) -> None:
    """Route structlog through stdlib logging on stdout.

    ``json_logs`` selects the JSON renderer; otherwise events are printed
    with the colourless console renderer used during development.
    """
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            add_area_context,
            add_session_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout,
                        level=getattr(logging, log_level.upper(), logging.INFO))
    get_logger(f"{app_name}.logging").debug("Logging configured", level=log_level, json=json_logs)


def add_area_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with the component area, e.g. ``cache`` for ``dashboard.cache``."""
    parts = event_dict.get("logger", "").split(".")
    if len(parts) > 1:
        event_dict.setdefault("area", parts[1])
    return event_dict


def add_session_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for field, var in _CONTEXT_VARS.items():
        value = var.get()
        if value and field not in event_dict:
            event_dict[field] = value
    return event_dict


@contextmanager
def mutation_context(mutation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a mutation id to log events emitted inside the block."""
    mutation_id = mutation_id or uuid.uuid4().hex[:12]
    token = mutation_id_var.set(mutation_id)
    try:
        yield mutation_id
    finally:
        mutation_id_var.reset(token)


def set_user_context(user_id: Optional[str] = None) -> None:
    if user_id:
        user_id_var.set(user_id)


def clear_context() -> None:
    """Forget the session user and any request or mutation id."""
    for var in _CONTEXT_VARS.values():
        var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
