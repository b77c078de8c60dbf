"""
Per-request logging context.

The request id middleware binds a fresh context for the lifetime of each
request, and the auth dependency adds the caller's user id once the bearer
token resolves. ``RequestContextFilter`` copies both onto every log record,
so format strings can use ``%(request_id)s`` and ``%(actor_id)s`` anywhere,
Celery workers included (where both read ``-``).

The context is a dict mutated in place: sync dependencies and routes run in
worker threads on a copy of the context, and a plain ``ContextVar.set`` made
there would not be seen by the rest of the request.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Dict, Optional

_UNSET = "-"

_context: ContextVar[Optional[Dict[str, str]]] = ContextVar("request_context", default=None)


def bind_request(request_id: str) -> Token[Optional[Dict[str, str]]]:
    return _context.set({"request_id": request_id})


def unbind_request(token: Token[Optional[Dict[str, str]]]) -> None:
    _context.reset(token)


def bind_actor_id(user_id: str) -> None:
    """Attach the authenticated caller; a no-op outside a request."""
    context = _context.get()
    if context is not None:
        context["actor_id"] = user_id


def current_request_id() -> Optional[str]:
    context = _context.get()
    return context.get("request_id") if context else None


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context = _context.get() or {}
        if not hasattr(record, "request_id"):
            record.request_id = context.get("request_id", _UNSET)
        if not hasattr(record, "actor_id"):
            record.actor_id = context.get("actor_id", _UNSET)
        return True


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s %(actor_id)s] %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """basicConfig with the request-aware format and the filter on every root handler."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(RequestContextFilter())
