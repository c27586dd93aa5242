"""Correlation id helpers shared by logging and failure records."""

from __future__ import annotations

from contextvars import ContextVar, Token
from uuid import uuid4

import structlog

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def bind_correlation_id(value: str) -> Token[str | None]:
    """Bind a correlation id to the current context and to structlog."""
    token = _correlation_id.set(value)
    structlog.contextvars.bind_contextvars(correlation_id=value)
    return token


def reset_correlation_id(token: Token[str | None] | None) -> None:
    """Restore the correlation id that was bound before ``token`` was issued."""
    if token is not None:
        _correlation_id.reset(token)
    restored = _correlation_id.get()
    if restored is None:
        structlog.contextvars.unbind_contextvars("correlation_id")
    else:
        structlog.contextvars.bind_contextvars(correlation_id=restored)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def current_or_new_id() -> str:
    """Return the bound correlation id, or a fresh one if none is bound."""
    return get_correlation_id() or uuid4().hex
