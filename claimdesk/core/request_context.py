from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Who and what the current request is about, for log records."""

    request_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None


_EMPTY = RequestContext()
_REQUEST_CONTEXT: ContextVar[RequestContext] = ContextVar("request_context", default=_EMPTY)


def current_request_context() -> RequestContext:
    return _REQUEST_CONTEXT.get()


def set_request_context(
    *,
    request_id: str | None = None,
    organization_id: str | None = None,
    user_id: str | None = None,
) -> RequestContext:
    """Merge the given fields into the current context; None leaves a field as is."""
    changes = {
        key: value
        for key, value in (
            ("request_id", request_id),
            ("organization_id", organization_id),
            ("user_id", user_id),
        )
        if value is not None
    }
    context = replace(current_request_context(), **changes)
    _REQUEST_CONTEXT.set(context)
    return context


def clear_request_context() -> None:
    _REQUEST_CONTEXT.set(_EMPTY)
