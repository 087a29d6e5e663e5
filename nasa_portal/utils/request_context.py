"""Request-scoped identifier shared by middleware, handlers and log lines.

The middleware in :mod:`nasa_portal.main` assigns an ``X-Request-ID`` to every
call; error payloads and handler logs read it back through :func:`get_request_id`
so a client report can be matched to the server-side trace.
"""

from __future__ import annotations

from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "clear_request_id",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")

_MAX_INBOUND_REQUEST_ID = 128


def resolve_request_id(inbound: str | None, *, fallback: str) -> str:
    """Reuse a gateway supplied identifier when it looks sane, else ``fallback``."""

    if inbound is None:
        return fallback
    candidate = inbound.strip()
    if not candidate or len(candidate) > _MAX_INBOUND_REQUEST_ID:
        return fallback
    if not candidate.isprintable():
        return fallback
    return candidate


def set_request_id(request_id: str) -> Token[str]:
    """Store ``request_id`` for the running task and return the reset token."""

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    """Reset the identifier, restoring the prior value when ``token`` is given."""

    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
