"""Caller identity as forwarded by the upstream auth gateway."""

from __future__ import annotations

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"


async def get_owner_id(
    x_user_id: str | None = Header(
        default=None,
        alias=USER_ID_HEADER,
        description="Opaque identifier of the authenticated user.",
    ),
) -> str:
    """Return the caller's owner id or reject the request with ``401``."""

    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id.strip()
