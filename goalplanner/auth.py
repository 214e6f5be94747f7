from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> UUID:
    # Identity is asserted by the fronting auth layer; we only parse it.
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    try:
        return UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header") from exc
