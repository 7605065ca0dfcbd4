"""
Caller identity for every API route.
The identity is opaque: it comes from the signed session cookie (`user_id`)
or, for API clients, the X-User-Id header. Rows are tagged and filtered by it.
"""
from __future__ import annotations

from fastapi import Header, HTTPException, Request, status


def require_owner(
    request: Request,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """Raises 401 when no identity is present. Returns the owner id."""
    session_user_id = request.session.get("user_id")
    owner_id = str(session_user_id or x_user_id or "").strip()
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"status": "error", "message": "auth_required"},
        )
    return owner_id
