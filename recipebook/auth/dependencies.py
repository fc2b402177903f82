from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request


def require_user(request: Request) -> dict[str, Any]:
    """The ``{id, username}`` stored at login; 401 when the session has none."""
    user = request.session.get("user")
    if not user or "id" not in user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def require_user_id(request: Request) -> int:
    """The caller's id. Recipe routes take ownership from here, never from the body."""
    return int(require_user(request)["id"])
