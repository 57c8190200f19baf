"""
Request-scoped dependencies.
"""

from fastapi import Header, HTTPException


async def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """
    Identity of the caller.

    Authentication happens at the upstream gateway, which forwards the
    verified user id in the X-User-Id header.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()
