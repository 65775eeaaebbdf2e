"""
Request-scoped dependencies shared by the routers.

The acting user arrives explicitly with each request in the
X-User-Id header and is handed to every service call. Issuing
and verifying the credential behind that header is the job of
the gateway in front of this service.
"""

from fastapi import Header, HTTPException


def get_actor(x_user_id: str | None = Header(default=None)) -> str:
    """Return the acting user's id, or 401 when the header is missing."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id.strip()


def get_optional_actor(x_user_id: str | None = Header(default=None)) -> str | None:
    if not x_user_id or not x_user_id.strip():
        return None
    return x_user_id.strip()
