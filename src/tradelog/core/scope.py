"""Authenticated-user scope.

Authentication happens outside this package; callers hand in the user id
they resolved.  Every analytics entry point checks it before querying.
"""

from __future__ import annotations

from .errors import UnauthorizedError


def require_user(user_id: str | None) -> str:
    """Return the normalised user id or raise :class:`UnauthorizedError`."""
    if user_id is None or not str(user_id).strip():
        raise UnauthorizedError("Unauthorized")
    return str(user_id).strip()
