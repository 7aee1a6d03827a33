"""
Identity boundary.

Authentication itself happens upstream (gateway or auth middleware). By the
time a cart route runs, the caller is identified either by ``request.state.user``
(an object or mapping carrying ``_id``/``id``) or by the trusted user-id header
configured in ``auth.user_id_header``.
"""

from typing import Any, Optional

from fastapi import Request

from storefront.core.config import get_config


def _user_id_from_state(user: Any) -> Optional[str]:
    if user is None:
        return None
    if isinstance(user, dict):
        value = user.get("_id") or user.get("id")
    else:
        value = getattr(user, "_id", None) or getattr(user, "id", None)
    return str(value) if value else None


def get_current_user_id(request: Request) -> Optional[str]:
    """Return the authenticated user's id, or None when the request is anonymous."""
    user_id = _user_id_from_state(getattr(request.state, "user", None))
    if user_id:
        return user_id

    config = getattr(request.app.state, "config", None) or get_config()
    header_value = request.headers.get(config.user_id_header)
    if header_value and header_value.strip():
        return header_value.strip()
    return None
