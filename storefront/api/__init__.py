"""
API module for the storefront cart service.

The app factory lives in ``storefront.api.server``; import it from there.
"""
from storefront.api.auth import get_current_user_id

__all__ = [
    "get_current_user_id",
]
