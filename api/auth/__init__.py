"""Authentication module for the API."""

from api.auth.jwt import create_access_token, verify_token
from api.auth.dependencies import CurrentUser, CurrentUserDep, get_current_user

__all__ = [
    "create_access_token",
    "verify_token",
    "CurrentUser",
    "CurrentUserDep",
    "get_current_user",
]
