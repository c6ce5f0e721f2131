"""API dependencies."""

from .auth import (
    CurrentUser,
    DbSession,
    get_current_user,
    get_jwks,
    get_signing_key,
    security,
)

__all__ = [
    "security",
    "get_jwks",
    "get_signing_key",
    "get_current_user",
    "DbSession",
    "CurrentUser",
]
