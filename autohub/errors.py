"""Exception hierarchy shared by the AutoHub API and its handlers."""

from __future__ import annotations

from typing import Dict, Optional


class AutoHubError(Exception):
    """Base class for errors that map onto an HTTP status and a public message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(AutoHubError):
    """A required field is missing or a submitted value is invalid."""

    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ConflictError(AutoHubError):
    status_code = 400


class AuthError(AutoHubError):
    """Bearer token problems raised by the auth gate."""

    status_code = 403


class MissingTokenError(AuthError):
    status_code = 401

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class InvalidTokenError(AuthError):
    status_code = 403


class InvalidCredentialsError(AutoHubError):
    status_code = 401


class PersistenceError(AutoHubError):
    """The store could not be reached or rejected a write."""

    status_code = 500


__all__ = [
    "AutoHubError",
    "AuthError",
    "ConflictError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "MissingTokenError",
    "PersistenceError",
    "ValidationError",
]
