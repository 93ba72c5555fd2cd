"""Command-line counterpart of the storefront's form submission scripts."""

from __future__ import annotations

from .api import ApiClient, ApiError, ApiResponse, AuthenticationExpired
from .forms import (
    ConsoleSurface,
    FormConfig,
    FormFeedback,
    FormOutcome,
    FormPipeline,
    FormValidationError,
)
from .storage import CredentialStore

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiResponse",
    "AuthenticationExpired",
    "ConsoleSurface",
    "CredentialStore",
    "FormConfig",
    "FormFeedback",
    "FormOutcome",
    "FormPipeline",
    "FormValidationError",
]
