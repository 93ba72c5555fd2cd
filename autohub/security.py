"""Bearer token gate for the protected AutoHub routes."""
from __future__ import annotations

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import MissingTokenError
from .tokens import TokenClaims, TokenService


class BearerAuth:
    """Verify the ``Authorization: Bearer`` header and attach the caller's claims."""

    def __init__(self, tokens: TokenService):
        self._tokens = tokens
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> TokenClaims:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise MissingTokenError("Authentication token required")

        provided = credentials.credentials.strip()
        if not provided:
            raise MissingTokenError("Authentication token required")

        claims = self._tokens.verify(provided)
        request.state.user = claims
        return claims


__all__ = ["BearerAuth"]
