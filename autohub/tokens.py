"""Issue and verify the short-lived bearer tokens handed out at login."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Mapping

from authlib.jose import JoseError, JsonWebToken

from .config import DEFAULT_TOKEN_TTL
from .errors import InvalidTokenError

logger = logging.getLogger("autohub.tokens")

ALGORITHM = "HS256"

_IDENTITY_CLAIMS = ("id", "email", "firstName", "lastName", "phone")


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a verified token."""

    id: int
    email: str
    first_name: str
    last_name: str
    phone: str
    issued_at: int
    expires_at: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenClaims":
        missing = [name for name in (*_IDENTITY_CLAIMS, "iat", "exp") if name not in payload]
        if missing:
            raise ValueError(f"Token is missing claims: {', '.join(missing)}")
        user_id = payload["id"]
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise ValueError("Token id claim must be an integer")
        return cls(
            id=user_id,
            email=str(payload["email"]),
            first_name=str(payload["firstName"]),
            last_name=str(payload["lastName"]),
            phone=str(payload["phone"]),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )

    def profile(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
        }


class TokenService:
    """Symmetric-key JWT issuer/verifier shared by the login route and the auth gate."""

    def __init__(self, secret: str, *, ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        if not secret:
            raise ValueError("A token signing secret must be provided")
        self._secret = secret
        self._ttl_seconds = int(ttl.total_seconds())
        self._jwt = JsonWebToken([ALGORITHM])

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, identity: Mapping[str, object], *, now: float | None = None) -> str:
        """Return a signed token carrying ``identity`` that expires one TTL after ``now``."""

        missing = [name for name in _IDENTITY_CLAIMS if name not in identity]
        if missing:
            raise ValueError(f"Identity is missing claims: {', '.join(missing)}")

        issued_at = int(time.time() if now is None else now)
        payload: Dict[str, object] = {name: identity[name] for name in _IDENTITY_CLAIMS}
        payload["iat"] = issued_at
        payload["exp"] = issued_at + self._ttl_seconds

        token = self._jwt.encode({"alg": ALGORITHM, "typ": "JWT"}, payload, self._secret)
        return token.decode("ascii") if isinstance(token, bytes) else token

    def verify(self, token: str, *, now: float | None = None) -> TokenClaims:
        """Return the claims of ``token`` or raise :class:`InvalidTokenError`."""

        try:
            payload = self._jwt.decode(token, self._secret)
            claims = TokenClaims.from_payload(payload)
        except (JoseError, ValueError, TypeError) as exc:
            logger.warning("Rejected bearer token: %s", exc)
            raise InvalidTokenError("Invalid or expired token") from exc

        current = time.time() if now is None else now
        if current >= claims.expires_at:
            logger.warning("Rejected expired bearer token for user %s", claims.id)
            raise InvalidTokenError("Invalid or expired token")

        return claims


__all__ = ["ALGORITHM", "TokenClaims", "TokenService"]
