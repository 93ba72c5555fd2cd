"""Customer registration and login."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Tuple

from .database import Database
from .errors import InvalidCredentialsError
from .models import User
from .passwords import PasswordHasher
from .submissions import require_fields
from .tokens import TokenService

logger = logging.getLogger("autohub.accounts")

REGISTRATION_FIELDS = ("firstName", "lastName", "email", "phone", "password")
LOGIN_FIELDS = ("email", "password")


class AccountService:
    """Create accounts and exchange credentials for bearer tokens."""

    def __init__(self, database: Database, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._database = database
        self._hasher = hasher
        self._tokens = tokens

    def register(self, payload: Mapping[str, Any]) -> User:
        require_fields(payload, REGISTRATION_FIELDS)

        password_hash = self._hasher.hash(str(payload["password"]))
        user = self._database.create_user(
            first_name=str(payload["firstName"]).strip(),
            last_name=str(payload["lastName"]).strip(),
            email=str(payload["email"]),
            phone=str(payload["phone"]).strip(),
            password_hash=password_hash,
        )
        logger.info("User registered with ID: %s", user.id)
        return user

    def login(self, payload: Mapping[str, Any]) -> Tuple[str, Dict[str, object]]:
        require_fields(payload, LOGIN_FIELDS)

        email = str(payload["email"])
        credential = self._database.get_credential(email)
        if credential is None or not self._hasher.verify(
            str(payload["password"]), credential.password_hash
        ):
            logger.warning("Failed login attempt for email: %s", email.strip().lower())
            raise InvalidCredentialsError("Invalid email or password")

        token = self._tokens.issue(credential.user.profile())
        logger.info("User %s logged in", credential.user.id)
        return token, credential.user.profile()


__all__ = ["AccountService", "LOGIN_FIELDS", "REGISTRATION_FIELDS"]
