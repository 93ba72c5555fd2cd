"""Password hashing for stored customer credentials."""

from __future__ import annotations

from passlib.context import CryptContext

from .config import DEFAULT_BCRYPT_ROUNDS


class PasswordHasher:
    """Salted bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password must not be empty")
        return self._context.hash(password)

    def verify(self, password: str, hashed: str | None) -> bool:
        if not password or not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except (ValueError, TypeError):
            return False


__all__ = ["PasswordHasher"]
