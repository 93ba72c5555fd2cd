"""Domain models shared between the store, the token service and the API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class User:
    """Represents a registered customer account."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    created_at: datetime

    def profile(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class TestDrive:
    """A scheduled test drive as listed back to its owner."""

    id: int
    car_model: str
    preferred_date: str
    preferred_time: str
    created_at: datetime


@dataclass(frozen=True)
class SubmissionReceipt:
    """Acknowledgement returned after a submission row has been written."""

    message: str
    id_key: str
    record_id: int

    def as_dict(self) -> Dict[str, object]:
        return {"message": self.message, self.id_key: self.record_id}


@dataclass(frozen=True)
class StoredCredential:
    """A user row together with its password digest, used only during login."""

    user: User
    password_hash: Optional[str]


__all__ = ["StoredCredential", "SubmissionReceipt", "TestDrive", "User"]
