"""Generic validation and insertion of customer submissions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .database import Database
from .errors import ValidationError
from .models import SubmissionReceipt
from .tokens import TokenClaims

logger = logging.getLogger("autohub.submissions")

Prevalidator = Callable[[Mapping[str, Any]], Dict[str, Any]]

# Bounds of a SQLite INTEGER column.
SQLITE_MAX_INTEGER = 2**63 - 1
SQLITE_MIN_INTEGER = -(2**63)


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def require_fields(payload: Mapping[str, Any], fields: Sequence[str]) -> None:
    """Raise :class:`ValidationError` naming the first missing or empty field."""

    for name in fields:
        if is_blank(payload.get(name)):
            logger.warning("Missing required field: %s", name)
            raise ValidationError(f"Missing required field: {name}", field=name)


def is_storable(value: object) -> bool:
    if value is None or isinstance(value, str):
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return SQLITE_MIN_INTEGER <= value <= SQLITE_MAX_INTEGER
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def require_storable(payload: Mapping[str, Any], fields: Sequence[str]) -> None:
    """Raise :class:`ValidationError` for the first field the store cannot hold."""

    for name in fields:
        if not is_storable(payload.get(name)):
            logger.warning("Invalid value for field: %s", name)
            raise ValidationError(f"Invalid value for field: {name}", field=name)


@dataclass(frozen=True)
class SubmissionForm:
    """Describes how one kind of submission is validated and stored."""

    table: str
    required_fields: Tuple[str, ...]
    columns: Tuple[str, ...]
    success_message: str
    id_key: str
    prevalidate: Optional[Prevalidator] = None

    def map_columns(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            column: None if is_blank(payload.get(column)) else payload.get(column)
            for column in self.columns
        }


def _parse_amount(value: object) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean amount")
    amount = float(str(value).strip()) if isinstance(value, str) else float(value)  # type: ignore[arg-type]
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError("amount must be positive")
    return amount


def _parse_term(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean term")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("term must be whole")
        term = int(value)
    else:
        term = int(str(value).strip())
    if term <= 0:
        raise ValueError("term must be positive")
    if term > SQLITE_MAX_INTEGER:
        raise ValueError("term is out of range")
    return term


def validate_financing(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Check loan amount and term, returning the payload with normalised values."""

    normalized = dict(payload)
    amount = payload.get("amount")
    if not is_blank(amount):
        try:
            normalized["amount"] = _parse_amount(amount)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValidationError("Invalid loan amount", field="amount") from exc

    term = payload.get("term")
    if not is_blank(term):
        try:
            normalized["term"] = _parse_term(term)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValidationError("Invalid loan term", field="term") from exc

    return normalized


TEST_DRIVE = SubmissionForm(
    table="test_drives",
    required_fields=("carModel", "name", "email", "phone", "preferredDate", "preferredTime"),
    columns=("carModel", "name", "email", "phone", "preferredDate", "preferredTime"),
    success_message="Test drive scheduled successfully",
    id_key="testDriveId",
)

CONTACT_MESSAGE = SubmissionForm(
    table="messages",
    required_fields=("name", "email", "phone", "interest", "message"),
    columns=("name", "email", "phone", "interest", "message"),
    success_message="Message sent successfully",
    id_key="messageId",
)

FINANCING_REQUEST = SubmissionForm(
    table="financing_requests",
    required_fields=("name", "email", "phone", "amount", "term"),
    columns=("name", "email", "phone", "amount", "term", "message"),
    success_message=(
        "Financing request submitted successfully. A specialist will contact you soon."
    ),
    id_key="financingRequestId",
    prevalidate=validate_financing,
)


class SubmissionHandler:
    """Validate a payload against a :class:`SubmissionForm` and store one row."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def submit(
        self,
        form: SubmissionForm,
        payload: Mapping[str, Any],
        identity: TokenClaims,
    ) -> SubmissionReceipt:
        data: Mapping[str, Any] = payload
        if form.prevalidate is not None:
            data = form.prevalidate(payload)

        require_fields(data, form.required_fields)
        require_storable(data, form.columns)

        record_id = self._database.insert_submission(
            form.table,
            identity.id,
            form.map_columns(data),
        )
        logger.info(
            "Saved %s row %s for user %s",
            form.table,
            record_id,
            identity.id,
        )
        return SubmissionReceipt(
            message=form.success_message,
            id_key=form.id_key,
            record_id=record_id,
        )


__all__ = [
    "CONTACT_MESSAGE",
    "FINANCING_REQUEST",
    "SubmissionForm",
    "SubmissionHandler",
    "TEST_DRIVE",
    "is_blank",
    "is_storable",
    "require_fields",
    "require_storable",
    "validate_financing",
]
