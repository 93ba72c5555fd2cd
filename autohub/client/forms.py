"""Declarative form submission pipeline shared by every customer-facing form.

Each form is described by a :class:`FormConfig`. :class:`FormPipeline` takes the
raw input values of a form (keyed by input identifier), checks authentication and
required inputs, applies the form's transform, sends the request and reports the
outcome to a :class:`FormSurface`, the UI the form lives in.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, TextIO, Tuple

from .api import ApiClient, ApiError, ApiResponse, AuthenticationExpired
from .storage import CredentialStore

logger = logging.getLogger("autohub.client.forms")

LOGIN_REQUIRED_MESSAGE = "Please log in to perform this action."
DEFAULT_SUCCESS_MESSAGE = "Operation successful!"
DEFAULT_ERROR_MESSAGE = "An error occurred. Please try again."
MESSAGE_TIMEOUT = 5.0

_TRUTHY = {"1", "true", "yes", "on"}

Transform = Callable[[Dict[str, Any]], Dict[str, Any]]
SuccessCallback = Callable[[ApiResponse, CredentialStore], None]


class FormValidationError(Exception):
    """Raised by a transform when the collected data cannot be submitted."""


@dataclass(frozen=True)
class FormFeedback:
    message: str
    kind: str
    timeout: float
    target: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == "danger"


@dataclass(frozen=True)
class FormOutcome:
    ok: bool
    feedback: FormFeedback
    response: Optional[ApiResponse] = None
    payload: Optional[Dict[str, Any]] = None


class FormSurface(Protocol):
    def show_message(self, feedback: FormFeedback) -> None: ...

    def reset(self) -> None: ...

    def close_modal(self, modal_id: str, delay: float) -> None: ...

    def request_login(self) -> None: ...


class ConsoleSurface:
    """Render form feedback as lines of text for the command-line client."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def show_message(self, feedback: FormFeedback) -> None:
        label = "error" if feedback.is_error else "ok"
        print(f"[{label}] {feedback.message}", file=self._stream)

    def reset(self) -> None:
        return None

    def close_modal(self, modal_id: str, delay: float) -> None:
        logger.debug("Closing %s after %.1fs", modal_id, delay)

    def request_login(self) -> None:
        print("Your session has ended. Run the login command to sign in again.", file=self._stream)


@dataclass(frozen=True)
class FormConfig:
    """Typed description of one form and the endpoint it submits to."""

    name: str
    endpoint: str
    method: str = "POST"
    required_fields: Tuple[str, ...] = ()
    field_map: Mapping[str, str] = field(default_factory=dict)
    transform: Optional[Transform] = None
    require_auth: bool = False
    clear_on_success: bool = True
    success_timeout: float = 1.5
    close_modal: Optional[str] = None
    success_message_field: Optional[str] = None
    on_success: Optional[SuccessCallback] = None

    def logical_name(self, input_id: str) -> str:
        for logical, mapped in self.field_map.items():
            if mapped == input_id:
                return logical
        return input_id

    def collect(self, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        return {self.logical_name(input_id): value for input_id, value in inputs.items()}


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return value is False


class FormPipeline:
    """Run a form submission from raw inputs to user-visible feedback."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def submit(
        self,
        config: FormConfig,
        inputs: Mapping[str, Any],
        surface: FormSurface,
    ) -> FormOutcome:
        if config.require_auth and not self._client.store.is_authenticated:
            return self._fail(surface, LOGIN_REQUIRED_MESSAGE)

        data = config.collect(inputs)

        for input_id in config.required_fields:
            if _is_blank(inputs.get(input_id)):
                return self._fail(
                    surface,
                    f"Please fill in the required field: {config.logical_name(input_id)}",
                )

        if config.transform is not None:
            try:
                data = config.transform(data)
            except FormValidationError as exc:
                return self._fail(surface, str(exc), payload=data)

        try:
            response = await self._client.request(
                config.endpoint,
                method=config.method,
                payload=data,
            )
        except AuthenticationExpired as exc:
            surface.request_login()
            return self._fail(surface, exc.message, payload=data)
        except ApiError as exc:
            return self._fail(surface, exc.message or DEFAULT_ERROR_MESSAGE, payload=data)

        message = DEFAULT_SUCCESS_MESSAGE
        if isinstance(response.data, dict) and response.data.get("message"):
            message = str(response.data["message"])

        if config.success_message_field:
            feedback = FormFeedback(
                message=message,
                kind="success",
                timeout=config.success_timeout + 1.5,
                target=config.success_message_field,
            )
        else:
            feedback = FormFeedback(message=message, kind="success", timeout=MESSAGE_TIMEOUT)
        surface.show_message(feedback)

        if config.clear_on_success:
            surface.reset()

        if config.on_success is not None:
            config.on_success(response, self._client.store)

        if config.close_modal:
            surface.close_modal(config.close_modal, config.success_timeout)

        logger.info("Form %s submitted to %s", config.name, config.endpoint)
        return FormOutcome(ok=True, feedback=feedback, response=response, payload=data)

    def _fail(
        self,
        surface: FormSurface,
        message: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
    ) -> FormOutcome:
        feedback = FormFeedback(message=message, kind="danger", timeout=MESSAGE_TIMEOUT)
        surface.show_message(feedback)
        return FormOutcome(ok=False, feedback=feedback, payload=payload)


# ----------------------------------------------------------------------
# Storefront forms
# ----------------------------------------------------------------------
def _store_login(response: ApiResponse, store: CredentialStore) -> None:
    store.save(response.data["token"], response.data["user"])


def _prepare_registration(data: Dict[str, Any]) -> Dict[str, Any]:
    agreed = str(data.get("termsAgree") or "").strip().lower() in _TRUTHY
    if not agreed:
        raise FormValidationError("Please agree to the Terms of Service and Privacy Policy.")
    if data.get("password") != data.get("confirmPassword"):
        raise FormValidationError("Passwords do not match.")
    prepared = dict(data)
    prepared.pop("confirmPassword", None)
    prepared.pop("termsAgree", None)
    return prepared


def _prepare_test_drive(data: Dict[str, Any]) -> Dict[str, Any]:
    prepared = dict(data)
    label = str(prepared.get("carModel") or "").replace(" Details", "").strip()
    prepared["carModel"] = label or "Unknown Car"
    return prepared


LOGIN_FORM = FormConfig(
    name="loginForm",
    endpoint="/login",
    required_fields=("authEmail", "authPassword"),
    field_map={"email": "authEmail", "password": "authPassword"},
    on_success=_store_login,
    close_modal="authModal",
    success_timeout=1.0,
)

REGISTER_FORM = FormConfig(
    name="registerForm",
    endpoint="/register",
    required_fields=(
        "authFirstName",
        "authLastName",
        "authRegisterEmail",
        "authPhoneNumber",
        "authRegisterPassword",
        "authConfirmPassword",
        "authTermsAgree",
    ),
    field_map={
        "firstName": "authFirstName",
        "lastName": "authLastName",
        "email": "authRegisterEmail",
        "phone": "authPhoneNumber",
        "password": "authRegisterPassword",
        "confirmPassword": "authConfirmPassword",
        "termsAgree": "authTermsAgree",
    },
    transform=_prepare_registration,
)

CONTACT_FORM = FormConfig(
    name="contactForm",
    endpoint="/contact",
    require_auth=True,
    required_fields=("name", "email", "phone", "interest", "message"),
    field_map={
        "name": "name",
        "email": "email",
        "phone": "phone",
        "interest": "interest",
        "message": "message",
    },
)

TEST_DRIVE_FORM = FormConfig(
    name="testDriveForm",
    endpoint="/test-drive",
    require_auth=True,
    required_fields=(
        "testDriveName",
        "testDriveEmail",
        "testDrivePhone",
        "testDriveDate",
        "testDriveTime",
    ),
    field_map={
        "name": "testDriveName",
        "email": "testDriveEmail",
        "phone": "testDrivePhone",
        "preferredDate": "testDriveDate",
        "preferredTime": "testDriveTime",
        "carModel": "carDetailModalLabel",
    },
    transform=_prepare_test_drive,
    close_modal="testDriveModal",
)

FINANCING_FORM = FormConfig(
    name="financingForm",
    endpoint="/financing-request",
    require_auth=True,
    required_fields=(
        "financingName",
        "financingEmail",
        "financingPhone",
        "financingAmount",
        "financingTerm",
    ),
    field_map={
        "name": "financingName",
        "email": "financingEmail",
        "phone": "financingPhone",
        "amount": "financingAmount",
        "term": "financingTerm",
        "message": "financingMessage",
    },
    success_message_field="financingSuccess",
    close_modal="serviceDetailModal",
    success_timeout=3.0,
)

FORMS: Dict[str, FormConfig] = {
    form.name: form
    for form in (LOGIN_FORM, REGISTER_FORM, CONTACT_FORM, TEST_DRIVE_FORM, FINANCING_FORM)
}


__all__ = [
    "CONTACT_FORM",
    "ConsoleSurface",
    "FINANCING_FORM",
    "FORMS",
    "FormConfig",
    "FormFeedback",
    "FormOutcome",
    "FormPipeline",
    "FormSurface",
    "FormValidationError",
    "LOGIN_FORM",
    "LOGIN_REQUIRED_MESSAGE",
    "REGISTER_FORM",
    "TEST_DRIVE_FORM",
]
