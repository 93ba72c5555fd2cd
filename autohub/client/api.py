"""HTTP transport used by the form pipeline to talk to the AutoHub API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .storage import CredentialStore

logger = logging.getLogger("autohub.client")

AUTH_FAILED_MESSAGE = "Authentication failed. Please log in again."


class ApiError(Exception):
    """The API could not be reached or answered with an error status."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class AuthenticationExpired(ApiError):
    """The API rejected the stored token; credentials have been cleared."""


@dataclass(frozen=True)
class ApiResponse:
    ok: bool
    status: int
    data: Any = None


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def _is_json(response: httpx.Response) -> bool:
    return "application/json" in response.headers.get("content-type", "")


class ApiClient:
    """Send JSON requests, attaching the stored bearer token when there is one."""

    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._client = httpx.AsyncClient(
            base_url=_normalize_base_url(base_url),
            transport=transport,
            timeout=timeout,
        )

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        payload: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        headers = {"Content-Type": "application/json"}
        if self._store.token:
            headers["Authorization"] = f"Bearer {self._store.token}"

        if not path.startswith("/"):
            path = "/" + path

        try:
            response = await self._client.request(
                method.upper(),
                path,
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("API Fetch Error: %s", exc)
            raise ApiError(f"Failed to contact AutoHub API: {exc}") from exc

        if response.status_code in (401, 403):
            logger.warning(
                "Authentication error (%s). Clearing stored token.", response.status_code
            )
            self._store.clear()
            raise AuthenticationExpired(AUTH_FAILED_MESSAGE, status=response.status_code)

        default_message = f"HTTP error! status: {response.status_code}"
        if not _is_json(response):
            if response.is_error:
                raise ApiError(default_message, status=response.status_code)
            return ApiResponse(ok=True, status=response.status_code, data=None)

        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError("AutoHub API returned an invalid response", status=response.status_code) from exc

        if response.is_error:
            message = _extract_error_message(data, default_message)
            logger.error("API Fetch Error: %s", message)
            raise ApiError(message, status=response.status_code)

        return ApiResponse(ok=True, status=response.status_code, data=data)

    async def fetch_my_test_drives(self) -> List[Dict[str, Any]]:
        result = await self.request("/my-test-drives")
        drives = result.data
        if not isinstance(drives, list):
            return []
        return drives

    def logout(self) -> None:
        self._store.clear()
        logger.info("You have been successfully logged out.")


__all__ = [
    "AUTH_FAILED_MESSAGE",
    "ApiClient",
    "ApiError",
    "ApiResponse",
    "AuthenticationExpired",
]
