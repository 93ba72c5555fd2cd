"""HTTP API for customer accounts, test drives, contact messages and financing."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List

import anyio
from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .accounts import AccountService
from .config import Settings, load_settings
from .database import Database
from .errors import AutoHubError
from .models import TestDrive
from .passwords import PasswordHasher
from .security import BearerAuth
from .submissions import (
    CONTACT_MESSAGE,
    FINANCING_REQUEST,
    TEST_DRIVE,
    SubmissionForm,
    SubmissionHandler,
)
from .tokens import TokenClaims, TokenService

logger = logging.getLogger("autohub.service")

GENERIC_ERROR_MESSAGE = "Something went wrong on the server!"


class MessageResponse(BaseModel):
    message: str


class UserProfile(BaseModel):
    id: int
    email: str
    firstName: str
    lastName: str
    phone: str


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserProfile


class TestDriveView(BaseModel):
    id: int
    carModel: str
    preferredDate: str
    preferredTime: str
    createdAt: datetime


class TestDriveCreated(BaseModel):
    message: str
    testDriveId: int


class MessageCreated(BaseModel):
    message: str
    messageId: int


class FinancingRequestCreated(BaseModel):
    message: str
    financingRequestId: int


def _test_drive_to_view(drive: TestDrive) -> TestDriveView:
    return TestDriveView(
        id=drive.id,
        carModel=drive.car_model,
        preferredDate=drive.preferred_date,
        preferredTime=drive.preferred_time,
        createdAt=drive.created_at,
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AutoHubError)
    async def handle_autohub_error(_: Request, exc: AutoHubError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError):
        logger.warning("Rejected malformed request body: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Request body must be a JSON object"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": GENERIC_ERROR_MESSAGE},
        )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application backing the dealership site."""

    settings = settings or load_settings()
    db = database or Database(settings.database_path)

    if settings.uses_default_secret:
        logger.critical(
            "JWT_SECRET is not set; tokens are being signed with the insecure built-in"
            " default. Set JWT_SECRET before exposing this service."
        )

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(settings.jwt_secret, ttl=settings.token_ttl)
    accounts = AccountService(db, hasher, tokens)
    submissions = SubmissionHandler(db)
    current_user = BearerAuth(tokens)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        db.open()
        try:
            yield
        finally:
            db.close()

    app = FastAPI(
        title="AutoHub API",
        version="1.0.0",
        description="Accounts and customer requests for the AutoHub dealership site.",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.database = db
    app.state.tokens = tokens

    def get_accounts() -> AccountService:
        return accounts

    def get_submissions() -> SubmissionHandler:
        return submissions

    def get_db() -> Database:
        return db

    async def _submit(
        form: SubmissionForm,
        payload: Dict[str, Any],
        user: TokenClaims,
        handler: SubmissionHandler,
    ) -> Dict[str, object]:
        logger.info("[POST /%s] Received request for userId: %s", form.table, user.id)
        receipt = await anyio.to_thread.run_sync(handler.submit, form, payload, user)
        return receipt.as_dict()

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "AutoHub Backend is running!"

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post(
        "/register",
        status_code=status.HTTP_201_CREATED,
        response_model=MessageResponse,
    )
    async def register(
        payload: Dict[str, Any] = Body(...),
        service: AccountService = Depends(get_accounts),
    ) -> MessageResponse:
        await anyio.to_thread.run_sync(service.register, payload)
        return MessageResponse(message="User registered successfully")

    @app.post("/login", response_model=LoginResponse)
    async def login(
        payload: Dict[str, Any] = Body(...),
        service: AccountService = Depends(get_accounts),
    ) -> LoginResponse:
        token, profile = await anyio.to_thread.run_sync(service.login, payload)
        return LoginResponse(
            message="Login successful",
            token=token,
            user=UserProfile(**profile),
        )

    @app.get("/my-test-drives", response_model=List[TestDriveView])
    async def my_test_drives(
        user: TokenClaims = Depends(current_user),
        store: Database = Depends(get_db),
    ) -> List[TestDriveView]:
        drives = await anyio.to_thread.run_sync(store.list_test_drives, user.id)
        logger.info("[GET /my-test-drives] Found %s drives for userId: %s", len(drives), user.id)
        return [_test_drive_to_view(drive) for drive in drives]

    @app.post(
        "/test-drive",
        status_code=status.HTTP_201_CREATED,
        response_model=TestDriveCreated,
    )
    async def schedule_test_drive(
        payload: Dict[str, Any] = Body(...),
        user: TokenClaims = Depends(current_user),
        handler: SubmissionHandler = Depends(get_submissions),
    ) -> Dict[str, object]:
        return await _submit(TEST_DRIVE, payload, user, handler)

    @app.post(
        "/contact",
        status_code=status.HTTP_201_CREATED,
        response_model=MessageCreated,
    )
    async def send_contact_message(
        payload: Dict[str, Any] = Body(...),
        user: TokenClaims = Depends(current_user),
        handler: SubmissionHandler = Depends(get_submissions),
    ) -> Dict[str, object]:
        return await _submit(CONTACT_MESSAGE, payload, user, handler)

    @app.post(
        "/financing-request",
        status_code=status.HTTP_201_CREATED,
        response_model=FinancingRequestCreated,
    )
    async def request_financing(
        payload: Dict[str, Any] = Body(...),
        user: TokenClaims = Depends(current_user),
        handler: SubmissionHandler = Depends(get_submissions),
    ) -> Dict[str, object]:
        return await _submit(FINANCING_REQUEST, payload, user, handler)

    _register_exception_handlers(app)

    return app


__all__ = ["create_app"]
