"""End-to-end tests for the AutoHub HTTP API."""

from __future__ import annotations

import time
from pathlib import Path

from fastapi.testclient import TestClient

from autohub.config import Settings
from autohub.database import Database
from autohub.service import create_app
from autohub.tokens import TokenService

SECRET = "tests-secret-key"
EMAIL = "driver@example.com"
PASSWORD = "Sup3rSecurePwd!"

REGISTRATION = {
    "firstName": "Dana",
    "lastName": "Driver",
    "email": EMAIL,
    "phone": "555-0100",
    "password": PASSWORD,
}

TEST_DRIVE = {
    "carModel": "Tesla Model 3",
    "name": "Dana Driver",
    "email": EMAIL,
    "phone": "555-0100",
    "preferredDate": "2026-11-02",
    "preferredTime": "10:30",
}


def _build_app(tmp_path: Path):
    settings = Settings(
        jwt_secret=SECRET,
        database_path=tmp_path / "autohub.sqlite3",
        bcrypt_rounds=4,
    )
    database = Database(settings.database_path)
    return create_app(settings, database=database), database


def _auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register_and_login(client: TestClient) -> str:
    registered = client.post("/register", json=REGISTRATION)
    assert registered.status_code == 201, registered.text
    login = client.post("/login", json={"email": EMAIL, "password": PASSWORD})
    assert login.status_code == 200, login.text
    return login.json()["token"]


def test_root_reports_backend_running(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path)
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "AutoHub Backend is running!"


def test_register_login_and_test_drive_round_trip(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        registered = client.post("/register", json=REGISTRATION)
        assert registered.status_code == 201
        assert registered.json() == {"message": "User registered successfully"}

        login = client.post("/login", json={"email": EMAIL, "password": PASSWORD})
        assert login.status_code == 200
        body = login.json()
        assert body["message"] == "Login successful"
        assert body["user"]["email"] == EMAIL
        assert body["user"]["firstName"] == "Dana"
        assert body["user"]["lastName"] == "Driver"
        assert body["user"]["phone"] == "555-0100"
        assert isinstance(body["user"]["id"], int)
        token = body["token"]

        empty = client.get("/my-test-drives", headers=_auth_header(token))
        assert empty.status_code == 200
        assert empty.json() == []

        created = client.post("/test-drive", json=TEST_DRIVE, headers=_auth_header(token))
        assert created.status_code == 201, created.text
        created_body = created.json()
        assert created_body["message"] == "Test drive scheduled successfully"
        assert isinstance(created_body["testDriveId"], int)

        listing = client.get("/my-test-drives", headers=_auth_header(token))
        assert listing.status_code == 200
        drives = listing.json()
        assert len(drives) == 1
        assert drives[0]["id"] == created_body["testDriveId"]
        assert drives[0]["carModel"] == TEST_DRIVE["carModel"]
        assert drives[0]["preferredDate"] == TEST_DRIVE["preferredDate"]
        assert drives[0]["preferredTime"] == TEST_DRIVE["preferredTime"]
        assert drives[0]["createdAt"]

        assert database.count_rows("test_drives", body["user"]["id"]) == 1


def test_test_drives_are_listed_most_recent_first(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        first = client.post("/test-drive", json=TEST_DRIVE, headers=_auth_header(token))
        second = client.post(
            "/test-drive",
            json={**TEST_DRIVE, "carModel": "BMW X5"},
            headers=_auth_header(token),
        )
        assert first.status_code == second.status_code == 201

        drives = client.get("/my-test-drives", headers=_auth_header(token)).json()
        assert [drive["carModel"] for drive in drives] == ["BMW X5", "Tesla Model 3"]


def test_duplicate_registration_is_rejected(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        assert client.post("/register", json=REGISTRATION).status_code == 201

        duplicate = client.post(
            "/register",
            json={**REGISTRATION, "email": EMAIL.upper(), "firstName": "Other"},
        )
        assert duplicate.status_code == 400
        assert duplicate.json() == {"message": "Email already registered"}
        assert database.count_rows("users") == 1


def test_register_requires_every_field(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        payload = dict(REGISTRATION)
        payload["phone"] = ""
        response = client.post("/register", json=payload)
        assert response.status_code == 400
        assert response.json() == {"message": "Missing required field: phone"}
        assert database.count_rows("users") == 0


def test_login_with_bad_credentials_returns_401(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path)

    with TestClient(app) as client:
        client.post("/register", json=REGISTRATION)

        wrong_password = client.post("/login", json={"email": EMAIL, "password": "nope"})
        assert wrong_password.status_code == 401
        assert wrong_password.json() == {"message": "Invalid email or password"}

        unknown = client.post("/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert unknown.status_code == 401

        missing = client.post("/login", json={"email": EMAIL})
        assert missing.status_code == 400
        assert missing.json() == {"message": "Missing required field: password"}


def test_protected_route_without_token_returns_401(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        response = client.post("/test-drive", json=TEST_DRIVE)
        assert response.status_code == 401
        assert response.json() == {"message": "Authentication token required"}
        assert response.headers["www-authenticate"] == "Bearer"

        listing = client.get("/my-test-drives", headers={"Authorization": "Basic abc"})
        assert listing.status_code == 401

        assert database.count_rows("test_drives") == 0


def test_tampered_token_returns_403(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        header, payload, signature = token.split(".")
        middle = len(signature) // 2
        replacement = "A" if signature[middle] != "A" else "B"
        forged = f"{header}.{payload}.{signature[:middle]}{replacement}{signature[middle + 1:]}"

        response = client.post("/test-drive", json=TEST_DRIVE, headers=_auth_header(forged))
        assert response.status_code == 403
        assert response.json() == {"message": "Invalid or expired token"}

        garbage = client.get("/my-test-drives", headers=_auth_header("not-a-token"))
        assert garbage.status_code == 403

        assert database.count_rows("test_drives") == 0


def test_expired_token_returns_403(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path)

    with TestClient(app) as client:
        _register_and_login(client)
        profile = client.post("/login", json={"email": EMAIL, "password": PASSWORD}).json()["user"]
        expired = TokenService(SECRET).issue(profile, now=time.time() - 7200)

        response = client.get("/my-test-drives", headers=_auth_header(expired))
        assert response.status_code == 403


def test_missing_test_drive_field_names_field_and_writes_nothing(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        for field in TEST_DRIVE:
            payload = {key: value for key, value in TEST_DRIVE.items() if key != field}
            response = client.post("/test-drive", json=payload, headers=_auth_header(token))
            assert response.status_code == 400
            assert response.json() == {"message": f"Missing required field: {field}"}

        assert database.count_rows("test_drives") == 0


def test_contact_message_is_saved(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        response = client.post(
            "/contact",
            json={
                "name": "Dana Driver",
                "email": EMAIL,
                "phone": "555-0100",
                "interest": "new-cars",
                "message": "Do you have the X5 in blue?",
            },
            headers=_auth_header(token),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Message sent successfully"
        assert isinstance(body["messageId"], int)
        assert database.count_rows("messages") == 1


def test_financing_request_validates_amount_before_writing(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)
    base = {"name": "Dana Driver", "email": EMAIL, "phone": "555-0100"}

    with TestClient(app) as client:
        token = _register_and_login(client)

        negative = client.post(
            "/financing-request",
            json={**base, "amount": -5, "term": 36},
            headers=_auth_header(token),
        )
        assert negative.status_code == 400
        assert negative.json() == {"message": "Invalid loan amount"}

        bad_term = client.post(
            "/financing-request",
            json={**base, "amount": 1000, "term": "zero"},
            headers=_auth_header(token),
        )
        assert bad_term.status_code == 400
        assert bad_term.json() == {"message": "Invalid loan term"}
        assert database.count_rows("financing_requests") == 0

        accepted = client.post(
            "/financing-request",
            json={**base, "amount": 1000, "term": 36},
            headers=_auth_header(token),
        )
        assert accepted.status_code == 201, accepted.text
        body = accepted.json()
        assert body["message"].startswith("Financing request submitted successfully")
        assert isinstance(body["financingRequestId"], int)
        assert database.count_rows("financing_requests") == 1


def test_malformed_body_returns_400(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path)

    with TestClient(app) as client:
        response = client.post(
            "/register",
            content="not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "message" in response.json()


def test_store_failure_returns_generic_500(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        database.close()

        response = client.post("/test-drive", json=TEST_DRIVE, headers=_auth_header(token))
        assert response.status_code == 500
        assert "message" in response.json()
        assert "sqlite" not in response.text.lower()


def test_non_scalar_field_is_rejected_with_400(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)

    with TestClient(app) as client:
        token = _register_and_login(client)
        response = client.post(
            "/test-drive",
            json={**TEST_DRIVE, "carModel": ["Tesla"]},
            headers=_auth_header(token),
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid value for field: carModel"}
        assert database.count_rows("test_drives") == 0


def test_oversized_financing_values_are_rejected_with_400(tmp_path: Path) -> None:
    app, database = _build_app(tmp_path)
    base = {"name": "Dana Driver", "email": EMAIL, "phone": "555-0100"}

    with TestClient(app) as client:
        token = _register_and_login(client)

        amount = client.post(
            "/financing-request",
            json={**base, "amount": 10**400, "term": 36},
            headers=_auth_header(token),
        )
        assert amount.status_code == 400
        assert amount.json() == {"message": "Invalid loan amount"}

        term = client.post(
            "/financing-request",
            json={**base, "amount": 1000, "term": "99999999999999999999"},
            headers=_auth_header(token),
        )
        assert term.status_code == 400
        assert term.json() == {"message": "Invalid loan term"}

        assert database.count_rows("financing_requests") == 0
