"""Command-line interface for the AutoHub dealership service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from getpass import getpass
from typing import Any, Dict, Mapping, Sequence

from autohub.client import ApiClient, ApiError, ConsoleSurface, CredentialStore, FormPipeline
from autohub.client.forms import (
    CONTACT_FORM,
    FINANCING_FORM,
    LOGIN_FORM,
    REGISTER_FORM,
    TEST_DRIVE_FORM,
    FormConfig,
)
from autohub.config import Settings, load_settings
from autohub.database import Database

logger = logging.getLogger("autohub.main")

CLIENT_COMMANDS = {
    "register",
    "login",
    "logout",
    "profile",
    "my-test-drives",
    "test-drive",
    "contact",
    "financing",
}
KNOWN_COMMANDS = {"serve", "init-db", *CLIENT_COMMANDS}


def _add_contact_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", default=None, help="Contact name (defaults to the signed-in user)")
    parser.add_argument("--email", default=None, help="Contact email (defaults to the signed-in user)")
    parser.add_argument("--phone", default=None, help="Contact phone (defaults to the signed-in user)")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AutoHub dealership utilities")
    parser.add_argument(
        "--api-url",
        default=None,
        help="Base URL of a running AutoHub API for client commands (default: AUTOHUB_API_URL)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", host=None, port=None)

    subparsers.add_parser("init-db", help="Create the AutoHub database schema")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the API (default: PORT or 3000)")

    register_parser = subparsers.add_parser("register", help="Create a customer account")
    register_parser.add_argument("--first-name", required=True)
    register_parser.add_argument("--last-name", required=True)
    register_parser.add_argument("--email", required=True)
    register_parser.add_argument("--phone", required=True)
    register_parser.add_argument(
        "--accept-terms",
        action="store_true",
        help="Agree to the Terms of Service and Privacy Policy",
    )

    login_parser = subparsers.add_parser("login", help="Sign in and store the issued token")
    login_parser.add_argument("--email", required=True)

    subparsers.add_parser("logout", help="Forget the stored token")
    subparsers.add_parser("profile", help="Show the signed-in customer's profile")
    subparsers.add_parser("my-test-drives", help="List your scheduled test drives")

    drive_parser = subparsers.add_parser("test-drive", help="Schedule a test drive")
    drive_parser.add_argument("--car-model", default=None)
    _add_contact_arguments(drive_parser)
    drive_parser.add_argument("--date", required=True, help="Preferred date (YYYY-MM-DD)")
    drive_parser.add_argument("--time", required=True, help="Preferred time (HH:MM)")

    contact_parser = subparsers.add_parser("contact", help="Send a message to the dealership")
    _add_contact_arguments(contact_parser)
    contact_parser.add_argument("--interest", required=True)
    contact_parser.add_argument("--message", required=True)

    financing_parser = subparsers.add_parser("financing", help="Request vehicle financing")
    _add_contact_arguments(financing_parser)
    financing_parser.add_argument("--amount", required=True)
    financing_parser.add_argument("--term", required=True, help="Loan term in months")
    financing_parser.add_argument("--message", default=None)

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help") or first == "--api-url":
            return parser.parse_args(args_list)
        if first not in KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> None:
    with Database(settings.database_path):
        logger.info("Database initialised at %s", settings.database_path)


def _serve(settings: Settings, *, host: str | None, port: int | None) -> None:
    from autohub.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Server listening at http://%s:%s", bind_host, bind_port)

    app = create_app(settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def _prefill(store: CredentialStore, args: argparse.Namespace) -> Dict[str, Any]:
    """Fill contact details from the signed-in profile where none were given."""

    user = store.user or {}
    full_name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
    return {
        "name": args.name or full_name,
        "email": args.email or user.get("email") or "",
        "phone": args.phone or user.get("phone") or "",
    }


def _form_inputs(command: str, args: argparse.Namespace, store: CredentialStore) -> tuple[FormConfig, Dict[str, Any]]:
    if command == "register":
        password = getpass("Password: ")
        confirmation = getpass("Confirm password: ")
        return REGISTER_FORM, {
            "authFirstName": args.first_name,
            "authLastName": args.last_name,
            "authRegisterEmail": args.email,
            "authPhoneNumber": args.phone,
            "authRegisterPassword": password,
            "authConfirmPassword": confirmation,
            "authTermsAgree": "yes" if args.accept_terms else "no",
        }

    if command == "login":
        return LOGIN_FORM, {"authEmail": args.email, "authPassword": getpass("Password: ")}

    contact = _prefill(store, args)

    if command == "test-drive":
        return TEST_DRIVE_FORM, {
            "testDriveName": contact["name"],
            "testDriveEmail": contact["email"],
            "testDrivePhone": contact["phone"],
            "testDriveDate": args.date,
            "testDriveTime": args.time,
            "carDetailModalLabel": args.car_model or "",
        }

    if command == "contact":
        return CONTACT_FORM, {
            "name": contact["name"],
            "email": contact["email"],
            "phone": contact["phone"],
            "interest": args.interest,
            "message": args.message,
        }

    if command == "financing":
        return FINANCING_FORM, {
            "financingName": contact["name"],
            "financingEmail": contact["email"],
            "financingPhone": contact["phone"],
            "financingAmount": args.amount,
            "financingTerm": args.term,
            "financingMessage": args.message or "",
        }

    raise ValueError(f"Unknown form command '{command}'")


def _print_test_drives(drives: Sequence[Mapping[str, Any]]) -> None:
    if not drives:
        print("You have no scheduled test drives.")
        return

    print(f"{'Car Model':<28}  {'Date':<12}  {'Time':<8}  Scheduled On")
    print("-" * 72)
    for drive in drives:
        scheduled = str(drive.get("createdAt") or "N/A")[:10]
        print(
            f"{drive.get('carModel') or 'N/A':<28}  {drive.get('preferredDate') or 'N/A':<12}  "
            f"{drive.get('preferredTime') or 'N/A':<8}  {scheduled}"
        )


def _print_profile(user: Mapping[str, Any]) -> None:
    print(f"{'First Name:':<12} {user.get('firstName') or 'N/A'}")
    print(f"{'Last Name:':<12} {user.get('lastName') or 'N/A'}")
    print(f"{'Email:':<12} {user.get('email') or 'N/A'}")
    print(f"{'Phone:':<12} {user.get('phone') or 'N/A'}")


async def _run_client(command: str, args: argparse.Namespace, settings: Settings) -> int:
    store = CredentialStore(settings.credentials_path).load()
    if command == "profile":
        if not store.is_authenticated:
            print("Please log in to view your profile.")
            return 1
        _print_profile(store.user or {})
        return 0

    api_url = args.api_url or settings.api_url

    async with ApiClient(api_url, store) as client:
        if command == "logout":
            client.logout()
            print("You have been successfully logged out.")
            return 0

        if command == "my-test-drives":
            if not store.is_authenticated:
                print("Please log in to view your test drives.")
                return 1
            try:
                drives = await client.fetch_my_test_drives()
            except ApiError as exc:
                print(f"Failed to load test drives: {exc.message}")
                return 1
            _print_test_drives(drives)
            return 0

        config, inputs = _form_inputs(command, args, store)
        outcome = await FormPipeline(client).submit(config, inputs, ConsoleSurface())
        return 0 if outcome.ok else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings()

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port)
    elif args.command == "init-db":
        _initialise_database(settings)
        print("Database initialisation complete.")
    elif args.command in CLIENT_COMMANDS:
        return asyncio.run(_run_client(args.command, args, settings))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
