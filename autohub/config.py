"""Configuration management for the AutoHub service and its command-line client."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

# Matches the fallback the storefront shipped with. Running with it is a
# misconfiguration and is reported at start-up.
INSECURE_DEFAULT_SECRET = "your_super_secret_key_replace_this_in_env"

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_TOKEN_TTL = timedelta(hours=1)
DEFAULT_API_URL = "http://localhost:3000"

_ENV_VARS = {
    "jwt_secret": "JWT_SECRET",
    "port": "PORT",
    "host": "AUTOHUB_HOST",
    "database_path": "AUTOHUB_DB_PATH",
    "bcrypt_rounds": "AUTOHUB_BCRYPT_ROUNDS",
    "cors_origins": "AUTOHUB_CORS_ORIGINS",
    "api_url": "AUTOHUB_API_URL",
    "credentials_path": "AUTOHUB_CREDENTIALS_PATH",
}


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "autohub.sqlite3").resolve(strict=False)


def _default_credentials_path() -> Path:
    return Path("~/.autohub/credentials.json").expanduser()


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API server and the form client."""

    jwt_secret: str = INSECURE_DEFAULT_SECRET
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    database_path: Path = field(default_factory=lambda: resolve_database_path(None))
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    token_ttl: timedelta = DEFAULT_TOKEN_TTL
    cors_origins: Tuple[str, ...] = ("*",)
    api_url: str = DEFAULT_API_URL
    credentials_path: Path = field(default_factory=_default_credentials_path)

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == INSECURE_DEFAULT_SECRET

    @staticmethod
    def from_dict(data: Mapping[str, object], base: "Settings | None" = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data layered over ``base``."""

        unknown = set(data.keys()) - set(_ENV_VARS.keys())
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        settings = base or Settings()
        updates: Dict[str, object] = {}

        if data.get("jwt_secret"):
            updates["jwt_secret"] = str(data["jwt_secret"])
        if data.get("port") is not None:
            updates["port"] = _parse_int("port", data["port"], minimum=1)
        if data.get("host"):
            updates["host"] = str(data["host"]).strip()
        if data.get("database_path"):
            updates["database_path"] = resolve_database_path(str(data["database_path"]))
        if data.get("bcrypt_rounds") is not None:
            updates["bcrypt_rounds"] = _parse_int("bcrypt_rounds", data["bcrypt_rounds"], minimum=4)
        if data.get("cors_origins"):
            updates["cors_origins"] = _parse_origins(data["cors_origins"])
        if data.get("api_url"):
            updates["api_url"] = str(data["api_url"]).strip().rstrip("/")
        if data.get("credentials_path"):
            updates["credentials_path"] = Path(str(data["credentials_path"])).expanduser()

        return replace(settings, **updates)


def _parse_int(name: str, value: object, *, minimum: int) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{_ENV_VARS[name]} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{_ENV_VARS[name]} must be at least {minimum}, got {parsed}")
    return parsed


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(item) for item in value]  # type: ignore[union-attr]
    origins = tuple(item.strip() for item in items if item.strip())
    return origins or ("*",)


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get("AUTOHUB_CONFIG"):
        config_path = Path(env["AUTOHUB_CONFIG"]).expanduser()

    settings = Settings()
    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        settings = Settings.from_dict(raw, settings)

    overrides = {key: env[var] for key, var in _ENV_VARS.items() if env.get(var)}
    return Settings.from_dict(overrides, settings)


__all__ = [
    "DEFAULT_TOKEN_TTL",
    "INSECURE_DEFAULT_SECRET",
    "Settings",
    "load_settings",
    "resolve_database_path",
]
