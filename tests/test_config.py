from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from autohub.config import (
    DEFAULT_TOKEN_TTL,
    INSECURE_DEFAULT_SECRET,
    Settings,
    load_settings,
    resolve_database_path,
)


def test_defaults_without_environment() -> None:
    settings = load_settings(environ={})

    assert settings.port == 3000
    assert settings.bcrypt_rounds == 10
    assert settings.token_ttl == DEFAULT_TOKEN_TTL == timedelta(hours=1)
    assert settings.jwt_secret == INSECURE_DEFAULT_SECRET
    assert settings.uses_default_secret
    assert settings.cors_origins == ("*",)
    assert settings.database_path == resolve_database_path(None)


def test_environment_overrides(tmp_path: Path) -> None:
    settings = load_settings(
        environ={
            "JWT_SECRET": "from-env",
            "PORT": "8080",
            "AUTOHUB_DB_PATH": str(tmp_path / "db.sqlite3"),
            "AUTOHUB_BCRYPT_ROUNDS": "12",
            "AUTOHUB_CORS_ORIGINS": "https://autohub.example, http://localhost:5500",
            "AUTOHUB_API_URL": "https://api.autohub.example/",
        }
    )

    assert settings.jwt_secret == "from-env"
    assert not settings.uses_default_secret
    assert settings.port == 8080
    assert settings.database_path == (tmp_path / "db.sqlite3").resolve()
    assert settings.bcrypt_rounds == 12
    assert settings.cors_origins == ("https://autohub.example", "http://localhost:5500")
    assert settings.api_url == "https://api.autohub.example"


def test_yaml_file_is_layered_under_environment(tmp_path: Path) -> None:
    config_file = tmp_path / "autohub.yaml"
    config_file.write_text(
        "jwt_secret: from-file\nport: 4000\ncors_origins:\n  - https://a.example\n",
        encoding="utf-8",
    )

    settings = load_settings(environ={"AUTOHUB_CONFIG": str(config_file), "PORT": "5000"})

    assert settings.jwt_secret == "from-file"
    assert settings.port == 5000
    assert settings.cors_origins == ("https://a.example",)


def test_unknown_yaml_key_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "autohub.yaml"
    config_file.write_text("secret_key: nope\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown configuration keys"):
        load_settings(config_file, environ={})


@pytest.mark.parametrize(
    "environ",
    [
        {"PORT": "eighty"},
        {"PORT": "0"},
        {"AUTOHUB_BCRYPT_ROUNDS": "2"},
    ],
)
def test_invalid_numbers_are_rejected(environ: dict) -> None:
    with pytest.raises(ValueError):
        load_settings(environ=environ)


def test_from_dict_keeps_base_values() -> None:
    base = Settings(jwt_secret="base-secret", port=9000)
    settings = Settings.from_dict({"port": 9100}, base)
    assert settings.jwt_secret == "base-secret"
    assert settings.port == 9100
