"""Application configuration for domainvault."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional, Type

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.engine.url import URL, make_url

from domainvault.core.errors import ConfigurationError

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class DbConfig(BaseModel):
    """Backend connection file (``DB_CONFIG_FILE``)."""

    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    dbname: str = Field(min_length=1)
    username: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = Field(ge=1)
    driver: str = "postgresql+psycopg2"
    timeout: Optional[int] = Field(default=None, ge=1)

    model_config = {"extra": "forbid"}

    def to_url(self) -> URL:
        # Credentials only apply when both halves are present.
        with_auth = bool(self.username) and bool(self.password)
        return URL.create(
            self.driver,
            username=self.username if with_auth else None,
            password=self.password if with_auth else None,
            host=self.host,
            port=self.port,
            database=self.dbname,
        )


def load_db_config(path: str | Path) -> DbConfig:
    """Read and validate a backend connection file."""
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid config format in {config_path}: {exc}") from exc
    try:
        return DbConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config format in {config_path}: {exc}") from exc


def engine_options_from_uri(uri: str, *, pool_size: Optional[int] = None, timeout: Optional[int] = None) -> dict:
    url = make_url(uri)
    connect_timeout = timeout or int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
    # Always keep pool_pre_ping, vary pool and connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        return {
            "pool_pre_ping": True,
            "connect_args": {"detect_types": 0, "timeout": 30},
        }
    options: dict = {
        "pool_pre_ping": True,
        "pool_size": pool_size or int(os.environ.get("DB_POOL_SIZE", "5")),
        "pool_timeout": int(os.environ.get("DB_POOL_TIMEOUT", "10")),
    }
    if url.get_backend_name() in {"postgresql", "postgres"}:
        options["connect_args"] = {"connect_timeout": connect_timeout}
    elif url.get_backend_name() == "mysql":
        options["connect_args"] = {"connect_timeout": connect_timeout}
    return options


def apply_db_config_file(config: dict) -> None:
    """Let ``DB_CONFIG_FILE`` override the database URL and pool sizing."""
    path = config.get("DB_CONFIG_FILE")
    if not path:
        return
    db_conf = load_db_config(path)
    uri = db_conf.to_url().render_as_string(hide_password=False)
    config["SQLALCHEMY_DATABASE_URI"] = uri
    config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_from_uri(
        uri, pool_size=db_conf.pool_size, timeout=db_conf.timeout
    )


class BaseConfig:
    """Base configuration loaded for all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///instance/domainvault.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    DB_CONFIG_FILE = os.environ.get("DB_CONFIG_FILE") or None

    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql").lower()
    VERIFY_BACKEND_ON_STARTUP = _env_flag("VERIFY_BACKEND_ON_STARTUP", "true")
    TRUST_PROXY_COUNT = int(os.environ.get("TRUST_PROXY_COUNT", "0"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "600 per minute")
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "true")

    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(64 * 1024)))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    # File-backed SQLite so Alembic migrations and app share the same DB.
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///instance/test.db")
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    DB_CONFIG_FILE = None
    STORAGE_BACKEND = "sql"
    VERIFY_BACKEND_ON_STARTUP = False
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    ENV = "production"


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    # CI pipelines set APP_ENV=ci; map to testing defaults.
    "ci": TestingConfig,
}
