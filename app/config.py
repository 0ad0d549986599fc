"""
CONFIGURATION - Environment-based settings management

This file loads configuration from environment variables with sensible defaults.
It handles:
1. Database connection settings (host, user, password, name, port)
2. HTTP server binding (host and port)
3. Startup behaviour (create-if-absent vs. reset-on-boot)
4. Logging level and format

All settings can be overridden via environment variables or a .env file.
Nothing here is validated: a malformed value only shows up later as a
connection failure.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Union
from dotenv import load_dotenv
from sqlalchemy.engine import URL
from app.utils import Constants


@dataclass(frozen=True)
class Settings:
    db_host: str = Constants.DEFAULT_DB_HOST
    db_user: str = Constants.DEFAULT_DB_USER
    db_password: str = Constants.DEFAULT_DB_PASSWORD
    db_name: str = Constants.DEFAULT_DB_NAME
    db_port: str = Constants.DEFAULT_DB_PORT
    server_port: str = Constants.DEFAULT_SERVER_PORT
    server_host: str = Constants.DEFAULT_SERVER_HOST
    database_url: str = ""
    reset_db_on_startup: bool = False
    log_level: str = "INFO"
    log_json: bool = True

    def dsn(self) -> str:
        """
        libpq key/value connection descriptor.

        Empty values and values with spaces or quotes are single-quoted so an
        empty password can't swallow the next key.
        """
        parts = [
            ("host", self.db_host),
            ("port", self.db_port),
            ("user", self.db_user),
            ("password", self.db_password),
            ("dbname", self.db_name),
            ("sslmode", "disable"),
        ]
        return " ".join(f"{key}={_dsn_value(value)}" for key, value in parts)

    def engine_url(self) -> Union[str, URL]:
        """
        URL handed to create_engine().

        DATABASE_URL wins when it is set. Otherwise the DSN built from the
        DB_* settings rides in the query string, which the psycopg2 dialect
        passes through as psycopg2.connect(dsn=...).
        """
        if self.database_url:
            return self.database_url
        return URL.create("postgresql+psycopg2", query={"dsn": self.dsn()})


def _dsn_value(value: str) -> str:
    if value and not any(c in value for c in " '\\"):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    When no mapping is given, a local .env file is loaded first (it never
    overrides variables that are already set) and os.environ is read.
    """
    # STEP 1: Pick the source of variables
    if environ is None:
        load_dotenv()
        environ = os.environ

    # STEP 2: Database and server settings, each with its default
    return Settings(
        db_host=environ.get("DB_HOST", Constants.DEFAULT_DB_HOST),
        db_user=environ.get("DB_USER", Constants.DEFAULT_DB_USER),
        db_password=environ.get("DB_PASSWORD", Constants.DEFAULT_DB_PASSWORD),
        db_name=environ.get("DB_NAME", Constants.DEFAULT_DB_NAME),
        db_port=environ.get("DB_PORT", Constants.DEFAULT_DB_PORT),
        server_port=environ.get("SERVER_PORT", Constants.DEFAULT_SERVER_PORT),
        server_host=environ.get("SERVER_HOST", Constants.DEFAULT_SERVER_HOST),
        database_url=environ.get("DATABASE_URL", "").strip(),
        # STEP 3: Startup and logging behaviour
        reset_db_on_startup=_flag(environ.get("RESET_DB_ON_STARTUP", "false")),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        log_json=environ.get("LOG_FORMAT", "json").strip().lower() != "text",
    )
