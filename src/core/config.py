"""Configuración de blogdesk.

Por qué un único `AppSettings`:
- Dispatcher, retry controller y sesión leen los mismos valores (pydantic-settings).
- La CLI solo escribe el `.env` de usuario; nunca toca variables sueltas.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "blogdesk"

_ENV_LINE = re.compile(r"^\s*(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=")


def get_user_config_dir() -> Path:
    """Per-user directory for the `.env` file and the persisted session."""

    if sys.platform.startswith("win"):
        return Path(os.environ.get("APPDATA") or Path.home()) / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / APP_DIR_NAME


def derive_service_root(api_base_url: str) -> str:
    """`https://host/api` -> `https://host`; other URLs are returned unchanged."""

    base = api_base_url.rstrip("/")
    if base.endswith("/api"):
        return base[: -len("/api")]
    return base


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Set keys in the user `.env`, keeping comments and unrelated lines.

    Keys already present are rewritten where they are; new keys go at the end.
    `None` values are skipped.
    """

    env_path = env_path or get_user_env_file()
    pending = {key: value for key, value in values.items() if value is not None}

    lines: list[str] = []
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            match = _ENV_LINE.match(line)
            if match and match.group("key") in pending:
                key = match.group("key")
                line = f"{key}={pending.pop(key)}"
            lines.append(line)
    else:
        lines.append("# blogdesk user settings")
    lines.extend(f"{key}={value}" for key, value in pending.items())

    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Cada valor se puede fijar con variables de entorno `BLOGDESK_*`, el `.env`
    del proyecto o el `.env` de usuario que escribe `config set-url`.
    """

    model_config = SettingsConfigDict(
        env_prefix="BLOGDESK_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="http://localhost:3000/api",
        min_length=8,
        description="Base URL of the content service API (including the /api prefix).",
    )
    service_root_url: str | None = Field(
        default=None,
        description="Service root used by the health probe. Derived from api_base_url when unset.",
    )

    http_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout per request (seconds). Generous to survive cold starts.",
    )
    upload_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        description="Timeout for multipart uploads (seconds).",
    )
    health_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for the recovery health probe (seconds).",
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per operation (1 initial + retries) on transient failures.",
    )
    backoff_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Backoff unit; the n-th retry waits n * backoff_seconds.",
    )
    retryable_statuses: set[int] = Field(
        default_factory=set,
        description="5xx statuses treated as transient (none by default).",
    )

    session_file: Path | None = Field(
        default=None,
        description="Where the auth token and account email are persisted.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root log level for the CLI.",
    )
    user_agent: str = Field(
        default="blogdesk/0.1 (+https://local)",
        min_length=1,
        description="User-Agent sent with every request.",
    )

    def resolved_session_file(self) -> Path:
        return self.session_file or (get_user_config_dir() / "session.json")

    def resolved_service_root(self) -> str:
        """Service root for `/health`, outside the API prefix."""

        if self.service_root_url:
            return self.service_root_url.rstrip("/")
        return derive_service_root(self.api_base_url)
