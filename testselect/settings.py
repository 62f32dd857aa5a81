from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from testselect.services.git_provider import DEFAULT_CLONE_BASE_URL

DEFAULT_GIT_WORK_ROOT = "./.testselect/repos"
ALLOWED_CLONE_URL_SCHEMES = {"http", "https", "ssh", "file"}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class SettingsError(ValueError):
    """Raised when environment settings are malformed."""


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_dotenv_if_exists(env_file: Path) -> None:
    if not env_file.exists() or not env_file.is_file():
        return

    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = _strip_optional_quotes(value.strip())
        os.environ.setdefault(key, value)


def _parse_str_env(name: str, default: str) -> str:
    """Read a string variable; blank values fall back to ``default``."""
    raw = os.getenv(name, "").strip()
    return raw if raw else default


def _parse_timezone_env(name: str, default: str) -> str:
    value = _parse_str_env(name, default)
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise SettingsError(f"{name} is not a valid IANA timezone name. Received: {value}")
    return value


def _parse_log_level_env(name: str, default: str) -> str:
    value = _parse_str_env(name, default).upper()
    if value not in ALLOWED_LOG_LEVELS:
        allowed_text = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise SettingsError(f"{name} must be one of: {allowed_text}. Received: {value}")
    return value


def _parse_clone_base_url_env(name: str, default: str) -> str:
    value = _parse_str_env(name, default).rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ALLOWED_CLONE_URL_SCHEMES:
        allowed_text = ", ".join(sorted(ALLOWED_CLONE_URL_SCHEMES))
        raise SettingsError(
            f"{name} must use one of the schemes: {allowed_text}. Received: {value}"
        )
    if parsed.scheme != "file" and not parsed.netloc:
        raise SettingsError(f"{name} must include a host. Received: {value}")
    return value


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    timezone: str = "UTC"
    git_binary: str = "git"
    git_clone_base_url: str = DEFAULT_CLONE_BASE_URL
    git_work_root: Path = Path(DEFAULT_GIT_WORK_ROOT)
    git_user_name: str = "testselect"
    git_user_email: str = "testselect@localhost"

    @classmethod
    def from_env(cls, env_file: str | Path | None = ".env") -> Settings:
        if env_file:
            _load_dotenv_if_exists(Path(env_file))

        return cls(
            log_level=_parse_log_level_env("LOG_LEVEL", "INFO"),
            timezone=_parse_timezone_env("TIMEZONE", "UTC"),
            git_binary=_parse_str_env("GIT_BINARY", "git"),
            git_clone_base_url=_parse_clone_base_url_env(
                "GIT_CLONE_BASE_URL",
                DEFAULT_CLONE_BASE_URL,
            ),
            git_work_root=Path(_parse_str_env("GIT_WORK_ROOT", DEFAULT_GIT_WORK_ROOT)),
            git_user_name=_parse_str_env("GIT_USER_NAME", "testselect"),
            git_user_email=_parse_str_env("GIT_USER_EMAIL", "testselect@localhost"),
        )
