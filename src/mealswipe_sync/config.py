from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, model_validator

from .credentials import DEFAULT_SERVICE_NAME
from .portal.session import DEFAULT_BASE_URL


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config so most users only need `.env`; YAML is an optional override on top.
    """
    return {
        "portal": {
            "base_url": os.getenv("CAMPUS_CARD_BASE_URL", DEFAULT_BASE_URL),
            "login_path": os.getenv("CAMPUS_CARD_LOGIN_PATH", "login.html"),
            "timeout_ms": _env_int("CAMPUS_CARD_TIMEOUT_MS", 30_000),
            "user_agent": os.getenv("CAMPUS_CARD_USER_AGENT", ""),
        },
        "credentials": {
            "service_name": os.getenv("CREDENTIAL_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            "username": os.getenv("CAMPUS_CARD_USERNAME", ""),
            "password": os.getenv("CAMPUS_CARD_PASSWORD", ""),
        },
        "debug": {
            "dir": os.getenv("DEBUG_DIR", "data/debug"),
            "save_unparseable_html": _env_bool("DEBUG_SAVE_HTML", default=False),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
    }


class PortalConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    login_path: str = "login.html"
    timeout_ms: int = 30_000
    user_agent: str = ""

    @model_validator(mode="after")
    def _normalize_and_validate(self) -> "PortalConfig":
        base_url = (self.base_url or "").strip().rstrip("/")
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"portal.base_url must be a full URL like '{DEFAULT_BASE_URL}'")
        if self.timeout_ms <= 0:
            raise ValueError("portal.timeout_ms must be positive")
        self.base_url = base_url
        self.login_path = (self.login_path or "login.html").strip().lstrip("/")
        return self


class CredentialsConfig(BaseModel):
    service_name: str = DEFAULT_SERVICE_NAME
    # Optional defaults for `mealswipe-sync login`; the stored copy lives in the OS keyring.
    username: str = ""
    password: str = Field(default="", repr=False)


class DebugConfig(BaseModel):
    dir: str = "data/debug"
    save_unparseable_html: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    portal: PortalConfig = PortalConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    debug: DebugConfig = DebugConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Union[str, Path]) -> AppConfig:
    p = Path(path)
    raw: dict = {}
    if p.exists():
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)
