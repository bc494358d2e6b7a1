"""
Configuration and environment loading for the engine client.

- Loads .env (python-dotenv) and settings.yml (YAML) from the repo root if present.
- YAML keys take precedence over environment variables, which take precedence over defaults.
- Exposes SETTINGS with the API base URL and timing knobs used by the clients.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _repo_root() -> str:
    # this file: src/piperchess/config.py -> repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        log.warning("Ignoring unreadable settings file %s", path, exc_info=True)
        return {}
    if not isinstance(data, dict):
        log.warning("Ignoring settings file %s: top level is not a mapping", path)
        return {}
    return data


@dataclass(frozen=True)
class Settings:
    # Remote engine endpoint
    api_base: str

    # Timing knobs
    thinking_ms: int
    timeout_buffer_ms: int
    health_timeout_s: float


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from a YAML file (default: <repo>/settings.yml) and an environment mapping."""
    cfg = _load_yaml(path or os.path.join(_repo_root(), "settings.yml"))
    env = os.environ if environ is None else environ

    def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
        if name in cfg:
            val = cfg[name]
        elif name in env:
            val = env[name]
        else:
            return default
        return cast(val) if cast else val

    return Settings(
        api_base=str(_get("PIPERCHESS_API_BASE", "https://api.wwwtriplew.me")).rstrip("/"),
        thinking_ms=_get("PIPERCHESS_THINKING_MS", 15000, cast=int),
        timeout_buffer_ms=_get("PIPERCHESS_TIMEOUT_BUFFER_MS", 30000, cast=int),
        health_timeout_s=_get("PIPERCHESS_HEALTH_TIMEOUT_S", 5.0, cast=float),
    )


SETTINGS = load_settings()
