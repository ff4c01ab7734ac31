"""
Pulp Settings — Parse PULP_* environment variables.

Minimal required config: none. Defaults target a local Pulp container
(``http://localhost:8080``, admin/admin).

    PULP_HOST=https://pulp.example.com
    PULP_USER=admin
    PULP_PASSWORD=secret
    PULP_POLL_INTERVAL=10
    PULP_TASK_DEADLINE=3600   # optional; unset waits forever

Session labels are attached to every repository the engine creates so a
build's resources can be identified later.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Mapping, Optional

from ..engine.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = "8080"
DEFAULT_PREFIX = "pulp"

ROLE_REMOTE_MIRROR = "remote_mirror"
ROLE_SLIM_REPO = "slim_repo"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _env_float(env: Mapping[str, str], key: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{raw}'")


@dataclass
class PulpSettings:
    """Connection and polling settings for the Pulp API."""

    host: str = f"http://localhost:{DEFAULT_PORT}"
    username: str = "admin"
    password: str = "admin"
    verify_tls: bool = True
    timeout: float = 60.0

    # Task polling
    poll_interval: float = 10.0
    task_deadline: Optional[float] = None

    # Leading token of upstream repo names replaced by the build name
    slim_prefix: str = DEFAULT_PREFIX

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PulpSettings":
        """Build settings from environment variables."""
        env = os.environ if env is None else env

        host = env.get("PULP_HOST") or f"http://localhost:{env.get('PULP_PORT', DEFAULT_PORT)}"
        if not host.startswith(("http://", "https://")):
            raise ConfigError(f"PULP_HOST must be an http(s) URL, got '{host}'")

        poll_interval = _env_float(env, "PULP_POLL_INTERVAL", 10.0)
        if poll_interval is None or poll_interval <= 0:
            raise ConfigError("PULP_POLL_INTERVAL must be positive")

        settings = cls(
            host=host.rstrip("/"),
            username=env.get("PULP_USER", "admin"),
            password=env.get("PULP_PASSWORD", "admin"),
            verify_tls=_env_bool(env.get("PULP_TLS_VERIFY", "true")),
            timeout=_env_float(env, "PULP_TIMEOUT_SECONDS", 60.0),
            poll_interval=poll_interval,
            task_deadline=_env_float(env, "PULP_TASK_DEADLINE", None),
            slim_prefix=env.get("PULP_SLIM_PREFIX", DEFAULT_PREFIX),
        )
        logger.debug(f"Pulp settings: host={settings.host}, user={settings.username}")
        return settings


@dataclass
class BuildSession:
    """Identity of one build run, stamped onto created resources as labels."""

    build_name: str
    started_on: date = field(default_factory=date.today)

    @property
    def session_label(self) -> str:
        return f"{self.build_name}-{self.started_on.isoformat()}"

    def labels(self, role: str) -> Dict[str, str]:
        """Pulp labels for a resource playing ``role`` in this session."""
        return {
            "simpbuildsession": self.session_label,
            "reporole": role,
        }
