# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Dashboard settings.

Environment variables:
    QUOTA_DASHBOARD_API_BASE: Server base URL (default: http://127.0.0.1:8317)
    QUOTA_DASHBOARD_MANAGEMENT_KEY: Management API key
    QUOTA_DASHBOARD_API_KEYS: Comma-separated static client API keys
    QUOTA_DASHBOARD_TIMEOUT: Management request timeout in seconds (default: 30)
    QUOTA_DASHBOARD_QUOTA_TIMEOUT: Quota (api-call) timeout in seconds (default: 60)
    QUOTA_DASHBOARD_LOG_LEVEL: Viewer log level (default: WARNING)

Values from a .env file are used where the process environment does not
set the variable.
"""

import ipaddress
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Union
from urllib.parse import urlparse

from dotenv import dotenv_values

from .errors import ConfigurationError

lib_logger = logging.getLogger("quota_engine")

DEFAULT_API_BASE = "http://127.0.0.1:8317"
DEFAULT_PORT = 8317


# Bind-all addresses a client cannot connect to -> loopback equivalent
BIND_ALL_HOSTS = {"0.0.0.0": "127.0.0.1", "::": "::1"}


def _env_float(env: Mapping[str, Optional[str]], name: str, default: float) -> float:
    try:
        return float(env.get(name) or str(default))
    except ValueError:
        lib_logger.warning(f"Invalid {name} value, using default {default}")
        return default


def is_local_host(host: str) -> bool:
    """Loopback, private or unspecified address (served over plain http)."""
    if host == "localhost":
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_private or address.is_unspecified


def _netloc(host: str, port: Optional[int]) -> str:
    netloc = f"[{host}]" if ":" in host else host
    return f"{netloc}:{port}" if port else netloc


def normalize_api_base(value: str) -> str:
    """
    Turn user input into a connectable base URL.

    Bare hosts default to port 8317. They use https on port 443 or when
    the host is a public dotted name, http otherwise.

    Examples:
        "0.0.0.0:8317"              -> "http://127.0.0.1:8317"
        "proxy.example.com"         -> "https://proxy.example.com:8317"
        "https://proxy.example.com/" -> "https://proxy.example.com"
    """
    value = (value or "").strip().rstrip("/")
    if not value:
        raise ConfigurationError("API base URL is empty")

    if value.startswith(("http://", "https://")):
        parsed = urlparse(value)
        host = BIND_ALL_HOSTS.get(parsed.hostname or "", parsed.hostname or "")
        if not host:
            raise ConfigurationError(f"Invalid API base URL: {value}")
        return f"{parsed.scheme}://{_netloc(host, parsed.port)}{parsed.path}".rstrip("/")

    host, _, port_str = value.rpartition(":")
    if not host or "]" in port_str:
        host, port_str = value, ""
    host = host.strip("[]")
    host = BIND_ALL_HOSTS.get(host, host)
    try:
        port = int(port_str) if port_str else DEFAULT_PORT
    except ValueError:
        raise ConfigurationError(f"Invalid port in API base: {value}")

    secure = port == 443 or (not is_local_host(host) and "." in host)
    return f"{'https' if secure else 'http'}://{_netloc(host, port)}"


def _split_keys(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [k.strip() for k in raw.split(",") if k.strip()]


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass
class DashboardSettings:
    api_base: str = DEFAULT_API_BASE
    management_key: str = ""
    api_keys: List[str] = field(default_factory=list)
    timeout: float = 30.0
    quota_timeout: float = 60.0
    log_level: str = "WARNING"

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "DashboardSettings":
        """
        Load settings from the environment and an optional .env file.

        Args:
            env_file: Path to a .env file (default: ./.env if present)
            environ: Environment mapping (default: os.environ)
        """
        env_path = Path(env_file) if env_file else Path.cwd() / ".env"
        if env_file and not env_path.is_file():
            raise ConfigurationError(f"Env file not found: {env_path}")

        merged = {}
        if env_path.is_file():
            merged.update(
                {k: v for k, v in dotenv_values(env_path).items() if v is not None}
            )
        merged.update(os.environ if environ is None else environ)

        log_level = (merged.get("QUOTA_DASHBOARD_LOG_LEVEL") or "WARNING").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            lib_logger.warning(f"Invalid QUOTA_DASHBOARD_LOG_LEVEL {log_level}, using WARNING")
            log_level = "WARNING"

        return cls(
            api_base=normalize_api_base(
                merged.get("QUOTA_DASHBOARD_API_BASE") or DEFAULT_API_BASE
            ),
            management_key=merged.get("QUOTA_DASHBOARD_MANAGEMENT_KEY", "").strip(),
            api_keys=_split_keys(merged.get("QUOTA_DASHBOARD_API_KEYS")),
            timeout=max(1.0, _env_float(merged, "QUOTA_DASHBOARD_TIMEOUT", 30.0)),
            quota_timeout=max(
                1.0, _env_float(merged, "QUOTA_DASHBOARD_QUOTA_TIMEOUT", 60.0)
            ),
            log_level=log_level,
        )
