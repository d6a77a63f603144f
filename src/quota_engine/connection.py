# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Connection status shared by the dashboard components."""

import logging
import re
from enum import Enum
from typing import Callable, List, Optional

lib_logger = logging.getLogger("quota_engine")


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"


def normalize_server_version(version: Optional[str]) -> Optional[str]:
    """Strip whitespace and any leading "v"/"V" ("v6.1.2" -> "6.1.2")."""
    if not version:
        return None
    cleaned = re.sub(r"^[vV]+", "", version.strip())
    return cleaned or None


class ConnectionState:
    """
    Connection status, endpoint and server build info.

    Listeners registered with ``on_api_base_change`` are called with the
    new base URL whenever it actually changes.
    """

    def __init__(
        self,
        api_base: str = "",
        status: ConnectionStatus = ConnectionStatus.DISCONNECTED,
    ):
        self._api_base = api_base
        self.status = status
        self.server_version: Optional[str] = None
        self.server_build_date: Optional[str] = None
        self._api_base_listeners: List[Callable[[str], None]] = []

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def api_base(self) -> str:
        return self._api_base

    def set_api_base(self, api_base: str) -> bool:
        """
        Change the endpoint.

        Returns:
            True when the endpoint changed and listeners were notified
        """
        api_base = api_base.rstrip("/")
        if api_base == self._api_base:
            return False
        lib_logger.debug(f"API base changed: {self._api_base or '-'} -> {api_base}")
        self._api_base = api_base
        self.server_version = None
        self.server_build_date = None
        for listener in list(self._api_base_listeners):
            listener(api_base)
        return True

    def on_api_base_change(self, listener: Callable[[str], None]) -> None:
        self._api_base_listeners.append(listener)

    def set_server_info(
        self, version: Optional[str], build_date: Optional[str]
    ) -> None:
        self.server_version = normalize_server_version(version)
        self.server_build_date = build_date or None
