# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Dashboard quick stats.

Each counter is loaded independently; a counter whose listing failed is
None ("unknown") rather than 0.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .management import ManagementClient

lib_logger = logging.getLogger("quota_engine")

PROVIDER_KEY_KINDS = ("gemini", "codex", "claude", "openai")


@dataclass
class ProviderKeyStats:
    gemini: Optional[int] = None
    codex: Optional[int] = None
    claude: Optional[int] = None
    openai: Optional[int] = None

    def values(self) -> Tuple[Optional[int], ...]:
        return (self.gemini, self.codex, self.claude, self.openai)

    @property
    def ready(self) -> bool:
        """All four counters are known."""
        return all(v is not None for v in self.values())

    @property
    def any_known(self) -> bool:
        return any(v is not None for v in self.values())

    @property
    def total(self) -> Optional[int]:
        """Sum of all provider keys, only once every counter is known."""
        if not self.ready:
            return None
        return sum(v or 0 for v in self.values())


@dataclass
class DashboardStats:
    api_keys: Optional[int] = None
    auth_files: Optional[int] = None
    provider_keys: Optional[ProviderKeyStats] = None

    def __post_init__(self):
        if self.provider_keys is None:
            self.provider_keys = ProviderKeyStats()


def _count_or_none(label: str, result: Any) -> Optional[int]:
    if isinstance(result, BaseException):
        lib_logger.debug(f"{label} listing failed: {result}")
        return None
    return result


async def _count_api_keys(client: ManagementClient) -> int:
    raw = await client.list_api_keys()
    return len(raw) if isinstance(raw, (list, tuple)) else 0


async def _count_auth_files(client: ManagementClient) -> int:
    return len(await client.list_auth_files())


async def load_dashboard_stats(client: ManagementClient) -> DashboardStats:
    """
    Load every quick-stat counter concurrently.

    Never raises; failed listings come back as None.
    """
    results = await asyncio.gather(
        _count_api_keys(client),
        _count_auth_files(client),
        *(client.count_provider_keys(kind) for kind in PROVIDER_KEY_KINDS),
        return_exceptions=True,
    )
    keys_res, files_res, *provider_results = results

    provider_counts = {
        kind: _count_or_none(f"{kind} key", result)
        for kind, result in zip(PROVIDER_KEY_KINDS, provider_results)
    }
    return DashboardStats(
        api_keys=_count_or_none("API key", keys_res),
        auth_files=_count_or_none("Auth file", files_res),
        provider_keys=ProviderKeyStats(**provider_counts),
    )
