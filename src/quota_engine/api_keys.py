# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
API key resolution for the model catalog.

Keys come from the statically configured list when it has any, otherwise
from the remote key listing. The resolved list is cached for the current
epoch; changing the endpoint or the configured key list starts a new
epoch.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .management import ManagementClient

lib_logger = logging.getLogger("quota_engine")

# Field names checked on object-shaped entries, in order
API_KEY_FIELDS = ("api-key", "apiKey")


def normalize_api_key_list(raw: Any) -> List[str]:
    """
    Normalize a key list of unknown shape.

    Non-sequence input yields no keys. String entries are used as they
    are; mapping entries contribute their "api-key" (or "apiKey") field.
    Values are stripped; blanks and repeats are dropped, first occurrence
    wins.

    Example:
        >>> normalize_api_key_list(["a", {"apiKey": "b"}, "a", {"api-key": "c"}, "   "])
        ['a', 'b', 'c']
    """
    if not isinstance(raw, (list, tuple)):
        return []

    seen = set()
    keys: List[str] = []
    for item in raw:
        if isinstance(item, str):
            value: Any = item
        elif isinstance(item, dict):
            value = None
            for field_name in API_KEY_FIELDS:
                value = item.get(field_name)
                if value is not None:
                    break
        else:
            continue

        trimmed = str(value or "").strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        keys.append(trimmed)
    return keys


class ApiKeyResolver:
    """
    Resolves the usable API keys, memoized per cache epoch.

    Concurrent callers within one epoch share a single remote listing
    call. A remote result that arrives after ``invalidate()`` is returned
    to its callers but not cached.
    """

    def __init__(self, client: ManagementClient, config_keys: Any = None):
        self._client = client
        self._config_keys = config_keys
        self._cache: List[str] = []
        self._epoch = 0
        self._inflight: Optional["asyncio.Task[List[str]]"] = None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def cached_keys(self) -> List[str]:
        return list(self._cache)

    def invalidate(self) -> None:
        """Drop the cached keys and start a new epoch."""
        self._epoch += 1
        self._cache = []
        self._inflight = None
        lib_logger.debug(f"API key cache invalidated (epoch {self._epoch})")

    def set_config_keys(self, config_keys: Any) -> bool:
        """
        Replace the statically configured key list.

        Returns:
            True when the normalized list changed and the cache was cleared
        """
        changed = normalize_api_key_list(config_keys) != normalize_api_key_list(
            self._config_keys
        )
        self._config_keys = config_keys
        if changed:
            self.invalidate()
        return changed

    async def resolve_keys(self) -> List[str]:
        """
        Resolve the ordered, de-duplicated key list.

        Never raises: a failing remote listing resolves to no keys.
        """
        if self._cache:
            return list(self._cache)

        config_keys = normalize_api_key_list(self._config_keys)
        if config_keys:
            self._cache = config_keys
            return list(config_keys)

        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._load_remote(self._epoch))
            self._inflight = task
            task.add_done_callback(self._clear_inflight)
        return list(await asyncio.shield(task))

    def _clear_inflight(self, task: "asyncio.Future[List[str]]") -> None:
        if self._inflight is task:
            self._inflight = None

    async def _load_remote(self, epoch: int) -> List[str]:
        try:
            raw = await self._client.list_api_keys()
        except Exception as e:
            lib_logger.debug(f"API key listing failed, resolving no keys: {e}")
            return []

        normalized = normalize_api_key_list(raw)
        if normalized and epoch == self._epoch:
            self._cache = normalized
        return normalized


def primary_key(keys: Sequence[str]) -> Optional[str]:
    """First resolved key, used as the model catalog bearer."""
    return keys[0] if keys else None
