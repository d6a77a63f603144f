# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Per-provider quota state container.

Each provider owns one mapping of credential-file name -> QuotaState.
Mappings are never mutated in place: every write copies the current
mapping, applies the change and installs the copy as a new read-only
mapping. Readers holding an older mapping keep a consistent snapshot.
"""

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .core.types import ProviderQuotaMap, QuotaState

lib_logger = logging.getLogger("quota_engine")

StoreListener = Callable[[str, ProviderQuotaMap], None]
StoreUpdater = Callable[[Dict[str, QuotaState]], Dict[str, QuotaState]]

_EMPTY: ProviderQuotaMap = MappingProxyType({})


class QuotaStore:
    """
    Session-lifetime holder of per-provider quota maps.

    Usage:
        store = QuotaStore()
        store.set_states("codex", {"codex-a.json": QuotaState.loading()})
        store.get("codex")["codex-a.json"].is_loading  # True
    """

    def __init__(self, providers: Iterable[str] = ()):
        self._maps: Dict[str, ProviderQuotaMap] = {p: _EMPTY for p in providers}
        self._listeners: List[StoreListener] = []
        self._version = 0

    @property
    def version(self) -> int:
        """Incremented on every installed update."""
        return self._version

    @property
    def providers(self) -> List[str]:
        return list(self._maps)

    def get(self, provider: str) -> ProviderQuotaMap:
        """Return the current (read-only) map for a provider."""
        return self._maps.get(provider, _EMPTY)

    def snapshot(self) -> Dict[str, ProviderQuotaMap]:
        """Return the current map of every provider."""
        return dict(self._maps)

    def update(self, provider: str, updater: StoreUpdater) -> ProviderQuotaMap:
        """
        Copy-on-write update of one provider's map.

        The updater receives a private copy of the current map and returns
        the map to install. The previously installed mapping is left
        untouched.

        Args:
            provider: Provider key
            updater: Function producing the next map from a copy of the old one

        Returns:
            The newly installed map
        """
        current = self._maps.get(provider, _EMPTY)
        next_map = updater(dict(current))
        installed: ProviderQuotaMap = MappingProxyType(dict(next_map))
        self._maps[provider] = installed
        self._version += 1
        for listener in list(self._listeners):
            listener(provider, installed)
        return installed

    def set_states(
        self, provider: str, states: Mapping[str, QuotaState]
    ) -> ProviderQuotaMap:
        """Merge ``states`` into the provider's map, replacing existing entries."""

        def merge(prev: Dict[str, QuotaState]) -> Dict[str, QuotaState]:
            prev.update(states)
            return prev

        return self.update(provider, merge)

    def settle_states(
        self, provider: str, states: Mapping[str, QuotaState]
    ) -> ProviderQuotaMap:
        """
        Merge terminal states, honouring the QuotaState transition rules.

        An entry that already left the loading state (or was written by
        someone else since) is kept as is. Entries absent from the map,
        for example after an external reset, are written.
        """

        def merge(prev: Dict[str, QuotaState]) -> Dict[str, QuotaState]:
            for name, state in states.items():
                existing = prev.get(name)
                if existing is not None and not existing.can_transition_to(state):
                    lib_logger.warning(
                        f"Ignoring {state.status} result for {provider}/{name}: "
                        f"credential is already {existing.status}"
                    )
                    continue
                prev[name] = state
            return prev

        return self.update(provider, merge)

    def reset(self, provider: Optional[str] = None) -> None:
        """Drop all states of one provider, or of every provider."""
        targets = [provider] if provider else list(self._maps)
        for name in targets:
            self.update(name, lambda _prev: {})

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
