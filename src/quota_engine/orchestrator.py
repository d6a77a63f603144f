# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Quota refresh orchestration.

One refresh cycle lists the credential files once, hands each file to
the adapter that owns it, marks every affected credential as loading and
then fetches all of them concurrently. Each fetch settles on its own; a
failing credential is stored as an error state and never cancels its
siblings.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .connection import ConnectionState
from .core.types import CredentialFile, QuotaState
from .management import ManagementClient
from .providers.base import ProviderAdapter, Translator
from .store import QuotaStore

lib_logger = logging.getLogger("quota_engine")

DEFAULT_ERROR_MESSAGE = "Unknown error"


@dataclass
class FetchOutcome:
    """Settled result of one credential's quota fetch."""

    name: str
    status: str  # "success" | "error"
    data: Any = None
    error: Optional[str] = None


def error_message(error: BaseException) -> str:
    """Human-readable message for a failed fetch."""
    message = str(error).strip()
    return message or DEFAULT_ERROR_MESSAGE


class RefreshOrchestrator:
    """
    Drives quota refresh cycles for every provider adapter.

    Only one cycle runs at a time: calling ``refresh_all`` while a cycle
    is in flight, or while the connection is not established, returns
    immediately without touching the store.

    Usage:
        orchestrator = RefreshOrchestrator(client, adapters, store, connection)
        await orchestrator.refresh_all()
    """

    def __init__(
        self,
        client: ManagementClient,
        adapters: Sequence[ProviderAdapter],
        store: QuotaStore,
        connection: ConnectionState,
        translate: Optional[Translator] = None,
    ):
        self._client = client
        self._adapters = list(adapters)
        self._store = store
        self._connection = connection
        self._translate = translate
        self._refreshing = False
        self.last_refresh_at: Optional[float] = None

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def adapters(self) -> List[ProviderAdapter]:
        return list(self._adapters)

    # =========================================================================
    # REFRESH CYCLE
    # =========================================================================

    async def refresh_all(self) -> bool:
        """
        Run one refresh cycle across all providers.

        Returns:
            True if a cycle ran, False if it was refused

        Raises:
            ManagementAPIError: the credential listing failed
        """
        if self._refreshing:
            lib_logger.debug("Quota refresh already in progress, skipping")
            return False
        if not self._connection.is_connected:
            lib_logger.debug(
                f"Quota refresh refused, connection is {self._connection.status.value}"
            )
            return False

        self._refreshing = True
        try:
            files = await self._client.list_auth_files()
            partitions = self.partition(files)
            await asyncio.gather(
                *(
                    self._refresh_provider(adapter, provider_files)
                    for adapter, provider_files in partitions
                )
            )
            self.last_refresh_at = time.time()
            return True
        finally:
            self._refreshing = False

    def partition(
        self, files: Sequence[CredentialFile]
    ) -> List[Tuple[ProviderAdapter, List[CredentialFile]]]:
        """
        Split a listing into disjoint per-adapter subsets.

        A file goes to the first adapter that selects it.
        """
        buckets: Dict[str, List[CredentialFile]] = {
            adapter.provider: [] for adapter in self._adapters
        }
        for auth_file in files:
            owners = [a for a in self._adapters if a.matches(auth_file)]
            if not owners:
                continue
            if len(owners) > 1:
                lib_logger.warning(
                    f"Credential {auth_file.name} matches several providers "
                    f"({', '.join(a.provider for a in owners)}), using {owners[0].provider}"
                )
            buckets[owners[0].provider].append(auth_file)
        return [(adapter, buckets[adapter.provider]) for adapter in self._adapters]

    async def _refresh_provider(
        self, adapter: ProviderAdapter, files: List[CredentialFile]
    ) -> None:
        if not files:
            return

        # All loading states land in one store update before any fetch starts
        loading = {f.name: adapter.build_loading_state() for f in files}
        self._store.set_states(adapter.provider, loading)

        results = await asyncio.gather(
            *(self._fetch_one(adapter, f) for f in files),
            return_exceptions=True,
        )

        settled: Dict[str, QuotaState] = {}
        for auth_file, result in zip(files, results):
            if isinstance(result, BaseException):
                outcome = FetchOutcome(
                    auth_file.name, "error", error=error_message(result)
                )
            else:
                outcome = result
            settled[outcome.name] = self._build_state(adapter, outcome)

        self._store.settle_states(adapter.provider, settled)

        failed = sum(1 for s in settled.values() if s.is_error)
        lib_logger.debug(
            f"{adapter.display_name} quota refresh: {len(settled) - failed} ok, {failed} failed"
        )

    async def _fetch_one(
        self, adapter: ProviderAdapter, auth_file: CredentialFile
    ) -> FetchOutcome:
        try:
            data = await adapter.fetch_quota(auth_file, self._translate)
        except Exception as e:
            lib_logger.warning(
                f"Failed to fetch {adapter.display_name} quota for {auth_file.name}: {e}"
            )
            return FetchOutcome(auth_file.name, "error", error=error_message(e))
        return FetchOutcome(auth_file.name, "success", data=data)

    @staticmethod
    def _build_state(adapter: ProviderAdapter, outcome: FetchOutcome) -> QuotaState:
        if outcome.status != "success":
            return adapter.build_error_state(outcome.error or DEFAULT_ERROR_MESSAGE)
        try:
            return adapter.build_success_state(outcome.data)
        except Exception as e:
            lib_logger.warning(
                f"Could not parse {adapter.display_name} quota for {outcome.name}: {e}"
            )
            return adapter.build_error_state(error_message(e))
