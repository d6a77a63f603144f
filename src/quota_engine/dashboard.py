# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
QuotaDashboard facade.

This is the main public API of the engine. It owns the quota store, the
refresh orchestrator, the API key resolver and the model catalog, and
ties their lifecycles to the connection state the way the dashboard page
does.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .aggregator import aggregate
from .api_keys import ApiKeyResolver, primary_key
from .config import DashboardSettings
from .connection import ConnectionState, ConnectionStatus
from .core.types import AggregatedProviderSummary
from .errors import ManagementAPIError
from .management import ManagementClient
from .models_catalog import ModelCatalog
from .orchestrator import RefreshOrchestrator
from .providers import ProviderAdapter, Translator, default_adapters
from .stats import DashboardStats, load_dashboard_stats
from .store import QuotaStore

lib_logger = logging.getLogger("quota_engine")


class QuotaDashboard:
    """
    Entry point for the dashboard engine.

    Example:
        dashboard = QuotaDashboard.from_settings(DashboardSettings.from_env())
        if await dashboard.connect():
            await dashboard.on_connected()
            await dashboard.refresh_quota()
            for summary in dashboard.quota_summary:
                print(summary.name, summary.credential_count)
        await dashboard.aclose()
    """

    def __init__(
        self,
        client: ManagementClient,
        adapters: Optional[Sequence[ProviderAdapter]] = None,
        config_keys: Any = None,
        translate: Optional[Translator] = None,
    ):
        self.client = client
        self.adapters: List[ProviderAdapter] = list(
            adapters if adapters is not None else default_adapters(client)
        )
        self.connection = ConnectionState(api_base=client.api_base)
        self.store = QuotaStore(a.provider for a in self.adapters)
        self.orchestrator = RefreshOrchestrator(
            client, self.adapters, self.store, self.connection, translate
        )
        self._static_keys = config_keys
        self.key_resolver = ApiKeyResolver(client, config_keys)
        self.models = ModelCatalog(client)
        self.stats = DashboardStats()
        self.stats_loading = False
        self.config: Dict[str, Any] = {}

        self.connection.on_api_base_change(self._handle_api_base_change)

    @classmethod
    def from_settings(
        cls, settings: DashboardSettings, translate: Optional[Translator] = None
    ) -> "QuotaDashboard":
        client = ManagementClient(
            settings.api_base,
            settings.management_key,
            timeout=settings.timeout,
            api_call_timeout=settings.quota_timeout,
        )
        return cls(client, config_keys=settings.api_keys or None, translate=translate)

    async def aclose(self) -> None:
        await self.client.aclose()

    # =========================================================================
    # CONNECTION & CONFIG
    # =========================================================================

    def _handle_api_base_change(self, api_base: str) -> None:
        self.client.api_base = api_base
        self.connection.status = ConnectionStatus.DISCONNECTED
        self.config = {}
        self.key_resolver.invalidate()

    def set_api_base(self, api_base: str) -> bool:
        """
        Point the dashboard at another server.

        A real change drops the connection and the loaded config; call
        ``connect()`` again before refreshing.

        Returns:
            True if the endpoint changed (the API key cache is then cleared)
        """
        return self.connection.set_api_base(api_base)

    def apply_config(self, config: Mapping[str, Any]) -> None:
        """
        Adopt a server config; its "api-keys" list feeds the key resolver.

        A config without a key list falls back to the keys given at
        construction, so keys loaded from another server are never kept.
        """
        self.config = dict(config)
        config_keys = self.config.get("api-keys", self.config.get("apiKeys"))
        if config_keys is None:
            config_keys = self._static_keys
        self.key_resolver.set_config_keys(config_keys)

    async def connect(self) -> bool:
        """
        Check the server and load its configuration.

        Returns:
            True when the connection is established
        """
        self.connection.status = ConnectionStatus.CONNECTING
        try:
            server = await self.client.get_config()
        except ManagementAPIError as e:
            lib_logger.warning(f"Could not connect to {self.connection.api_base}: {e}")
            self.connection.status = ConnectionStatus.DISCONNECTED
            return False

        self.connection.set_server_info(server.version, server.build_date)
        self.apply_config(server.config)
        self.connection.status = ConnectionStatus.CONNECTED
        lib_logger.info(
            f"Connected to {self.connection.api_base}"
            + (f" (v{self.connection.server_version})" if self.connection.server_version else "")
        )
        return True

    def disconnect(self) -> None:
        self.connection.status = ConnectionStatus.DISCONNECTED

    # =========================================================================
    # QUOTA
    # =========================================================================

    @property
    def refreshing(self) -> bool:
        return self.orchestrator.refreshing

    async def refresh_quota(self) -> bool:
        """
        Refresh quota for every credential.

        A failed credential listing is logged and reported as False; it is
        never raised to the caller.
        """
        try:
            return await self.orchestrator.refresh_all()
        except ManagementAPIError as e:
            lib_logger.warning(f"Quota refresh failed, could not list auth files: {e}")
            return False

    @property
    def quota_summary(self) -> List[AggregatedProviderSummary]:
        """Aggregated quota overview, recomputed from the store on every read."""
        return aggregate(self.store.snapshot(), self.adapters)

    @property
    def has_quota_data(self) -> bool:
        return len(self.quota_summary) > 0

    # =========================================================================
    # STATS & MODELS
    # =========================================================================

    async def load_stats(self) -> DashboardStats:
        self.stats_loading = True
        try:
            self.stats = await load_dashboard_stats(self.client)
        finally:
            self.stats_loading = False
        return self.stats

    async def fetch_models(self) -> None:
        """
        Refresh the model catalog.

        Requires an established connection. Failures are swallowed: the
        catalog simply ends up empty.
        """
        if not self.connection.is_connected or not self.connection.api_base:
            return
        try:
            keys = await self.key_resolver.resolve_keys()
            await self.models.fetch(self.connection.api_base, primary_key(keys))
        except Exception as e:
            lib_logger.debug(f"Ignoring model catalog fetch failure: {e}")

    async def on_connected(self) -> None:
        """Load stats and the model catalog together once connected."""
        if not self.connection.is_connected:
            return
        await asyncio.gather(self.load_stats(), self.fetch_models())
