# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Quota aggregation and refresh orchestration for multi-credential proxy
dashboards.
"""

from .aggregator import aggregate
from .api_keys import ApiKeyResolver, normalize_api_key_list
from .config import DashboardSettings
from .connection import ConnectionState, ConnectionStatus
from .core.types import (
    AggregatedProviderSummary,
    CredentialFile,
    MetricGroup,
    QuotaItem,
    QuotaState,
)
from .dashboard import QuotaDashboard
from .errors import (
    ConfigurationError,
    ManagementAPIError,
    QuotaEngineError,
    QuotaFetchError,
)
from .management import ManagementClient
from .orchestrator import RefreshOrchestrator
from .providers import (
    AntigravityAdapter,
    CodexAdapter,
    GeminiCliAdapter,
    ProviderAdapter,
    default_adapters,
)
from .stats import DashboardStats, ProviderKeyStats, load_dashboard_stats
from .store import QuotaStore

__all__ = [
    "AggregatedProviderSummary",
    "AntigravityAdapter",
    "ApiKeyResolver",
    "CodexAdapter",
    "ConfigurationError",
    "ConnectionState",
    "ConnectionStatus",
    "CredentialFile",
    "DashboardSettings",
    "DashboardStats",
    "GeminiCliAdapter",
    "ManagementAPIError",
    "ManagementClient",
    "MetricGroup",
    "ProviderAdapter",
    "ProviderKeyStats",
    "QuotaDashboard",
    "QuotaEngineError",
    "QuotaFetchError",
    "QuotaItem",
    "QuotaState",
    "QuotaStore",
    "RefreshOrchestrator",
    "aggregate",
    "default_adapters",
    "load_dashboard_stats",
    "normalize_api_key_list",
]
