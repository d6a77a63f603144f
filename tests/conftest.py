"""Shared fixtures and fakes for the quota engine tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from quota_engine.connection import ConnectionState, ConnectionStatus
from quota_engine.core.types import ApiCallResult, CredentialFile, MetricGroup, QuotaState
from quota_engine.errors import ManagementAPIError, QuotaFetchError
from quota_engine.management import ServerConfig
from quota_engine.providers.base import ProviderAdapter


class FakeManagementClient:
    """In-memory stand-in for ManagementClient."""

    def __init__(
        self,
        files: Optional[List[CredentialFile]] = None,
        api_keys: Any = None,
        provider_keys: Optional[Dict[str, Any]] = None,
        models: Optional[List[str]] = None,
        config: Optional[Dict[str, Any]] = None,
        api_base: str = "http://127.0.0.1:8317",
    ):
        self.api_base = api_base
        self.files = files or []
        self.files_error: Optional[Exception] = None
        self.api_keys = api_keys if api_keys is not None else []
        self.api_keys_error: Optional[Exception] = None
        self.provider_keys = provider_keys or {}
        self.models = models or []
        self.models_error: Optional[Exception] = None
        self.config = config if config is not None else {}
        self.config_error: Optional[Exception] = None
        self.api_call_results: List[ApiCallResult] = []
        self.calls: List[tuple] = []
        self.list_api_keys_gate: Optional[asyncio.Event] = None
        self.closed = False

    async def get_config(self) -> ServerConfig:
        self.calls.append(("get_config",))
        if self.config_error:
            raise self.config_error
        return ServerConfig(config=self.config, version="v6.2.0", build_date="2026-01-02T00:00:00Z")

    async def list_auth_files(self) -> List[CredentialFile]:
        self.calls.append(("list_auth_files",))
        await asyncio.sleep(0)
        if self.files_error:
            raise self.files_error
        return list(self.files)

    async def list_api_keys(self) -> Any:
        self.calls.append(("list_api_keys",))
        if self.list_api_keys_gate is not None:
            await self.list_api_keys_gate.wait()
        else:
            await asyncio.sleep(0)
        if self.api_keys_error:
            raise self.api_keys_error
        return self.api_keys

    async def count_provider_keys(self, kind: str) -> int:
        self.calls.append(("count_provider_keys", kind))
        value = self.provider_keys.get(kind, 0)
        if isinstance(value, Exception):
            raise value
        return value

    async def api_call(self, auth_index, method, url, header=None, data=""):
        self.calls.append(("api_call", auth_index, method, url, header, data))
        return self.api_call_results.pop(0)

    async def fetch_models(self, base_url: str, api_key: Optional[str] = None) -> List[str]:
        self.calls.append(("fetch_models", base_url, api_key))
        if self.models_error:
            raise self.models_error
        return list(self.models)

    async def aclose(self) -> None:
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class FakeAdapter(ProviderAdapter):
    """
    Adapter whose fetches return scripted results.

    ``results`` maps credential name -> raw payload (a list of
    (id, label, percent) tuples) or an exception to raise.
    """

    max_items = None

    def __init__(
        self,
        provider: str,
        results: Optional[Dict[str, Any]] = None,
        max_items: Optional[int] = None,
        store=None,
    ):
        super().__init__(client=None)
        self.provider = provider
        self.display_name = provider.title()
        self.provider_tags = (provider,)
        self.max_items = max_items
        self.results = results or {}
        self.fetched: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.store = store
        self.states_seen_at_fetch: List[Dict[str, QuotaState]] = []

    def parse_metrics(self, data: Any) -> List[MetricGroup]:
        return [
            MetricGroup(id=metric_id, label=label, remaining_percent=percent)
            for metric_id, label, percent in data
        ]

    async def fetch_quota(self, auth_file, translate=None):
        self.fetched.append(auth_file.name)
        if self.store is not None:
            self.states_seen_at_fetch.append(dict(self.store.get(self.provider)))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        result = self.results.get(auth_file.name, [])
        if isinstance(result, BaseException):
            raise result
        return result


def make_file(name: str, provider: str, **extra: Any) -> CredentialFile:
    return CredentialFile.from_dict({"name": name, "type": provider, **extra})


def success(*metrics: tuple) -> QuotaState:
    return QuotaState.success(
        [MetricGroup(id=m[0], label=m[1], remaining_percent=m[2]) for m in metrics]
    )


@pytest.fixture
def connected() -> ConnectionState:
    return ConnectionState("http://127.0.0.1:8317", ConnectionStatus.CONNECTED)


__all__ = [
    "FakeAdapter",
    "FakeManagementClient",
    "ManagementAPIError",
    "QuotaFetchError",
    "make_file",
    "success",
]
