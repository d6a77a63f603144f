# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Provider adapter interface.

Every quota-bearing provider is described by the same five operations:
select its credential files, build a loading state, build a success state
from the raw payload, build an error state, and fetch raw quota for one
credential file. The orchestrator and aggregator are written once against
this interface.
"""

import logging
from abc import ABC, abstractmethod
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Optional,
    Tuple,
)

from ..core.types import CredentialFile, MetricGroup, QuotaState
from ..errors import QuotaFetchError

if TYPE_CHECKING:
    from ..management import ManagementClient

lib_logger = logging.getLogger("quota_engine")

Translator = Callable[[str], str]


def _identity(message: str) -> str:
    return message


class ProviderAdapter(ABC):
    """
    Base class for provider adapters.

    Subclasses set the class attributes and implement ``parse_metrics``
    and ``fetch_quota``.
    """

    # Store key, e.g. "antigravity"
    provider: ClassVar[str]
    # Name shown by the display layer
    display_name: ClassVar[str]
    # Auth-file provider tags handled by this adapter
    provider_tags: ClassVar[Tuple[str, ...]]
    # Cap on aggregated items; None leaves the list untruncated
    max_items: ClassVar[Optional[int]] = None

    def __init__(self, client: "ManagementClient"):
        self._client = client

    # =========================================================================
    # STATE CONSTRUCTORS
    # =========================================================================

    def matches(self, auth_file: CredentialFile) -> bool:
        """Whether this adapter owns the credential file."""
        return not auth_file.disabled and auth_file.provider in self.provider_tags

    def build_loading_state(self) -> QuotaState:
        return QuotaState.loading()

    def build_success_state(self, data: Any) -> QuotaState:
        """Normalize a raw payload into a success state."""
        return QuotaState.success(self.parse_metrics(data))

    def build_error_state(self, message: str) -> QuotaState:
        return QuotaState.failed(message)

    @abstractmethod
    def parse_metrics(self, data: Any) -> List[MetricGroup]:
        """Turn the provider's raw payload into normalized metric groups."""

    # =========================================================================
    # FETCHING
    # =========================================================================

    @abstractmethod
    async def fetch_quota(
        self, auth_file: CredentialFile, translate: Optional[Translator] = None
    ) -> Any:
        """
        Fetch the raw quota payload for one credential file.

        Raises:
            QuotaFetchError: the upstream call failed or returned no data
        """

    def _require_auth_index(
        self, auth_file: CredentialFile, translate: Optional[Translator]
    ) -> str:
        if not auth_file.auth_index:
            message = (translate or _identity)("Missing auth index for credential")
            raise QuotaFetchError(message, self.provider, auth_file.name)
        return auth_file.auth_index

    async def _call_upstream(
        self,
        auth_file: CredentialFile,
        method: str,
        url: str,
        header: Dict[str, str],
        data: str = "",
        translate: Optional[Translator] = None,
    ) -> Any:
        """
        Run one upstream request through the management api-call tunnel.

        Returns:
            The decoded upstream body

        Raises:
            QuotaFetchError: non-2xx upstream status
        """
        auth_index = self._require_auth_index(auth_file, translate)
        result = await self._client.api_call(auth_index, method, url, header, data)
        if not result.ok:
            detail = _extract_error_detail(result.body)
            message = f"HTTP {result.status_code}"
            if detail:
                message = f"{message}: {detail}"
            lib_logger.debug(
                f"{self.display_name} quota request failed for {auth_file.name}: {message}"
            )
            raise QuotaFetchError(
                (translate or _identity)(message),
                self.provider,
                auth_file.name,
                result.status_code,
            )
        return result.body


def _extract_error_detail(body: Any) -> Optional[str]:
    """Pull a human-readable message out of an upstream error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message") or error.get("status")
        if isinstance(error, str):
            return body.get("error_description") or body.get("message") or error
        if body.get("message"):
            return str(body["message"])
        return None
    if isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return None
