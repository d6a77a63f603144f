# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Management API client.

Thin async transport for the proxy server's management API. The engine
only depends on the contracts below; everything provider-specific goes
through the generic ``api-call`` tunnel, which lets the server inject the
stored credential's token in place of ``$TOKEN$``.

Endpoints (relative to ``{api_base}/v0/management``):
- GET  /auth-files             -> {"files": [...]}
- GET  /api-keys               -> {"api-keys": [...]}
- GET  /gemini-api-key         -> {"gemini-api-key": [...]}
- GET  /codex-api-key          -> {"codex-api-key": [...]}
- GET  /claude-api-key         -> {"claude-api-key": [...]}
- GET  /openai-compatibility   -> {"openai-compatibility": [...]}
- GET  /config                 -> server configuration
- POST /api-call               -> {"status_code": int, "header": {...}, "body": str}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .core.types import ApiCallResult, CredentialFile
from .errors import ManagementAPIError

lib_logger = logging.getLogger("quota_engine")

MANAGEMENT_PREFIX = "/v0/management"

# Provider key listings used by the dashboard stats: kind -> (path, payload key)
PROVIDER_KEY_ENDPOINTS = {
    "gemini": ("/gemini-api-key", "gemini-api-key"),
    "codex": ("/codex-api-key", "codex-api-key"),
    "claude": ("/claude-api-key", "claude-api-key"),
    "openai": ("/openai-compatibility", "openai-compatibility"),
}

VERSION_HEADER = "X-CPA-VERSION"
BUILD_DATE_HEADER = "X-CPA-BUILD-DATE"


@dataclass
class ServerConfig:
    """Server configuration plus the build info reported in its headers."""

    config: Dict[str, Any] = field(default_factory=dict)
    version: Optional[str] = None
    build_date: Optional[str] = None


def _decode_body(body: Any) -> Any:
    """Decode an api-call body that carries JSON as a string."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return json.loads(body)
        except (json.JSONDecodeError, TypeError):
            return body
    return body


class ManagementClient:
    """
    Async client for the management API.

    A single httpx.AsyncClient is created lazily and reused; close it with
    ``aclose()`` or use the client as an async context manager.

    Example:
        async with ManagementClient("http://127.0.0.1:8317", "secret") as client:
            files = await client.list_auth_files()
    """

    def __init__(
        self,
        api_base: str,
        management_key: str = "",
        timeout: float = 30.0,
        api_call_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_base = api_base.rstrip("/")
        self.management_key = management_key
        self.timeout = timeout
        self.api_call_timeout = api_call_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def api_base(self) -> str:
        return self._api_base

    @api_base.setter
    def api_base(self, value: str) -> None:
        self._api_base = value.rstrip("/")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ManagementClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.aclose()
        return False

    # =========================================================================
    # REQUEST HELPERS
    # =========================================================================

    def _get_headers(self, bearer: Optional[str] = None) -> Dict[str, str]:
        """Get HTTP headers including auth if configured."""
        headers = {"Accept": "application/json"}
        token = bearer if bearer is not None else self.management_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a request and map every failure to ManagementAPIError.

        Raises:
            ManagementAPIError: transport failure or non-2xx response
        """
        client = self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                json=payload,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.ConnectError:
            raise ManagementAPIError("Connection failed. Is the server running?")
        except httpx.TimeoutException:
            raise ManagementAPIError("Request timed out.")
        except httpx.HTTPError as e:
            raise ManagementAPIError(f"{type(e).__name__}: {e}")

        if response.status_code == 401:
            raise ManagementAPIError(
                "Authentication failed. Check the management key.", 401
            )
        if not response.is_success:
            raise ManagementAPIError(
                f"HTTP {response.status_code}: {response.text[:100]}",
                response.status_code,
            )
        return response

    async def _management_request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        url = f"{self._api_base}{MANAGEMENT_PREFIX}{path}"
        return await self._send(method, url, self._get_headers(), payload, timeout)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ManagementAPIError(
                f"Invalid JSON from {response.request.url.path}",
                response.status_code,
            )

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def get_config(self) -> ServerConfig:
        """Fetch the server configuration and its version headers."""
        response = await self._management_request("GET", "/config")
        data = self._json(response)
        return ServerConfig(
            config=data if isinstance(data, dict) else {},
            version=response.headers.get(VERSION_HEADER) or None,
            build_date=response.headers.get(BUILD_DATE_HEADER) or None,
        )

    async def list_auth_files(self) -> List[CredentialFile]:
        """
        List stored credential files.

        Raises:
            ManagementAPIError: the listing call failed
        """
        response = await self._management_request("GET", "/auth-files")
        data = self._json(response)
        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list):
            return []
        return [CredentialFile.from_dict(f) for f in files if isinstance(f, dict)]

    async def list_api_keys(self) -> Any:
        """
        List the generic API keys.

        The payload shape is not guaranteed (plain strings or objects),
        so the raw list is returned for the caller to normalize.
        """
        response = await self._management_request("GET", "/api-keys")
        data = self._json(response)
        if isinstance(data, dict):
            return data.get("api-keys", data.get("apiKeys", []))
        return data

    async def count_provider_keys(self, kind: str) -> int:
        """
        Count configured keys for one provider kind.

        Args:
            kind: One of "gemini", "codex", "claude", "openai"
        """
        if kind not in PROVIDER_KEY_ENDPOINTS:
            raise ValueError(f"Unknown provider key kind: {kind}")
        path, key = PROVIDER_KEY_ENDPOINTS[kind]
        data = self._json(await self._management_request("GET", path))
        if isinstance(data, dict):
            data = data.get(key, [])
        return len(data) if isinstance(data, list) else 0

    # =========================================================================
    # API CALL TUNNEL
    # =========================================================================

    async def api_call(
        self,
        auth_index: str,
        method: str,
        url: str,
        header: Optional[Dict[str, str]] = None,
        data: str = "",
    ) -> ApiCallResult:
        """
        Issue an upstream request on behalf of a stored credential.

        Args:
            auth_index: Credential handle from the auth-files listing
            method: HTTP method for the upstream request
            url: Upstream URL
            header: Upstream headers; "$TOKEN$" is replaced server-side
            data: Raw request body

        Returns:
            ApiCallResult with the upstream status and decoded body
        """
        payload = {
            "auth_index": auth_index,
            "method": method,
            "url": url,
            "header": header or {},
            "data": data,
        }
        response = await self._management_request(
            "POST", "/api-call", payload, timeout=self.api_call_timeout
        )
        result = self._json(response)
        if not isinstance(result, dict):
            raise ManagementAPIError("Unexpected api-call response shape")
        status_code = result.get("status_code", result.get("statusCode", 0))
        try:
            status_code = int(status_code)
        except (TypeError, ValueError):
            status_code = 0
        return ApiCallResult(
            status_code=status_code,
            body=_decode_body(result.get("body")),
            header=result.get("header") or {},
        )

    # =========================================================================
    # MODEL CATALOG
    # =========================================================================

    async def fetch_models(
        self, base_url: str, api_key: Optional[str] = None
    ) -> List[str]:
        """
        Fetch the public model catalog (``{base_url}/v1/models``).

        Args:
            base_url: Server base URL
            api_key: Optional client API key used as bearer token
        """
        url = f"{base_url.rstrip('/')}/v1/models"
        response = await self._send("GET", url, self._get_headers(api_key or ""))
        data = self._json(response)
        entries = data.get("data", []) if isinstance(data, dict) else []
        models = []
        for entry in entries:
            if isinstance(entry, dict) and entry.get("id"):
                models.append(str(entry["id"]))
            elif isinstance(entry, str):
                models.append(entry)
        lib_logger.debug(f"Fetched {len(models)} models from {url}")
        return models
