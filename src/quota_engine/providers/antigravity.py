# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Antigravity Quota Adapter

Antigravity reports a remaining fraction per model. Models that share a
quota pool are folded into fixed quota groups.

API Details:
- Endpoint: POST {host}/v1internal:fetchAvailableModels (daily, sandbox, prod)
- Auth: Bearer token of the stored credential (injected by the api-call tunnel)
- Response: {"models": {"gemini-3-pro-high": {"quotaInfo": {"remainingFraction": 0.8,
  "resetTime": "..."}}, ...}}
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.types import CredentialFile, MetricGroup
from ..errors import QuotaFetchError
from .base import ProviderAdapter, Translator

lib_logger = logging.getLogger("quota_engine")

ANTIGRAVITY_QUOTA_URLS = [
    "https://daily-cloudcode-pa.googleapis.com/v1internal:fetchAvailableModels",
    "https://daily-cloudcode-pa.sandbox.googleapis.com/v1internal:fetchAvailableModels",
    "https://cloudcode-pa.googleapis.com/v1internal:fetchAvailableModels",
]

ANTIGRAVITY_REQUEST_HEADERS = {
    "Authorization": "Bearer $TOKEN$",
    "Content-Type": "application/json",
    "User-Agent": "antigravity/1.11.5 windows/amd64",
}

# Quota groups in display order: (id, label, member model ids)
ANTIGRAVITY_QUOTA_GROUPS = [
    (
        "claude-gpt",
        "Claude/GPT",
        [
            "claude-sonnet-4-5-thinking",
            "claude-opus-4-5-thinking",
            "claude-sonnet-4-5",
            "gpt-oss-120b-medium",
        ],
    ),
    ("gemini-3-pro", "Gemini 3 Pro", ["gemini-3-pro-high", "gemini-3-pro-low"]),
    (
        "gemini-2-5-flash",
        "Gemini 2.5 Flash",
        ["gemini-2.5-flash", "gemini-2.5-flash-thinking"],
    ),
    ("gemini-2-5-flash-lite", "Gemini 2.5 Flash Lite", ["gemini-2.5-flash-lite"]),
    ("gemini-2-5-cu", "Gemini 2.5 CU", ["rev19-uic3-1p"]),
    ("gemini-3-flash", "Gemini 3 Flash", ["gemini-3-flash"]),
    ("gemini-image", "Gemini 3 Pro Image", ["gemini-3-pro-image"]),
]


def _quota_info(entry: Any) -> Dict[str, Any]:
    if not isinstance(entry, dict):
        return {}
    info = entry.get("quotaInfo", entry.get("quota_info"))
    return info if isinstance(info, dict) else {}


class AntigravityAdapter(ProviderAdapter):
    """Quota adapter for Antigravity (Google cloudcode) credentials."""

    provider = "antigravity"
    display_name = "Antigravity"
    provider_tags = ("antigravity",)
    max_items = 5

    def parse_metrics(self, data: Any) -> List[MetricGroup]:
        """
        Fold per-model quota into quota groups.

        A group's remaining fraction is the lowest among its member models
        and its reset time the earliest one. Groups with no reporting
        member are left out.
        """
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, dict):
            return []

        groups: List[MetricGroup] = []
        for group_id, label, identifiers in ANTIGRAVITY_QUOTA_GROUPS:
            fractions: List[float] = []
            resets: List[str] = []
            for identifier in identifiers:
                info = _quota_info(models.get(identifier))
                remaining = info.get("remainingFraction", info.get("remaining_fraction"))
                if remaining is None:
                    continue
                try:
                    fractions.append(float(remaining))
                except (TypeError, ValueError):
                    continue
                reset = info.get("resetTime", info.get("reset_time"))
                if reset:
                    resets.append(str(reset))

            if not fractions:
                continue
            groups.append(
                MetricGroup.from_remaining_fraction(
                    group_id,
                    label,
                    min(fractions),
                    min(resets) if resets else None,
                )
            )
        return groups

    async def fetch_quota(
        self, auth_file: CredentialFile, translate: Optional[Translator] = None
    ) -> Any:
        """Try each quota host in turn; the first body with models wins."""
        last_error: Optional[QuotaFetchError] = None
        for url in ANTIGRAVITY_QUOTA_URLS:
            try:
                body = await self._call_upstream(
                    auth_file,
                    "POST",
                    url,
                    ANTIGRAVITY_REQUEST_HEADERS,
                    "{}",
                    translate,
                )
            except QuotaFetchError as e:
                if e.status_code is None:
                    # No auth index, trying other hosts cannot help
                    raise
                last_error = e
                continue
            if isinstance(body, dict) and isinstance(body.get("models"), dict):
                return body
            lib_logger.debug(
                f"Antigravity host {url} returned no models for {auth_file.name}"
            )

        if last_error is not None:
            raise last_error
        message = "No quota data returned"
        raise QuotaFetchError(
            translate(message) if translate else message,
            self.provider,
            auth_file.name,
        )
