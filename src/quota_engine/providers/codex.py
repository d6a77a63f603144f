# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Codex Quota Adapter

Codex (ChatGPT) reports rate-limit windows as "used percent"; the adapter
inverts them into remaining percent.

API Details:
- Endpoint: GET https://chatgpt.com/backend-api/wham/usage
- Auth: Bearer token plus ChatGPT-Account-Id header
- Response: {"plan_type": "plus",
             "rate_limit": {"primary_window": {"used_percent": 30,
                                               "limit_window_seconds": 18000,
                                               "reset_at": 1735689600},
                            "secondary_window": {...}},
             "code_review_rate_limit": {"primary_window": {...}}}
"""

from typing import Any, Dict, List, Optional

from ..core.types import CredentialFile, MetricGroup
from .base import ProviderAdapter, Translator

CODEX_USAGE_URL = "https://chatgpt.com/backend-api/wham/usage"

CODEX_REQUEST_HEADERS = {
    "Authorization": "Bearer $TOKEN$",
    "Content-Type": "application/json",
    "User-Agent": "codex_cli_rs/0.76.0 (Debian 13.0.0; x86_64) WindowsTerminal",
}

# (payload section, window key, metric id, fallback label)
CODEX_WINDOWS = [
    ("rate_limit", "primary_window", "primary", "Primary"),
    ("rate_limit", "secondary_window", "secondary", "Secondary"),
    ("code_review_rate_limit", "primary_window", "code-review", "Code Review"),
]


def format_window_label(seconds: Any, fallback: str) -> str:
    """Label a window by its length (18000 -> "5h", 604800 -> "Weekly")."""
    try:
        seconds = int(seconds)
    except (TypeError, ValueError):
        return fallback
    if seconds <= 0:
        return fallback
    if seconds == 604800:
        return "Weekly"
    if seconds == 86400:
        return "Daily"
    if seconds % 86400 == 0:
        return f"{seconds // 86400}d"
    if seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    return f"{max(1, seconds // 60)}m"


def get_account_id(auth_file: CredentialFile) -> Optional[str]:
    """Find the ChatGPT account id in the auth-file metadata."""
    metadata = auth_file.metadata
    for key in ("account_id", "chatgpt_account_id", "accountId"):
        if metadata.get(key):
            return str(metadata[key])
    id_token = metadata.get("id_token")
    if isinstance(id_token, dict):
        for key in ("chatgpt_account_id", "account_id"):
            if id_token.get(key):
                return str(id_token[key])
    return None


class CodexAdapter(ProviderAdapter):
    """Quota adapter for Codex credentials."""

    provider = "codex"
    display_name = "Codex"
    provider_tags = ("codex",)
    # At most three windows per credential
    max_items = None

    def parse_metrics(self, data: Any) -> List[MetricGroup]:
        if not isinstance(data, dict):
            return []

        windows: List[MetricGroup] = []
        for section, window_key, metric_id, fallback in CODEX_WINDOWS:
            limits = data.get(section)
            if not isinstance(limits, dict):
                continue
            window = limits.get(window_key)
            if not isinstance(window, dict):
                continue

            used = window.get("used_percent")
            try:
                used_percent = float(used) if used is not None else None
            except (TypeError, ValueError):
                used_percent = None

            label = format_window_label(window.get("limit_window_seconds"), fallback)
            if section != "rate_limit":
                label = f"{fallback} ({label})" if label != fallback else fallback
            reset_at = window.get("reset_at")
            windows.append(
                MetricGroup.from_used_percent(
                    metric_id,
                    label,
                    used_percent,
                    str(reset_at) if reset_at is not None else None,
                )
            )
        return windows

    async def fetch_quota(
        self, auth_file: CredentialFile, translate: Optional[Translator] = None
    ) -> Any:
        headers: Dict[str, str] = dict(CODEX_REQUEST_HEADERS)
        account_id = get_account_id(auth_file)
        if account_id:
            headers["Chatgpt-Account-Id"] = account_id
        return await self._call_upstream(
            auth_file, "GET", CODEX_USAGE_URL, headers, translate=translate
        )
