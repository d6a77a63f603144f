# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Gemini CLI Quota Adapter

API Details:
- Endpoint: POST https://cloudcode-pa.googleapis.com/v1internal:retrieveUserQuota
- Body: {"project": "<project id>"}
- Response: {"buckets": [{"modelId": "gemini-2.5-pro", "tokenType": "REQUESTS",
             "remainingFraction": 0.75, "resetTime": "..."}, ...]}

The project id comes from the credential metadata, either as an explicit
field or embedded in the account label as "user@example.com (project-id)".
"""

import json
import re
from typing import Any, List, Optional

from ..core.types import CredentialFile, MetricGroup
from ..errors import QuotaFetchError
from .base import ProviderAdapter, Translator

GEMINI_CLI_QUOTA_URL = "https://cloudcode-pa.googleapis.com/v1internal:retrieveUserQuota"

GEMINI_CLI_REQUEST_HEADERS = {
    "Authorization": "Bearer $TOKEN$",
    "Content-Type": "application/json",
}

_PROJECT_IN_LABEL = re.compile(r"\(([^()]+)\)\s*$")


def get_project_id(auth_file: CredentialFile) -> Optional[str]:
    metadata = auth_file.metadata
    for key in ("project_id", "projectId", "project"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    for key in ("account", "label"):
        value = metadata.get(key)
        if isinstance(value, str):
            match = _PROJECT_IN_LABEL.search(value)
            if match:
                return match.group(1).strip()
    return None


class GeminiCliAdapter(ProviderAdapter):
    """Quota adapter for Gemini CLI credentials."""

    provider = "gemini-cli"
    display_name = "Gemini CLI"
    provider_tags = ("gemini-cli",)
    max_items = 5

    def parse_metrics(self, data: Any) -> List[MetricGroup]:
        buckets = data.get("buckets") if isinstance(data, dict) else None
        if not isinstance(buckets, list):
            return []

        groups: List[MetricGroup] = []
        seen = set()
        for bucket in buckets:
            if not isinstance(bucket, dict):
                continue
            model_id = bucket.get("modelId")
            if not model_id:
                continue
            token_type = bucket.get("tokenType")
            bucket_id = f"{model_id}:{str(token_type).lower()}" if token_type else model_id
            if bucket_id in seen:
                continue
            seen.add(bucket_id)

            fraction = bucket.get("remainingFraction")
            try:
                fraction = float(fraction) if fraction is not None else None
            except (TypeError, ValueError):
                fraction = None
            groups.append(
                MetricGroup.from_remaining_fraction(
                    bucket_id, str(model_id), fraction, bucket.get("resetTime")
                )
            )
        return groups

    async def fetch_quota(
        self, auth_file: CredentialFile, translate: Optional[Translator] = None
    ) -> Any:
        project_id = get_project_id(auth_file)
        if not project_id:
            message = "Missing project ID for credential"
            raise QuotaFetchError(
                translate(message) if translate else message,
                self.provider,
                auth_file.name,
            )
        return await self._call_upstream(
            auth_file,
            "POST",
            GEMINI_CLI_QUOTA_URL,
            GEMINI_CLI_REQUEST_HEADERS,
            json.dumps({"project": project_id}),
            translate,
        )
