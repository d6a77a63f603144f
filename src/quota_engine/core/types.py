# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Shared type definitions for the quota engine.

This module contains dataclasses and type definitions used across
the store, provider adapters, orchestrator and aggregator.
"""

import math
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)


QuotaStatus = Literal["loading", "success", "error"]

# Item levels used by the display layer for bar colouring
LEVEL_HIGH_THRESHOLD = 60
LEVEL_MEDIUM_THRESHOLD = 20


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def parse_flag(value: Any) -> bool:
    """Read a loosely typed boolean ("false", "0", "no" and "" are False)."""
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no", "off")
    return bool(value)


# =============================================================================
# CREDENTIAL TYPES
# =============================================================================


@dataclass(frozen=True)
class CredentialFile:
    """
    One stored credential as reported by the auth-file listing.

    Snapshot of a single listing call; never mutated afterwards.
    """

    name: str
    provider: str  # Provider tag ("antigravity", "codex", "gemini-cli", ...)
    auth_index: Optional[str] = None  # Handle used by the api-call tunnel
    email: Optional[str] = None
    disabled: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CredentialFile":
        """
        Build a CredentialFile from one entry of the auth-files payload.

        The listing is loosely shaped, so the provider tag is read from
        ``type`` with ``provider`` as fallback and every field not modelled
        explicitly is kept in ``metadata``.
        """
        provider = raw.get("type") or raw.get("provider") or ""
        auth_index = raw.get("auth_index", raw.get("authIndex"))
        known = {"name", "type", "provider", "auth_index", "authIndex", "email", "disabled"}
        return cls(
            name=str(raw.get("name", "")),
            provider=str(provider).strip().lower(),
            auth_index=str(auth_index) if auth_index not in (None, "") else None,
            email=raw.get("email") or None,
            disabled=parse_flag(raw.get("disabled", False)),
            metadata={k: v for k, v in raw.items() if k not in known},
        )


# =============================================================================
# QUOTA TYPES
# =============================================================================


@dataclass(frozen=True)
class MetricGroup:
    """
    One percent-like usage dimension reported for a credential.

    ``remaining_percent`` is already normalized to "percent remaining"
    (0-100). None means the provider did not report it.
    """

    id: str
    label: str
    remaining_percent: Optional[float]
    reset_time: Optional[str] = None

    @classmethod
    def from_remaining_fraction(
        cls,
        id: str,
        label: str,
        fraction: Optional[float],
        reset_time: Optional[str] = None,
    ) -> "MetricGroup":
        """Build from a 0.0-1.0 remaining fraction (rounded to whole percent)."""
        percent = None if fraction is None else round_half_up(float(fraction) * 100)
        return cls(id=id, label=label, remaining_percent=percent, reset_time=reset_time)

    @classmethod
    def from_used_percent(
        cls,
        id: str,
        label: str,
        used_percent: Optional[float],
        reset_time: Optional[str] = None,
    ) -> "MetricGroup":
        """Build from a 0-100 "used percent" by inverting it."""
        percent = None if used_percent is None else max(0.0, 100 - float(used_percent))
        return cls(id=id, label=label, remaining_percent=percent, reset_time=reset_time)


@dataclass(frozen=True)
class QuotaState:
    """
    Latest quota result for one credential.

    Exactly one of the three variants is active; use the constructors
    rather than building instances by hand.
    """

    status: QuotaStatus
    metrics: Tuple[MetricGroup, ...] = ()
    error: Optional[str] = None

    @classmethod
    def loading(cls) -> "QuotaState":
        return cls(status="loading")

    @classmethod
    def success(cls, metrics: Sequence[MetricGroup]) -> "QuotaState":
        return cls(status="success", metrics=tuple(metrics))

    @classmethod
    def failed(cls, message: str) -> "QuotaState":
        return cls(status="error", error=message)

    @property
    def is_loading(self) -> bool:
        return self.status == "loading"

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    def can_transition_to(self, new: "QuotaState") -> bool:
        """
        Check whether ``new`` may replace this state.

        Loading may settle into either terminal variant; a terminal state
        may only go back to loading (a new refresh cycle).
        """
        if new.is_loading:
            return True
        return self.is_loading


ProviderQuotaMap = Mapping[str, QuotaState]


# =============================================================================
# AGGREGATION TYPES
# =============================================================================


@dataclass(frozen=True)
class QuotaItem:
    """One averaged metric in a provider summary."""

    id: str
    label: str
    percent: int

    @property
    def level(self) -> str:
        """Display bucket: "high" (>60), "medium" (>20) or "low"."""
        if self.percent > LEVEL_HIGH_THRESHOLD:
            return "high"
        if self.percent > LEVEL_MEDIUM_THRESHOLD:
            return "medium"
        return "low"


@dataclass(frozen=True)
class AggregatedProviderSummary:
    """
    Display-ready quota summary for one provider.

    Derived from the quota store on every read; never persisted.
    """

    provider: str  # Store key ("antigravity")
    name: str  # Display name ("Antigravity")
    credential_count: int
    items: Tuple[QuotaItem, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "name": self.name,
            "credential_count": self.credential_count,
            "items": [
                {"id": i.id, "label": i.label, "percent": i.percent}
                for i in self.items
            ],
        }


# =============================================================================
# API CALL TYPES
# =============================================================================


@dataclass
class ApiCallResult:
    """
    Result of a request tunneled through the management ``api-call`` endpoint.

    ``body`` is JSON-decoded when the upstream returned JSON, otherwise
    it is the raw text.
    """

    status_code: int
    body: Any = None
    header: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
