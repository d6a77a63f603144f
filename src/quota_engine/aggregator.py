# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Quota aggregation.

Folds the per-credential quota states of each provider into one summary
row per provider: the credential count and the mean remaining percent per
metric across every credential that reported it.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .core.types import (
    AggregatedProviderSummary,
    ProviderQuotaMap,
    QuotaItem,
    QuotaState,
    round_half_up,
)
from .providers.base import ProviderAdapter


def qualifying_states(quota_map: ProviderQuotaMap) -> List[QuotaState]:
    """Successful states with at least one metric, in map order."""
    return [
        state
        for state in quota_map.values()
        if state.is_success and len(state.metrics) > 0
    ]


def summarize_provider(
    provider: str,
    name: str,
    quota_map: ProviderQuotaMap,
    max_items: Optional[int] = None,
) -> Optional[AggregatedProviderSummary]:
    """
    Summarize one provider's quota map.

    Ordering and labels come from the first qualifying credential; a
    metric id that credential does not report is left out even when later
    credentials report it. Metrics with an unknown percent do not count
    towards the mean.

    Args:
        provider: Store key of the provider
        name: Display name
        quota_map: Credential name -> QuotaState
        max_items: Optional cap on the number of items

    Returns:
        The summary, or None when no credential has usable data
    """
    states = qualifying_states(quota_map)
    if not states:
        return None

    totals: Dict[str, Tuple[float, int]] = {}
    for state in states:
        for metric in state.metrics:
            if metric.remaining_percent is None:
                continue
            total, count = totals.get(metric.id, (0.0, 0))
            totals[metric.id] = (total + metric.remaining_percent, count + 1)

    items: List[QuotaItem] = []
    emitted = set()
    for metric in states[0].metrics:
        if metric.id in emitted or metric.id not in totals:
            continue
        emitted.add(metric.id)
        total, count = totals[metric.id]
        items.append(
            QuotaItem(
                id=metric.id,
                label=metric.label,
                percent=round_half_up(total / count),
            )
        )

    if max_items is not None:
        items = items[:max_items]

    return AggregatedProviderSummary(
        provider=provider,
        name=name,
        credential_count=len(states),
        items=tuple(items),
    )


def aggregate(
    quota_maps: Mapping[str, ProviderQuotaMap],
    adapters: Sequence[ProviderAdapter],
) -> List[AggregatedProviderSummary]:
    """
    Build the dashboard quota overview.

    Pure function of its inputs. Providers are emitted in adapter order;
    providers without a qualifying credential are omitted rather than
    shown as zero.

    Args:
        quota_maps: Provider key -> credential quota map (QuotaStore.snapshot())
        adapters: Provider adapters supplying display names and item caps

    Returns:
        List of provider summaries
    """
    summaries: List[AggregatedProviderSummary] = []
    for adapter in adapters:
        summary = summarize_provider(
            adapter.provider,
            adapter.display_name,
            quota_maps.get(adapter.provider, {}),
            adapter.max_items,
        )
        if summary is not None:
            summaries.append(summary)
    return summaries
