# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from typing import TYPE_CHECKING, List

from .antigravity import AntigravityAdapter
from .base import ProviderAdapter, Translator
from .codex import CodexAdapter
from .gemini_cli import GeminiCliAdapter

if TYPE_CHECKING:
    from ..management import ManagementClient


def default_adapters(client: "ManagementClient") -> List[ProviderAdapter]:
    """The quota providers shown on the dashboard, in display order."""
    return [
        AntigravityAdapter(client),
        CodexAdapter(client),
        GeminiCliAdapter(client),
    ]


__all__ = [
    "AntigravityAdapter",
    "CodexAdapter",
    "GeminiCliAdapter",
    "ProviderAdapter",
    "Translator",
    "default_adapters",
]
