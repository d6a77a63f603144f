"""Tests for the shared data model."""

import pytest

from quota_engine.core.types import (
    CredentialFile,
    MetricGroup,
    QuotaItem,
    QuotaState,
    round_half_up,
)


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected", [(2.5, 3), (3.5, 4), (2.4, 2), (59.5, 60), (0.0, 0)]
    )
    def test_rounds_halves_up(self, value, expected):
        assert round_half_up(value) == expected


class TestMetricGroup:
    def test_from_remaining_fraction(self):
        group = MetricGroup.from_remaining_fraction("g", "G", 0.755)
        assert group.remaining_percent == 76

    def test_from_remaining_fraction_unknown(self):
        assert MetricGroup.from_remaining_fraction("g", "G", None).remaining_percent is None

    def test_from_used_percent_inverts(self):
        assert MetricGroup.from_used_percent("w", "W", 30).remaining_percent == 70

    def test_from_used_percent_clamps_at_zero(self):
        assert MetricGroup.from_used_percent("w", "W", 130).remaining_percent == 0


class TestQuotaState:
    def test_variants(self):
        assert QuotaState.loading().is_loading
        ok = QuotaState.success([MetricGroup("a", "A", 10)])
        assert ok.is_success and ok.metrics[0].id == "a"
        err = QuotaState.failed("nope")
        assert err.is_error and err.error == "nope"

    def test_transitions(self):
        loading = QuotaState.loading()
        ok = QuotaState.success([])
        err = QuotaState.failed("x")
        assert loading.can_transition_to(ok)
        assert loading.can_transition_to(err)
        assert ok.can_transition_to(loading)
        assert err.can_transition_to(loading)
        assert not ok.can_transition_to(err)
        assert not err.can_transition_to(ok)


class TestCredentialFile:
    def test_from_dict(self):
        auth_file = CredentialFile.from_dict(
            {
                "name": "codex-user.json",
                "type": "Codex",
                "auth_index": 3,
                "email": "user@example.com",
                "account_id": "acct-1",
            }
        )
        assert auth_file.provider == "codex"
        assert auth_file.auth_index == "3"
        assert auth_file.email == "user@example.com"
        assert auth_file.disabled is False
        assert auth_file.metadata == {"account_id": "acct-1"}

    def test_provider_fallback_field(self):
        auth_file = CredentialFile.from_dict({"name": "x.json", "provider": "antigravity"})
        assert auth_file.provider == "antigravity"
        assert auth_file.auth_index is None

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("false", False),
            ("False", False),
            ("0", False),
            ("", False),
            ("true", True),
            ("1", True),
            (True, True),
            (False, False),
            (0, False),
            (None, False),
        ],
    )
    def test_disabled_flag_parsing(self, raw, expected):
        auth_file = CredentialFile.from_dict({"name": "x.json", "type": "codex", "disabled": raw})
        assert auth_file.disabled is expected


class TestQuotaItem:
    @pytest.mark.parametrize("percent,level", [(61, "high"), (60, "medium"), (21, "medium"), (20, "low")])
    def test_level(self, percent, level):
        assert QuotaItem("i", "I", percent).level == level
