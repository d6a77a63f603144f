"""Tests for the concrete provider adapters."""

import json

import pytest

from quota_engine.core.types import ApiCallResult
from quota_engine.errors import QuotaFetchError
from quota_engine.providers import AntigravityAdapter, CodexAdapter, GeminiCliAdapter
from quota_engine.providers.antigravity import ANTIGRAVITY_QUOTA_URLS
from quota_engine.providers.codex import CODEX_USAGE_URL, format_window_label
from quota_engine.providers.gemini_cli import GEMINI_CLI_QUOTA_URL, get_project_id

from conftest import FakeManagementClient, make_file


class TestAntigravityAdapter:
    def test_groups_take_lowest_fraction_and_earliest_reset(self):
        adapter = AntigravityAdapter(client=None)
        data = {
            "models": {
                "gemini-3-pro-high": {
                    "quotaInfo": {"remainingFraction": 0.9, "resetTime": "2026-01-02T00:00:00Z"}
                },
                "gemini-3-pro-low": {
                    "quotaInfo": {"remainingFraction": 0.5, "resetTime": "2026-01-01T00:00:00Z"}
                },
                "claude-sonnet-4-5": {"quotaInfo": {"remainingFraction": 1}},
                "unknown-model": {"quotaInfo": {"remainingFraction": 0.1}},
            }
        }
        metrics = adapter.parse_metrics(data)
        assert [(m.id, m.remaining_percent) for m in metrics] == [
            ("claude-gpt", 100),
            ("gemini-3-pro", 50),
        ]
        assert metrics[1].reset_time == "2026-01-01T00:00:00Z"

    def test_missing_models_gives_no_metrics(self):
        adapter = AntigravityAdapter(client=None)
        assert adapter.parse_metrics({}) == []
        assert adapter.build_success_state(None).metrics == ()

    @pytest.mark.asyncio
    async def test_fetch_falls_back_through_hosts(self):
        client = FakeManagementClient()
        client.api_call_results = [
            ApiCallResult(status_code=503, body={"error": {"message": "unavailable"}}),
            ApiCallResult(status_code=200, body={"models": {}}),
        ]
        adapter = AntigravityAdapter(client)
        body = await adapter.fetch_quota(make_file("ag.json", "antigravity", auth_index="7"))

        assert body == {"models": {}}
        urls = [call[3] for call in client.calls]
        assert urls == ANTIGRAVITY_QUOTA_URLS[:2]
        assert client.calls[0][1] == "7"

    @pytest.mark.asyncio
    async def test_fetch_raises_last_error_when_all_hosts_fail(self):
        client = FakeManagementClient()
        client.api_call_results = [
            ApiCallResult(status_code=500, body="down") for _ in ANTIGRAVITY_QUOTA_URLS
        ]
        adapter = AntigravityAdapter(client)
        with pytest.raises(QuotaFetchError) as exc_info:
            await adapter.fetch_quota(make_file("ag.json", "antigravity", auth_index="7"))
        assert str(exc_info.value) == "HTTP 500: down"

    @pytest.mark.asyncio
    async def test_fetch_requires_auth_index(self):
        adapter = AntigravityAdapter(FakeManagementClient())
        with pytest.raises(QuotaFetchError):
            await adapter.fetch_quota(
                make_file("ag.json", "antigravity"), translate=lambda m: f"[{m}]"
            )


class TestCodexAdapter:
    def test_parses_windows_from_used_percent(self):
        adapter = CodexAdapter(client=None)
        data = {
            "rate_limit": {
                "primary_window": {"used_percent": 30, "limit_window_seconds": 18000},
                "secondary_window": {
                    "used_percent": 55.5,
                    "limit_window_seconds": 604800,
                    "reset_at": 1767225600,
                },
            },
            "code_review_rate_limit": {
                "primary_window": {"used_percent": None, "limit_window_seconds": 604800}
            },
        }
        metrics = adapter.parse_metrics(data)
        assert [(m.id, m.label, m.remaining_percent) for m in metrics] == [
            ("primary", "5h", 70.0),
            ("secondary", "Weekly", 44.5),
            ("code-review", "Code Review (Weekly)", None),
        ]
        assert metrics[1].reset_time == "1767225600"

    @pytest.mark.parametrize(
        "seconds,label",
        [(18000, "5h"), (604800, "Weekly"), (86400, "Daily"), (172800, "2d"), (90, "1m"), (None, "X")],
    )
    def test_window_labels(self, seconds, label):
        assert format_window_label(seconds, "X") == label

    @pytest.mark.asyncio
    async def test_fetch_sends_account_header(self):
        client = FakeManagementClient()
        client.api_call_results = [ApiCallResult(status_code=200, body={"rate_limit": {}})]
        adapter = CodexAdapter(client)
        auth_file = make_file(
            "codex.json", "codex", auth_index="2", id_token={"chatgpt_account_id": "acct-9"}
        )

        assert await adapter.fetch_quota(auth_file) == {"rate_limit": {}}
        _, auth_index, method, url, header, _ = client.calls[0]
        assert (auth_index, method, url) == ("2", "GET", CODEX_USAGE_URL)
        assert header["Chatgpt-Account-Id"] == "acct-9"
        assert header["Authorization"] == "Bearer $TOKEN$"

    @pytest.mark.asyncio
    async def test_fetch_error_carries_upstream_message(self):
        client = FakeManagementClient()
        client.api_call_results = [
            ApiCallResult(status_code=401, body={"error": {"message": "token expired"}})
        ]
        adapter = CodexAdapter(client)
        with pytest.raises(QuotaFetchError) as exc_info:
            await adapter.fetch_quota(make_file("codex.json", "codex", auth_index="2"))
        assert str(exc_info.value) == "HTTP 401: token expired"
        assert exc_info.value.status_code == 401


class TestGeminiCliAdapter:
    def test_parses_buckets(self):
        adapter = GeminiCliAdapter(client=None)
        data = {
            "buckets": [
                {"modelId": "gemini-2.5-pro", "tokenType": "REQUESTS", "remainingFraction": 0.25},
                {"modelId": "gemini-2.5-flash", "remainingFraction": 1},
                {"modelId": "gemini-2.5-pro", "tokenType": "REQUESTS", "remainingFraction": 0.9},
                {"modelId": "gemini-2.0-flash"},
                {"tokenType": "REQUESTS"},
            ]
        }
        metrics = adapter.parse_metrics(data)
        assert [(m.id, m.label, m.remaining_percent) for m in metrics] == [
            ("gemini-2.5-pro:requests", "gemini-2.5-pro", 25),
            ("gemini-2.5-flash", "gemini-2.5-flash", 100),
            ("gemini-2.0-flash", "gemini-2.0-flash", None),
        ]

    def test_project_id_sources(self):
        assert get_project_id(make_file("g.json", "gemini-cli", project_id="p-1")) == "p-1"
        assert (
            get_project_id(make_file("g.json", "gemini-cli", account="me@example.com (proj-2)"))
            == "proj-2"
        )
        assert get_project_id(make_file("g.json", "gemini-cli")) is None

    @pytest.mark.asyncio
    async def test_fetch_posts_project(self):
        client = FakeManagementClient()
        client.api_call_results = [ApiCallResult(status_code=200, body={"buckets": []})]
        adapter = GeminiCliAdapter(client)

        await adapter.fetch_quota(
            make_file("g.json", "gemini-cli", auth_index="4", project_id="p-1")
        )

        _, _, method, url, _, data = client.calls[0]
        assert (method, url) == ("POST", GEMINI_CLI_QUOTA_URL)
        assert json.loads(data) == {"project": "p-1"}

    @pytest.mark.asyncio
    async def test_fetch_without_project_fails(self):
        adapter = GeminiCliAdapter(FakeManagementClient())
        with pytest.raises(QuotaFetchError, match="Missing project ID"):
            await adapter.fetch_quota(make_file("g.json", "gemini-cli", auth_index="4"))


def test_matches_by_provider_tag():
    adapter = CodexAdapter(client=None)
    assert adapter.matches(make_file("a.json", "codex"))
    assert not adapter.matches(make_file("a.json", "codex", disabled=True))
    assert not adapter.matches(make_file("a.json", "antigravity"))
