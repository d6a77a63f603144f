# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Quota Dashboard terminal viewer.

Connects to a running proxy server, loads the quick stats and refreshes
quota for every stored credential, then prints the dashboard.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quota_engine import (
    AggregatedProviderSummary,
    ConfigurationError,
    ConnectionStatus,
    DashboardSettings,
    QuotaDashboard,
)
from quota_engine.config import normalize_api_base


# =============================================================================
# DISPLAY CONFIGURATION - Adjust these values to customize the layout
# =============================================================================

TABLE_PROVIDER_WIDTH = 12
TABLE_CREDS_WIDTH = 5
QUOTA_NAME_WIDTH = 22  # Width for quota item label
QUOTA_PCT_WIDTH = 5  # Width for percentage (e.g., "100%")
QUOTA_BAR_WIDTH = 20  # Width for progress bar

# Item level -> colour (matches QuotaItem.level)
LEVEL_COLORS = {
    "high": "green",
    "medium": "yellow",
    "low": "red",
}

# Connection status -> (icon, label, colour)
STATUS_DISPLAY = {
    ConnectionStatus.CONNECTED: (":white_check_mark:", "Connected", "green"),
    ConnectionStatus.CONNECTING: (":hourglass:", "Connecting", "yellow"),
    ConnectionStatus.DISCONNECTED: (":no_entry:", "Disconnected", "red"),
}

# =============================================================================


def create_progress_bar(percent: Optional[int], width: int = 10) -> str:
    """Create a text-based progress bar."""
    if percent is None:
        return "░" * width
    percent = max(0, min(100, percent))
    filled = int(percent / 100 * width)
    return "▓" * filled + "░" * (width - filled)


def format_count(value: Optional[int]) -> str:
    """Unknown counters are shown as "-"."""
    return "-" if value is None else str(value)


def format_build_date(build_date: Optional[str]) -> Optional[str]:
    if not build_date:
        return None
    try:
        return datetime.fromisoformat(build_date.replace("Z", "+00:00")).strftime(
            "%Y-%m-%d"
        )
    except ValueError:
        return build_date


class DashboardViewer:
    """Renders a QuotaDashboard to the terminal."""

    def __init__(self, dashboard: QuotaDashboard, console: Optional[Console] = None):
        # Use emoji_variant="text" for more consistent width calculations
        self.console = console or Console(emoji_variant="text")
        self.dashboard = dashboard

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def render_header(self) -> None:
        connection = self.dashboard.connection
        icon, label, color = STATUS_DISPLAY[connection.status]

        self.console.print("━" * 78)
        self.console.print("[bold cyan]:bar_chart: Quota Dashboard[/bold cyan]")
        self.console.print("━" * 78)

        parts = [
            f"[{color}]{icon} {label}[/{color}]",
            f"[bold]{connection.api_base or '-'}[/bold]",
        ]
        if connection.server_version:
            parts.append(f"v{connection.server_version}")
        build_date = format_build_date(connection.server_build_date)
        if build_date:
            parts.append(f"built {build_date}")
        self.console.print(" | ".join(parts))
        self.console.print()

    def render_stats(self) -> None:
        stats = self.dashboard.stats
        provider_keys = stats.provider_keys
        models = self.dashboard.models

        table = Table(box=None, show_header=True, header_style="bold", padding=(0, 2))
        table.add_column("Management keys", justify="center")
        table.add_column("AI provider keys", justify="center")
        table.add_column("Auth files", justify="center")
        table.add_column("Models", justify="center")

        provider_total = format_count(provider_keys.total)
        if provider_keys.any_known:
            provider_total += (
                f" [dim](gemini {format_count(provider_keys.gemini)}, "
                f"codex {format_count(provider_keys.codex)}, "
                f"claude {format_count(provider_keys.claude)}, "
                f"openai {format_count(provider_keys.openai)})[/dim]"
            )

        table.add_row(
            format_count(stats.api_keys),
            provider_total,
            format_count(stats.auth_files),
            "-" if models.loading else str(len(models)),
        )
        self.console.print(table)
        self.console.print()

    def render_quota(self, summaries: List[AggregatedProviderSummary]) -> None:
        if not summaries:
            self.console.print(
                Panel(
                    Text.from_markup(
                        "[yellow]No quota data loaded.[/yellow]\n"
                        "Run without --no-refresh to load quota for all credentials."
                    ),
                    border_style="yellow",
                    expand=False,
                )
            )
            return

        table = Table(box=None, show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Provider", style="cyan", min_width=TABLE_PROVIDER_WIDTH)
        table.add_column("Creds", justify="center", min_width=TABLE_CREDS_WIDTH)
        table.add_column("Remaining quota")

        for idx, summary in enumerate(summaries, 1):
            lines = []
            for item in summary.items:
                color = LEVEL_COLORS[item.level]
                label = item.label[: QUOTA_NAME_WIDTH - 1]
                bar = create_progress_bar(item.percent, QUOTA_BAR_WIDTH)
                pct = f"{item.percent}%"
                lines.append(
                    f"[{color}]{label + ':':<{QUOTA_NAME_WIDTH}}{pct:>{QUOTA_PCT_WIDTH}} {bar}[/{color}]"
                )

            table.add_row(
                summary.name,
                str(summary.credential_count),
                lines[0] if lines else "-",
            )
            for line in lines[1:]:
                table.add_row("", "", line)

            if idx < len(summaries):
                table.add_row("─" * TABLE_PROVIDER_WIDTH, "─" * TABLE_CREDS_WIDTH, "")

        self.console.print(table)

    def render(self) -> None:
        self.render_header()
        self.render_stats()
        self.render_quota(self.dashboard.quota_summary)
        self.console.print()

    # =========================================================================
    # MAIN
    # =========================================================================

    async def run(self, refresh: bool = True) -> int:
        """
        Connect, load everything and print the dashboard once.

        Returns:
            Process exit code
        """
        try:
            with self.console.status("[bold]Connecting to server...", spinner="dots"):
                connected = await self.dashboard.connect()
            if not connected:
                self.render_header()
                self.console.print(
                    "[bold red]Connection failed.[/bold red] "
                    "Check the API base and management key."
                )
                return 1

            with self.console.status("[bold]Loading stats...", spinner="dots"):
                await self.dashboard.on_connected()
            if refresh:
                with self.console.status("[bold]Refreshing quota...", spinner="dots"):
                    await self.dashboard.refresh_quota()

            self.render()
            return 0
        finally:
            await self.dashboard.aclose()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quota-dashboard",
        description="Show quota and key statistics of a running proxy server.",
    )
    parser.add_argument("--api-base", help="Server base URL or host:port")
    parser.add_argument("--management-key", help="Management API key")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Skip the quota refresh and only show stats",
    )
    return parser


def run_dashboard(argv: Optional[List[str]] = None) -> int:
    """Entry point for the quota dashboard viewer."""
    args = build_parser().parse_args(argv)
    console = Console(emoji_variant="text")

    try:
        settings = DashboardSettings.from_env(args.env_file)
        if args.api_base:
            settings.api_base = normalize_api_base(args.api_base)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        return 2
    if args.management_key:
        settings.management_key = args.management_key

    setup_logging(settings.log_level)

    viewer = DashboardViewer(QuotaDashboard.from_settings(settings), console)
    return asyncio.run(viewer.run(refresh=not args.no_refresh))


if __name__ == "__main__":
    sys.exit(run_dashboard())
