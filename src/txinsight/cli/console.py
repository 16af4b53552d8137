# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Shared Rich console for CLI output."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from txinsight.transactional.outbox.core.status import OutboxStatus
from txinsight.transactional.outbox.relay import RelayReport

TXINSIGHT_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "txinsight": "bold magenta",
    "dim": "dim",
})

console = Console(theme=TXINSIGHT_THEME)

_STATUS_STYLES = {
    OutboxStatus.PENDING: "warning",
    OutboxStatus.SENT: "success",
    OutboxStatus.FAILED: "error",
}


def print_status_table(counts: dict[OutboxStatus, int]) -> None:
    """Print outbox row counts per status."""
    table = Table(title="[txinsight]Outbox[/txinsight]", border_style="dim")
    table.add_column("Status", style="bold", min_width=10)
    table.add_column("Rows", justify="right")

    for status in OutboxStatus:
        style = _STATUS_STYLES[status]
        table.add_row(f"[{style}]{status}[/{style}]", str(counts.get(status, 0)))
    table.add_row("[dim]total[/dim]", str(sum(counts.values())))

    console.print(table)


def print_relay_report(report: RelayReport) -> None:
    if report.scanned == 0:
        console.print("[dim]No outbox rows to relay.[/dim]")
        return
    console.print(
        f"[success]✓[/success] Sent {len(report.sent)}, "
        f"[error]failed {len(report.failed)}[/error] of {report.scanned} rows."
    )
    if report.failed:
        console.print(f"  [dim]Failed ids: {', '.join(str(i) for i in report.failed)}[/dim]")
