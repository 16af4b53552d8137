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
"""'txinsight relay' command."""

from __future__ import annotations

import asyncio

import click

from txinsight.cli.console import console, print_relay_report
from txinsight.core.application import TxInsightApplication
from txinsight.transactional.outbox.relay import RelayReport


@click.command()
@click.option("--once", is_flag=True, help="Run a single scan and exit.")
@click.pass_obj
def relay_command(obj: dict[str, object], once: bool) -> None:
    """Publish undelivered outbox rows to the configured broker."""
    app = TxInsightApplication.from_path(obj.get("config_path"))  # type: ignore[arg-type]

    if once:
        report = asyncio.run(_relay_once(app))
        print_relay_report(report)
        if report.failed:
            raise SystemExit(1)
        return

    interval = app.relay_properties.interval_ms
    console.print(f"[info]Relaying every {interval} ms. Press Ctrl+C to stop.[/info]")
    try:
        asyncio.run(_relay_forever(app))
    except KeyboardInterrupt:
        console.print("\n[dim]Relay stopped.[/dim]")


async def _relay_once(app: TxInsightApplication) -> RelayReport:
    await app.startup()
    try:
        return await app.relay.relay()
    finally:
        await app.shutdown()


async def _relay_forever(app: TxInsightApplication) -> None:
    await app.startup()
    try:
        await app.relay.start()
        await asyncio.Event().wait()
    finally:
        await app.shutdown()
