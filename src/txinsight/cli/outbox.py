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
"""'txinsight outbox' commands."""

from __future__ import annotations

import asyncio

import click

from txinsight.cli.console import console, print_status_table
from txinsight.core.application import TxInsightApplication
from txinsight.transactional.outbox.core.status import OutboxStatus
from txinsight.transactional.outbox.store import OutboxStore


@click.group()
def outbox_group() -> None:
    """Inspect the transactional outbox."""


@outbox_group.command("status")
@click.pass_obj
def status_cmd(obj: dict[str, object]) -> None:
    """Show how many outbox rows are PENDING, SENT and FAILED."""

    async def _counts() -> dict[OutboxStatus, int]:
        app = TxInsightApplication.from_path(obj.get("config_path"))  # type: ignore[arg-type]
        try:
            async with app.session_factory() as session:
                return await OutboxStore(session).count_by_status()
        finally:
            await app.shutdown()

    counts = asyncio.run(_counts())
    print_status_table(counts)
    if counts[OutboxStatus.FAILED]:
        console.print("[warning]![/warning] Some messages failed; check last_error on the FAILED rows.")
