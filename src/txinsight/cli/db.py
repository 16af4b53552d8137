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
"""'txinsight db' commands."""

from __future__ import annotations

import asyncio

import click

from txinsight.cli.console import console
from txinsight.core.application import TxInsightApplication


@click.group()
def db_group() -> None:
    """Database schema commands."""


@db_group.command("init")
@click.pass_obj
def init_cmd(obj: dict[str, object]) -> None:
    """Create the orders and outbox_message tables if they do not exist."""

    async def _init() -> str:
        app = TxInsightApplication.from_path(obj.get("config_path"))  # type: ignore[arg-type]
        try:
            await app.create_schema()
            return app.engine.url.render_as_string(hide_password=True)
        finally:
            await app.shutdown()

    url = asyncio.run(_init())
    console.print(f"[success]✓[/success] Schema ready at [info]{url}[/info].")
