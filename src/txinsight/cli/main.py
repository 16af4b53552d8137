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
"""txinsight CLI — schema setup, outbox inspection and the relay loop."""

from __future__ import annotations

from pathlib import Path

import click

from txinsight.cli.console import console


class TxInsightCLI(click.Group):
    """Click group that prints a one-line header above the help text."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        from txinsight import __version__

        console.print(f"[txinsight]txinsight[/txinsight] [dim]v{__version__}[/dim]\n")
        super().format_help(ctx, formatter)


@click.group(cls=TxInsightCLI)
@click.version_option(package_name="txinsight")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (YAML or TOML). Defaults to txinsight.yaml in the working directory.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """txinsight — TCC coordination and transactional outbox tooling."""
    ctx.obj = {"config_path": config_path}


from txinsight.cli.db import db_group  # noqa: E402
from txinsight.cli.outbox import outbox_group  # noqa: E402
from txinsight.cli.relay import relay_command  # noqa: E402

cli.add_command(db_group, name="db")
cli.add_command(outbox_group, name="outbox")
cli.add_command(relay_command, name="relay")
