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
"""Structured logging for the coordinator, the relay and the CLI.

Events are logged as snake_case names with keyword fields
(``logger.warning("tcc_cancel_failed", tx_id=..., branch_id=...)``) and
rendered either for a terminal or as one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any

import structlog

from txinsight.core.config import Config

_SHARED_PROCESSORS: tuple[structlog.types.Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


@dataclass(frozen=True)
class LoggingSettings:
    """Logging section of the configuration.

    YAML structure::

        txinsight:
          logging:
            format: json            # console | json
            level:
              root: INFO
              txinsight.transactional.outbox: DEBUG
    """

    root_level: str = "INFO"
    format: str = "console"
    module_levels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Config) -> LoggingSettings:
        levels = {name: str(level).upper() for name, level in config.get_section("txinsight.logging.level").items()}
        return cls(
            root_level=levels.pop("root", "INFO"),
            format=str(config.get("txinsight.logging.format", "console")).lower(),
            module_levels=levels,
        )

    def renderer(self) -> structlog.types.Processor:
        if self.format == "json":
            return structlog.processors.JSONRenderer()
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO


class StructlogAdapter:
    """:class:`~txinsight.logging.port.LoggingPort` backed by structlog.

    structlog hands finished events to stdlib logging, so per-module levels
    and third-party loggers (SQLAlchemy, aiokafka) share one output stream.
    """

    def __init__(self) -> None:
        self.settings = LoggingSettings()

    def configure(self, config: Config) -> None:
        self.settings = LoggingSettings.from_config(config)
        structlog.configure(
            processors=[*_SHARED_PROCESSORS, self.settings.renderer()],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=_level_number(self.settings.root_level),
            force=True,
        )
        for name, level in self.settings.module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(_level_number(level))
