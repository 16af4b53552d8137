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
"""Tests for StructlogAdapter."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from txinsight.core.config import Config
from txinsight.logging import LoggingPort, LoggingSettings, StructlogAdapter


class TestStructlogAdapter:
    def test_protocol_compliance(self) -> None:
        assert isinstance(StructlogAdapter(), LoggingPort)

    def test_root_and_module_levels(self) -> None:
        adapter = StructlogAdapter()
        adapter.configure(Config({
            "txinsight": {
                "logging": {"level": {"root": "warning", "txinsight.transactional.outbox": "debug"}},
            }
        }))
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("txinsight.transactional.outbox").level == logging.DEBUG

    def test_set_level(self) -> None:
        adapter = StructlogAdapter()
        adapter.set_level("txinsight.tcc.test", "ERROR")
        assert logging.getLogger("txinsight.tcc.test").level == logging.ERROR

    def test_json_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        adapter = StructlogAdapter()
        adapter.configure(Config({"txinsight": {"logging": {"format": "json"}}}))

        adapter.get_logger("txinsight.test").info("tcc_completed", tx_id="tx-1", failed=0)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "tcc_completed"
        assert record["tx_id"] == "tx-1"
        assert record["level"] == "info"
        assert record["logger"] == "txinsight.test"

    def test_get_logger_returns_structlog_logger(self) -> None:
        logger = StructlogAdapter().get_logger("txinsight.x")
        assert hasattr(logger, "bind")


class TestLoggingSettings:
    def test_defaults_when_section_missing(self) -> None:
        settings = LoggingSettings.from_config(Config({}))
        assert settings == LoggingSettings(root_level="INFO", format="console", module_levels={})

    def test_reads_root_and_module_levels(self) -> None:
        settings = LoggingSettings.from_config(Config({
            "txinsight": {"logging": {"format": "JSON", "level": {"root": "debug", "sqlalchemy.engine": "warning"}}},
        }))
        assert settings.root_level == "DEBUG"
        assert settings.format == "json"
        assert settings.module_levels == {"sqlalchemy.engine": "WARNING"}

    def test_unknown_level_falls_back_to_info(self) -> None:
        adapter = StructlogAdapter()
        adapter.set_level("txinsight.odd", "chatty")
        assert logging.getLogger("txinsight.odd").level == logging.INFO
