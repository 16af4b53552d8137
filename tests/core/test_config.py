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
"""Tests for Config loading, environment overrides and property binding."""

from __future__ import annotations

from pathlib import Path

import pytest

from txinsight.core.config import Config, env_var_for
from txinsight.data.datasource import DataSourceProperties
from txinsight.messaging.config import MessagingProperties
from txinsight.transactional.outbox import OutboxRelayProperties
from txinsight.transactional.tcc import DuplicateBeginPolicy, TccCoordinatorProperties


class TestConfigAccess:
    def test_dot_notation_lookup(self) -> None:
        config = Config({"txinsight": {"outbox": {"relay": {"interval_ms": 250}}}})
        assert config.get("txinsight.outbox.relay.interval_ms") == 250
        assert config.get("txinsight.outbox.relay.missing", "fallback") == "fallback"

    def test_env_var_overrides_file_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TXINSIGHT_OUTBOX_RELAY_INTERVAL_MS", "75")
        config = Config({"txinsight": {"outbox": {"relay": {"interval_ms": 250}}}})
        assert config.get("txinsight.outbox.relay.interval_ms") == "75"

    def test_placeholders(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.internal")
        config = Config({
            "txinsight": {
                "datasource": {"url": "postgresql+asyncpg://${DB_HOST}/${DB_NAME:orders}"},
            }
        })
        assert config.get("txinsight.datasource.url") == "postgresql+asyncpg://db.internal/orders"

    def test_unresolvable_placeholder(self) -> None:
        config = Config({"txinsight": {"messaging": {"bootstrap_servers": "${NOPE_NOT_SET_ANYWHERE}"}}})
        with pytest.raises(ValueError, match="Cannot resolve"):
            config.get("txinsight.messaging.bootstrap_servers")

    def test_get_section(self) -> None:
        config = Config({"txinsight": {"logging": {"level": {"root": "DEBUG"}}}})
        assert config.get_section("txinsight.logging.level") == {"root": "DEBUG"}
        assert config.get_section("txinsight.nothing") == {}


class TestConfigFiles:
    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "txinsight.yaml"
        path.write_text("txinsight:\n  tcc:\n    duplicate_begin: reject\n")
        config = Config.from_file(path)
        assert config.loaded_sources == [str(path)]
        assert config.bind(TccCoordinatorProperties).duplicate_begin is DuplicateBeginPolicy.REJECT

    def test_toml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "txinsight.toml"
        path.write_text('[txinsight.messaging]\nprovider = "kafka"\nbootstrap_servers = "k1:9092"\n')
        props = Config.from_file(path).bind(MessagingProperties)
        assert props.provider == "kafka"
        assert props.bootstrap_servers == "k1:9092"

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        config = Config.from_file(tmp_path / "absent.yaml")
        assert config.to_dict() == {}
        assert config.loaded_sources == []

    def test_profiles_overlay_base(self, tmp_path: Path) -> None:
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "txinsight.yaml").write_text(
            "txinsight:\n  outbox:\n    relay:\n      interval_ms: 1000\n      batch_size: 10\n"
        )
        (tmp_path / "txinsight-prod.yaml").write_text("txinsight:\n  outbox:\n    relay:\n      interval_ms: 200\n")

        config = Config.from_sources(tmp_path, active_profiles=["prod"])
        props = config.bind(OutboxRelayProperties)

        assert props.interval_ms == 200
        assert props.batch_size == 10
        assert len(config.loaded_sources) == 2


class TestBinding:
    def test_defaults_when_unset(self) -> None:
        props = Config().bind(OutboxRelayProperties)
        assert props == OutboxRelayProperties()
        assert props.interval_ms == 1000
        assert props.max_attempts == 1

    def test_env_strings_are_coerced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TXINSIGHT_OUTBOX_RELAY_CONCURRENCY", "4")
        monkeypatch.setenv("TXINSIGHT_OUTBOX_RELAY_ENABLED", "false")
        monkeypatch.setenv("TXINSIGHT_OUTBOX_RELAY_BACKOFF_MULTIPLIER", "1.5")
        monkeypatch.setenv("TXINSIGHT_TCC_DUPLICATE_BEGIN", "REJECT")

        relay = Config().bind(OutboxRelayProperties)
        tcc = Config().bind(TccCoordinatorProperties)

        assert relay.concurrency == 4
        assert relay.enabled is False
        assert relay.backoff_multiplier == 1.5
        assert tcc.duplicate_begin is DuplicateBeginPolicy.REJECT

    def test_retry_policy_from_properties(self) -> None:
        policy = OutboxRelayProperties(max_attempts=4, backoff_ms=10).retry_policy()
        assert policy.max_attempts == 4
        assert policy.backoff_ms == 10

    def test_bind_requires_decorated_class(self) -> None:
        class Plain:
            pass

        with pytest.raises(ValueError, match="config_properties"):
            Config().bind(Plain)

    def test_datasource_defaults(self) -> None:
        assert Config().bind(DataSourceProperties).url == "sqlite+aiosqlite:///txinsight.db"


class TestEnvNames:
    @pytest.mark.parametrize(
        ("key", "env"),
        [
            ("txinsight.outbox.relay.batch_size", "TXINSIGHT_OUTBOX_RELAY_BATCH_SIZE"),
            ("txinsight.messaging.bootstrap-servers", "TXINSIGHT_MESSAGING_BOOTSTRAP_SERVERS"),
        ],
    )
    def test_env_var_for(self, key: str, env: str) -> None:
        assert env_var_for(key) == env
