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
"""Application bootstrap — builds the runtime components from configuration."""

from __future__ import annotations

from pathlib import Path

import structlog
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from txinsight.core.config import Config
from txinsight.data.datasource import DataSourceProperties, create_engine, create_schema, create_session_factory
from txinsight.logging.port import LoggingPort
from txinsight.logging.structlog_adapter import StructlogAdapter
from txinsight.messaging.config import MessagingProperties, create_broker
from txinsight.messaging.ports.outbound import MessageBrokerPort
from txinsight.observability.metrics import MetricsRegistry, TransactionMetrics
from txinsight.transactional.outbox.config.properties import OutboxRelayProperties
from txinsight.transactional.outbox.relay import OutboxRelay
from txinsight.transactional.tcc.config.properties import TccCoordinatorProperties
from txinsight.transactional.tcc.coordinator import TccCoordinator

logger = structlog.get_logger(__name__)


class TxInsightApplication:
    """Wires the datasource, broker, outbox relay and TCC coordinator from one :class:`Config`.

    Usage::

        app = TxInsightApplication.from_path("txinsight.yaml")
        await app.startup()
        try:
            await app.relay.relay()
        finally:
            await app.shutdown()
    """

    def __init__(
        self,
        config: Config,
        registry: CollectorRegistry | None = None,
        logging_port: LoggingPort | None = None,
    ) -> None:
        self.config = config
        self._logging: LoggingPort = logging_port or StructlogAdapter()
        self._logging.configure(config)

        self.datasource = config.bind(DataSourceProperties)
        self.messaging = config.bind(MessagingProperties)
        self.relay_properties = config.bind(OutboxRelayProperties)
        self.tcc_properties = config.bind(TccCoordinatorProperties)

        self.metrics = TransactionMetrics(MetricsRegistry(registry))
        self.engine: AsyncEngine = create_engine(self.datasource)
        self.session_factory: async_sessionmaker[AsyncSession] = create_session_factory(self.engine)
        self.broker: MessageBrokerPort = create_broker(self.messaging)
        self.relay = OutboxRelay(self.session_factory, self.broker, self.relay_properties, self.metrics)
        self.coordinator = TccCoordinator(self.tcc_properties, metrics=self.metrics)
        self._started = False

    @classmethod
    def from_path(cls, config_path: str | Path | None = None, registry: CollectorRegistry | None = None) -> TxInsightApplication:
        """Load ``config_path`` or, when omitted, the txinsight files of the working directory."""
        if config_path is not None:
            config = Config.from_file(config_path)
        else:
            base = Config.from_sources(Path.cwd())
            profiles = str(base.get("txinsight.profiles.active", "") or "")
            active = [p.strip() for p in profiles.split(",") if p.strip()]
            config = Config.from_sources(Path.cwd(), active_profiles=active) if active else base
        return cls(config, registry)

    async def create_schema(self) -> None:
        await create_schema(self.engine)

    async def startup(self) -> None:
        if self._started:
            return
        await self.broker.start()
        self._started = True
        logger.info(
            "application_started",
            datasource=self.engine.url.render_as_string(hide_password=True),
            broker=type(self.broker).__name__,
            sources=self.config.loaded_sources,
        )

    async def shutdown(self) -> None:
        await self.relay.stop()
        if self._started:
            await self.broker.stop()
            self._started = False
        await self.engine.dispose()
        logger.info("application_stopped")
