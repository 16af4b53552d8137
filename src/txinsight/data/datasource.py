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
"""Datasource configuration and engine construction."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from txinsight.core.config import config_properties
from txinsight.data.entity import Base


@config_properties(prefix="txinsight.datasource")
@dataclass
class DataSourceProperties:
    """Connection settings for the store holding business and outbox tables.

    YAML structure::

        txinsight:
          datasource:
            url: sqlite+aiosqlite:///txinsight.db
            echo: false
    """

    url: str = "sqlite+aiosqlite:///txinsight.db"
    echo: bool = False


def create_engine(properties: DataSourceProperties) -> AsyncEngine:
    return create_async_engine(properties.url, echo=properties.echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table registered on :class:`Base` that does not exist yet."""
    # Imported for their side effect of registering tables on Base.metadata.
    import txinsight.orders.entity  # noqa: F401
    import txinsight.transactional.outbox.core.message  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
