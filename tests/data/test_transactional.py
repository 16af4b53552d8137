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
"""Tests for the @transactional decorator and session propagation."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from txinsight.data.transactional import Propagation, current_session, session_scope, transactional
from txinsight.kernel.exceptions import TransactionRequiredException


class _Service:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None) -> None:
        self._session_factory = session_factory
        self.seen: list[AsyncSession | None] = []

    @transactional()
    async def outer(self) -> None:
        self.seen.append(current_session())
        await self.inner()
        await self.nested_new()

    @transactional()
    async def inner(self) -> None:
        self.seen.append(current_session())

    @transactional(propagation=Propagation.REQUIRES_NEW)
    async def nested_new(self) -> None:
        self.seen.append(current_session())

    @transactional(propagation=Propagation.MANDATORY)
    async def mandatory(self) -> AsyncSession | None:
        return current_session()


class TestTransactional:
    @pytest.mark.asyncio
    async def test_required_joins_and_requires_new_opens(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        service = _Service(session_factory)
        await service.outer()
        outer, inner, new = service.seen
        assert outer is not None
        assert inner is outer
        assert new is not outer
        assert current_session() is None

    @pytest.mark.asyncio
    async def test_mandatory_without_transaction_fails(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(TransactionRequiredException):
            await _Service(session_factory).mandatory()

    @pytest.mark.asyncio
    async def test_missing_session_factory(self) -> None:
        with pytest.raises(RuntimeError, match="_session_factory"):
            await _Service(None).inner()

    def test_decorator_marks_wrapper(self) -> None:
        assert _Service.inner.__txinsight_transactional__ is True  # type: ignore[attr-defined]
        assert _Service.mandatory.__txinsight_propagation__ is Propagation.MANDATORY  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_session_scope_publishes_and_rolls_back(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(LookupError):
            async with session_scope(session_factory) as session:
                assert current_session() is session
                assert session.in_transaction()
                raise LookupError("abort")
        assert current_session() is None
