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
"""``@transactional`` and the ambient session it publishes.

Business writes and their outbox rows commit together only if they share an
:class:`~sqlalchemy.ext.asyncio.AsyncSession`. A service method decorated
with ``@transactional()`` opens (or joins) that session and makes it
visible through :func:`current_session`, which is how
:class:`~txinsight.transactional.outbox.store.OutboxStore` finds it.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from txinsight.kernel.exceptions import TransactionRequiredException

F = TypeVar("F", bound=Callable[..., Any])

_current: ContextVar[AsyncSession | None] = ContextVar("txinsight_current_session", default=None)


class Propagation(enum.Enum):
    """How a decorated method relates to a transaction already in progress."""

    REQUIRED = "REQUIRED"
    """Join the caller's transaction, or start one."""
    REQUIRES_NEW = "REQUIRES_NEW"
    """Always run in a fresh session that commits on its own."""
    MANDATORY = "MANDATORY"
    """Join the caller's transaction; fail if there is none."""


def current_session() -> AsyncSession | None:
    return _current.get()


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Open a session, begin a transaction and publish it as the current session.

    Commits on normal exit and rolls back if the block raises.
    """
    async with factory() as session, session.begin():
        token = _current.set(session)
        try:
            yield session
        finally:
            _current.reset(token)


def transactional(propagation: Propagation = Propagation.REQUIRED) -> Callable[[F], F]:
    """Run a service coroutine method inside a database transaction.

    The session factory is taken from ``self._session_factory``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            joined = _current.get()
            if propagation is Propagation.MANDATORY and joined is None:
                raise TransactionRequiredException(f"{func.__qualname__} must be called inside a transaction")
            if joined is not None and propagation is not Propagation.REQUIRES_NEW:
                return await func(self, *args, **kwargs)

            factory: async_sessionmaker[AsyncSession] | None = getattr(self, "_session_factory", None)
            if factory is None:
                raise RuntimeError(f"{type(self).__name__} has no _session_factory to open a transaction with")
            async with session_scope(factory):
                return await func(self, *args, **kwargs)

        wrapper.__txinsight_transactional__ = True  # type: ignore[attr-defined]
        wrapper.__txinsight_propagation__ = propagation  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
