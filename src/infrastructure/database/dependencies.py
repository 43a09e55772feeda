"""FastAPI dependency injection for sessions, the record store and the resolver.

Each request gets its own session, rolled back when the route raises. Write
routes commit through the store before returning, because the commit in the
dependency teardown only runs after the response has been sent. The store
and the resolver are thin objects built on top of that session, so nothing
is shared between requests.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.resolver import RateResolver
from src.infrastructure.database.session import get_async_session
from src.infrastructure.database.tax_records import TaxRateRepository


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Provide a request-scoped database session.

    Yields:
        AsyncGenerator[AsyncSession]: A session committed on success and
            rolled back on error.
    """
    async with get_async_session() as session:
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def get_record_store(session: DatabaseSession) -> TaxRateRepository:
    """Build the record store for the current request."""
    return TaxRateRepository(session)


RecordStoreDep = Annotated[TaxRateRepository, Depends(get_record_store)]


def get_rate_resolver(store: RecordStoreDep) -> RateResolver:
    """Build the rate resolver for the current request."""
    return RateResolver(store)


RateResolverDep = Annotated[RateResolver, Depends(get_rate_resolver)]
