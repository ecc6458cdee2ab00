from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.db import AsyncSessionLocal


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a fresh async session for the request and close it afterwards.

    Services commit their own work; anything left uncommitted is rolled
    back when the session closes.

    Yields:
        async_session: An async session object.
    """
    async with AsyncSessionLocal() as async_session:
        yield async_session
