from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession


async def get_async_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yields a session from the factory built once in create_app().
    """
    async with request.app.state.session_maker() as session:
        yield session
