import pytest
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lead_distribution.domain.entities import Base
from lead_distribution.infrastructure.database import create_session_factory


@pytest.fixture
async def engine(tmp_path):
    """
    Banco SQLite em arquivo por teste (várias conexões enxergam os mesmos dados).
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'distribution.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que fornece uma sessão de banco de dados limpa para cada teste.
    """
    async with session_factory() as session:
        yield session
