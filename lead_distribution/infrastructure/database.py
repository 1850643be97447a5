"""Gerencia conexão com PostgreSQL."""
from contextlib import asynccontextmanager
from typing import AsyncIterator
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from lead_distribution.config import get_settings


def normalize_database_url(database_url: str) -> str:
    """
    Converte URL para formato async se necessário.

    Provedores costumam fornecer postgresql:// mas asyncpg precisa de
    postgresql+asyncpg://
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


def create_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    """Cria a engine assíncrona a partir das settings (ou da URL informada)."""
    settings = get_settings()
    url = normalize_database_url(database_url or settings.database_url)

    kwargs = {"echo": settings.debug if echo is None else echo}
    if url.startswith("postgresql"):
        kwargs.update(pool_pre_ping=True, pool_size=10, max_overflow=20)

    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


_engine: AsyncEngine = None
_session_factory: async_sessionmaker[AsyncSession] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Retorna a session factory global (criada sob demanda).

    CHAMADO POR: casos de uso de distribuição e job de SLA
    """
    global _engine, _session_factory

    if _session_factory is None:
        _engine = create_engine()
        _session_factory = create_session_factory(_engine)

    return _session_factory


@asynccontextmanager
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Fornece uma sessão do banco com commit no sucesso e rollback no erro.

    CHAMADO POR: casos de uso (cada um é dono da própria transação)
    """
    factory = session_factory or get_session_factory()

    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(engine: AsyncEngine = None) -> None:
    """Cria tabelas do banco (usar só em dev/testes)."""
    from lead_distribution.domain.entities import Base

    target = engine
    if target is None:
        get_session_factory()
        target = _engine

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
