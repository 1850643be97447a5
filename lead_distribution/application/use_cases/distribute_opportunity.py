"""
CASOS DE USO: DISTRIBUIÇÃO DE OPORTUNIDADES
============================================

Pontos de entrada chamados pelo restante do CRM. Cada caso de uso abre a
própria sessão, chama o serviço e faz commit (ou rollback no erro).

- distribute_new_opportunity: oportunidade entrou na etapa de entrada
- assign_opportunity_manually: admin escolheu o responsável
- update_distribution_config: admin salvou a config do funil
- record_first_contact: vendedor fez o primeiro contato
"""

import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lead_distribution.domain.entities import AssignmentTrigger
from lead_distribution.infrastructure.database import get_db
from lead_distribution.infrastructure.services import (
    AssignmentResult,
    AssignmentService,
    ConfigStore,
    describe_distribution,
    mark_first_contact,
)
from lead_distribution.schemas.distribution import (
    DistributionConfigSchema,
    DistributionConfigUpdate,
    DistributionOverview,
)

logger = logging.getLogger(__name__)


async def _run(session_factory: Optional[async_sessionmaker[AsyncSession]], operation):
    async with get_db(session_factory) as session:
        return await operation(session)


async def distribute_new_opportunity(
    opportunity_id: int,
    pipeline_id: int,
    now: Optional[datetime] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AssignmentResult:
    """Distribui uma oportunidade recém-criada conforme o modo do funil."""
    service = AssignmentService()

    async def operation(session: AsyncSession) -> AssignmentResult:
        return await service.assign(
            session, opportunity_id, pipeline_id,
            trigger=AssignmentTrigger.NEW_LEAD, now=now,
        )

    result = await _run(session_factory, operation)
    logger.info(f"📨 Nova oportunidade {opportunity_id}: {result.status.value}")
    return result


async def assign_opportunity_manually(
    opportunity_id: int,
    pipeline_id: int,
    member_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AssignmentResult:
    """Atribuição explícita pelo admin (vale inclusive em modo manual)."""
    service = AssignmentService()

    async def operation(session: AsyncSession) -> AssignmentResult:
        return await service.assign(
            session, opportunity_id, pipeline_id,
            explicit_member_id=member_id, now=now, reason=reason,
        )

    return await _run(session_factory, operation)


async def update_distribution_config(
    pipeline_id: int,
    payload: Union[DistributionConfigUpdate, dict],
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> DistributionConfigSchema:
    store = ConfigStore()

    async def operation(session: AsyncSession) -> DistributionConfigSchema:
        return await store.save(session, pipeline_id, payload)

    return await _run(session_factory, operation)


async def get_distribution_overview(
    pipeline_id: int,
    now: Optional[datetime] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> DistributionOverview:
    async def operation(session: AsyncSession) -> DistributionOverview:
        return await describe_distribution(session, pipeline_id, now=now)

    return await _run(session_factory, operation)


async def record_first_contact(
    opportunity_id: int,
    at: Optional[datetime] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> bool:
    async def operation(session: AsyncSession) -> bool:
        return await mark_first_contact(session, opportunity_id, at)

    return await _run(session_factory, operation)
