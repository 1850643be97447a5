"""
ROSTER VIEW - MEMBROS ELEGÍVEIS
================================

Projeção somente leitura de quem pode receber oportunidades agora:

    vinculados ao funil
    ∩ ativos no diretório (se skip_inactive_members)
    ∩ dentro da janela de horário (se business_hours_only)

Lista vazia não é erro: significa "não dá para atribuir agora".
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import Member, PipelineMember
from lead_distribution.infrastructure.services.business_hours_service import is_within_window
from lead_distribution.infrastructure.services.config_store import ConfigStore
from lead_distribution.schemas.distribution import DistributionConfigSchema

logger = logging.getLogger(__name__)


class RosterView:
    """Consulta o diretório de equipe para o rodízio."""

    def __init__(self, config_store: Optional[ConfigStore] = None):
        self.config_store = config_store or ConfigStore()

    async def linked_members(self, session: AsyncSession, pipeline_id: int) -> List[Member]:
        """Membros vinculados ao funil, na ordem estável do rodízio."""
        result = await session.execute(
            select(Member)
            .join(PipelineMember, PipelineMember.member_id == Member.id)
            .where(
                PipelineMember.pipeline_id == pipeline_id,
                PipelineMember.active.is_(True),
            )
            .order_by(PipelineMember.position, PipelineMember.joined_at, PipelineMember.member_id)
        )
        return list(result.scalars().all())

    async def is_linked(self, session: AsyncSession, pipeline_id: int, member_id: int) -> bool:
        result = await session.execute(
            select(PipelineMember.id).where(
                PipelineMember.pipeline_id == pipeline_id,
                PipelineMember.member_id == member_id,
                PipelineMember.active.is_(True),
            )
        )
        return result.scalar_one_or_none() is not None

    async def eligible_members(
        self,
        session: AsyncSession,
        pipeline_id: int,
        at: datetime,
        config: Optional[DistributionConfigSchema] = None,
    ) -> List[int]:
        """IDs dos membros que podem receber oportunidade em `at`."""
        if config is None:
            config = await self.config_store.get(session, pipeline_id)

        within, reason = is_within_window(config, at)
        if not within:
            logger.debug(f"⏰ Funil {pipeline_id}: fora da janela do rodízio ({reason})")
            return []

        members = await self.linked_members(session, pipeline_id)

        eligible = []
        for member in members:
            if config.skip_inactive_members and not member.active:
                continue
            if member.id not in eligible:
                eligible.append(member.id)

        return eligible
