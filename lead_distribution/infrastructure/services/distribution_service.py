"""
SERVIÇO DE DISTRIBUIÇÃO DE OPORTUNIDADES
=========================================

Responsável por decidir qual vendedor deve receber cada oportunidade.

MODOS (por funil):
- manual: nenhum membro é escolhido; a oportunidade vai para a fila do admin
- round_robin: rodízio entre os membros elegíveis

GATILHOS:
- new_lead: oportunidade entrou na etapa de entrada do funil
- sla_redistribution: o responsável não fez contato dentro do SLA

Toda atribuição gera exatamente um registro no histórico de distribuição.
O serviço faz flush, mas quem chama é dono da transação (commit).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import (
    AssignmentMode,
    AssignmentRecord,
    AssignmentTrigger,
    DistributionMode,
    Opportunity,
    OpportunityStatus,
    utcnow,
)
from lead_distribution.domain.exceptions import (
    MemberNotInPipeline,
    NoAssigneeAvailable,
    OpportunityFrozen,
    OpportunityNotFound,
    OpportunityPipelineMismatch,
)
from lead_distribution.infrastructure.services.config_store import ConfigStore
from lead_distribution.infrastructure.services.roster_view import RosterView
from lead_distribution.infrastructure.services.round_robin_selector import RoundRobinSelector
from lead_distribution.schemas.distribution import DistributionOverview, MemberOverview

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


# ==========================================
# RESULTADO DA ATRIBUIÇÃO
# ==========================================

class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    NEEDS_MANUAL = "needs_manual"
    NO_ASSIGNEE_AVAILABLE = "no_assignee_available"


@dataclass
class AssignmentResult:
    """Resultado tipado de AssignmentService.assign."""

    status: AssignmentStatus
    opportunity_id: int
    pipeline_id: int
    member_id: Optional[int] = None
    mode: Optional[AssignmentMode] = None
    record: Optional[AssignmentRecord] = None
    message: str = ""

    @property
    def assigned(self) -> bool:
        return self.status == AssignmentStatus.ASSIGNED

    @property
    def needs_manual(self) -> bool:
        return self.status == AssignmentStatus.NEEDS_MANUAL

    def unwrap(self) -> "AssignmentResult":
        """Levanta NoAssigneeAvailable se ninguém pôde receber."""
        if self.status == AssignmentStatus.NO_ASSIGNEE_AVAILABLE:
            raise NoAssigneeAvailable(self.pipeline_id, self.opportunity_id)
        return self


# ==========================================
# CONSULTAS DE HISTÓRICO
# ==========================================

async def count_sla_redistributions(session: AsyncSession, opportunity_id: int) -> int:
    """Quantas vezes a oportunidade já foi redistribuída por SLA."""
    result = await session.execute(
        select(func.count(AssignmentRecord.id)).where(
            AssignmentRecord.opportunity_id == opportunity_id,
            AssignmentRecord.mode == AssignmentMode.SLA_REDISTRIBUTION.value,
        )
    )
    return result.scalar_one()


async def list_history(
    session: AsyncSession,
    pipeline_id: Optional[int] = None,
    opportunity_id: Optional[int] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[AssignmentRecord]:
    """Histórico de distribuição, mais recente primeiro."""
    query = select(AssignmentRecord)

    if pipeline_id is not None:
        query = query.where(AssignmentRecord.pipeline_id == pipeline_id)

    if opportunity_id is not None:
        query = query.where(AssignmentRecord.opportunity_id == opportunity_id)

    query = query.order_by(AssignmentRecord.assigned_at.desc(), AssignmentRecord.id.desc()).limit(limit)

    result = await session.execute(query)
    return list(result.scalars().all())


async def list_manual_queue(session: AsyncSession, pipeline_id: int) -> List[Opportunity]:
    """Oportunidades abertas aguardando atribuição manual do admin."""
    result = await session.execute(
        select(Opportunity)
        .where(
            Opportunity.pipeline_id == pipeline_id,
            Opportunity.status == OpportunityStatus.OPEN.value,
            Opportunity.awaiting_manual_assignment.is_(True),
        )
        .order_by(Opportunity.id)
    )
    return list(result.scalars().all())


# ==========================================
# SERVIÇO PRINCIPAL
# ==========================================

class AssignmentService:
    """Ponto de entrada para atribuir um responsável a uma oportunidade."""

    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        roster_view: Optional[RosterView] = None,
        selector: Optional[RoundRobinSelector] = None,
    ):
        self.config_store = config_store or ConfigStore()
        self.roster_view = roster_view or RosterView(self.config_store)
        self.selector = selector or RoundRobinSelector(self.roster_view, self.config_store)

    async def assign(
        self,
        session: AsyncSession,
        opportunity_id: int,
        pipeline_id: int,
        trigger: AssignmentTrigger = AssignmentTrigger.NEW_LEAD,
        explicit_member_id: Optional[int] = None,
        now: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        """
        Atribui a oportunidade.

        Returns:
            AssignmentResult com status assigned, needs_manual ou
            no_assignee_available (sem fallback manual configurado).

        Raises:
            OpportunityNotFound / OpportunityFrozen
            OpportunityPipelineMismatch: oportunidade de outro funil
            MemberNotInPipeline: atribuição manual para membro fora do funil
            StaleCursor: cursor disputado mesmo após releitura
        """
        now = now or utcnow()
        trigger = AssignmentTrigger(trigger)

        opportunity = await session.get(Opportunity, opportunity_id, populate_existing=True)
        if opportunity is None:
            raise OpportunityNotFound(opportunity_id)
        if opportunity.is_frozen:
            raise OpportunityFrozen(opportunity_id, opportunity.status)
        if opportunity.pipeline_id != pipeline_id:
            raise OpportunityPipelineMismatch(opportunity_id, pipeline_id, opportunity.pipeline_id)

        # Atribuição manual pelo admin
        if explicit_member_id is not None:
            if not await self.roster_view.is_linked(session, pipeline_id, explicit_member_id):
                raise MemberNotInPipeline(explicit_member_id, pipeline_id)

            return await self._apply(
                session, opportunity, pipeline_id, explicit_member_id,
                AssignmentMode.MANUAL, trigger, now, reason,
            )

        config = await self.config_store.get(session, pipeline_id)

        if config.mode == DistributionMode.MANUAL:
            return self._needs_manual(
                opportunity, pipeline_id, "Distribuição manual - aguardando admin"
            )

        exclude = ()
        if trigger == AssignmentTrigger.SLA_REDISTRIBUTION and opportunity.responsible_member_id:
            exclude = (opportunity.responsible_member_id,)

        member_id = await self.selector.next(session, pipeline_id, now, exclude, config)

        if member_id is None:
            if config.fallback_to_manual:
                return self._needs_manual(
                    opportunity, pipeline_id, "Nenhum membro elegível - enviado para fila manual"
                )

            logger.warning(
                f"🚫 Funil {pipeline_id}: nenhum membro disponível para oportunidade "
                f"{opportunity_id} (sem fallback manual)"
            )
            return AssignmentResult(
                status=AssignmentStatus.NO_ASSIGNEE_AVAILABLE,
                opportunity_id=opportunity_id,
                pipeline_id=pipeline_id,
                message="Nenhum membro disponível",
            )

        mode = (
            AssignmentMode.SLA_REDISTRIBUTION
            if trigger == AssignmentTrigger.SLA_REDISTRIBUTION
            else AssignmentMode.ROUND_ROBIN
        )
        return await self._apply(session, opportunity, pipeline_id, member_id, mode, trigger, now, reason)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _needs_manual(self, opportunity: Opportunity, pipeline_id: int, message: str) -> AssignmentResult:
        opportunity.awaiting_manual_assignment = True

        logger.info(f"📥 Oportunidade {opportunity.id} na fila manual do funil {pipeline_id}")

        return AssignmentResult(
            status=AssignmentStatus.NEEDS_MANUAL,
            opportunity_id=opportunity.id,
            pipeline_id=pipeline_id,
            message=message,
        )

    async def _apply(
        self,
        session: AsyncSession,
        opportunity: Opportunity,
        pipeline_id: int,
        member_id: int,
        mode: AssignmentMode,
        trigger: AssignmentTrigger,
        now: datetime,
        reason: Optional[str],
    ) -> AssignmentResult:
        """Grava o responsável na oportunidade e registra o histórico."""
        sla_count = await count_sla_redistributions(session, opportunity.id)
        sequence = sla_count + 1 if mode == AssignmentMode.SLA_REDISTRIBUTION else sla_count

        previous_member_id = opportunity.responsible_member_id

        opportunity.responsible_member_id = member_id
        opportunity.assigned_at = now
        opportunity.awaiting_manual_assignment = False

        # Lead novo nunca teve contato; só a redistribuição zera
        if trigger == AssignmentTrigger.SLA_REDISTRIBUTION:
            opportunity.first_contact_at = None

        record = AssignmentRecord(
            opportunity_id=opportunity.id,
            pipeline_id=pipeline_id,
            assigned_to=member_id,
            previous_member_id=previous_member_id,
            mode=mode.value,
            redistribution_sequence=sequence,
            reason=reason,
            assigned_at=now,
        )
        session.add(record)
        await session.flush()

        logger.info(
            f"✅ Oportunidade {opportunity.id} atribuída ao membro {member_id} "
            f"(funil={pipeline_id}, modo={mode.value}, sequência={sequence})"
        )

        return AssignmentResult(
            status=AssignmentStatus.ASSIGNED,
            opportunity_id=opportunity.id,
            pipeline_id=pipeline_id,
            member_id=member_id,
            mode=mode,
            record=record,
            message=f"Oportunidade atribuída para o membro {member_id}",
        )


# ==========================================
# VISÃO GERAL DO FUNIL
# ==========================================

async def describe_distribution(
    session: AsyncSession,
    pipeline_id: int,
    now: Optional[datetime] = None,
    config_store: Optional[ConfigStore] = None,
) -> DistributionOverview:
    """
    Config do funil + membros vinculados com elegibilidade, oportunidades
    abertas e data da última atribuição.
    """
    now = now or utcnow()
    config_store = config_store or ConfigStore()
    roster_view = RosterView(config_store)

    config = await config_store.get(session, pipeline_id)
    members = await roster_view.linked_members(session, pipeline_id)
    eligible = set(await roster_view.eligible_members(session, pipeline_id, now, config))

    open_counts_result = await session.execute(
        select(Opportunity.responsible_member_id, func.count(Opportunity.id))
        .where(
            Opportunity.pipeline_id == pipeline_id,
            Opportunity.status == OpportunityStatus.OPEN.value,
            Opportunity.responsible_member_id.isnot(None),
        )
        .group_by(Opportunity.responsible_member_id)
    )
    open_counts = dict(open_counts_result.all())

    last_assigned_result = await session.execute(
        select(AssignmentRecord.assigned_to, func.max(AssignmentRecord.assigned_at))
        .where(
            AssignmentRecord.pipeline_id == pipeline_id,
            AssignmentRecord.assigned_to.isnot(None),
        )
        .group_by(AssignmentRecord.assigned_to)
    )
    last_assigned = dict(last_assigned_result.all())

    return DistributionOverview(
        **config.model_dump(),
        members=[
            MemberOverview(
                member_id=member.id,
                name=member.name,
                email=member.email,
                active=member.active,
                eligible_now=member.id in eligible,
                open_opportunities=open_counts.get(member.id, 0),
                last_assigned_at=last_assigned.get(member.id),
            )
            for member in members
        ],
    )
