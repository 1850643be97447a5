"""
MÁQUINA DE ESTADOS DA REDISTRIBUIÇÃO POR SLA
=============================================

Decide o que fazer com uma oportunidade cujo SLA de primeiro contato
estourou (já "clamada" pela varredura).

ESTADO (derivado do histórico, não armazenado):
    redistribution_count = registros com mode=sla_redistribution

TRANSIÇÕES:
    count < sla_max_redistributions
        → redistribui pelo rodízio (pulando quem perdeu o SLA)
    count >= sla_max_redistributions
        → aplica sla_limit_action e marca sla_exhausted (terminal)

AÇÕES DE LIMITE:
    keep_last_assignee     → mantém o responsável
    return_to_admin_queue  → limpa o responsável e coloca na fila do admin
    unassign               → limpa responsável e assigned_at
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import (
    AssignmentMode,
    AssignmentRecord,
    AssignmentTrigger,
    Opportunity,
    SlaLimitAction,
    utcnow,
)
from lead_distribution.domain.exceptions import OpportunityNotFound
from lead_distribution.infrastructure.services.config_store import ConfigStore
from lead_distribution.infrastructure.services.distribution_service import (
    AssignmentService,
    AssignmentStatus,
    count_sla_redistributions,
)
from lead_distribution.schemas.distribution import DistributionConfigSchema

logger = logging.getLogger(__name__)

SLA_TIMEOUT_REASON = "sla_timeout"


class RedistributionOutcome(str, Enum):
    REDISTRIBUTED = "redistributed"
    AWAITING_MANUAL = "awaiting_manual"
    NO_ASSIGNEE = "no_assignee"
    LIMIT_APPLIED = "limit_applied"


@dataclass
class RedistributionAction:
    outcome: RedistributionOutcome
    opportunity_id: int
    redistribution_count: int
    member_id: Optional[int] = None
    limit_action: Optional[SlaLimitAction] = None


class RedistributionStateMachine:
    """Contador de redistribuições + ação terminal por oportunidade."""

    def __init__(
        self,
        assignment_service: Optional[AssignmentService] = None,
        config_store: Optional[ConfigStore] = None,
    ):
        self.config_store = config_store or ConfigStore()
        self.assignment_service = assignment_service or AssignmentService(self.config_store)

    async def decide(
        self,
        session: AsyncSession,
        opportunity_id: int,
        pipeline_id: int,
        now: Optional[datetime] = None,
        config: Optional[DistributionConfigSchema] = None,
    ) -> RedistributionAction:
        now = now or utcnow()
        if config is None:
            config = await self.config_store.get(session, pipeline_id)

        count = await count_sla_redistributions(session, opportunity_id)

        if count < config.sla_max_redistributions:
            result = await self.assignment_service.assign(
                session,
                opportunity_id,
                pipeline_id,
                trigger=AssignmentTrigger.SLA_REDISTRIBUTION,
                now=now,
                reason=SLA_TIMEOUT_REASON,
            )

            if result.status == AssignmentStatus.ASSIGNED:
                return RedistributionAction(
                    outcome=RedistributionOutcome.REDISTRIBUTED,
                    opportunity_id=opportunity_id,
                    redistribution_count=count + 1,
                    member_id=result.member_id,
                )

            outcome = (
                RedistributionOutcome.AWAITING_MANUAL
                if result.status == AssignmentStatus.NEEDS_MANUAL
                else RedistributionOutcome.NO_ASSIGNEE
            )
            return RedistributionAction(
                outcome=outcome,
                opportunity_id=opportunity_id,
                redistribution_count=count,
            )

        return await self._apply_limit_action(session, opportunity_id, pipeline_id, config, count, now)

    async def _apply_limit_action(
        self,
        session: AsyncSession,
        opportunity_id: int,
        pipeline_id: int,
        config: DistributionConfigSchema,
        count: int,
        now: datetime,
    ) -> RedistributionAction:
        opportunity = await session.get(Opportunity, opportunity_id, populate_existing=True)
        if opportunity is None:
            raise OpportunityNotFound(opportunity_id)

        action = SlaLimitAction(config.sla_limit_action)
        previous_member_id = opportunity.responsible_member_id

        if action == SlaLimitAction.RETURN_TO_ADMIN_QUEUE:
            opportunity.responsible_member_id = None
            opportunity.awaiting_manual_assignment = True
        elif action == SlaLimitAction.UNASSIGN:
            opportunity.responsible_member_id = None
            opportunity.assigned_at = None

        # Terminal: a varredura nunca mais considera esta oportunidade
        opportunity.sla_exhausted = True

        session.add(
            AssignmentRecord(
                opportunity_id=opportunity_id,
                pipeline_id=pipeline_id,
                assigned_to=opportunity.responsible_member_id,
                previous_member_id=previous_member_id,
                mode=AssignmentMode.FALLBACK.value,
                redistribution_sequence=count,
                reason=f"sla_limit_{action.value}",
                assigned_at=now,
            )
        )
        await session.flush()

        logger.info(
            f"🛑 Oportunidade {opportunity_id}: limite de {config.sla_max_redistributions} "
            f"redistribuições atingido, ação={action.value}"
        )

        return RedistributionAction(
            outcome=RedistributionOutcome.LIMIT_APPLIED,
            opportunity_id=opportunity_id,
            redistribution_count=count,
            member_id=opportunity.responsible_member_id,
            limit_action=action,
        )
