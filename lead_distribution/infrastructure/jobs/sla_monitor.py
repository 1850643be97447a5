"""
MONITOR DE SLA - REDISTRIBUIÇÃO AUTOMÁTICA
===========================================

Varre periodicamente os funis com SLA ativo e redistribui oportunidades
cujo responsável não fez o primeiro contato a tempo.

CRITÉRIOS DE CANDIDATA:
1. Funil com sla_enabled
2. Oportunidade aberta (não ganha/perdida)
3. Tem responsável e nenhum primeiro contato
4. Não está com SLA esgotado
5. assigned_at há mais de sla_minutes

CLAIM:
Cada candidata é "clamada" com UPDATE condicional (mesmo assigned_at e
mesmo sla_claim_version lidos na varredura). Se outra varredura ou uma
reatribuição manual chegou antes, o claim falha e a candidata é pulada.

ISOLAMENTO:
Cada oportunidade roda na própria sessão/transação. Erro em uma não
interrompe o lote.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lead_distribution.config import get_settings
from lead_distribution.domain.entities import Opportunity, OpportunityStatus, utcnow
from lead_distribution.domain.exceptions import ClaimLost
from lead_distribution.infrastructure.database import get_session_factory
from lead_distribution.infrastructure.services.config_store import ConfigStore
from lead_distribution.infrastructure.services.redistribution_state_machine import (
    RedistributionAction,
    RedistributionOutcome,
    RedistributionStateMachine,
)
from lead_distribution.schemas.distribution import DistributionConfigSchema

logger = logging.getLogger(__name__)


@dataclass
class SlaScanReport:
    candidates: int = 0
    redistributed: int = 0
    limit_applied: int = 0
    awaiting_manual: int = 0
    no_assignee: int = 0
    claims_lost: int = 0
    errors: int = 0

    def register(self, action: RedistributionAction) -> None:
        if action.outcome == RedistributionOutcome.REDISTRIBUTED:
            self.redistributed += 1
        elif action.outcome == RedistributionOutcome.LIMIT_APPLIED:
            self.limit_applied += 1
        elif action.outcome == RedistributionOutcome.AWAITING_MANUAL:
            self.awaiting_manual += 1
        else:
            self.no_assignee += 1

    def as_dict(self) -> dict:
        return dict(self.__dict__)


class SlaMonitor:
    """Varredura de SLA com claim e concorrência limitada."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        state_machine: Optional[RedistributionStateMachine] = None,
        config_store: Optional[ConfigStore] = None,
        concurrency: Optional[int] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.config_store = config_store or ConfigStore()
        self.state_machine = state_machine or RedistributionStateMachine(config_store=self.config_store)
        self.concurrency = concurrency or get_settings().sla_scan_concurrency

    # =========================================================================
    # MÉTODO PRINCIPAL
    # =========================================================================

    async def scan_and_redistribute(self, now: Optional[datetime] = None) -> SlaScanReport:
        """
        Uma passada completa de leitura + claim + decisão.

        CHAMADO PELO: Scheduler (intervalo fixo)
        """
        now = now or utcnow()
        report = SlaScanReport()
        candidates = []

        async with self.session_factory() as session:
            configs = await self.config_store.list_sla_enabled(session)

            for config in configs:
                try:
                    rows = await self._find_overdue(session, config, now)
                except Exception as e:
                    logger.error(f"❌ Funil {config.pipeline_id}: erro ao buscar SLA vencido: {e}", exc_info=True)
                    report.errors += 1
                    continue

                if rows:
                    logger.info(f"⏱️ Funil {config.pipeline_id}: {len(rows)} oportunidades com SLA vencido")
                candidates.extend((config, row) for row in rows)

        report.candidates = len(candidates)
        if not candidates:
            logger.debug("Nenhuma oportunidade com SLA vencido")
            return report

        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(config, row):
            async with semaphore:
                await self._process(config, row, now, report)

        await asyncio.gather(*(worker(config, row) for config, row in candidates))

        logger.info(
            f"✅ Varredura de SLA: {report.candidates} candidatas, "
            f"{report.redistributed} redistribuídas, {report.limit_applied} no limite, "
            f"{report.awaiting_manual} na fila manual, {report.claims_lost} claims perdidos, "
            f"{report.errors} erros"
        )
        return report

    # =========================================================================
    # BUSCA / CLAIM / PROCESSAMENTO
    # =========================================================================

    async def _find_overdue(
        self,
        session: AsyncSession,
        config: DistributionConfigSchema,
        now: datetime,
    ) -> list:
        threshold = now - timedelta(minutes=config.sla_minutes)

        result = await session.execute(
            select(
                Opportunity.id,
                Opportunity.assigned_at,
                Opportunity.sla_claim_version,
            )
            .where(
                Opportunity.pipeline_id == config.pipeline_id,
                Opportunity.status == OpportunityStatus.OPEN.value,
                Opportunity.responsible_member_id.isnot(None),
                Opportunity.first_contact_at.is_(None),
                Opportunity.sla_exhausted.is_(False),
                Opportunity.assigned_at.isnot(None),
                Opportunity.assigned_at <= threshold,
            )
            .order_by(Opportunity.assigned_at)
        )
        return list(result.all())

    async def _claim(self, session: AsyncSession, row) -> None:
        result = await session.execute(
            update(Opportunity)
            .where(
                Opportunity.id == row.id,
                Opportunity.sla_claim_version == row.sla_claim_version,
                Opportunity.assigned_at == row.assigned_at,
                Opportunity.status == OpportunityStatus.OPEN.value,
                Opportunity.responsible_member_id.isnot(None),
                Opportunity.first_contact_at.is_(None),
                Opportunity.sla_exhausted.is_(False),
            )
            .values(sla_claim_version=Opportunity.sla_claim_version + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            raise ClaimLost(row.id)

    async def _process(
        self,
        config: DistributionConfigSchema,
        row,
        now: datetime,
        report: SlaScanReport,
    ) -> None:
        async with self.session_factory() as session:
            try:
                await self._claim(session, row)
                action = await self.state_machine.decide(
                    session, row.id, config.pipeline_id, now=now, config=config
                )
                await session.commit()
            except ClaimLost:
                await session.rollback()
                report.claims_lost += 1
                logger.debug(f"Oportunidade {row.id}: claim perdido, pulando")
                return
            except Exception as e:
                await session.rollback()
                report.errors += 1
                logger.error(f"❌ Oportunidade {row.id}: erro na redistribuição por SLA: {e}", exc_info=True)
                return

        report.register(action)

        if action.outcome == RedistributionOutcome.NO_ASSIGNEE:
            logger.warning(
                f"⚠️ Oportunidade {row.id}: SLA vencido mas nenhum membro disponível "
                f"no funil {config.pipeline_id}"
            )


async def run_sla_scan_job() -> dict:
    """Entrada do job agendado."""
    report = await SlaMonitor().scan_and_redistribute()
    return report.as_dict()
