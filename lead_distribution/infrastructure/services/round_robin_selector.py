"""
SELETOR DO RODÍZIO (ROUND ROBIN)
================================

Escolhe o próximo membro elegível de um funil e avança o cursor.

COMO FUNCIONA:
1. Lê o cursor (ordered_member_ids + last_assigned_index + version)
2. Membros novos no funil entram no fim da ordem
3. Percorre a ordem a partir da posição seguinte ao último atribuído
   e devolve o primeiro membro elegível (e não excluído)
4. Grava a nova posição com compare-and-swap na version

Membros inativos continuam na ordem (só são pulados). Membros removidos
do funil saem da ordem na próxima gravação.

CONCORRÊNCIA:
Duas oportunidades do mesmo funil ao mesmo tempo: só uma grava o cursor
com a version lida; a outra recebe StaleCursor, relê e tenta mais uma vez.
Funis diferentes nunca disputam a mesma linha.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import RotationCursor, utcnow
from lead_distribution.domain.exceptions import StaleCursor
from lead_distribution.infrastructure.services.config_store import ConfigStore
from lead_distribution.infrastructure.services.roster_view import RosterView
from lead_distribution.schemas.distribution import DistributionConfigSchema

logger = logging.getLogger(__name__)

# Tentativas de CAS: a original + uma releitura
MAX_CURSOR_ATTEMPTS = 2


def walk_rotation(
    order: List[int],
    last_index: int,
    accept: Callable[[int], bool],
) -> Optional[int]:
    """
    Percorre `order` circularmente começando logo após `last_index`.
    Retorna o primeiro membro aceito ou None.
    """
    size = len(order)
    for step in range(1, size + 1):
        candidate = order[(last_index + step) % size]
        if accept(candidate):
            return candidate
    return None


class RoundRobinSelector:
    """Dono exclusivo do RotationCursor."""

    def __init__(
        self,
        roster_view: Optional[RosterView] = None,
        config_store: Optional[ConfigStore] = None,
    ):
        self.config_store = config_store or ConfigStore()
        self.roster_view = roster_view or RosterView(self.config_store)

    async def next(
        self,
        session: AsyncSession,
        pipeline_id: int,
        now: Optional[datetime] = None,
        exclude: Iterable[int] = (),
        config: Optional[DistributionConfigSchema] = None,
    ) -> Optional[int]:
        """
        Próximo membro do rodízio.

        Args:
            exclude: membros a pular nesta volta (ex: quem perdeu o SLA).
                Ignorado se for o único elegível.

        Returns:
            ID do membro escolhido, ou None se ninguém é elegível agora.

        Raises:
            StaleCursor: o CAS falhou também na releitura
        """
        now = now or utcnow()
        if config is None:
            config = await self.config_store.get(session, pipeline_id)

        eligible = await self.roster_view.eligible_members(session, pipeline_id, now, config)
        if not eligible:
            return None

        linked = [m.id for m in await self.roster_view.linked_members(session, pipeline_id)]
        excluded = set(exclude)

        for attempt in range(1, MAX_CURSOR_ATTEMPTS + 1):
            try:
                return await self._pick(session, pipeline_id, eligible, linked, excluded)
            except StaleCursor:
                if attempt == MAX_CURSOR_ATTEMPTS:
                    logger.warning(f"⚠️ Funil {pipeline_id}: cursor do rodízio disputado, desistindo")
                    raise
                logger.info(f"🔁 Funil {pipeline_id}: cursor desatualizado, relendo")

        return None

    # =========================================================================
    # LEITURA / ESCRITA DO CURSOR
    # =========================================================================

    async def _load_cursor(self, session: AsyncSession, pipeline_id: int) -> RotationCursor:
        result = await session.execute(
            select(RotationCursor)
            .where(RotationCursor.pipeline_id == pipeline_id)
            .execution_options(populate_existing=True)
        )
        cursor = result.scalar_one_or_none()

        if cursor is not None:
            return cursor

        # Funil sem cursor: começa em -1 (primeira escolha = posição 0)
        cursor = RotationCursor(
            pipeline_id=pipeline_id,
            ordered_member_ids=[],
            last_assigned_index=-1,
            version=0,
        )
        try:
            async with session.begin_nested():
                session.add(cursor)
        except IntegrityError:
            # Outra transação criou o cursor primeiro
            raise StaleCursor(pipeline_id)

        return cursor

    async def _pick(
        self,
        session: AsyncSession,
        pipeline_id: int,
        eligible: List[int],
        linked: List[int],
        excluded: set,
    ) -> Optional[int]:
        cursor = await self._load_cursor(session, pipeline_id)

        order = list(cursor.ordered_member_ids or [])
        order += [member_id for member_id in linked if member_id not in order]

        eligible_set = set(eligible)
        chosen = walk_rotation(
            order,
            cursor.last_assigned_index,
            lambda m: m in eligible_set and m not in excluded,
        )
        if chosen is None:
            # Único elegível é o excluído: recebe mesmo assim
            chosen = walk_rotation(order, cursor.last_assigned_index, lambda m: m in eligible_set)
        if chosen is None:
            return None

        linked_set = set(linked)
        new_order = [m for m in order if m in linked_set or m == chosen]
        new_index = new_order.index(chosen)

        result = await session.execute(
            update(RotationCursor)
            .where(
                RotationCursor.pipeline_id == pipeline_id,
                RotationCursor.version == cursor.version,
            )
            .values(
                ordered_member_ids=new_order,
                last_assigned_index=new_index,
                version=RotationCursor.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            raise StaleCursor(pipeline_id)

        logger.debug(
            f"🎯 Funil {pipeline_id}: rodízio escolheu membro {chosen} "
            f"(posição {new_index}/{len(new_order)}, version {cursor.version + 1})"
        )
        return chosen
