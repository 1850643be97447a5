"""
PRIMEIRO CONTATO
================

Chamado pelo módulo de mensagens quando o vendedor responde ou registra
contato. Sem primeiro contato, a varredura de SLA considera a oportunidade
em atraso.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import Opportunity, utcnow

logger = logging.getLogger(__name__)


async def mark_first_contact(
    session: AsyncSession,
    opportunity_id: int,
    at: Optional[datetime] = None,
) -> bool:
    """
    Grava first_contact_at uma única vez.

    Returns:
        True se gravou agora; False se já havia contato (ou não existe).
    """
    at = at or utcnow()

    result = await session.execute(
        update(Opportunity)
        .where(
            Opportunity.id == opportunity_id,
            Opportunity.first_contact_at.is_(None),
        )
        .values(first_contact_at=at)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.debug(f"Oportunidade {opportunity_id}: primeiro contato já registrado")
        return False

    logger.info(f"📞 Oportunidade {opportunity_id}: primeiro contato em {at.isoformat()}")
    return True
