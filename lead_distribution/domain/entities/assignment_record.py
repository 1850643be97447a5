"""
MODELO: HISTÓRICO DE DISTRIBUIÇÃO
==================================

Histórico de atribuições de oportunidades para vendedores.
Importante para:
- Auditoria (quem recebeu o quê)
- Contagem de redistribuições por SLA (fonte do redistribution_sequence)
- Rastreabilidade (por que foi atribuído assim)

Somente inserção: registros nunca são alterados nem removidos.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Text, Integer, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class AssignmentRecord(Base):
    """
    Registro de atribuição de oportunidade.

    Cada vez que uma oportunidade é atribuída (ou reatribuída),
    um novo registro é criado aqui.

    Exceção ao "toda linha tem destinatário": o registro "fallback" marca a
    ação terminal do SLA. Com unassign ou return_to_admin_queue o dono é
    limpo, então assigned_to fica nulo e previous_member_id guarda quem
    perdeu a oportunidade. É o último registro de SLA da oportunidade
    (sla_exhausted tira ela da varredura).
    """

    __tablename__ = "historico_distribuicao"

    id: Mapped[int] = mapped_column(primary_key=True)

    # ==========================================
    # REFERÊNCIAS
    # ==========================================
    opportunity_id: Mapped[int] = mapped_column(ForeignKey("opportunities.id", ondelete="CASCADE"), index=True)
    pipeline_id: Mapped[int] = mapped_column(ForeignKey("pipelines.id", ondelete="CASCADE"), index=True)

    # Sem FK: histórico sobrevive à remoção do membro.
    # Nulo só no registro "fallback" que limpou o dono.
    assigned_to: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    previous_member_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ==========================================
    # DETALHES DA ATRIBUIÇÃO
    # ==========================================
    # manual, round_robin, sla_redistribution, fallback
    mode: Mapped[str] = mapped_column(String(30), nullable=False)

    # 0 na atribuição original, +1 a cada redistribuição por SLA
    redistribution_sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Motivo (ex: "sla_timeout")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_historico_distribuicao_opportunity_mode", "opportunity_id", "mode"),
    )
