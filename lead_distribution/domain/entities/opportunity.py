"""
OPPORTUNITY MODEL
=================

Oportunidade/negócio dentro de um funil.

O CRUD da oportunidade é do módulo de negócios; aqui mapeamos apenas os
campos que o núcleo de distribuição lê e atualiza (responsável, timer de
SLA e marcadores de controle).
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, ForeignKey, Integer, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import OpportunityStatus

if TYPE_CHECKING:
    from .member import Member
    from .pipeline import Pipeline


class Opportunity(Base, TimestampMixin):
    """
    Oportunidade de negócio vinculada a um funil.

    Estado de atribuição:
    - responsible_member_id / assigned_at: escritos pela distribuição
    - first_contact_at: escrito uma única vez pelo módulo de mensagens
    - sla_exhausted: limite de redistribuições aplicado (terminal)
    - awaiting_manual_assignment: na fila do admin
    - sla_claim_version: token do claim da varredura de SLA
    """

    __tablename__ = "opportunities"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, index=True)
    pipeline_id: Mapped[int] = mapped_column(ForeignKey("pipelines.id", ondelete="CASCADE"), index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=OpportunityStatus.OPEN.value,
        index=True
    )

    # Vendedor responsável
    responsible_member_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    first_contact_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Controle de SLA
    sla_exhausted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    awaiting_manual_assignment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sla_claim_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    pipeline: Mapped["Pipeline"] = relationship("Pipeline")
    responsible_member: Mapped[Optional["Member"]] = relationship("Member")

    __table_args__ = (
        Index("ix_opportunities_pipeline_status", "pipeline_id", "status"),
        Index("ix_opportunities_sla_scan", "pipeline_id", "status", "sla_exhausted", "assigned_at"),
    )

    @property
    def is_frozen(self) -> bool:
        """Ganha ou perdida: atribuição não muda mais."""
        return self.status in (OpportunityStatus.WON.value, OpportunityStatus.LOST.value)
