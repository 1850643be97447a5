"""
MODELO: FUNIL (PIPELINE) E VÍNCULO DE MEMBROS
==============================================

O funil pertence ao tenant e agrupa oportunidades.
Os membros vinculados ao funil são os candidatos do rodízio.
"""

from datetime import datetime
from typing import List
from sqlalchemy import String, Boolean, ForeignKey, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, utcnow


class Pipeline(Base, TimestampMixin):
    """Funil de vendas do tenant."""

    __tablename__ = "pipelines"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    members: Mapped[List["PipelineMember"]] = relationship(back_populates="pipeline")


class PipelineMember(Base):
    """
    Vínculo membro ↔ funil.

    active=False significa que o membro foi removido do funil
    (o registro fica para histórico).
    """

    __tablename__ = "pipeline_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    pipeline_id: Mapped[int] = mapped_column(ForeignKey("pipelines.id", ondelete="CASCADE"), index=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), index=True)

    active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Ordem estável do rodízio: position, depois data de entrada
    position: Mapped[int] = mapped_column(Integer, default=0)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    pipeline: Mapped["Pipeline"] = relationship(back_populates="members")
    member: Mapped["Member"] = relationship(back_populates="pipeline_links")

    __table_args__ = (
        UniqueConstraint("pipeline_id", "member_id", name="uq_pipeline_members_pipeline_member"),
    )
