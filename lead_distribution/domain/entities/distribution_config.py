"""
MODELO: CONFIGURAÇÃO DE DISTRIBUIÇÃO
=====================================

Uma linha por funil. Define modo (manual/rodízio), janela de horário,
tratamento de inativos, fallback e parâmetros de SLA.

Escrita apenas pelo admin do funil (via ConfigStore, que valida).
"""

from typing import Optional
from sqlalchemy import String, Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, JSONType
from .enums import DistributionMode, SlaLimitAction


class DistributionConfig(Base, TimestampMixin):
    """Configuração de distribuição de um funil."""

    __tablename__ = "distribution_configs"

    id: Mapped[int] = mapped_column(primary_key=True)
    pipeline_id: Mapped[int] = mapped_column(
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        unique=True,
        index=True
    )

    mode: Mapped[str] = mapped_column(String(20), default=DistributionMode.MANUAL.value)

    # ==========================================
    # HORÁRIO PERMITIDO PARA O RODÍZIO
    # ==========================================
    business_hours_only: Mapped[bool] = mapped_column(Boolean, default=False)
    start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)  # HH:MM
    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    # 0 = domingo ... 6 = sábado
    weekdays: Mapped[list] = mapped_column(JSONType, default=lambda: [1, 2, 3, 4, 5])
    timezone: Mapped[str] = mapped_column(String(64), default="America/Sao_Paulo")

    # ==========================================
    # OPÇÕES
    # ==========================================
    skip_inactive_members: Mapped[bool] = mapped_column(Boolean, default=True)
    fallback_to_manual: Mapped[bool] = mapped_column(Boolean, default=True)

    # ==========================================
    # SLA
    # ==========================================
    sla_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    sla_minutes: Mapped[int] = mapped_column(Integer, default=30)
    sla_max_redistributions: Mapped[int] = mapped_column(Integer, default=3)
    sla_limit_action: Mapped[str] = mapped_column(
        String(30),
        default=SlaLimitAction.KEEP_LAST_ASSIGNEE.value
    )
