"""
MODELO: CURSOR DO RODÍZIO
=========================

Posição do rodízio de um funil, persistida no banco para funcionar com
várias instâncias do serviço.

ordered_member_ids + last_assigned_index apontam para o último membro que
recebeu oportunidade. version é o campo de concorrência otimista: toda
escrita é um UPDATE ... WHERE version = <lida>.
"""

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, JSONType


class RotationCursor(Base, TimestampMixin):
    """Cursor do rodízio (um por funil). Só o RoundRobinSelector escreve."""

    __tablename__ = "rotation_cursors"

    id: Mapped[int] = mapped_column(primary_key=True)
    pipeline_id: Mapped[int] = mapped_column(
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        unique=True,
        index=True
    )

    ordered_member_ids: Mapped[list] = mapped_column(JSONType, default=list)
    last_assigned_index: Mapped[int] = mapped_column(Integer, default=-1, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
