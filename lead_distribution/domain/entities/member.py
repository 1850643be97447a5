"""
MODELO: MEMBRO DA EQUIPE (MEMBER)
==================================

Representa um vendedor da equipe do tenant.
Mantido pelo diretório de equipe; o núcleo de distribuição só lê.
"""

from typing import Optional, List
from sqlalchemy import String, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Member(Base, TimestampMixin):
    """
    Vendedor da equipe.

    O gestor cadastra seus vendedores aqui e os vincula aos funis.
    O sistema distribui oportunidades para eles.
    """

    __tablename__ = "members"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Status no diretório (inativo = afastado, desligado...)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    pipeline_links: Mapped[List["PipelineMember"]] = relationship(back_populates="member")
