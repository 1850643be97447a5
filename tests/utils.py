"""Helpers para montar funis, membros e oportunidades nos testes."""

from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import Member, Opportunity, Pipeline, PipelineMember

# 2026-03-02 é uma segunda-feira
MONDAY_NOON = datetime(2026, 3, 2, 12, 0)
FRIDAY_NIGHT = datetime(2026, 3, 6, 20, 0)
SATURDAY_MORNING = datetime(2026, 3, 7, 10, 0)


async def seed_pipeline(
    session: AsyncSession,
    member_names: Iterable[str] = ("Ana", "Bruno", "Carla"),
    inactive: Iterable[str] = (),
    tenant_id: int = 1,
) -> Tuple[Pipeline, Dict[str, Member]]:
    """Cria um funil com os membros vinculados na ordem informada."""
    pipeline = Pipeline(tenant_id=tenant_id, name="Funil de Vendas")
    session.add(pipeline)
    await session.flush()

    inactive = set(inactive)
    members = {}
    for position, name in enumerate(member_names):
        member = Member(
            tenant_id=tenant_id,
            name=name,
            email=f"{name.lower()}@exemplo.com",
            active=name not in inactive,
        )
        session.add(member)
        await session.flush()

        session.add(PipelineMember(pipeline_id=pipeline.id, member_id=member.id, position=position))
        members[name] = member

    await session.flush()
    return pipeline, members


async def link_member(
    session: AsyncSession,
    pipeline_id: int,
    name: str,
    position: int,
    tenant_id: int = 1,
) -> Member:
    member = Member(tenant_id=tenant_id, name=name, email=f"{name.lower()}@exemplo.com")
    session.add(member)
    await session.flush()

    session.add(PipelineMember(pipeline_id=pipeline_id, member_id=member.id, position=position))
    await session.flush()
    return member


async def create_opportunity(
    session: AsyncSession,
    pipeline_id: int,
    title: str = "Lead",
    tenant_id: int = 1,
    responsible_member_id: Optional[int] = None,
    assigned_at: Optional[datetime] = None,
    status: str = "open",
) -> Opportunity:
    opportunity = Opportunity(
        tenant_id=tenant_id,
        pipeline_id=pipeline_id,
        title=title,
        status=status,
        responsible_member_id=responsible_member_id,
        assigned_at=assigned_at,
    )
    session.add(opportunity)
    await session.flush()
    return opportunity
