"""
TESTES - CASOS DE USO DE DISTRIBUIÇÃO
======================================
"""

import pytest

from lead_distribution.application.use_cases import (
    assign_opportunity_manually,
    distribute_new_opportunity,
    get_distribution_overview,
    record_first_contact,
    update_distribution_config,
)
from lead_distribution.domain.entities import Opportunity
from lead_distribution.domain.exceptions import ConfigInvalid, MemberNotInPipeline
from lead_distribution.infrastructure.services import AssignmentStatus, list_history

from tests.utils import MONDAY_NOON, create_opportunity, seed_pipeline


async def seeded(session_factory):
    async with session_factory() as session:
        pipeline, members = await seed_pipeline(session)
        opportunity = await create_opportunity(session, pipeline.id)
        await session.commit()
    return pipeline.id, {name: m.id for name, m in members.items()}, opportunity.id


@pytest.mark.asyncio
async def test_new_opportunity_is_committed(session_factory):
    pipeline_id, members, opportunity_id = await seeded(session_factory)
    await update_distribution_config(pipeline_id, {"mode": "round_robin"}, session_factory=session_factory)

    result = await distribute_new_opportunity(
        opportunity_id, pipeline_id, now=MONDAY_NOON, session_factory=session_factory
    )

    assert result.status == AssignmentStatus.ASSIGNED
    async with session_factory() as session:
        opportunity = await session.get(Opportunity, opportunity_id)
        assert opportunity.responsible_member_id == members["Ana"]
        assert len(await list_history(session, opportunity_id=opportunity_id)) == 1


@pytest.mark.asyncio
async def test_manual_assignment_rolls_back_on_error(session_factory):
    pipeline_id, _, opportunity_id = await seeded(session_factory)

    with pytest.raises(MemberNotInPipeline):
        await assign_opportunity_manually(
            opportunity_id, pipeline_id, member_id=9999, session_factory=session_factory
        )

    async with session_factory() as session:
        opportunity = await session.get(Opportunity, opportunity_id)
        assert opportunity.responsible_member_id is None


@pytest.mark.asyncio
async def test_manual_assignment(session_factory):
    pipeline_id, members, opportunity_id = await seeded(session_factory)

    result = await assign_opportunity_manually(
        opportunity_id, pipeline_id, member_id=members["Bruno"],
        reason="cliente antigo", session_factory=session_factory,
    )

    assert result.member_id == members["Bruno"]


@pytest.mark.asyncio
async def test_invalid_config_not_saved(session_factory):
    pipeline_id, _, _ = await seeded(session_factory)

    with pytest.raises(ConfigInvalid):
        await update_distribution_config(
            pipeline_id, {"sla_enabled": True, "sla_minutes": -5}, session_factory=session_factory
        )

    overview = await get_distribution_overview(pipeline_id, now=MONDAY_NOON, session_factory=session_factory)
    assert overview.sla_enabled is False
    assert len(overview.members) == 3


@pytest.mark.asyncio
async def test_record_first_contact_once(session_factory):
    _, _, opportunity_id = await seeded(session_factory)

    assert await record_first_contact(opportunity_id, at=MONDAY_NOON, session_factory=session_factory) is True
    assert await record_first_contact(opportunity_id, session_factory=session_factory) is False
