"""
TESTES - SERVIÇO DE DISTRIBUIÇÃO
=================================

Modos manual/rodízio, atribuição explícita, fallback e histórico.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from lead_distribution.domain.entities import (
    AssignmentMode,
    AssignmentTrigger,
    OpportunityStatus,
    RotationCursor,
)
from lead_distribution.domain.exceptions import (
    MemberNotInPipeline,
    NoAssigneeAvailable,
    OpportunityFrozen,
    OpportunityNotFound,
    OpportunityPipelineMismatch,
)
from lead_distribution.infrastructure.services import (
    AssignmentService,
    AssignmentStatus,
    ConfigStore,
    describe_distribution,
    list_history,
    list_manual_queue,
)

from tests.utils import FRIDAY_NIGHT, MONDAY_NOON, create_opportunity, link_member, seed_pipeline


BUSINESS_HOURS = {
    "business_hours_only": True,
    "start_time": "09:00",
    "end_time": "18:00",
    "weekdays": [1, 2, 3, 4, 5],
    "timezone": "UTC",
}


async def configured_pipeline(session, config=None, **kwargs):
    pipeline, members = await seed_pipeline(session, **kwargs)
    await ConfigStore().save(session, pipeline.id, config or {"mode": "round_robin"})
    await session.commit()
    return pipeline, members


# =============================================================================
# RODÍZIO
# =============================================================================

@pytest.mark.asyncio
async def test_three_new_leads_go_to_ana_bruno_carla(db_session):
    pipeline, members = await configured_pipeline(db_session)
    service = AssignmentService()

    assigned = []
    for title in ("Lead 1", "Lead 2", "Lead 3"):
        opportunity = await create_opportunity(db_session, pipeline.id, title=title)
        result = await service.assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)
        assigned.append(result.member_id)

    assert assigned == [members["Ana"].id, members["Bruno"].id, members["Carla"].id]


@pytest.mark.asyncio
async def test_assignment_updates_opportunity_and_writes_history(db_session):
    pipeline, members = await configured_pipeline(db_session)
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)
    await db_session.commit()

    assert result.assigned
    assert result.mode == AssignmentMode.ROUND_ROBIN
    assert opportunity.responsible_member_id == members["Ana"].id
    assert opportunity.assigned_at == MONDAY_NOON
    assert opportunity.awaiting_manual_assignment is False

    history = await list_history(db_session, opportunity_id=opportunity.id)
    assert len(history) == 1
    assert history[0].assigned_to == members["Ana"].id
    assert history[0].mode == AssignmentMode.ROUND_ROBIN.value
    assert history[0].redistribution_sequence == 0
    assert history[0].previous_member_id is None


# =============================================================================
# MODO MANUAL / ATRIBUIÇÃO EXPLÍCITA
# =============================================================================

@pytest.mark.asyncio
async def test_manual_mode_sends_to_admin_queue(db_session):
    pipeline, _ = await configured_pipeline(db_session, config={"mode": "manual"})
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)

    assert result.status == AssignmentStatus.NEEDS_MANUAL
    assert opportunity.responsible_member_id is None
    assert opportunity.awaiting_manual_assignment is True
    assert await list_history(db_session, opportunity_id=opportunity.id) == []

    queue = await list_manual_queue(db_session, pipeline.id)
    assert [o.id for o in queue] == [opportunity.id]


@pytest.mark.asyncio
async def test_pipeline_without_config_is_manual(db_session):
    pipeline, _ = await seed_pipeline(db_session)
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)

    assert result.needs_manual


@pytest.mark.asyncio
async def test_explicit_member_assignment_in_manual_mode(db_session):
    pipeline, members = await configured_pipeline(db_session, config={"mode": "manual"})
    opportunity = await create_opportunity(db_session, pipeline.id)
    await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)

    result = await AssignmentService().assign(
        db_session, opportunity.id, pipeline.id,
        explicit_member_id=members["Carla"].id, now=MONDAY_NOON, reason="escolha do gestor",
    )

    assert result.mode == AssignmentMode.MANUAL
    assert opportunity.responsible_member_id == members["Carla"].id
    assert opportunity.awaiting_manual_assignment is False
    assert await list_manual_queue(db_session, pipeline.id) == []

    history = await list_history(db_session, opportunity_id=opportunity.id)
    assert history[0].mode == AssignmentMode.MANUAL.value
    assert history[0].reason == "escolha do gestor"


@pytest.mark.asyncio
async def test_explicit_assignment_does_not_move_rotation(db_session):
    pipeline, members = await configured_pipeline(db_session)
    service = AssignmentService()

    manual = await create_opportunity(db_session, pipeline.id)
    await service.assign(db_session, manual.id, pipeline.id, explicit_member_id=members["Ana"].id)

    automatic = await create_opportunity(db_session, pipeline.id)
    result = await service.assign(db_session, automatic.id, pipeline.id, now=MONDAY_NOON)

    assert result.member_id == members["Ana"].id


@pytest.mark.asyncio
async def test_explicit_member_outside_pipeline_rejected(db_session):
    pipeline, _ = await configured_pipeline(db_session)
    other, _ = await seed_pipeline(db_session, member_names=("Diego",))
    outsider = await link_member(db_session, other.id, "Elisa", position=1)
    opportunity = await create_opportunity(db_session, pipeline.id)

    with pytest.raises(MemberNotInPipeline):
        await AssignmentService().assign(
            db_session, opportunity.id, pipeline.id, explicit_member_id=outsider.id
        )

    assert opportunity.responsible_member_id is None


# =============================================================================
# SEM MEMBROS DISPONÍVEIS
# =============================================================================

@pytest.mark.asyncio
async def test_friday_night_without_fallback_has_no_assignee(db_session):
    pipeline, _ = await configured_pipeline(
        db_session,
        config={"mode": "round_robin", "fallback_to_manual": False, **BUSINESS_HOURS},
    )
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=FRIDAY_NIGHT)

    assert result.status == AssignmentStatus.NO_ASSIGNEE_AVAILABLE
    assert opportunity.responsible_member_id is None
    assert await list_history(db_session, opportunity_id=opportunity.id) == []

    with pytest.raises(NoAssigneeAvailable):
        result.unwrap()


@pytest.mark.asyncio
async def test_friday_night_with_fallback_goes_to_manual_queue(db_session):
    pipeline, _ = await configured_pipeline(
        db_session,
        config={"mode": "round_robin", "fallback_to_manual": True, **BUSINESS_HOURS},
    )
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=FRIDAY_NIGHT)

    assert result.needs_manual
    assert result.unwrap() is result
    assert opportunity.awaiting_manual_assignment is True


@pytest.mark.asyncio
async def test_all_members_inactive_without_fallback(db_session):
    pipeline, _ = await configured_pipeline(
        db_session,
        config={"mode": "round_robin", "fallback_to_manual": False},
        inactive=("Ana", "Bruno", "Carla"),
    )
    opportunity = await create_opportunity(db_session, pipeline.id)

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)

    assert result.status == AssignmentStatus.NO_ASSIGNEE_AVAILABLE


# =============================================================================
# OPORTUNIDADE FECHADA / INEXISTENTE
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("status", [OpportunityStatus.WON.value, OpportunityStatus.LOST.value])
async def test_closed_opportunity_is_frozen(db_session, status):
    pipeline, members = await configured_pipeline(db_session)
    opportunity = await create_opportunity(
        db_session, pipeline.id, status=status,
        responsible_member_id=members["Ana"].id, assigned_at=MONDAY_NOON,
    )

    with pytest.raises(OpportunityFrozen):
        await AssignmentService().assign(
            db_session, opportunity.id, pipeline.id, explicit_member_id=members["Bruno"].id
        )

    assert opportunity.responsible_member_id == members["Ana"].id


@pytest.mark.asyncio
async def test_unknown_opportunity(db_session):
    pipeline, _ = await configured_pipeline(db_session)

    with pytest.raises(OpportunityNotFound):
        await AssignmentService().assign(db_session, 9999, pipeline.id)


@pytest.mark.asyncio
async def test_opportunity_from_another_pipeline_rejected(db_session):
    pipeline, members = await configured_pipeline(db_session)
    other, _ = await configured_pipeline(db_session, member_names=("Diego", "Elisa"))
    opportunity = await create_opportunity(db_session, pipeline.id)

    with pytest.raises(OpportunityPipelineMismatch) as exc_info:
        await AssignmentService().assign(db_session, opportunity.id, other.id, now=MONDAY_NOON)

    assert exc_info.value.actual_pipeline_id == pipeline.id
    assert opportunity.responsible_member_id is None
    assert await list_history(db_session, pipeline_id=other.id) == []

    result = await db_session.execute(
        select(RotationCursor).where(RotationCursor.pipeline_id == other.id)
    )
    cursor = result.scalar_one()
    assert cursor.last_assigned_index == -1
    assert cursor.version == 0

    result = await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)
    assert result.member_id == members["Ana"].id


# =============================================================================
# REDISTRIBUIÇÃO (GATILHO SLA)
# =============================================================================

@pytest.mark.asyncio
async def test_sla_trigger_skips_current_assignee_and_resets_contact(db_session):
    pipeline, members = await configured_pipeline(db_session)
    service = AssignmentService()
    opportunity = await create_opportunity(db_session, pipeline.id)
    await service.assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)
    opportunity.first_contact_at = MONDAY_NOON
    await db_session.flush()

    later = MONDAY_NOON + timedelta(minutes=31)
    result = await service.assign(
        db_session, opportunity.id, pipeline.id,
        trigger=AssignmentTrigger.SLA_REDISTRIBUTION, now=later, reason="sla_timeout",
    )

    assert result.mode == AssignmentMode.SLA_REDISTRIBUTION
    assert result.member_id == members["Bruno"].id
    assert result.record.redistribution_sequence == 1
    assert result.record.previous_member_id == members["Ana"].id
    assert opportunity.first_contact_at is None
    assert opportunity.assigned_at == later


# =============================================================================
# CONSULTAS
# =============================================================================

@pytest.mark.asyncio
async def test_history_newest_first_and_filtered(db_session):
    pipeline, members = await configured_pipeline(db_session)
    service = AssignmentService()

    first = await create_opportunity(db_session, pipeline.id, title="Primeiro")
    second = await create_opportunity(db_session, pipeline.id, title="Segundo")
    await service.assign(db_session, first.id, pipeline.id, now=MONDAY_NOON)
    await service.assign(db_session, second.id, pipeline.id, now=MONDAY_NOON + timedelta(minutes=5))

    history = await list_history(db_session, pipeline_id=pipeline.id)
    assert [r.opportunity_id for r in history] == [second.id, first.id]

    assert len(await list_history(db_session, pipeline_id=pipeline.id, limit=1)) == 1
    assert [r.opportunity_id for r in await list_history(db_session, opportunity_id=first.id)] == [first.id]


@pytest.mark.asyncio
async def test_describe_distribution(db_session):
    pipeline, members = await configured_pipeline(db_session, inactive=("Carla",))
    opportunity = await create_opportunity(db_session, pipeline.id)
    await AssignmentService().assign(db_session, opportunity.id, pipeline.id, now=MONDAY_NOON)
    await db_session.commit()

    overview = await describe_distribution(db_session, pipeline.id, now=MONDAY_NOON)

    assert overview.mode == "round_robin"
    by_name = {m.name: m for m in overview.members}
    assert list(by_name) == ["Ana", "Bruno", "Carla"]
    assert by_name["Ana"].open_opportunities == 1
    assert by_name["Ana"].last_assigned_at == MONDAY_NOON
    assert by_name["Bruno"].open_opportunities == 0
    assert by_name["Bruno"].last_assigned_at is None
    assert by_name["Carla"].eligible_now is False
    assert by_name["Bruno"].eligible_now is True
