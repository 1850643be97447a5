"""Serviços de distribuição."""
from .config_store import ConfigStore
from .roster_view import RosterView
from .round_robin_selector import RoundRobinSelector
from .distribution_service import (
    AssignmentService,
    AssignmentResult,
    AssignmentStatus,
    count_sla_redistributions,
    describe_distribution,
    list_history,
    list_manual_queue,
)
from .redistribution_state_machine import (
    RedistributionStateMachine,
    RedistributionAction,
    RedistributionOutcome,
)
from .contact_service import mark_first_contact

__all__ = [
    "ConfigStore",
    "RosterView",
    "RoundRobinSelector",
    "AssignmentService",
    "AssignmentResult",
    "AssignmentStatus",
    "count_sla_redistributions",
    "describe_distribution",
    "list_history",
    "list_manual_queue",
    "RedistributionStateMachine",
    "RedistributionAction",
    "RedistributionOutcome",
    "mark_first_contact",
]
