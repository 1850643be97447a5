"""Entidades do domínio."""
from .base import Base, TimestampMixin, JSONType, utcnow
from .enums import (
    DistributionMode,
    SlaLimitAction,
    AssignmentMode,
    AssignmentTrigger,
    OpportunityStatus,
)
from .member import Member
from .pipeline import Pipeline, PipelineMember
from .opportunity import Opportunity
from .distribution_config import DistributionConfig
from .rotation_cursor import RotationCursor
from .assignment_record import AssignmentRecord

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "JSONType",
    "utcnow",
    # Enums
    "DistributionMode",
    "SlaLimitAction",
    "AssignmentMode",
    "AssignmentTrigger",
    "OpportunityStatus",
    # Equipe / funil
    "Member",
    "Pipeline",
    "PipelineMember",
    # Negócios
    "Opportunity",
    # Distribuição
    "DistributionConfig",
    "RotationCursor",
    "AssignmentRecord",
]
