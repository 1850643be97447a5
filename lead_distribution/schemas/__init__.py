"""Schemas de validação (pydantic)."""
from .distribution import (
    DistributionConfigSchema,
    DistributionConfigUpdate,
    DistributionOverview,
    MemberOverview,
)

__all__ = [
    "DistributionConfigSchema",
    "DistributionConfigUpdate",
    "DistributionOverview",
    "MemberOverview",
]
