"""
SCHEMAS DE VALIDAÇÃO - DISTRIBUIÇÃO
====================================

Define a estrutura da configuração de distribuição de um funil.
Pydantic valida os dados antes de qualquer escrita no banco.
"""

import re
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lead_distribution.domain.entities.enums import DistributionMode, SlaLimitAction


TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DEFAULT_WEEKDAYS = [1, 2, 3, 4, 5]  # segunda a sexta (0 = domingo)


def _validate_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not TIME_PATTERN.match(value):
        raise ValueError("Formato HH:MM")
    return value


def _validate_weekdays(value: Optional[List[int]]) -> Optional[List[int]]:
    if value is None:
        return value
    for day in value:
        if day < 0 or day > 6:
            raise ValueError("Dias da semana vão de 0 (domingo) a 6 (sábado)")
    return sorted(set(value))


def _validate_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Timezone inválido: {value}")
    return value


# ============================================
# CONFIGURAÇÃO COMPLETA
# ============================================

class DistributionConfigSchema(BaseModel):
    """Configuração de distribuição completa (já mesclada com os padrões)."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    pipeline_id: int
    mode: DistributionMode = DistributionMode.MANUAL

    business_hours_only: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    weekdays: List[int] = Field(default_factory=lambda: list(DEFAULT_WEEKDAYS))
    timezone: str = "America/Sao_Paulo"

    skip_inactive_members: bool = True
    fallback_to_manual: bool = True

    sla_enabled: bool = False
    sla_minutes: int = 30
    sla_max_redistributions: int = 3
    sla_limit_action: SlaLimitAction = SlaLimitAction.KEEP_LAST_ASSIGNEE

    check_time = field_validator("start_time", "end_time")(_validate_time)
    check_weekdays = field_validator("weekdays")(_validate_weekdays)
    check_timezone = field_validator("timezone")(_validate_timezone)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.sla_enabled:
            if self.sla_minutes <= 0:
                raise ValueError("sla_minutes deve ser positivo com SLA ativo")
            if self.sla_max_redistributions <= 0:
                raise ValueError("sla_max_redistributions deve ser positivo com SLA ativo")

        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time e end_time devem ser informados juntos")

        if self.start_time and self.end_time and self.start_time > self.end_time:
            raise ValueError("start_time deve ser anterior a end_time")

        return self


# ============================================
# ATUALIZAÇÃO PARCIAL (admin)
# ============================================

class DistributionConfigUpdate(BaseModel):
    """Payload de atualização: só os campos enviados são alterados."""

    model_config = ConfigDict(extra="forbid")

    mode: Optional[DistributionMode] = None

    business_hours_only: Optional[bool] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    weekdays: Optional[List[int]] = None
    timezone: Optional[str] = None

    skip_inactive_members: Optional[bool] = None
    fallback_to_manual: Optional[bool] = None

    sla_enabled: Optional[bool] = None
    sla_minutes: Optional[int] = Field(None, gt=0)
    sla_max_redistributions: Optional[int] = Field(None, gt=0)
    sla_limit_action: Optional[SlaLimitAction] = None

    check_time = field_validator("start_time", "end_time")(_validate_time)
    check_weekdays = field_validator("weekdays")(_validate_weekdays)
    check_timezone = field_validator("timezone")(_validate_timezone)


# ============================================
# VISÃO GERAL (config + membros)
# ============================================

class MemberOverview(BaseModel):
    """Membro vinculado ao funil, com números do rodízio."""

    member_id: int
    name: str
    email: Optional[str] = None
    active: bool
    eligible_now: bool
    open_opportunities: int = 0
    last_assigned_at: Optional[datetime] = None


class DistributionOverview(DistributionConfigSchema):
    """Configuração do funil com os membros do rodízio."""

    members: List[MemberOverview] = Field(default_factory=list)
