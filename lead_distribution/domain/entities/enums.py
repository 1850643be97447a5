"""Enums - valores fixos que se repetem no sistema."""

from enum import Enum


class DistributionMode(str, Enum):
    """Modo de distribuição configurado no funil."""
    MANUAL = "manual"            # Admin atribui
    ROUND_ROBIN = "round_robin"  # Rodízio automático


class SlaLimitAction(str, Enum):
    """O que fazer quando o limite de redistribuições por SLA é atingido."""
    KEEP_LAST_ASSIGNEE = "keep_last_assignee"
    RETURN_TO_ADMIN_QUEUE = "return_to_admin_queue"
    UNASSIGN = "unassign"


class AssignmentMode(str, Enum):
    """Como a atribuição registrada no histórico aconteceu."""
    MANUAL = "manual"
    ROUND_ROBIN = "round_robin"
    SLA_REDISTRIBUTION = "sla_redistribution"
    FALLBACK = "fallback"


class AssignmentTrigger(str, Enum):
    """Quem disparou o pedido de atribuição."""
    NEW_LEAD = "new_lead"
    SLA_REDISTRIBUTION = "sla_redistribution"


class OpportunityStatus(str, Enum):
    """Status da oportunidade. Ganha/perdida congela a atribuição."""
    OPEN = "open"
    WON = "won"
    LOST = "lost"
