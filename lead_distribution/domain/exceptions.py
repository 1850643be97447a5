"""
ERROS DO NÚCLEO DE DISTRIBUIÇÃO
================================

Nenhum destes erros chega ao usuário final: são sinais estruturados
consumidos pelos serviços que chamam o núcleo.
"""

from typing import Optional


class DistributionError(Exception):
    """Base de todos os erros de distribuição."""


class NoAssigneeAvailable(DistributionError):
    """Nenhum membro elegível e o funil não tem fallback manual."""

    def __init__(self, pipeline_id: int, opportunity_id: Optional[int] = None):
        self.pipeline_id = pipeline_id
        self.opportunity_id = opportunity_id
        super().__init__(
            f"Nenhum membro disponível no funil {pipeline_id}"
            + (f" para a oportunidade {opportunity_id}" if opportunity_id else "")
        )


class ConfigInvalid(DistributionError):
    """Configuração rejeitada na escrita (ex: SLA ativo com parâmetros não positivos)."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)


class ClaimLost(DistributionError):
    """
    Outro processo alterou a oportunidade entre a leitura e o claim.

    Não é falha: resultado esperado da varredura de SLA.
    """

    def __init__(self, opportunity_id: int):
        self.opportunity_id = opportunity_id
        super().__init__(f"Claim perdido para a oportunidade {opportunity_id}")


class StaleCursor(DistributionError):
    """O compare-and-swap do cursor do rodízio falhou (escrita concorrente)."""

    def __init__(self, pipeline_id: int):
        self.pipeline_id = pipeline_id
        super().__init__(f"Cursor do rodízio do funil {pipeline_id} desatualizado")


class MemberNotInPipeline(DistributionError):
    """Atribuição manual para um membro que não está vinculado ao funil."""

    def __init__(self, member_id: int, pipeline_id: int):
        self.member_id = member_id
        self.pipeline_id = pipeline_id
        super().__init__(f"Membro {member_id} não está vinculado ao funil {pipeline_id}")


class OpportunityNotFound(DistributionError):
    def __init__(self, opportunity_id: int):
        self.opportunity_id = opportunity_id
        super().__init__(f"Oportunidade {opportunity_id} não encontrada")


class OpportunityPipelineMismatch(DistributionError):
    """Oportunidade pertence a outro funil: cursor e histórico não podem ser misturados."""

    def __init__(self, opportunity_id: int, pipeline_id: int, actual_pipeline_id: int):
        self.opportunity_id = opportunity_id
        self.pipeline_id = pipeline_id
        self.actual_pipeline_id = actual_pipeline_id
        super().__init__(
            f"Oportunidade {opportunity_id} pertence ao funil {actual_pipeline_id}, não ao funil {pipeline_id}"
        )


class OpportunityFrozen(DistributionError):
    """Oportunidade ganha/perdida: a atribuição não pode mais mudar."""

    def __init__(self, opportunity_id: int, status: str):
        self.opportunity_id = opportunity_id
        self.status = status
        super().__init__(f"Oportunidade {opportunity_id} está fechada ({status})")
