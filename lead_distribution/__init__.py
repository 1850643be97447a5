"""Núcleo de distribuição de oportunidades (rodízio + SLA)."""

__version__ = "0.1.0"
