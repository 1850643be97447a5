"""Casos de uso da aplicação."""

from .distribute_opportunity import (
    distribute_new_opportunity,
    assign_opportunity_manually,
    update_distribution_config,
    get_distribution_overview,
    record_first_contact,
)

__all__ = [
    "distribute_new_opportunity",
    "assign_opportunity_manually",
    "update_distribution_config",
    "get_distribution_overview",
    "record_first_contact",
]
