"""Domínio: entidades, enums e erros."""
