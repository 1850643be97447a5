"""Camada de aplicação."""
