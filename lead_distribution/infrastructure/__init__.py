"""Infraestrutura: banco, serviços, jobs e scheduler."""
