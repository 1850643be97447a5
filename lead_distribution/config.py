"""Configurações do núcleo de distribuição - carrega variáveis do .env"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",  # carrega local
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # CORE
    # ===========================================
    environment: str = "development"
    database_url: str = "postgresql+asyncpg://localhost/crm"
    debug: bool = False

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_json: bool = True

    # ===========================================
    # SCHEDULER / SLA
    # ===========================================
    scheduler_timezone: str = "America/Sao_Paulo"
    sla_scan_enabled: bool = True
    sla_scan_interval_minutes: int = 1
    sla_scan_concurrency: int = 5  # oportunidades processadas em paralelo por varredura

    # ===========================================
    # PROPRIEDADES
    # ===========================================
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
