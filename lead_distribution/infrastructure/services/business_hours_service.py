"""
SERVIÇO DE HORÁRIO DO RODÍZIO
==============================

Responsável por verificar se um instante está dentro da janela em que o
funil aceita distribuição automática (dias da semana + horário).

Campos usados da DistributionConfig:
    business_hours_only: liga/desliga a restrição
    start_time / end_time: "HH:MM" no horário local do funil
    weekdays: [0..6], 0 = domingo
    timezone: "America/Sao_Paulo"
"""

import logging
from datetime import datetime, time
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTES
# =============================================================================

DEFAULT_TIMEZONE = "America/Sao_Paulo"

DAY_NAMES = {
    0: "domingo",
    1: "segunda",
    2: "terça",
    3: "quarta",
    4: "quinta",
    5: "sexta",
    6: "sábado",
}


# =============================================================================
# FUNÇÕES AUXILIARES
# =============================================================================

def parse_time(time_str: str) -> Optional[time]:
    """
    Converte string "HH:MM" para objeto time.
    Retorna None se inválido.
    """
    if not time_str or not isinstance(time_str, str):
        return None

    try:
        parts = time_str.strip().split(":")
        if len(parts) >= 2:
            return time(int(parts[0]), int(parts[1]))
    except (ValueError, IndexError):
        pass

    return None


def get_timezone(tz_name: str) -> ZoneInfo:
    """
    Retorna ZoneInfo para o timezone especificado.
    Fallback para America/Sao_Paulo se inválido.
    """
    try:
        return ZoneInfo(tz_name)
    except (KeyError, ValueError):
        logger.warning(f"Timezone inválido: {tz_name}, usando {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def to_local(at: datetime, tz_name: str) -> datetime:
    """Converte para o horário local do funil. Datetime sem tzinfo é UTC."""
    if at.tzinfo is None:
        at = at.replace(tzinfo=ZoneInfo("UTC"))
    return at.astimezone(get_timezone(tz_name or DEFAULT_TIMEZONE))


def sunday_based_weekday(local: datetime) -> int:
    """weekday() do Python começa na segunda; a config usa 0 = domingo."""
    return (local.weekday() + 1) % 7


# =============================================================================
# FUNÇÃO PRINCIPAL
# =============================================================================

def is_within_window(config, at: datetime) -> Tuple[bool, Optional[str]]:
    """
    Verifica se `at` está dentro da janela de distribuição do funil.

    Args:
        config: DistributionConfig (entidade ou schema)
        at: instante a verificar (naive = UTC)

    Returns:
        (True, None) - dentro da janela
        (True, "disabled") - restrição desligada
        (False, "day_disabled") - dia da semana não atende
        (False, "before_open") - antes do início
        (False, "after_close") - depois do fim (o minuto final ainda conta)
    """
    if not config.business_hours_only:
        return True, "disabled"

    local = to_local(at, config.timezone)
    weekday = sunday_based_weekday(local)

    if weekday not in (config.weekdays or []):
        logger.debug(f"Funil {config.pipeline_id}: {DAY_NAMES[weekday]} fora dos dias do rodízio")
        return False, "day_disabled"

    open_time = parse_time(config.start_time)
    close_time = parse_time(config.end_time)

    if not open_time or not close_time:
        # Só dias configurados
        return True, None

    # Resolução de minuto, como a janela é configurada
    current_time = local.time().replace(second=0, microsecond=0)

    if current_time < open_time:
        logger.debug(f"Funil {config.pipeline_id}: antes do horário ({current_time} < {open_time})")
        return False, "before_open"

    if current_time > close_time:
        logger.debug(f"Funil {config.pipeline_id}: após horário ({current_time} > {close_time})")
        return False, "after_close"

    return True, None
