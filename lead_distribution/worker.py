"""
WORKER DE DISTRIBUIÇÃO - Ponto de Entrada
==========================================

Processo que roda a varredura de SLA em intervalo fixo.
"""

import asyncio
import logging
import signal

from lead_distribution.config import get_settings
from lead_distribution.infrastructure.database import dispose_engine, init_db
from lead_distribution.infrastructure.logging_config import setup_logging
from lead_distribution.infrastructure.scheduler import create_scheduler, start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


async def run_worker(stop_event: asyncio.Event = None) -> None:
    settings = get_settings()
    stop_event = stop_event or asyncio.Event()

    logger.info(f"🚀 Iniciando worker de distribuição ({settings.environment})...")

    if settings.is_development:
        await init_db()
        logger.info("✅ Tabelas criadas!")

    create_scheduler()
    start_scheduler()

    try:
        await stop_event.wait()
    finally:
        stop_scheduler()
        await dispose_engine()
        logger.info("👋 Worker encerrado")


def main() -> None:
    setup_logging()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    stop_event = asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        loop.run_until_complete(run_worker(stop_event))
    finally:
        loop.close()


if __name__ == "__main__":
    main()
