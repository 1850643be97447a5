"""
SCHEDULER DE JOBS PERIÓDICOS
=============================

Gerencia a execução de tarefas agendadas.

JOBS CONFIGURADOS:
- Varredura de SLA: a cada SLA_SCAN_INTERVAL_MINUTES (padrão 1 minuto)

TECNOLOGIA: APScheduler (AsyncIOScheduler)
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lead_distribution.config import get_settings

logger = logging.getLogger(__name__)

SLA_SCAN_JOB_ID = "sla_scan_job"

# Instância global do scheduler
scheduler: Optional[AsyncIOScheduler] = None


def create_scheduler() -> AsyncIOScheduler:
    """
    Cria e configura o scheduler.

    CHAMADO POR: worker no startup
    """
    global scheduler

    if scheduler is not None:
        logger.warning("⚠️ Scheduler já existe, retornando instância existente")
        return scheduler

    settings = get_settings()
    logger.info("🔧 Criando scheduler...")

    scheduler = AsyncIOScheduler(
        timezone=settings.scheduler_timezone,
        job_defaults={
            "coalesce": True,  # Agrupa execuções perdidas
            "max_instances": 1,  # Só uma varredura por vez
            "misfire_grace_time": 60,
        }
    )

    # =========================================================================
    # REGISTRA OS JOBS
    # =========================================================================

    if settings.sla_scan_enabled:
        _register_sla_scan_job(scheduler, settings.sla_scan_interval_minutes)
    else:
        logger.info("⏸️ Varredura de SLA desabilitada (SLA_SCAN_ENABLED=false)")

    logger.info("✅ Scheduler criado com sucesso")

    return scheduler


def _register_sla_scan_job(sched: AsyncIOScheduler, interval_minutes: int):
    """
    Registra o job de redistribuição por SLA.

    EXECUTA: a cada `interval_minutes` minutos
    """
    from lead_distribution.infrastructure.jobs.sla_monitor import run_sla_scan_job

    sched.add_job(
        run_sla_scan_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=SLA_SCAN_JOB_ID,
        name="Redistribuição por SLA",
        replace_existing=True,
    )

    logger.info(f"📅 Job registrado: Redistribuição por SLA (a cada {interval_minutes} min)")


def start_scheduler():
    """
    Inicia o scheduler.

    CHAMADO POR: worker no startup (depois de create_scheduler)
    """
    global scheduler

    if scheduler is None:
        logger.error("❌ Scheduler não foi criado. Chame create_scheduler() primeiro.")
        return

    if scheduler.running:
        logger.warning("⚠️ Scheduler já está rodando")
        return

    scheduler.start()
    logger.info("🚀 Scheduler iniciado!")

    jobs = scheduler.get_jobs()
    logger.info(f"📋 Jobs ativos: {len(jobs)}")
    for job in jobs:
        logger.info(f"   - {job.name} (próxima execução: {getattr(job, 'next_run_time', None)})")


def stop_scheduler():
    """
    Para o scheduler e descarta a instância global.

    CHAMADO POR: worker no shutdown
    """
    global scheduler

    if scheduler is None:
        return

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler parado")

    scheduler = None


def get_scheduler_status() -> dict:
    """
    Retorna status do scheduler.

    Útil para health check.
    """
    if scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "error": "Scheduler não inicializado",
        }

    jobs_info = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(next_run) if next_run else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs_info,
    }


async def run_job_now(job_id: str) -> dict:
    """
    Executa um job imediatamente (fora do agendamento).

    Útil para testes ou execução manual pelo admin.
    """
    if scheduler is None:
        return {"success": False, "error": "Scheduler não inicializado"}

    job = scheduler.get_job(job_id)

    if job is None:
        return {"success": False, "error": f"Job '{job_id}' não encontrado"}

    try:
        if job_id == SLA_SCAN_JOB_ID:
            from lead_distribution.infrastructure.jobs.sla_monitor import run_sla_scan_job
            result = await run_sla_scan_job()
            return {"success": True, "result": result}

        return {"success": False, "error": "Job não suporta execução manual"}

    except Exception as e:
        logger.error(f"❌ Erro ao executar job {job_id}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}
