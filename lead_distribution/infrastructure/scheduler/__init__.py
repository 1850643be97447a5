"""
Scheduler de Jobs (APScheduler)
"""

from .scheduler import (
    SLA_SCAN_JOB_ID,
    create_scheduler,
    start_scheduler,
    stop_scheduler,
    get_scheduler_status,
    run_job_now,
)

__all__ = [
    "SLA_SCAN_JOB_ID",
    "create_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler_status",
    "run_job_now",
]
