"""Jobs periódicos."""
from .sla_monitor import SlaMonitor, SlaScanReport, run_sla_scan_job

__all__ = ["SlaMonitor", "SlaScanReport", "run_sla_scan_job"]
