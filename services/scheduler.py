from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from services.logs import get_logger
from services.rules_engine import AutomationEngine

logger = get_logger(__name__)

JOB_ID = "automation_tick"


def run_scheduled_tick(engine: AutomationEngine):
    try:
        summary = engine.run()
    except Exception as exc:
        logger.error("scheduler_tick", status="error", error=str(exc))
        raise
    logger.info("scheduler_tick", status="ok", run_count=summary.count)
    return summary


def build_scheduler(engine: AutomationEngine, minutes: int = 60):
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_scheduled_tick,
        "interval",
        minutes=minutes,
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        args=[engine],
    )
    return scheduler


def start_local_scheduler(engine: AutomationEngine, minutes: int = 60):
    scheduler = build_scheduler(engine, minutes=minutes)
    scheduler.start()
    return scheduler
