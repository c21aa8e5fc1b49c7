"""
Background scheduler: runs periodic jobs and document analysis inside the FastAPI process.

Jobs:
  - Expired investment tips cleanup (every hour)
  - Document analysis (one-off jobs submitted by AnalysisQueue)
"""
import logging
from functools import lru_cache

from apscheduler.schedulers.background import BackgroundScheduler

from finsight.application.analysis_queue import AnalysisQueue, build_analysis_queue

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_expire_tips():
    from finsight.infrastructure.db.session import session_scope
    from finsight.application.investment_tips import deactivate_expired_tips

    try:
        with session_scope() as db:
            count = deactivate_expired_tips(db)
        if count:
            logger.info("Deactivated %d expired investment tips", count)
    except Exception:
        logger.exception("Expire tips job failed")


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    scheduler.add_job(
        _run_expire_tips,
        "interval",
        hours=1,
        id="expire_tips",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: expire_tips (every hour), document analysis (on demand)")


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


@lru_cache
def get_analysis_queue() -> AnalysisQueue:
    """Process-wide analysis queue; runs analysis inline when the worker is disabled"""
    from finsight.config import get_settings

    if get_settings().ANALYSIS_WORKER_ENABLED:
        return build_analysis_queue(scheduler)
    return build_analysis_queue()
