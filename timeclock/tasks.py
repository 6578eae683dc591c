from celery import shared_task
import logging

from .services import TimeEntryService

logger = logging.getLogger(__name__)


@shared_task
def flag_missed_clock_outs():
    """Nightly sweep for entries left open past midnight"""
    flagged = TimeEntryService.flag_missed_clock_outs()
    logger.info("Missed clock-out sweep flagged %s entries", flagged)
    return flagged
