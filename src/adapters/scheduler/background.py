"""
Background job scheduler - periodic maintenance with APScheduler.

Runs two idempotent jobs in a BackgroundScheduler thread:

- recovery code sweep: physically deletes admin recovery codes older
  than their 15-minute window, consumed or not
- decided applicant purge: removes pending rows left behind with a
  terminal review tag after a partial promotion or rejection

Jobs share nothing with request handlers except the database. Failed
runs are logged by the event listener and retried on the next tick.
"""

import logging
from collections.abc import Callable, Mapping

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.domain.applicants import ApplicantService
from src.domain.recovery import RecoveryCodeService

logger = logging.getLogger(__name__)

JOB_ID_SWEEP_RECOVERY_CODES = "recovery_codes_sweep_expired"
JOB_ID_PURGE_DECIDED_APPLICANTS = "applicants_purge_decided"


class SchedulerConfig:
    """Configuration for the background scheduler."""

    TIMEZONE = "UTC"

    JOB_DEFAULTS = {
        "coalesce": True,  # Combine multiple missed executions into one
        "max_instances": 1,  # Only one instance of each job can run at a time
        "misfire_grace_time": 30,
    }


def _job_listener(event: JobExecutionEvent) -> None:
    """Log job execution results."""
    if event.exception:
        logger.error(
            f"Job {event.job_id} failed with exception: {event.exception}",
            exc_info=event.exception,
        )
    else:
        logger.debug(f"Job {event.job_id} executed, result: {event.retval}")


def sweep_recovery_codes(service: RecoveryCodeService) -> int:
    """Run one recovery code sweep."""
    removed = service.sweep_expired()
    if removed:
        logger.info(f"Swept {removed} expired recovery code(s)")
    return removed


def purge_decided_applicants(service: ApplicantService) -> int:
    """Run one decided-applicant purge."""
    return service.purge_decided()


def build_jobs(
    recovery_service: RecoveryCodeService, applicant_service: ApplicantService
) -> dict[str, Callable[[], int]]:
    """Map job ids to zero-argument callables bound to their services."""
    return {
        JOB_ID_SWEEP_RECOVERY_CODES: lambda: sweep_recovery_codes(recovery_service),
        JOB_ID_PURGE_DECIDED_APPLICANTS: lambda: purge_decided_applicants(applicant_service),
    }


def create_scheduler(
    jobs: Mapping[str, Callable[[], object]], interval_seconds: int
) -> BackgroundScheduler:
    """
    Build a scheduler with every job on the same interval trigger.

    The scheduler is returned unstarted; the caller owns start/shutdown.
    """
    scheduler = BackgroundScheduler(
        timezone=SchedulerConfig.TIMEZONE,
        job_defaults=SchedulerConfig.JOB_DEFAULTS,
    )
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    for job_id, func in jobs.items():
        scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=job_id,
            replace_existing=True,
        )
        logger.info(f"Registered job: {job_id} (every {interval_seconds}s)")

    return scheduler
