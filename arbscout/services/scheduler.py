"""
Scheduler service for the periodic scanning cycles.

Wraps APScheduler's AsyncIOScheduler so coroutine jobs run on the same
event loop as the venue clients.
"""

from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from arbscout.core.config import Settings, get_settings
from arbscout.core.logging import get_logger
from arbscout.core.timeutil import now_utc

logger = get_logger("scheduler")


class SchedulerService:
    """
    Interval-job scheduler.

    Every job runs with max_instances=1 and coalesce=True: a missed or
    still-running tick is folded into the next one, never overlapped.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: dict[str, str] = {}  # name -> job_id

    @property
    def scheduler(self) -> AsyncIOScheduler:
        """Lazy-initialize scheduler."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=self.settings.timezone)
        return self._scheduler

    def add_interval_job(
        self,
        name: str,
        func: Callable,
        seconds: float,
        args: Optional[tuple] = None,
        kwargs: Optional[dict] = None,
        run_immediately: bool = False,
    ) -> str:
        """
        Add a job that runs at fixed intervals.

        Args:
            name: Job name (also the job id)
            func: Function or coroutine function to execute
            seconds: Interval in seconds
            run_immediately: Fire once as soon as the scheduler starts

        Returns:
            Job ID
        """
        if seconds <= 0:
            raise ValueError(f"Interval for job {name} must be positive")

        options: dict[str, Any] = {}
        if run_immediately:
            options["next_run_time"] = now_utc()
        job = self.scheduler.add_job(
            func,
            "interval",
            seconds=seconds,
            args=args or (),
            kwargs=kwargs or {},
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **options,
        )

        self._jobs[name] = job.id
        logger.info(f"Added interval job: {name} every {seconds}s")
        return job.id

    def remove_job(self, name: str) -> bool:
        if name in self._jobs:
            self.scheduler.remove_job(self._jobs[name])
            del self._jobs[name]
            logger.info(f"Removed job: {name}")
            return True
        return False

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start the scheduler (requires a running event loop)."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return jobs

