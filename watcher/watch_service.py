"""
Watch service: drives the change detection cycle.

This module provides:
- Startup validation and the "monitor started" notification
- Interval scheduling with APScheduler
- The fetch -> extract -> fingerprint -> compare -> notify cycle
- Per-cycle error policy and graceful shutdown
"""

import asyncio
import signal
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES
from pydantic import ValidationError

from watcher.exceptions import ConfigurationError, FetchError, NotificationError
from watcher.extraction import RegionExtractor
from watcher.fetcher import Fetcher, HttpFetcher
from watcher.fingerprinting import ContentFingerprinter
from watcher.models import (
    CyclePhase, CycleReport, NotificationEvent, ServicePhase, WatchConfig
)
from watcher.notifier import EmailNotifier, LogNotifier, Notifier
from watcher.state_tracker import StateTracker
from utilities.logger import CycleLogger, get_logger

logger = get_logger(__name__)


def build_notifier(settings) -> Notifier:
    """Create the notifier selected by ``settings.notifier_backend``."""
    if settings.notifier_backend == "log":
        return LogNotifier()
    return EmailNotifier(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        smtp_password=settings.smtp_pass,
        sender_email=settings.sender_email,
        recipient_email=settings.recipient_email,
        sender_name=settings.sender_name,
        use_ssl=settings.smtp_secure,
        verify_tls=settings.smtp_verify_tls,
        timeout=settings.smtp_timeout
    )


class WatchService:
    """Owns the monitor state and runs detection cycles on a fixed interval."""

    def __init__(self, config: WatchConfig, fetcher: Fetcher, notifier: Notifier):
        """
        Initialize watch service.

        Args:
            config: Watch configuration
            fetcher: Document fetcher
            notifier: Notification channel
        """
        self.config = config
        self.fetcher = fetcher
        self.notifier = notifier
        self.extractor = RegionExtractor(config.start_marker, config.end_marker)
        self.fingerprinter = ContentFingerprinter()
        self.state = StateTracker()
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(component="watch_service", target_url=config.target_url)

        self.phase = ServicePhase.IDLE
        self.cycles_run = 0
        self.last_report: Optional[CycleReport] = None
        self._cycle_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._installed_signals = []

        self._setup_scheduler_listeners()

    @classmethod
    def from_settings(cls, settings) -> "WatchService":
        """
        Build a service from loaded settings.

        Raises:
            ConfigurationError: When required settings are missing or invalid
        """
        settings.validate_required()
        try:
            config = WatchConfig(
                target_url=settings.target_url,
                interval_seconds=settings.interval_seconds,
                start_marker=settings.start_marker,
                end_marker=settings.end_marker
            )
        except ValidationError as e:
            raise ConfigurationError([error['msg'] for error in e.errors()]) from e

        fetcher = HttpFetcher(
            timeout=settings.request_timeout,
            user_agent=settings.user_agent
        )
        return cls(config, fetcher, build_notifier(settings))

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            self.logger.debug(
                "Scheduled cycle finished",
                job_id=event.job_id,
                success=event.retval.get('success') if event.retval else None
            )

        def job_error_listener(event):
            self.logger.error(
                "Scheduled cycle raised",
                job_id=event.job_id,
                error=str(event.exception)
            )

        def job_skipped_listener(event):
            self.logger.warning(
                "Skipped tick, previous cycle still running",
                job_id=event.job_id
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_skipped_listener, EVENT_JOB_MAX_INSTANCES)

    def _validate(self) -> None:
        problems = []
        if self.fetcher is None:
            problems.append("no fetcher configured")
        if self.notifier is None:
            problems.append("no notifier configured")
        if problems:
            raise ConfigurationError(problems)

    async def start(self, run_once: bool = False) -> Optional[CycleReport]:
        """
        Start watching.

        In run-once mode a single cycle runs and its report is returned.
        Otherwise this sends the startup notification, runs an immediate
        cycle, schedules the recurring cycle and waits until ``stop()``.

        Raises:
            ConfigurationError: When a collaborator is missing
        """
        self.phase = ServicePhase.STARTING
        self._validate()

        if run_once:
            self.logger.info("Starting watch service in RUN ONCE MODE")
            self.phase = ServicePhase.POLLING
            try:
                return await self.run_cycle()
            finally:
                await self.shutdown()

        self.logger.info(
            "Starting watch service",
            interval_seconds=self.config.interval_seconds,
            **self.extractor.describe()
        )
        self._stop_event = asyncio.Event()

        try:
            if self.config.send_startup_notification:
                await self._deliver(
                    NotificationEvent.monitor_started(self.config.target_url, self.config.interval_seconds),
                    CycleLogger("watcher.startup")
                )

            self.phase = ServicePhase.POLLING
            await self.run_cycle()

            self._add_scheduled_job()
            self.scheduler.start()
            self._install_signal_handlers()

            self.logger.info(
                "Watch service polling",
                interval_seconds=self.config.interval_seconds
            )
            await self._stop_event.wait()
        finally:
            await self.shutdown()
        return self.last_report

    def _add_scheduled_job(self) -> None:
        """Register the recurring detection cycle."""
        self.scheduler.add_job(
            func=self._scheduled_cycle,
            trigger='interval',
            seconds=self.config.interval_seconds,
            id=self.config.job_id,
            name='Watch Cycle',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.logger.info(
            "Added watch cycle job",
            job_id=self.config.job_id,
            interval_seconds=self.config.interval_seconds
        )

    def _install_signal_handlers(self) -> None:
        """Stop on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                self.logger.debug("Signal handler not installed", signal=int(signum))
                continue
            self._installed_signals.append(signum)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        while self._installed_signals:
            loop.remove_signal_handler(self._installed_signals.pop())

    async def _scheduled_cycle(self) -> Dict:
        report = await self.run_cycle()
        return report.model_dump(mode="json")

    async def run_cycle(self) -> CycleReport:
        """
        Run one detection cycle.

        Cycles are serialized; a call made while another cycle is in flight
        waits for it to finish. Errors never propagate: they are logged and
        recorded on the returned report.
        """
        async with self._cycle_lock:
            report = await self._detect_changes()
        self.cycles_run += 1
        self.last_report = report
        return report

    async def _detect_changes(self) -> CycleReport:
        report = CycleReport(cycle_id=str(uuid.uuid4()))
        cycle_logger = CycleLogger("watcher.cycle").bind_context(cycle_id=report.cycle_id)
        started = time.monotonic()
        cycle_logger.log_cycle_start(self.config.target_url)

        try:
            report.phase = CyclePhase.FETCH
            content = await self.fetcher.fetch(self.config.target_url)

            report.phase = CyclePhase.EXTRACT
            region = self.extractor.extract(content)
            fingerprint = self.fingerprinter.generate_content_hash(region)
            report.fingerprint = fingerprint

            report.phase = CyclePhase.COMPARE
            comparison = self.state.compare_and_update(fingerprint)
            report.outcome = comparison.outcome
            report.previous_fingerprint = comparison.previous_fingerprint
            cycle_logger.log_outcome(
                comparison.outcome.value,
                fingerprint,
                comparison.previous_fingerprint
            )

            if comparison.changed:
                report.phase = CyclePhase.NOTIFY
                event = NotificationEvent.content_changed(
                    self.config.target_url,
                    comparison.previous_fingerprint,
                    comparison.current_fingerprint
                )
                report.notified = await self._deliver(event, cycle_logger)

            report.phase = CyclePhase.COMPLETE

        except FetchError as e:
            report.success = False
            report.error = str(e)
            cycle_logger.log_phase_error(report.phase.value, str(e))

        except Exception as e:
            report.success = False
            report.error = f"{type(e).__name__}: {e}"
            cycle_logger.log_phase_error(report.phase.value, report.error, exc_info=True)

        report.duration_seconds = round(time.monotonic() - started, 3)
        if report.success:
            cycle_logger.log_cycle_complete(report.duration_seconds, report.notified)
        return report

    async def _deliver(self, event: NotificationEvent, cycle_logger: CycleLogger) -> bool:
        """Attempt delivery once; failures are logged and reported as False."""
        try:
            await self.notifier.notify(event.subject, event.body)
        except NotificationError as e:
            cycle_logger.log_notification(event.subject, success=False, error=str(e))
            return False
        except Exception as e:
            cycle_logger.log_notification(
                event.subject,
                success=False,
                error=f"{type(e).__name__}: {e}",
                exc_info=True
            )
            return False
        cycle_logger.log_notification(event.subject, success=True)
        return True

    def stop(self) -> None:
        """Request shutdown; ``start()`` returns once cleanup is done."""
        if self.phase == ServicePhase.STOPPED:
            return
        self.logger.info("Stopping watch service")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self._stop_event is not None:
            self._stop_event.set()

    async def shutdown(self) -> None:
        """Stop scheduling, wait for an in-flight cycle and release resources."""
        if self.phase == ServicePhase.STOPPED:
            return
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self._remove_signal_handlers()

        async with self._cycle_lock:
            aclose = getattr(self.fetcher, "aclose", None)
            if aclose is not None:
                await aclose()

        self.phase = ServicePhase.STOPPED
        self.logger.info("Watch service stopped", cycles_run=self.cycles_run)

    def get_status(self) -> Dict:
        """Get current watch service status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': job.next_run_time.isoformat() if job.next_run_time else None,
                'trigger': str(job.trigger)
            })

        return {
            'phase': self.phase.value,
            'running': self.scheduler.running,
            'target_url': self.config.target_url,
            'interval_seconds': self.config.interval_seconds,
            'has_baseline': self.state.has_baseline,
            'last_fingerprint': self.state.last_fingerprint,
            'cycles_run': self.cycles_run,
            'last_report': self.last_report.model_dump(mode="json") if self.last_report else None,
            'jobs': jobs,
            'checked_at': datetime.now(timezone.utc).isoformat()
        }
