"""Dispatcher: periodic due-user tick feeding a bounded queue and worker pool.

The tick runs on an APScheduler background thread and only touches the
database and the queue. Workers do every network call. A user id stays in
the shared InFlightSet from enqueue until its worker is done, so a user is
never queued or processed twice at the same time.
"""

import itertools
import queue
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vacancy_scanner.clients.protocols import CredentialProvider, SubscriptionChecker
from vacancy_scanner.config.models import SchedulerConfig
from vacancy_scanner.domain.models import SearchRequest
from vacancy_scanner.logging import get_logger
from vacancy_scanner.logging.context import log_context
from vacancy_scanner.persistence.database import get_session
from vacancy_scanner.persistence.exceptions import PersistenceError
from vacancy_scanner.persistence.repositories import ScheduleRepository
from vacancy_scanner.utils.timestamps import format_timestamp_for_log, utc_now

from .inflight import InFlightSet
from .jitter import compute_next_due

if TYPE_CHECKING:
    from vacancy_scanner.search.orchestrator import SearchOrchestrator

logger = get_logger(__name__, component="dispatcher")

JOB_ID = "dispatch-due"

OUTCOME_COMPLETED = "completed"
OUTCOME_SKIPPED = "skipped"
OUTCOME_NO_TOKEN = "no_token"
OUTCOME_INACTIVE = "inactive"
OUTCOME_FAILED = "failed"

_STOP = object()
WORKER_POLL_SECONDS = 0.5


@dataclass
class DispatchResult:
    """Summary of one tick."""

    tick_id: int
    due: int = 0
    enqueued: int = 0
    skipped_in_flight: int = 0
    skipped_queue_full: int = 0
    error: Optional[str] = None


class DispatcherService:
    """Owns the tick job, the work queue and the worker threads."""

    def __init__(
        self,
        orchestrator: "SearchOrchestrator",
        credentials: CredentialProvider,
        subscriptions: SubscriptionChecker,
        config: Optional[SchedulerConfig] = None,
        in_flight: Optional[InFlightSet] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        self.orchestrator = orchestrator
        self.credentials = credentials
        self.subscriptions = subscriptions
        self.config = config or SchedulerConfig()
        self.in_flight = in_flight if in_flight is not None else InFlightSet()
        self.shutdown_event = shutdown_event
        self._clock = clock or utc_now
        self._rng = rng

        self.queue: "queue.Queue" = queue.Queue(maxsize=self.config.queue_size)
        self._stop_event = threading.Event()
        self._workers: List[threading.Thread] = []
        self._tick_ids = itertools.count(1)

        tick_seconds = self.config.tick_interval_seconds
        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": tick_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Start the workers and the tick job; the first tick runs immediately."""
        self._stop_event.clear()
        for index in range(1, self.config.worker_count + 1):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"vacancy-worker-{index}",
                daemon=True,
            )
            worker.start()
            self._workers.append(worker)

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.dispatch_due,
            trigger=IntervalTrigger(seconds=self.config.tick_interval_seconds, timezone=timezone.utc),
            id=JOB_ID,
            name="Dispatch due users",
            replace_existing=True,
            next_run_time=next_run,
        )
        self.scheduler.start()

        logger.info(
            f"Dispatcher started: tick every {self.config.tick_interval_seconds}s, "
            f"{self.config.worker_count} workers",
            extra={
                "event": "dispatcher.started",
                "tick_seconds": self.config.tick_interval_seconds,
                "workers": self.config.worker_count,
                "batch_size": self.config.batch_size,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop ticking, release queued users and stop the workers.

        Users still waiting in the queue are released without a run. Workers
        finish their current user before exiting; with ``wait`` they are
        joined for up to ``shutdown_timeout`` seconds.
        """
        logger.info(
            "Shutting down dispatcher",
            extra={"event": "dispatcher.stopping", "wait_for_workers": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        self._stop_event.set()
        released = self._release_queued()

        for _ in self._workers:
            try:
                self.queue.put_nowait(_STOP)
            except queue.Full:
                # Workers without a sentinel exit on their next stop-event poll.
                break

        if wait:
            for worker in self._workers:
                worker.join(timeout=self.config.shutdown_timeout)
                if worker.is_alive():
                    logger.warning(
                        f"Worker {worker.name} still busy after {self.config.shutdown_timeout}s",
                        extra={"event": "dispatcher.worker.timeout", "worker": worker.name},
                    )
        self._workers = []

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info(
            "Dispatcher stopped",
            extra={"event": "dispatcher.stopped", "released_queued": released},
        )

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_tick_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def trigger_now(self) -> DispatchResult:
        """Run one tick synchronously in the calling thread."""
        logger.info("Triggering immediate dispatch", extra={"event": "dispatcher.trigger_now"})
        return self.dispatch_due()

    def dispatch_due(self) -> DispatchResult:
        """Load a batch of due users and enqueue those not already in flight."""
        result = DispatchResult(tick_id=next(self._tick_ids))

        with log_context(tick_id=result.tick_id):
            if self._stop_event.is_set():
                return result

            now = self._clock()
            try:
                with get_session() as session:
                    due = ScheduleRepository(session).find_due(now, self.config.batch_size)
            except PersistenceError as e:
                result.error = str(e)
                logger.error(
                    f"Could not load due users: {e}",
                    extra={"event": "dispatcher.tick.failed"},
                )
                return result

            result.due = len(due)
            for schedule in due:
                user_id = schedule.user_id
                if not self.in_flight.try_add(user_id):
                    result.skipped_in_flight += 1
                    continue
                try:
                    self.queue.put_nowait(user_id)
                except queue.Full:
                    self.in_flight.discard(user_id)
                    result.skipped_queue_full += 1
                    continue
                result.enqueued += 1

            if result.skipped_queue_full:
                logger.warning(
                    f"Work queue full, {result.skipped_queue_full} due users wait for the next tick",
                    extra={"event": "dispatcher.queue.full", "skipped": result.skipped_queue_full},
                )

            logger.info(
                f"Tick {result.tick_id}: {result.due} due, {result.enqueued} enqueued",
                extra={
                    "event": "dispatcher.tick.completed",
                    "due": result.due,
                    "enqueued": result.enqueued,
                    "skipped_in_flight": result.skipped_in_flight,
                    "skipped_queue_full": result.skipped_queue_full,
                },
            )
        return result

    def drain_queue(self) -> int:
        """Process every queued user in the calling thread (no worker threads).

        Returns:
            Number of users processed
        """
        processed = 0
        while True:
            try:
                item = self.queue.get_nowait()
            except queue.Empty:
                return processed
            try:
                if item is not _STOP:
                    self.process_user(item)
                    processed += 1
            finally:
                self.queue.task_done()

    def process_user(self, user_id: int) -> str:
        """Run one scheduled cycle for a user.

        The user is rescheduled on every path where its schedule existed and
        was enabled when the cycle started, and always released from the
        in-flight set.

        Returns:
            Outcome label (completed, skipped, no_token, inactive, failed)
        """
        schedule = None
        with log_context(user_id=user_id):
            try:
                with get_session() as session:
                    schedule = ScheduleRepository(session).get(user_id)

                if schedule is None or not schedule.auto_update_enabled:
                    logger.info(
                        f"User {user_id} no longer scheduled, skipping",
                        extra={"event": "dispatcher.user.skipped", "reason": "disabled"},
                    )
                    return OUTCOME_SKIPPED

                token = self.credentials.get_access_token(user_id)
                if not token:
                    logger.warning(
                        f"No access token for user {user_id}, skipping this cycle",
                        extra={"event": "dispatcher.user.skipped", "reason": "no_token"},
                    )
                    return OUTCOME_NO_TOKEN

                status = self.subscriptions.get_subscription_status(token)
                if not status.active:
                    logger.info(
                        f"Subscription inactive for user {user_id}, skipping search",
                        extra={"event": "dispatcher.user.skipped", "reason": "inactive"},
                    )
                    return OUTCOME_INACTIVE

                new_records = self.orchestrator.run(SearchRequest(), schedule, user_id, token)
                logger.info(
                    f"Auto-update for user {user_id} found {len(new_records)} new listings",
                    extra={"event": "dispatcher.user.completed", "new": len(new_records)},
                )
                return OUTCOME_COMPLETED

            except Exception as e:
                logger.error(
                    f"Auto-update for user {user_id} failed: {e}",
                    exc_info=True,
                    extra={"event": "dispatcher.user.failed", "error_type": type(e).__name__},
                )
                return OUTCOME_FAILED

            finally:
                try:
                    if schedule is not None and schedule.auto_update_enabled:
                        self._reschedule(user_id)
                finally:
                    self.in_flight.discard(user_id)

    def _reschedule(self, user_id: int) -> None:
        now = self._clock()
        try:
            with get_session() as session:
                repo = ScheduleRepository(session)
                current = repo.get(user_id)
                if current is None or not current.auto_update_enabled:
                    return
                next_due = compute_next_due(now, current.interval_minutes, self._rng)
                repo.reschedule(user_id, last_run_at=now, next_due_at=next_due)
        except PersistenceError as e:
            logger.error(
                f"Could not reschedule user {user_id}: {e}",
                extra={"event": "dispatcher.user.reschedule_failed"},
            )
            return

        logger.debug(
            f"User {user_id} next due at {format_timestamp_for_log(next_due)}",
            extra={"event": "dispatcher.user.rescheduled", "next_due_at": format_timestamp_for_log(next_due)},
        )

    def _worker_loop(self) -> None:
        worker_name = threading.current_thread().name
        with log_context(worker=worker_name):
            while True:
                try:
                    item = self.queue.get(timeout=WORKER_POLL_SECONDS)
                except queue.Empty:
                    if self._stop_event.is_set():
                        return
                    continue
                try:
                    if item is _STOP:
                        return
                    if self._stop_event.is_set():
                        self.in_flight.discard(item)
                        continue
                    self.process_user(item)
                finally:
                    self.queue.task_done()

    def _release_queued(self) -> int:
        released = 0
        while True:
            try:
                item = self.queue.get_nowait()
            except queue.Empty:
                return released
            if item is not _STOP:
                self.in_flight.discard(item)
                released += 1
            self.queue.task_done()
