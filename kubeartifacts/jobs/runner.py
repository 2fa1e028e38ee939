"""Runs a job to completion while watching its status and events."""

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from ..errors import JobError, JobFailedError, JobTimeoutError
from ..utils.logger import get_logger
from .logs import LogsReader

logger = get_logger(__name__)

POLL_INTERVAL = 0.5
DEFAULT_RESYNC_SECONDS = 60
RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0
JOIN_TIMEOUT = 1.0


class JobOutcome(str, Enum):
    """Terminal states of a submitted job."""

    COMPLETED = "Completed"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"


class JobRun(BaseModel):
    """Handle of a submitted job."""

    job: Dict[str, Any] = Field(default_factory=dict)
    namespace: str
    name: str
    uid: str = ""
    outcome: Optional[JobOutcome] = None


class CompletionSignal:
    """Single-consumer completion slot; the first writer wins."""

    def __init__(self):
        self._future: Future = Future()
        self._lock = threading.Lock()

    def succeed(self) -> bool:
        with self._lock:
            if self._future.done():
                return False
            self._future.set_result(None)
            return True

    def fail(self, error: JobError) -> bool:
        with self._lock:
            if self._future.done():
                return False
            self._future.set_exception(error)
            return True

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Return None on success or the failure; raise TimeoutError if still pending."""
        return self._future.exception(timeout=timeout)


def _job_condition_error(job: Dict[str, Any]) -> Optional[JobFailedError]:
    for condition in (job.get("status") or {}).get("conditions") or []:
        if condition.get("type") == "Failed" and condition.get("status") == "True":
            return JobFailedError(condition.get("reason", ""), condition.get("message", ""))
    return None


def _job_completed(job: Dict[str, Any]) -> bool:
    return any(
        c.get("type") == "Complete" and c.get("status") == "True"
        for c in (job.get("status") or {}).get("conditions") or []
    )


class JobRunner:
    """Submits a job and blocks until it completes, fails or times out.

    Two daemon threads observe the job namespace: one watches Job objects for
    Complete/Failed conditions, the other watches Events for Warning events
    about the job. Whichever reports first decides the outcome. The deadline
    and the optional cancel event are checked between short waits.
    """

    def __init__(
        self,
        cluster,
        timeout: Optional[timedelta] = None,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        resync_seconds: int = DEFAULT_RESYNC_SECONDS,
        logs_reader: Optional[LogsReader] = None,
    ):
        self.cluster = cluster
        self.timeout = timeout
        self.deadline = deadline
        self.cancel = cancel
        self.resync_seconds = resync_seconds
        self.logs_reader = logs_reader or LogsReader(cluster)

    def _deadline(self) -> Optional[float]:
        if self.deadline is not None:
            return self.deadline
        if self.timeout is not None and self.timeout.total_seconds() > 0:
            return time.monotonic() + self.timeout.total_seconds()
        return None

    def run(self, job: Dict[str, Any]) -> JobRun:
        """Create job and wait for its outcome.

        Raises JobFailedError or JobTimeoutError. Deleting the job is left to
        the caller.
        """
        deadline = self._deadline()
        namespace = (job.get("metadata") or {}).get("namespace", "")
        created = self.cluster.create_job(namespace, job)
        metadata = created.get("metadata") or {}
        run = JobRun(
            job=created,
            namespace=metadata.get("namespace", namespace),
            name=metadata.get("name", ""),
            uid=metadata.get("uid", ""),
        )
        logger.info(f"Created job {run.namespace}/{run.name}")

        signal = CompletionSignal()
        stop = threading.Event()
        streams = [
            (self.cluster.watch_jobs(run.namespace, self.resync_seconds), self._on_job_event),
            (self.cluster.watch_events(run.namespace, self.resync_seconds), self._on_event),
        ]
        threads = []
        for stream, handler in streams:
            thread = threading.Thread(
                target=self._observe,
                args=(stream, handler, run.uid, signal, stop),
                name=f"observe-{run.name}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        try:
            error = self._wait(signal, deadline)
        finally:
            stop.set()
            for stream, _ in streams:
                stream.stop()
            for thread in threads:
                thread.join(JOIN_TIMEOUT)

        if error is None:
            run.outcome = JobOutcome.COMPLETED
            logger.info(f"Job {run.namespace}/{run.name} completed")
            return run

        run.outcome = JobOutcome.TIMED_OUT if isinstance(error, JobTimeoutError) else JobOutcome.FAILED
        logger.error(f"Job {run.namespace}/{run.name} {run.outcome.value.lower()}: {error}")
        self._log_terminated_containers(created)
        raise error

    def _wait(self, signal: CompletionSignal, deadline: Optional[float]) -> Optional[BaseException]:
        while True:
            if self.cancel is not None and self.cancel.is_set():
                return JobTimeoutError("runner cancelled")
            wait_for = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return JobTimeoutError()
                wait_for = min(POLL_INTERVAL, remaining)
            try:
                return signal.wait(timeout=wait_for)
            except FutureTimeoutError:
                continue

    def _observe(
        self,
        stream,
        handler: Callable[[Dict[str, Any], str, CompletionSignal], None],
        uid: str,
        signal: CompletionSignal,
        stop: threading.Event,
    ) -> None:
        """Feed stream events to handler, retrying failed watches with backoff.

        Only the first failure of a streak is logged as a warning.
        """
        delay = RETRY_DELAY
        failures = 0
        while not stop.is_set() and not stream.stopped and not signal.done():
            try:
                for event in stream:
                    failures = 0
                    delay = RETRY_DELAY
                    handler(event, uid, signal)
                    if signal.done():
                        return
            except Exception as e:
                if stop.is_set() or stream.stopped:
                    return
                failures += 1
                if failures == 1:
                    logger.warning(f"Watch failed, retrying: {e}")
                else:
                    logger.debug(f"Watch failed {failures} times, retrying in {delay:.0f}s: {e}")
                stop.wait(delay)
                delay = min(delay * 2, MAX_RETRY_DELAY)

    @staticmethod
    def _on_job_event(event: Dict[str, Any], uid: str, signal: CompletionSignal) -> None:
        if event.get("type") not in ("ADDED", "MODIFIED"):
            return
        job = event.get("object") or {}
        if (job.get("metadata") or {}).get("uid") != uid:
            return

        error = _job_condition_error(job)
        if error is not None:
            logger.debug(f"Job {uid} reported Failed condition")
            signal.fail(error)
        elif _job_completed(job):
            logger.debug(f"Job {uid} reported Complete condition")
            signal.succeed()

    @staticmethod
    def _on_event(event: Dict[str, Any], uid: str, signal: CompletionSignal) -> None:
        if event.get("type") != "ADDED":
            return
        obj = event.get("object") or {}
        if (obj.get("involvedObject") or {}).get("uid") != uid:
            return

        if obj.get("type") == "Normal":
            logger.debug(f"Event: {obj.get('message')} ({obj.get('reason')})")
        elif obj.get("type") == "Warning":
            signal.fail(JobFailedError(obj.get("reason", ""), obj.get("message", "")))

    def _log_terminated_containers(self, job: Dict[str, Any]) -> None:
        try:
            statuses = self.logs_reader.get_terminated_container_statuses_by_job(job)
        except Exception as e:
            name = (job.get("metadata") or {}).get("name")
            logger.error(f"Error while getting terminated container statuses for job {name}: {e}")
            return

        for container, state in statuses.items():
            if state.get("exitCode", 0) == 0:
                continue
            logger.error(
                f"Container {container} terminated with {state.get('reason')}: {state.get('message')}"
            )
