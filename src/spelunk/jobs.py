"""Search job lifecycle state machine.

The manager performs no I/O. Each trigger returns the effects needed to
talk to the search service, and the outcome of each effect is fed back
through the matching ``on_*`` method together with the job generation it
was issued for.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any

from spelunk.effects import CreateJob, Effect, FetchResults, KillJob, PollStatus
from spelunk.errors import InvalidQuery, InvalidTransition
from spelunk.models import JobStatus, ResultSet

logger = logging.getLogger(__name__)

MAX_POLL_FAILURES = 3
MAX_FETCH_FAILURES = 3


class JobState(Enum):
    IDLE = auto()
    SUBMITTING = auto()
    RUNNING = auto()
    DONE = auto()
    FAILED = auto()
    KILLED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED, JobState.KILLED)

    @property
    def is_active(self) -> bool:
        return self in (JobState.SUBMITTING, JobState.RUNNING)


@dataclass
class Job:
    query: str = ""
    generation: int = 0
    sid: str | None = None
    state: JobState = JobState.IDLE
    event_count: int = 0
    result_count: int = 0
    scan_count: int = 0
    duration: float = 0.0
    dispatch_state: str = ""
    done_progress: float | None = None
    share_url: str | None = None
    error: str = ""
    created_at: float = field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        """Seconds since submission, preferring the service's own duration."""
        if self.duration:
            return self.duration
        return time.monotonic() - self.created_at


class JobLifecycle:
    """Owns the single active job of a session."""

    def __init__(
        self,
        share_url: Callable[[str], str] | None = None,
        *,
        max_poll_failures: int = MAX_POLL_FAILURES,
        max_fetch_failures: int = MAX_FETCH_FAILURES,
    ) -> None:
        self._share_url = share_url
        self.max_poll_failures = max_poll_failures
        self.max_fetch_failures = max_fetch_failures
        self._job = Job()
        self._generation: int = 0
        self._poll_in_flight: bool = False
        self._poll_failures: int = 0
        self._fetch_in_flight: bool = False
        self._fetch_failures: int = 0
        self._results: ResultSet | None = None
        self._killed_unassigned: set[int] = set()

    # -- Queries -----------------------------------------------------------

    @property
    def job(self) -> Job:
        return self._job

    def snapshot(self) -> Job:
        return replace(self._job)

    @property
    def state(self) -> JobState:
        return self._job.state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        return self._job.state.is_active

    @property
    def result_set(self) -> ResultSet | None:
        return self._results

    @property
    def poll_in_flight(self) -> bool:
        return self._poll_in_flight

    @property
    def fetch_exhausted(self) -> bool:
        return self._fetch_failures >= self.max_fetch_failures

    @property
    def needs_fetch(self) -> bool:
        return (
            self._job.state is JobState.DONE
            and self._results is None
            and not self._fetch_in_flight
            and not self.fetch_exhausted
        )

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _transition(self, state: JobState) -> None:
        logger.info(
            "job %s (gen %d): %s -> %s",
            self._job.sid or "-",
            self._generation,
            self._job.state.name,
            state.name,
        )
        self._job.state = state

    # -- Submission --------------------------------------------------------

    def submit(self, query: str) -> list[Effect]:
        if not query or not query.strip():
            raise InvalidQuery("Query is empty.")
        if self._job.state.is_active:
            raise InvalidTransition(
                f"cannot submit while a job is {self._job.state.name.lower()}"
            )
        self.reset()
        self._job = Job(query=query, generation=self._generation)
        self._transition(JobState.SUBMITTING)
        return [CreateJob(query=query, generation=self._generation)]

    def on_submit_result(
        self, generation: int, sid: str | None = None, error: str | None = None
    ) -> list[Effect]:
        # Killed before the service answered: cancel the orphan remotely.
        if generation in self._killed_unassigned:
            self._killed_unassigned.discard(generation)
            if sid:
                if not self._is_stale(generation):
                    self._job.sid = sid
                return [KillJob(sid=sid)]
            return []
        if self._is_stale(generation):
            logger.debug("discarding submit result for stale generation %d", generation)
            return []
        if self._job.state is not JobState.SUBMITTING:
            logger.debug("discarding submit result in state %s", self._job.state.name)
            return []
        if error is not None or not sid:
            self._job.error = error or "no job id returned"
            self._transition(JobState.FAILED)
            return []
        self._job.sid = sid
        if self._share_url is not None:
            self._job.share_url = self._share_url(sid)
        self._transition(JobState.RUNNING)
        return []

    # -- Polling -----------------------------------------------------------

    def poll(self) -> list[Effect]:
        if self._job.state is not JobState.RUNNING:
            raise InvalidTransition(
                f"cannot poll a job that is {self._job.state.name.lower()}"
            )
        if self._poll_in_flight:
            return []
        self._poll_in_flight = True
        return [PollStatus(sid=self._job.sid or "", generation=self._generation)]

    def on_poll_result(
        self,
        generation: int,
        status: JobStatus | None = None,
        error: str | None = None,
    ) -> list[Effect]:
        if self._is_stale(generation):
            logger.debug("discarding poll result for stale generation %d", generation)
            return []
        self._poll_in_flight = False
        if self._job.state is not JobState.RUNNING:
            logger.debug("discarding poll result in state %s", self._job.state.name)
            return []

        if error is not None or status is None:
            self._poll_failures += 1
            logger.warning(
                "poll %d/%d failed for job %s: %s",
                self._poll_failures,
                self.max_poll_failures,
                self._job.sid,
                error,
            )
            if self._poll_failures >= self.max_poll_failures:
                self._job.error = error or "status unavailable"
                self._transition(JobState.FAILED)
            return []

        self._poll_failures = 0
        job = self._job
        job.event_count = max(job.event_count, status.event_count)
        job.result_count = status.result_count
        job.scan_count = status.scan_count
        job.duration = status.run_duration
        job.dispatch_state = status.dispatch_state
        job.done_progress = status.done_progress

        if status.is_failed:
            job.error = _status_error(status)
            self._transition(JobState.FAILED)
        elif status.is_done:
            self._transition(JobState.DONE)
        return []

    # -- Kill --------------------------------------------------------------

    def kill(self) -> list[Effect]:
        if not self._job.state.is_active:
            raise InvalidTransition(
                f"cannot kill a job that is {self._job.state.name.lower()}"
            )
        self._poll_in_flight = False
        self._transition(JobState.KILLED)
        if self._job.sid:
            return [KillJob(sid=self._job.sid)]
        self._killed_unassigned.add(self._generation)
        return []

    # -- Results -----------------------------------------------------------

    def fetch_results(self) -> list[Effect]:
        if self._job.state is not JobState.DONE:
            raise InvalidTransition(
                f"no results for a job that is {self._job.state.name.lower()}"
            )
        if self._results is not None or self._fetch_in_flight:
            return []
        self._fetch_in_flight = True
        return [FetchResults(sid=self._job.sid or "", generation=self._generation)]

    def on_results(
        self,
        generation: int,
        records: list[dict[str, Any]] | tuple[dict[str, Any], ...] | None = None,
        error: str | None = None,
    ) -> ResultSet | None:
        """Cache fetched records; return the ResultSet when newly stored."""
        if self._is_stale(generation) or self._job.state is not JobState.DONE:
            logger.debug("discarding results for generation %d", generation)
            return None
        self._fetch_in_flight = False
        if error is not None or records is None:
            self._fetch_failures += 1
            logger.warning(
                "fetch %d/%d failed for job %s: %s",
                self._fetch_failures,
                self.max_fetch_failures,
                self._job.sid,
                error,
            )
            return None
        self._fetch_failures = 0
        self._results = ResultSet.from_records(list(records))
        return self._results

    def invalidate_results(self) -> None:
        self._results = None
        self._fetch_in_flight = False
        self._fetch_failures = 0

    def reset(self) -> None:
        """Drop the current job and its results; back to IDLE."""
        if self._job.state.is_active:
            raise InvalidTransition("cannot reset an active job")
        self._generation += 1
        self._job = Job(generation=self._generation)
        self._poll_in_flight = False
        self._poll_failures = 0
        self.invalidate_results()


def _status_error(status: JobStatus) -> str:
    for message in status.messages:
        if isinstance(message, dict) and message.get("text"):
            return str(message["text"])
    return f"search {status.dispatch_state.lower()}"
