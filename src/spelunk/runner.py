"""Carry out transport effects and turn their outcomes into events."""

from __future__ import annotations

import logging

from spelunk.client import SplunkClient
from spelunk.effects import CreateJob, Effect, FetchResults, KillJob, PollStatus
from spelunk.errors import TransportError
from spelunk.events import (
    JobCreated,
    JobCreateFailed,
    KillFinished,
    ResultsFailed,
    ResultsReceived,
    StatusFailed,
    StatusReceived,
)

logger = logging.getLogger(__name__)


async def perform(effect: Effect, client: SplunkClient, result_count: int = 100):
    """Run one transport effect; the returned event reports the outcome.

    Transport failures are reported as failure events, never raised.
    """
    if isinstance(effect, CreateJob):
        try:
            sid = await client.create_job(effect.query)
        except TransportError as exc:
            return JobCreateFailed(effect.generation, str(exc))
        return JobCreated(effect.generation, sid)

    if isinstance(effect, PollStatus):
        try:
            status = await client.poll_status(effect.sid)
        except TransportError as exc:
            return StatusFailed(effect.generation, str(exc))
        return StatusReceived(effect.generation, status)

    if isinstance(effect, FetchResults):
        try:
            records = await client.fetch_results(effect.sid, count=result_count)
        except TransportError as exc:
            return ResultsFailed(effect.generation, str(exc))
        return ResultsReceived(effect.generation, tuple(records))

    if isinstance(effect, KillJob):
        try:
            await client.kill_job(effect.sid)
        except TransportError as exc:
            return KillFinished(effect.sid, str(exc))
        return KillFinished(effect.sid)

    raise TypeError(f"not a transport effect: {effect!r}")
