"""Events consumed by the session controller's queue.

Key presses and mouse input come from the terminal; everything else is the
outcome of an effect the application carried out (see :mod:`spelunk.effects`)
or the poll timer. Job outcomes carry the ``generation`` of the job they
belong to so a late response for a replaced or killed job can be recognised
and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from spelunk.focus import FocusTarget
from spelunk.models import JobStatus


@dataclass(frozen=True)
class KeyInput:
    key: str
    character: str | None = None


@dataclass(frozen=True)
class PaneClicked:
    """Left click inside a pane."""

    pane: FocusTarget


@dataclass(frozen=True)
class WheelScrolled:
    """Mouse wheel over a pane; positive *delta* scrolls down."""

    pane: FocusTarget
    delta: int


@dataclass(frozen=True)
class PollTick:
    pass


@dataclass(frozen=True)
class JobCreated:
    generation: int
    sid: str


@dataclass(frozen=True)
class JobCreateFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class StatusReceived:
    generation: int
    status: JobStatus


@dataclass(frozen=True)
class StatusFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class ResultsReceived:
    generation: int
    records: tuple[dict[str, Any], ...]


@dataclass(frozen=True)
class ResultsFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class KillFinished:
    sid: str
    error: str = ""


@dataclass(frozen=True)
class ExternalEditFinished:
    text: str
    reload: bool = True


@dataclass(frozen=True)
class ExternalEditFailed:
    error: str
