"""Side effects the session engine asks the application to carry out."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CreateJob:
    query: str
    generation: int


@dataclass(frozen=True)
class PollStatus:
    sid: str
    generation: int


@dataclass(frozen=True)
class FetchResults:
    sid: str
    generation: int


@dataclass(frozen=True)
class KillJob:
    sid: str


@dataclass(frozen=True)
class EditExternally:
    text: str
    suffix: str = ".txt"
    reload: bool = True  # False: view only, the edited text is discarded


@dataclass(frozen=True)
class OpenUrl:
    url: str


@dataclass(frozen=True)
class ApplyTheme:
    name: str


@dataclass(frozen=True)
class Quit:
    pass


Effect = (
    CreateJob
    | PollStatus
    | FetchResults
    | KillJob
    | EditExternally
    | OpenUrl
    | ApplyTheme
    | Quit
)

TRANSPORT_EFFECTS = (CreateJob, PollStatus, FetchResults, KillJob)
