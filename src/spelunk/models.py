"""Data returned by the search service."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class JobStatus:
    """One status report for a running search job."""

    is_done: bool
    dispatch_state: str
    event_count: int = 0
    result_count: int = 0
    scan_count: int = 0
    run_duration: float = 0.0
    done_progress: float | None = None
    messages: tuple[Any, ...] = ()

    @property
    def is_failed(self) -> bool:
        return self.dispatch_state.upper() == "FAILED"

    @classmethod
    def from_content(cls, content: dict[str, Any]) -> JobStatus:
        """Build from the ``content`` object of a job entry.

        Raises KeyError/TypeError/ValueError on a malformed payload.
        """
        progress = content.get("doneProgress")
        return cls(
            is_done=bool(content["isDone"]),
            dispatch_state=str(content["dispatchState"]),
            event_count=int(content.get("eventCount", 0) or 0),
            result_count=int(content.get("resultCount", 0) or 0),
            scan_count=int(content.get("scanCount", 0) or 0),
            run_duration=float(content.get("runDuration", 0.0) or 0.0),
            done_progress=float(progress) if progress is not None else None,
            messages=tuple(content.get("messages") or ()),
        )


def expand_json(value: Any) -> Any:
    """Replace string values that hold JSON objects or arrays by their parse.

    Works through nested containers and through strings that decode to
    further JSON strings.
    """
    if isinstance(value, dict):
        return {k: expand_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_json(v) for v in value]
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "[", '"'):
            try:
                parsed = json.loads(stripped)
            except ValueError:
                return value
            return expand_json(parsed)
    return value


def display_fields(record: dict[str, Any]) -> list[tuple[str, str]]:
    """``(field, text)`` pairs for the raw events view.

    Internal fields (leading underscore) are hidden except ``_time`` and
    ``_raw``.
    """
    fields = []
    for key, value in record.items():
        if key.startswith("_") and key not in ("_time", "_raw"):
            continue
        if isinstance(value, str):
            text = value
        else:
            text = json.dumps(value, ensure_ascii=False)
        fields.append((key, text))
    return fields


def _record_text(record: dict[str, Any]) -> str:
    raw = record.get("_raw")
    if isinstance(raw, str):
        return raw
    return json.dumps(record, ensure_ascii=False, sort_keys=True)


@dataclass(frozen=True)
class ResultSet:
    """Materialized results of a completed job.

    ``raw_text`` is every record's ``_raw`` text (or its compact JSON) joined
    by newlines; ``line_records[i]`` is the record index of raw-text line *i*.
    """

    records: tuple[dict[str, Any], ...] = ()
    raw_text: str = ""
    line_records: tuple[int, ...] = field(default=())

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> ResultSet:
        texts: list[str] = []
        line_records: list[int] = []
        for idx, record in enumerate(records):
            text = _record_text(record)
            texts.append(text)
            line_records.extend([idx] * (text.count("\n") + 1))
        return cls(
            records=tuple(records),
            raw_text="\n".join(texts),
            line_records=tuple(line_records),
        )

    def __len__(self) -> int:
        return len(self.records)

    def record_for_line(self, row: int) -> int:
        if not self.line_records:
            return 0
        row = max(0, min(row, len(self.line_records) - 1))
        return self.line_records[row]

    def to_json(self) -> str:
        return json.dumps(list(self.records), indent=2, ensure_ascii=False)
