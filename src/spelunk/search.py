"""Regex search over the raw text of fetched results."""

from __future__ import annotations

import bisect
import re

from spelunk.errors import InvalidPattern, NoMatches
from spelunk.models import ResultSet


class ResultSearch:
    """Match cursor over the active ResultSet.

    ``pattern`` is ``None`` while no search is active; an active search with
    an empty ``matches`` list means "no matches". Matches are
    ``(row, col_start, col_end)`` in document order and ``index`` is ``-1``
    whenever ``matches`` is empty.
    """

    def __init__(self, history_max: int = 50) -> None:
        self._result_set: ResultSet | None = None
        self._text: str = ""
        self._line_starts: list[int] = [0]
        self.pattern: str | None = None
        self.matches: list[tuple[int, int, int]] = []
        self.index: int = -1
        # Search history
        self.history: list[str] = []
        self._history_idx: int = -1
        self._history_max: int = history_max

    # -- ResultSet ---------------------------------------------------------

    @property
    def result_set(self) -> ResultSet | None:
        return self._result_set

    def load(self, result_set: ResultSet | None) -> None:
        """Scan *result_set* from now on; any previous match cursor is void."""
        self._result_set = result_set
        self._text = result_set.raw_text if result_set is not None else ""
        self._line_starts = [0]
        for pos, ch in enumerate(self._text):
            if ch == "\n":
                self._line_starts.append(pos + 1)
        self._reset_cursor()

    def clear(self) -> None:
        self.load(None)

    def _reset_cursor(self) -> None:
        self.pattern = None
        self.matches = []
        self.index = -1

    @property
    def active(self) -> bool:
        return self.pattern is not None

    # -- Matching ----------------------------------------------------------

    def set_pattern(self, pattern: str) -> int:
        """Compile *pattern* and collect every match; return the match count.

        Matching ignores case unless the pattern ends in ``\\C``; a trailing
        ``\\c`` is accepted and stripped.
        """
        source = pattern
        flags = re.IGNORECASE
        if source.endswith("\\C"):
            source = source[:-2]
            flags = 0
        elif source.endswith("\\c"):
            source = source[:-2]

        try:
            regex = re.compile(source, flags)
        except re.error as e:
            raise InvalidPattern(f"Invalid pattern: {e}") from e

        matches: list[tuple[int, int, int]] = []
        for match in regex.finditer(self._text):
            if match.end() == match.start():
                continue
            row = bisect.bisect_right(self._line_starts, match.start()) - 1
            line_start = self._line_starts[row]
            matches.append(
                (row, match.start() - line_start, match.end() - line_start)
            )

        self.pattern = pattern
        self.matches = matches
        self.index = 0 if matches else -1
        self._add_to_history(pattern)
        return len(matches)

    def current(self) -> tuple[int, int, int] | None:
        if not self.matches or self.index < 0:
            return None
        return self.matches[self.index]

    def next(self) -> int:
        self._require_matches()
        self.index = (self.index + 1) % len(self.matches)
        return self.index

    def previous(self) -> int:
        self._require_matches()
        self.index = (self.index - 1) % len(self.matches)
        return self.index

    def _require_matches(self) -> None:
        if self.pattern is None:
            raise NoMatches("No previous search")
        if not self.matches:
            raise NoMatches(f"Pattern not found: {self.pattern}")

    def record_index(self, match: tuple[int, int, int] | None = None) -> int | None:
        """Record index holding *match* (default: the current match)."""
        if match is None:
            match = self.current()
        if match is None or self._result_set is None:
            return None
        return self._result_set.record_for_line(match[0])

    def describe(self) -> str:
        """Status text for the current match, e.g. ``/err  [2/5]``."""
        if self.pattern is None:
            return ""
        if not self.matches:
            return f"Pattern not found: {self.pattern}"
        return f"/{self.pattern}  [{self.index + 1}/{len(self.matches)}]"

    # -- History -----------------------------------------------------------

    def _add_to_history(self, pattern: str) -> None:
        """Add pattern to search history, avoiding duplicates."""
        if not pattern:
            return
        if pattern in self.history:
            self.history.remove(pattern)
        self.history.insert(0, pattern)
        if len(self.history) > self._history_max:
            self.history.pop()
        self._history_idx = -1

    def history_prev(self) -> str | None:
        """Step back to an older pattern; ``None`` at the oldest entry."""
        if self._history_idx < len(self.history) - 1:
            self._history_idx += 1
            return self.history[self._history_idx]
        return None

    def history_next(self) -> str:
        """Step towards the newest pattern; ``""`` past the newest."""
        if self._history_idx > 0:
            self._history_idx -= 1
            return self.history[self._history_idx]
        self._history_idx = -1
        return ""

    def reset_history_position(self) -> None:
        self._history_idx = -1
