"""Textual widgets that render session snapshots."""

from __future__ import annotations

import json
from dataclasses import dataclass

from rich.console import RenderableType
from rich.syntax import Syntax
from rich.text import Text
from textual import events
from textual.containers import Vertical
from textual.message import Message
from textual.widget import Widget

from spelunk.editor import EditorMode
from spelunk.focus import FocusTarget
from spelunk.jobs import JobState
from spelunk.models import display_fields
from spelunk.session import Prompt, SessionSnapshot, ViewMode

_STATE_STYLES = {
    JobState.IDLE: "dim",
    JobState.SUBMITTING: "yellow",
    JobState.RUNNING: "bold yellow",
    JobState.DONE: "bold green",
    JobState.FAILED: "bold red",
    JobState.KILLED: "magenta",
}


class Workspace(Vertical, can_focus=True):
    """Focus holder: every key pressed in the app is forwarded as a message."""

    @dataclass
    class KeyPressed(Message):
        key: str
        character: str | None

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.post_message(self.KeyPressed(event.key, event.character))


class SnapshotView(Widget):
    """Base for panes that draw from the latest :class:`SessionSnapshot`."""

    @dataclass
    class Clicked(Message):
        pane: FocusTarget

    @dataclass
    class Scrolled(Message):
        pane: FocusTarget
        delta: int

    FOCUS: FocusTarget | None = None
    snapshot: SessionSnapshot | None = None
    _scroll_top: int = 0

    def show(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot
        self.set_class(snapshot.focus is self.FOCUS, "focused")
        self._update_title(snapshot)
        self.refresh()

    def on_click(self, event: events.Click) -> None:
        if self.FOCUS is not None:
            event.stop()
            self.post_message(self.Clicked(self.FOCUS))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        if self.FOCUS is not None:
            event.stop()
            self.post_message(self.Scrolled(self.FOCUS, 1))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        if self.FOCUS is not None:
            event.stop()
            self.post_message(self.Scrolled(self.FOCUS, -1))

    def _update_title(self, snapshot: SessionSnapshot) -> None:
        pass

    def _visible_height(self) -> int:
        return max(1, self.content_region.height)

    def _ensure_visible(self, index: int, height: int) -> None:
        if index < self._scroll_top:
            self._scroll_top = index
        elif index >= self._scroll_top + height:
            self._scroll_top = index - height + 1


class QueryEditor(SnapshotView):
    FOCUS = FocusTarget.EDITOR

    def _update_title(self, snapshot: SessionSnapshot) -> None:
        mode = snapshot.editor_mode
        family = "Vim" if mode.is_vim else "Standard"
        name = f" - {snapshot.saved_name}" if snapshot.saved_name else ""
        self.border_title = f"Search{name} [{family}: {mode.label}]"
        job = snapshot.job
        if job.state is JobState.IDLE:
            self.border_subtitle = ""
        else:
            self.border_subtitle = (
                f"{job.state.name} | {job.event_count} events | {job.elapsed():.1f}s"
            )

    def render(self) -> RenderableType:
        snap = self.snapshot
        if snap is None:
            return Text("")
        text = Text()
        row, col = snap.cursor
        editing = snap.focus is FocusTarget.EDITOR
        cursor_style = "reverse" if snap.editor_mode is EditorMode.VIM_NORMAL else "underline reverse"
        height = self._visible_height()
        self._ensure_visible(row, height)
        end = min(len(snap.lines), self._scroll_top + height)
        for i in range(self._scroll_top, end):
            line = snap.lines[i]
            if i > self._scroll_top:
                text.append("\n")
            if editing and i == row:
                text.append(line[:col])
                text.append(line[col : col + 1] or " ", style=cursor_style)
                text.append(line[col + 1 :])
            else:
                text.append(line)
        return text


class ResultList(SnapshotView):
    FOCUS = FocusTarget.LIST

    def _update_title(self, snapshot: SessionSnapshot) -> None:
        count = len(snapshot.result_set) if snapshot.result_set is not None else 0
        self.border_title = f"Results ({count}) [{snapshot.view_mode.label}]"

    def render(self) -> RenderableType:
        snap = self.snapshot
        if snap is None or snap.result_set is None:
            if snap is not None and snap.job.state is not JobState.IDLE:
                style = _STATE_STYLES[snap.job.state]
                message = snap.job.error or snap.job.state.name.capitalize()
                return Text(message, style=style)
            return Text("No results yet.", style="dim")

        records = snap.result_set.records
        if not records:
            return Text("Search returned no results.", style="dim")
        if snap.view_mode is ViewMode.RAW:
            return self._render_raw(snap)
        height = self._visible_height()
        self._ensure_visible(snap.selected, height)

        match_records = {
            snap.result_set.record_for_line(row) for row, _s, _e in snap.matches
        }
        width = max(10, self.content_region.width - 8)
        text = Text(no_wrap=True, overflow="ellipsis")
        end = min(len(records), self._scroll_top + height)
        for idx in range(self._scroll_top, end):
            record = records[idx]
            summary = record.get("_raw")
            if not isinstance(summary, str):
                summary = json.dumps(record, ensure_ascii=False)
            summary = summary.replace("\n", " ")[:width]
            style = "reverse" if idx == snap.selected else ""
            marker = "*" if idx in match_records else " "
            if idx > self._scroll_top:
                text.append("\n")
            text.append(f"{marker}{idx + 1:>5} ", style="dim")
            text.append(summary, style=style)
        return text

    def _render_raw(self, snap: SessionSnapshot) -> RenderableType:
        """Field-per-line view starting at the selected record."""
        records = snap.result_set.records
        height = self._visible_height()
        rule = "-" * max(10, self.content_region.width)
        text = Text(no_wrap=True, overflow="ellipsis")
        lines = 0
        for idx in range(snap.selected, len(records)):
            if lines >= height:
                break
            if idx > snap.selected:
                text.append(f"\n{rule}\n", style="dim")
                lines += 1
            text.append(f"#{idx + 1}", style="bold reverse" if idx == snap.selected else "bold")
            lines += 1
            for key, value in display_fields(records[idx]):
                text.append("\n")
                text.append(f"{key}: ", style="bold cyan")
                text.append(value.replace("\n", " "))
                lines += 1
        return text


class DetailPane(SnapshotView):
    FOCUS = FocusTarget.DETAIL

    detail_text: str = ""

    def show_detail(self, snapshot: SessionSnapshot, detail_text: str) -> None:
        self.detail_text = detail_text
        self.show(snapshot)

    def _update_title(self, snapshot: SessionSnapshot) -> None:
        self.border_title = "Detail"
        self.border_subtitle = snapshot.job.share_url or ""

    def render(self) -> RenderableType:
        snap = self.snapshot
        if snap is None or not self.detail_text:
            return Text("Select an event...", style="dim")
        height = self._visible_height()
        first = snap.detail_scroll + 1
        return Syntax(
            self.detail_text,
            "json",
            theme="ansi_dark",
            line_range=(first, first + height - 1),
            word_wrap=True,
            background_color="default",
        )


class PromptLine(SnapshotView):
    def render(self) -> RenderableType:
        snap = self.snapshot
        if snap is None:
            return Text("")
        prompt = snap.prompt
        if prompt is Prompt.SEARCH_PATTERN:
            return Text.assemble(("/", "bold"), snap.prompt_text, ("_", "blink"))
        if prompt is Prompt.SAVE_NAME:
            return Text.assemble(("Save as: ", "bold"), snap.prompt_text, ("_", "blink"))
        if prompt is Prompt.CONFIRM_OVERWRITE:
            return Text("[y] overwrite  [n] cancel  [r] rename", style="bold")
        if prompt is Prompt.LOAD_SEARCH:
            text = Text()
            for i, name in enumerate(snap.saved_names):
                if i:
                    text.append("  ")
                text.append(name, style="reverse" if i == snap.saved_index else "")
            return text
        return Text("")


class StatusBar(SnapshotView):
    def render(self) -> RenderableType:
        snap = self.snapshot
        if snap is None:
            return Text("")
        state = snap.job.state
        return Text.assemble(
            (f" {state.name} ", f"{_STATE_STYLES[state]} reverse"),
            " ",
            snap.status,
        )
