"""Session controller: routes events to the engine components.

Input events and job outcomes go through one FIFO queue and are handled
strictly one at a time. Components are only driven through their public
operations; whatever has to touch the outside world (HTTP, the external
editor, the browser, the theme) comes back to the caller as effects.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto

from spelunk.editor import EditorAction, EditorMode, ModalEditor
from spelunk.effects import ApplyTheme, EditExternally, Effect, OpenUrl, Quit
from spelunk.errors import (
    InvalidPattern,
    InvalidQuery,
    InvalidTransition,
    NoMatches,
    PersistenceError,
)
from spelunk.events import (
    ExternalEditFailed,
    ExternalEditFinished,
    JobCreated,
    JobCreateFailed,
    KillFinished,
    PaneClicked,
    PollTick,
    ResultsFailed,
    ResultsReceived,
    StatusFailed,
    StatusReceived,
    WheelScrolled,
)
from spelunk.focus import FocusNavigator, FocusTarget
from spelunk.jobs import Job, JobLifecycle, JobState
from spelunk.models import ResultSet, expand_json
from spelunk.search import ResultSearch
from spelunk.storage import SavedSearchStore

logger = logging.getLogger(__name__)

THEMES: tuple[str, ...] = ("textual-dark", "nord", "gruvbox", "tokyo-night", "dracula")

QUIT_KEYS = ("ctrl+q", "ctrl+c")
HELP_KEYS = ("f1", "ctrl+slash", "ctrl+underscore", "ctrl+question_mark")
PAGE_SIZE = 10

WELCOME = "Press 'e' to edit the search, Tab to cycle focus, F1 for help, 'q' to quit."


class Prompt(Enum):
    NONE = auto()
    SAVE_NAME = auto()
    CONFIRM_OVERWRITE = auto()
    LOAD_SEARCH = auto()
    SEARCH_PATTERN = auto()
    HELP = auto()


class ViewMode(Enum):
    """How the result area shows records."""

    TABLE = auto()
    RAW = auto()

    @property
    def label(self) -> str:
        return "Table" if self is ViewMode.TABLE else "Raw"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for one render pass."""

    lines: tuple[str, ...]
    cursor: tuple[int, int]
    editor_mode: EditorMode
    job: Job
    result_set: ResultSet | None
    pattern: str | None
    matches: tuple[tuple[int, int, int], ...]
    match_index: int
    focus: FocusTarget
    view_mode: ViewMode
    prompt: Prompt
    prompt_text: str
    saved_names: tuple[str, ...]
    saved_index: int
    saved_name: str | None
    selected: int
    detail_scroll: int
    status: str
    theme: str


class SessionController:
    def __init__(
        self,
        editor: ModalEditor | None = None,
        jobs: JobLifecycle | None = None,
        search: ResultSearch | None = None,
        focus: FocusNavigator | None = None,
        store: SavedSearchStore | None = None,
        *,
        themes: tuple[str, ...] = THEMES,
        theme: str | None = None,
    ) -> None:
        self.editor = editor or ModalEditor()
        self.jobs = jobs or JobLifecycle()
        self.search = search or ResultSearch()
        self.focus = focus or FocusNavigator()
        self.store = store or SavedSearchStore()
        self.events: deque = deque()

        self.status_msg: str = WELCOME
        self.prompt: Prompt = Prompt.NONE
        self.prompt_text: str = ""
        self.selected: int = 0
        self.detail_scroll: int = 0
        self.view_mode: ViewMode = ViewMode.TABLE
        self.should_quit: bool = False
        # Saved search state
        self.saved_name: str | None = None
        self.saved_names: list[str] = []
        self.saved_index: int = 0
        self._pending_save_name: str = ""
        # Theme; a configured theme outside the list joins the cycle
        if theme and theme not in themes:
            themes = (*themes, theme)
        self.themes = themes
        self.theme_index: int = themes.index(theme) if theme in themes else 0

    # -- Queue -------------------------------------------------------------

    def post(self, event) -> None:
        self.events.append(event)

    def process_pending(self) -> list[Effect]:
        """Handle queued events in arrival order, each to completion."""
        effects: list[Effect] = []
        while self.events:
            effects.extend(self._handle(self.events.popleft()))
        return effects

    def dispatch(self, event) -> list[Effect]:
        self.post(event)
        return self.process_pending()

    def _handle(self, event) -> list[Effect]:
        if isinstance(event, PollTick):
            return self._on_tick()
        if isinstance(event, JobCreated):
            return self._on_job_created(event)
        if isinstance(event, JobCreateFailed):
            return self._on_job_create_failed(event)
        if isinstance(event, StatusReceived):
            return self._on_status(event)
        if isinstance(event, StatusFailed):
            return self._on_status_failed(event)
        if isinstance(event, ResultsReceived):
            return self._on_results(event)
        if isinstance(event, ResultsFailed):
            return self._on_results_failed(event)
        if isinstance(event, KillFinished):
            return self._on_kill_finished(event)
        if isinstance(event, ExternalEditFinished):
            return self._on_external_edit(event)
        if isinstance(event, ExternalEditFailed):
            self.status_msg = f"External editor failed: {event.error}"
            logger.error("external editor failed: %s", event.error)
            return []
        if isinstance(event, PaneClicked):
            return self._on_pane_clicked(event)
        if isinstance(event, WheelScrolled):
            return self._on_wheel(event)
        if hasattr(event, "key"):
            return self._handle_key(event)
        raise TypeError(f"unknown event: {event!r}")

    # -- Snapshot ----------------------------------------------------------

    @property
    def theme(self) -> str:
        return self.themes[self.theme_index]

    @property
    def result_set(self) -> ResultSet | None:
        return self.jobs.result_set

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            lines=tuple(self.editor.lines),
            cursor=self.editor.cursor,
            editor_mode=self.editor.mode,
            job=self.jobs.snapshot(),
            result_set=self.jobs.result_set,
            pattern=self.search.pattern,
            matches=tuple(self.search.matches),
            match_index=self.search.index,
            focus=self.focus.current,
            view_mode=self.view_mode,
            prompt=self.prompt,
            prompt_text=self.prompt_text,
            saved_names=tuple(self.saved_names),
            saved_index=self.saved_index,
            saved_name=self.saved_name,
            selected=self.selected,
            detail_scroll=self.detail_scroll,
            status=self.status_msg,
            theme=self.theme,
        )

    # =====================================================================
    # Job outcomes
    # =====================================================================

    def _is_current(self, generation: int) -> bool:
        return generation == self.jobs.generation

    def _on_tick(self) -> list[Effect]:
        if self.jobs.state is JobState.RUNNING:
            return self.jobs.poll()
        if self.jobs.needs_fetch:
            return self.jobs.fetch_results()
        return []

    def _on_job_created(self, event: JobCreated) -> list[Effect]:
        was_submitting = (
            self._is_current(event.generation)
            and self.jobs.state is JobState.SUBMITTING
        )
        effects = self.jobs.on_submit_result(event.generation, sid=event.sid)
        if was_submitting and self.jobs.state is JobState.RUNNING:
            self.status_msg = f"Job created (SID: {event.sid}). Running..."
        return effects

    def _on_job_create_failed(self, event: JobCreateFailed) -> list[Effect]:
        effects = self.jobs.on_submit_result(event.generation, error=event.error)
        if self._is_current(event.generation) and self.jobs.state is JobState.FAILED:
            logger.error("search creation failed: %s", event.error)
            self.status_msg = f"Search failed: {event.error}"
        return effects

    def _on_status(self, event: StatusReceived) -> list[Effect]:
        was_running = (
            self._is_current(event.generation) and self.jobs.state is JobState.RUNNING
        )
        self.jobs.on_poll_result(event.generation, status=event.status)
        if not was_running:
            return []
        job = self.jobs.job
        if job.state is JobState.DONE:
            self.status_msg = "Job done. Fetching results..."
            return self.jobs.fetch_results()
        if job.state is JobState.FAILED:
            self.status_msg = f"Search failed: {job.error}"
        else:
            self.status_msg = (
                f"Job running... {job.dispatch_state} | "
                f"{job.event_count} events | {job.duration:.1f}s"
            )
        return []

    def _on_status_failed(self, event: StatusFailed) -> list[Effect]:
        was_running = (
            self._is_current(event.generation) and self.jobs.state is JobState.RUNNING
        )
        self.jobs.on_poll_result(event.generation, error=event.error)
        if not was_running:
            return []
        if self.jobs.state is JobState.FAILED:
            self.status_msg = f"Search failed: {event.error}"
        else:
            self.status_msg = f"Status check failed, retrying: {event.error}"
        return []

    def _on_results(self, event: ResultsReceived) -> list[Effect]:
        result_set = self.jobs.on_results(event.generation, records=event.records)
        if result_set is None:
            return []
        self.search.load(result_set)
        self.selected = 0
        self.detail_scroll = 0
        self.status_msg = f"Loaded {len(result_set)} results."
        return []

    def _on_results_failed(self, event: ResultsFailed) -> list[Effect]:
        if not self._is_current(event.generation):
            return []
        self.jobs.on_results(event.generation, error=event.error)
        logger.error("failed to fetch results: %s", event.error)
        if self.jobs.fetch_exhausted:
            self.status_msg = f"Failed to fetch results: {event.error}"
        else:
            self.status_msg = f"Failed to fetch results, retrying: {event.error}"
        return []

    def _on_kill_finished(self, event: KillFinished) -> list[Effect]:
        if event.error:
            logger.warning("remote cancel of %s failed: %s", event.sid, event.error)
            self.status_msg = f"Job killed locally; remote cancel failed: {event.error}"
        else:
            logger.info("job %s cancelled", event.sid)
        return []

    def _on_external_edit(self, event: ExternalEditFinished) -> list[Effect]:
        if not event.reload:
            self.status_msg = "Closed results viewer."
            return []
        text = event.text[:-1] if event.text.endswith("\n") else event.text
        self.editor.set_content(text)
        self.status_msg = "Query updated from editor."
        return []

    # =====================================================================
    # Key handling
    # =====================================================================

    def _handle_key(self, event) -> list[Effect]:
        key = event.key

        if self.prompt is not Prompt.NONE:
            return self._handle_prompt(event)

        # Global commands, regardless of focus
        if key in QUIT_KEYS:
            return self._quit()
        if key in HELP_KEYS:
            self.prompt = Prompt.HELP
            return []
        if key == "ctrl+t":
            return self._cycle_theme()
        if key == "tab":
            self.focus.cycle_forward()
            if self._detail_hidden():
                self.focus.cycle_forward()
            return []
        if key == "ctrl+k":
            return self._kill()
        if key == "ctrl+r":
            return self._clear_results()
        if key == "ctrl+s":
            self._initiate_save()
            return []
        if key == "ctrl+l":
            self._initiate_load()
            return []

        target = self.focus.current
        if target is FocusTarget.EDITOR:
            return self._handle_editor(event)
        elif target is FocusTarget.LIST:
            return self._handle_content(event, FocusTarget.LIST)
        elif target is FocusTarget.DETAIL:
            return self._handle_content(event, FocusTarget.DETAIL)
        raise ValueError(f"unknown focus target: {target}")

    def _quit(self) -> list[Effect]:
        self.should_quit = True
        return [Quit()]

    # -- EDITOR ------------------------------------------------------------

    def _handle_editor(self, event) -> list[Effect]:
        action = self.editor.handle_key(event)
        if self.editor.status_msg:
            self.status_msg = self.editor.status_msg
            self.editor.status_msg = ""

        if action is EditorAction.SUBMIT:
            return self._submit()
        if action is EditorAction.EXTERNAL_EDIT:
            self.status_msg = "Editing query in external editor..."
            return [EditExternally(self.editor.get_content(), suffix=".spl")]
        if action is EditorAction.LEAVE:
            self.focus.focus(FocusTarget.LIST)
            self.status_msg = WELCOME
        return []

    def _submit(self) -> list[Effect]:
        query = self.editor.get_content()
        effects: list[Effect] = []
        if self.jobs.is_active and query.strip():
            effects.extend(self.jobs.kill())
        try:
            effects.extend(self.jobs.submit(query))
        except InvalidQuery:
            self.status_msg = "Cannot submit an empty search."
            return effects
        logger.info("starting search: %s", query)
        self.search.clear()
        self.selected = 0
        self.detail_scroll = 0
        self.focus.focus(FocusTarget.LIST)
        self.status_msg = f"Creating search job for '{query}'..."
        return effects

    # -- LIST / DETAIL -----------------------------------------------------

    def _handle_content(self, event, target: FocusTarget) -> list[Effect]:
        key = event.key
        char = event.character or ""

        if char == "q":
            return self._quit()
        if char in ("e", "i"):
            self.focus.enter_edit()
            self.status_msg = "Editing... Press Enter to search, Esc to leave."
        elif char == "h" or key == "left":
            self.focus.move_left()
        elif char == "l" or key == "right":
            if not self._detail_hidden():
                self.focus.move_right()
        elif key == "enter" and target is FocusTarget.LIST:
            if not self._detail_hidden():
                self.focus.move_right()
        elif char == "v":
            self._toggle_view()
        elif char == "j" or key == "down":
            self._scroll(target, 1)
        elif char == "k" or key == "up":
            self._scroll(target, -1)
        elif key in ("pagedown", "ctrl+d"):
            self._scroll(target, PAGE_SIZE)
        elif key in ("pageup", "ctrl+u"):
            self._scroll(target, -PAGE_SIZE)
        elif char == "g" or key == "home":
            self._scroll(target, -self._scroll_extent(target))
        elif char == "G" or key == "end":
            self._scroll(target, self._scroll_extent(target) - 1)

        # local search
        elif char == "/":
            if self.result_set is None:
                self.status_msg = "No results to search."
            else:
                self.prompt = Prompt.SEARCH_PATTERN
                self.prompt_text = ""
                self.search.reset_history_position()
                self.status_msg = "Enter regex search query..."
        elif char == "n":
            self._cycle_match(forward=True)
        elif char == "N":
            self._cycle_match(forward=False)

        # job links and external viewer
        elif char == "E":
            return self._open_job_url()
        elif char == "y":
            url = self.jobs.job.share_url
            self.status_msg = url if url else "No active job URL."
        elif key == "ctrl+x":
            return self._open_results_in_editor()
        return []

    def _record_count(self) -> int:
        return len(self.result_set) if self.result_set is not None else 0

    def selected_record(self) -> dict | None:
        if self.result_set is None or not self.result_set.records:
            return None
        return self.result_set.records[min(self.selected, len(self.result_set) - 1)]

    def detail_text(self) -> str:
        """Pretty JSON of the selected record, as shown in the detail pane.

        String fields that themselves hold JSON are shown parsed.
        """
        record = self.selected_record()
        if record is None:
            return ""
        return json.dumps(expand_json(record), indent=2, ensure_ascii=False)

    def _scroll_extent(self, target: FocusTarget) -> int:
        if target is FocusTarget.LIST:
            return self._record_count()
        return self.detail_text().count("\n") + 1

    def _scroll(self, target: FocusTarget, delta: int) -> None:
        count = self._scroll_extent(target)
        if target is FocusTarget.LIST:
            if not count:
                return
            new = max(0, min(self.selected + delta, count - 1))
            if new != self.selected:
                self.selected = new
                self.detail_scroll = 0
        else:
            self.detail_scroll = max(0, min(self.detail_scroll + delta, count - 1))

    def _cycle_match(self, forward: bool) -> None:
        try:
            if forward:
                self.search.next()
            else:
                self.search.previous()
        except NoMatches as exc:
            self.status_msg = str(exc)
            return
        self._jump_to_match()

    def _jump_to_match(self) -> None:
        record = self.search.record_index()
        if record is not None:
            self.selected = record
            self.detail_scroll = 0
        self.status_msg = self.search.describe()

    def _open_job_url(self) -> list[Effect]:
        url = self.jobs.job.share_url
        if not url:
            self.status_msg = "No active job URL."
            return []
        if not url.startswith("http"):
            self.status_msg = "Invalid URL."
            return []
        self.status_msg = "Opened URL in browser."
        return [OpenUrl(url)]

    def _open_results_in_editor(self) -> list[Effect]:
        if not self.result_set:
            self.status_msg = "No results to open."
            return []
        self.status_msg = "Opening results in external editor..."
        return [EditExternally(self.result_set.to_json(), suffix=".json", reload=False)]

    # -- View mode ---------------------------------------------------------

    def _detail_hidden(self) -> bool:
        return self.view_mode is ViewMode.RAW

    def _toggle_view(self) -> None:
        if self.view_mode is ViewMode.TABLE:
            self.view_mode = ViewMode.RAW
            if self.focus.current is FocusTarget.DETAIL:
                self.focus.focus(FocusTarget.LIST)
            self.status_msg = "Switched to raw events view."
        else:
            self.view_mode = ViewMode.TABLE
            self.status_msg = "Switched to table view."

    # -- Mouse -------------------------------------------------------------

    def _on_pane_clicked(self, event: PaneClicked) -> list[Effect]:
        if self.prompt is not Prompt.NONE:
            return []
        pane = event.pane
        if pane is FocusTarget.EDITOR:
            if not self.focus.editing:
                self.focus.enter_edit()
                self.status_msg = "Editing... Press Enter to search, Esc to leave."
        elif pane is FocusTarget.DETAIL and self._detail_hidden():
            return []
        else:
            self.focus.focus(pane)
        return []

    def _on_wheel(self, event: WheelScrolled) -> list[Effect]:
        if self.prompt is not Prompt.NONE:
            return []
        if event.pane is FocusTarget.EDITOR:
            self.editor.scroll(event.delta)
        elif not (event.pane is FocusTarget.DETAIL and self._detail_hidden()):
            self._scroll(event.pane, event.delta)
        return []

    # -- Global commands ---------------------------------------------------

    def _cycle_theme(self) -> list[Effect]:
        self.theme_index = (self.theme_index + 1) % len(self.themes)
        self.status_msg = f"Theme: {self.theme}"
        return [ApplyTheme(self.theme)]

    def _kill(self) -> list[Effect]:
        try:
            effects = self.jobs.kill()
        except InvalidTransition:
            self.status_msg = "No running job to kill."
            return []
        self.status_msg = "Job killed."
        return effects

    def _clear_results(self) -> list[Effect]:
        effects: list[Effect] = []
        if self.jobs.is_active:
            effects.extend(self.jobs.kill())
        self.jobs.reset()
        self.search.clear()
        self.selected = 0
        self.detail_scroll = 0
        self.status_msg = "Results cleared."
        return effects

    # =====================================================================
    # Prompts
    # =====================================================================

    def _close_prompt(self, status: str | None = None) -> None:
        self.prompt = Prompt.NONE
        self.prompt_text = ""
        if status is not None:
            self.status_msg = status

    def _handle_prompt(self, event) -> list[Effect]:
        prompt = self.prompt
        if prompt is Prompt.HELP:
            self._handle_help(event)
        elif prompt is Prompt.SEARCH_PATTERN:
            self._handle_search_prompt(event)
        elif prompt is Prompt.SAVE_NAME:
            self._handle_save_name(event)
        elif prompt is Prompt.CONFIRM_OVERWRITE:
            self._handle_confirm_overwrite(event)
        elif prompt is Prompt.LOAD_SEARCH:
            self._handle_load(event)
        return []

    def _edit_prompt_text(self, event) -> bool:
        """Backspace/typing on the prompt line. Returns True if handled."""
        if event.key == "backspace":
            self.prompt_text = self.prompt_text[:-1]
            return True
        char = event.character
        if char and char.isprintable():
            self.prompt_text += char
            return True
        return False

    def _handle_help(self, event) -> None:
        if event.key in ("escape", "enter") or event.key in HELP_KEYS or event.character == "q":
            self._close_prompt()

    # -- Local search ------------------------------------------------------

    def _handle_search_prompt(self, event) -> None:
        key = event.key
        if key == "escape":
            self._close_prompt("Local search cancelled.")
            return
        if key == "enter":
            pattern = self.prompt_text
            self._close_prompt()
            if pattern.strip():
                self._run_local_search(pattern)
            return
        if key == "backspace" and not self.prompt_text:
            self._close_prompt("Local search cancelled.")
            return
        if key == "up":
            previous = self.search.history_prev()
            if previous is not None:
                self.prompt_text = previous
            return
        if key == "down":
            self.prompt_text = self.search.history_next()
            return
        if self._edit_prompt_text(event):
            self.search.reset_history_position()

    def _run_local_search(self, pattern: str) -> None:
        try:
            count = self.search.set_pattern(pattern)
        except InvalidPattern as exc:
            self.status_msg = str(exc)
            return
        if count:
            self._jump_to_match()
        else:
            self.status_msg = f"No matches found for '{pattern}'"

    # -- Save --------------------------------------------------------------

    def _initiate_save(self) -> None:
        if self.editor.buffer.is_blank():
            self.status_msg = "Cannot save empty search."
            return
        if self.saved_name:
            self._ask_overwrite(self.saved_name)
        else:
            self.prompt = Prompt.SAVE_NAME
            self.prompt_text = ""
            self.status_msg = "Enter name for saved search (Enter to save, Esc to cancel):"

    def _ask_overwrite(self, name: str) -> None:
        self._pending_save_name = name
        self.prompt = Prompt.CONFIRM_OVERWRITE
        self.prompt_text = ""
        self.status_msg = f"Overwrite saved search '{name}'? (y/n/r)"

    def _handle_save_name(self, event) -> None:
        key = event.key
        if key == "escape":
            self._close_prompt("Save cancelled.")
            return
        if key == "enter":
            name = self.prompt_text.strip()
            if not name:
                self.status_msg = "Name cannot be empty."
                return
            try:
                exists = self.store.exists(name)
            except PersistenceError as exc:
                self.status_msg = str(exc)
                return
            if exists and name != self.saved_name:
                self._ask_overwrite(name)
            else:
                self._write_saved_search(name, overwrite=exists)
            return
        self._edit_prompt_text(event)

    def _handle_confirm_overwrite(self, event) -> None:
        char = (event.character or "").lower()
        if char == "y":
            self._write_saved_search(self._pending_save_name, overwrite=True)
        elif char == "n" or event.key == "escape":
            self._close_prompt("Save cancelled.")
        elif char == "r":
            self.prompt = Prompt.SAVE_NAME
            self.prompt_text = ""
            self.status_msg = "Enter new name for saved search:"

    def _write_saved_search(self, name: str, overwrite: bool) -> None:
        try:
            self.store.save(name, self.editor.get_content())
        except PersistenceError as exc:
            self._close_prompt(str(exc))
            return
        self.saved_name = name
        if overwrite:
            self._close_prompt(f"Search '{name}' overwritten.")
        else:
            self._close_prompt(f"Search saved as '{name}'.")

    # -- Load --------------------------------------------------------------

    def _initiate_load(self) -> None:
        try:
            names = self.store.list_names()
        except PersistenceError as exc:
            self.status_msg = str(exc)
            return
        if not names:
            self.status_msg = "No saved searches found."
            return
        self.saved_names = names
        self.saved_index = 0
        self.prompt = Prompt.LOAD_SEARCH
        self.status_msg = "Select saved search (Enter to load, Esc to cancel):"

    def _handle_load(self, event) -> None:
        key = event.key
        char = event.character or ""
        count = len(self.saved_names)
        if key == "escape":
            self._close_prompt("Load cancelled.")
        elif char == "j" or key == "down":
            self.saved_index = (self.saved_index + 1) % count
        elif char == "k" or key == "up":
            self.saved_index = (self.saved_index - 1) % count
        elif key == "enter":
            self._load_selected()

    def _load_selected(self) -> None:
        name = self.saved_names[self.saved_index]
        try:
            text = self.store.load(name)
        except PersistenceError as exc:
            self.status_msg = str(exc)
            return
        self.editor.set_content(text)
        self.saved_name = name
        self.focus.enter_edit()
        self._close_prompt(f"Loaded search '{name}'.")
