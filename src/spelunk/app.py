"""Terminal client for running Splunk searches."""

from __future__ import annotations

import argparse
import logging
import sys

from textual.app import App, ComposeResult, SuspendNotSupported
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Static

from spelunk.client import SplunkClient
from spelunk.config import Config, run_wizard, save_theme
from spelunk.effects import (
    TRANSPORT_EFFECTS,
    ApplyTheme,
    EditExternally,
    Effect,
    OpenUrl,
    Quit,
)
from spelunk.errors import ConfigError, ExternalEditorFailure
from spelunk.events import (
    ExternalEditFailed,
    ExternalEditFinished,
    KeyInput,
    PaneClicked,
    PollTick,
    WheelScrolled,
)
from spelunk.external import edit_text
from spelunk.jobs import JobLifecycle
from spelunk.logs import setup_logging
from spelunk.runner import perform
from spelunk.session import Prompt, SessionController, ViewMode
from spelunk.storage import SavedSearchStore
from spelunk.widgets import (
    DetailPane,
    PromptLine,
    QueryEditor,
    ResultList,
    SnapshotView,
    StatusBar,
    Workspace,
)

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "[b]Global[/b]   Tab cycle focus  ^K kill job  ^R clear results  ^S save search"
    "  ^L load search  ^T theme  F1 help  ^Q quit\n"
    "[b]Editor[/b]   Enter run  Shift+Enter/^J newline  Esc leave  ^V Vim/Standard"
    "  ^X external editor\n"
    "[b]Vim[/b]      h j k l  0 $ ^  i a I A o O  x  Esc -> NORMAL\n"
    "[b]Results[/b]  j k PgUp PgDn g G  h l panes  e edit  / regex search  n N next/prev"
    "  v raw/table view  E open job URL  y show URL  ^X view JSON  q quit\n"
    "[b]Mouse[/b]    click a pane to focus it, wheel to scroll it"
)


class SpelunkApp(App):
    """TUI app that drives a :class:`SessionController`."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #workspace {
        height: 1fr;
    }
    #editor {
        height: 7;
        border: round $panel;
        padding: 0 1;
    }
    #content {
        height: 1fr;
    }
    #results {
        width: 1fr;
        border: round $panel;
    }
    #detail {
        width: 1fr;
        border: round $panel;
        padding: 0 1;
    }
    #detail.hidden {
        display: none;
    }
    .focused {
        border: round $accent;
    }
    #prompt-line {
        height: 1;
        padding: 0 1;
    }
    #status-bar {
        height: 1;
        background: $surface;
    }
    #help-panel {
        display: none;
        height: auto;
        padding: 0 1;
        color: $text-muted;
        background: $surface;
        border-top: solid $accent 50%;
    }
    #help-panel.visible {
        display: block;
    }
    """

    TITLE = "spelunk"
    BINDINGS = []
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        config: Config,
        client: SplunkClient | None = None,
        store: SavedSearchStore | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.config = config
        self.client = client or SplunkClient(
            config.base_url,
            config.token,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
        )
        self.controller = SessionController(
            jobs=JobLifecycle(share_url=self.client.share_url),
            store=store or SavedSearchStore(),
            theme=config.theme,
        )

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Workspace(id="workspace"):
            yield QueryEditor(id="editor")
            with Horizontal(id="content"):
                yield ResultList(id="results")
                yield DetailPane(id="detail")
        yield PromptLine(id="prompt-line")
        yield StatusBar(id="status-bar")
        with Vertical(id="help-panel"):
            yield Static(HELP_TEXT, id="help-text")

    def on_mount(self) -> None:
        if self.controller.theme in self.available_themes:
            self.theme = self.controller.theme
        self.query_one("#workspace").focus()
        self.set_interval(self.config.poll_interval, self._on_poll_timer)
        self._refresh_view()

    async def on_unmount(self) -> None:
        await self.client.aclose()

    # -- Event plumbing ----------------------------------------------------

    def on_workspace_key_pressed(self, message: Workspace.KeyPressed) -> None:
        self._dispatch(KeyInput(message.key, message.character))

    def on_snapshot_view_clicked(self, message: SnapshotView.Clicked) -> None:
        self._dispatch(PaneClicked(message.pane))

    def on_snapshot_view_scrolled(self, message: SnapshotView.Scrolled) -> None:
        self._dispatch(WheelScrolled(message.pane, message.delta))

    def _on_poll_timer(self) -> None:
        self._dispatch(PollTick())

    def _dispatch(self, event) -> None:
        for effect in self.controller.dispatch(event):
            self._execute(effect)
        self._refresh_view()

    def _execute(self, effect: Effect) -> None:
        if isinstance(effect, TRANSPORT_EFFECTS):
            self.run_worker(self._perform(effect), group="transport", exit_on_error=False)
        elif isinstance(effect, EditExternally):
            self._edit_externally(effect)
        elif isinstance(effect, OpenUrl):
            self.open_url(effect.url)
        elif isinstance(effect, ApplyTheme):
            self._apply_theme(effect.name)
        elif isinstance(effect, Quit):
            self.exit()

    async def _perform(self, effect: Effect) -> None:
        event = await perform(effect, self.client, self.config.result_count)
        self._dispatch(event)

    def _edit_externally(self, effect: EditExternally) -> None:
        # Blocks the whole loop until the editor exits.
        try:
            text = edit_text(effect.text, suffix=effect.suffix, suspend=self.suspend)
        except (ExternalEditorFailure, SuspendNotSupported) as exc:
            self.controller.post(ExternalEditFailed(str(exc)))
        else:
            self.controller.post(ExternalEditFinished(text, reload=effect.reload))
        for follow_up in self.controller.process_pending():
            self._execute(follow_up)
        self.refresh(layout=True)

    def _apply_theme(self, name: str) -> None:
        if name not in self.available_themes:
            logger.warning("unknown theme %s", name)
            return
        self.theme = name
        try:
            save_theme(name)
        except ConfigError as exc:
            logger.warning("cannot persist theme: %s", exc)

    # -- Rendering ---------------------------------------------------------

    def _refresh_view(self) -> None:
        snapshot = self.controller.snapshot()
        self.query_one("#editor", QueryEditor).show(snapshot)
        self.query_one("#results", ResultList).show(snapshot)
        detail = self.query_one("#detail", DetailPane)
        detail.set_class(snapshot.view_mode is ViewMode.RAW, "hidden")
        detail.show_detail(snapshot, self.controller.detail_text())
        self.query_one("#prompt-line", PromptLine).show(snapshot)
        self.query_one("#status-bar", StatusBar).show(snapshot)
        self.query_one("#help-panel").set_class(snapshot.prompt is Prompt.HELP, "visible")
        job = snapshot.job
        self.sub_title = job.sid or ""


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="spelunk",
        description="Run Splunk searches from the terminal",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["config"],
        help="'config' runs the configuration wizard",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="write the log here instead of the user log directory",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="log at DEBUG level",
    )
    args = parser.parse_args()

    if args.command == "config":
        try:
            run_wizard()
        except ConfigError as exc:
            print(f"spelunk: {exc}", file=sys.stderr)
            sys.exit(1)
        return

    setup_logging(args.log_file, level=logging.DEBUG if args.debug else logging.INFO)
    logger.info("application started")

    try:
        config = Config.load()
        config.validate()
    except ConfigError as exc:
        print(f"spelunk: {exc}", file=sys.stderr)
        sys.exit(1)
    logger.info("loaded config url: %s", config.base_url)

    app = SpelunkApp(config)
    app.run()


if __name__ == "__main__":
    main()
