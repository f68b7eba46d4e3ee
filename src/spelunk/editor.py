"""Modal query editor engine (Standard and Vim-like editing)."""

from __future__ import annotations

from enum import Enum, auto

from spelunk.buffer import Direction, QueryBuffer


class EditorMode(Enum):
    STANDARD = auto()
    VIM_NORMAL = auto()
    VIM_INSERT = auto()

    @property
    def is_vim(self) -> bool:
        return self is not EditorMode.STANDARD

    @property
    def label(self) -> str:
        if self is EditorMode.STANDARD:
            return "STANDARD"
        if self is EditorMode.VIM_NORMAL:
            return "NORMAL"
        return "INSERT"


class EditorAction(Enum):
    """Requests the editor hands back to its owner."""

    SUBMIT = auto()
    EXTERNAL_EDIT = auto()
    LEAVE = auto()


_ARROWS = {
    "left": Direction.LEFT,
    "right": Direction.RIGHT,
    "up": Direction.UP,
    "down": Direction.DOWN,
}

_VIM_MOTIONS = {
    "h": Direction.LEFT,
    "j": Direction.DOWN,
    "k": Direction.UP,
    "l": Direction.RIGHT,
}

NEWLINE_KEYS = ("shift+enter", "ctrl+j")


class ModalEditor:
    """Keystroke interpreter over a :class:`QueryBuffer`.

    Supported keys:
      ANY:      ctrl+v toggle Standard/Vim, ctrl+x external editor, Enter submit
      STANDARD: typing, Backspace, shift+Enter / ctrl+j newline, arrows,
                Home/End, Escape leaves the editor
      NORMAL:   h j k l  0 $ ^  i a I A o O  x, Escape leaves the editor
      INSERT:   as STANDARD, Escape returns to NORMAL
    """

    def __init__(
        self, initial_content: str = "", *, mode: EditorMode = EditorMode.STANDARD
    ) -> None:
        self.buffer = QueryBuffer(initial_content)
        self._mode: EditorMode = mode
        self.status_msg: str = ""

    # -- Public API --------------------------------------------------------

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def lines(self) -> list[str]:
        return self.buffer.lines

    @property
    def cursor(self) -> tuple[int, int]:
        return self.buffer.cursor_row, self.buffer.cursor_col

    def get_content(self) -> str:
        return self.buffer.get_content()

    def set_content(self, content: str) -> None:
        self.buffer.set_content(content)
        self._clamp_cursor()

    def scroll(self, delta: int) -> None:
        """Mouse wheel: move the cursor *delta* lines, clamped."""
        self.buffer.cursor_row += delta
        self._clamp_cursor()

    def toggle_vim(self) -> EditorMode:
        if self._mode.is_vim:
            self._mode = EditorMode.STANDARD
            self.status_msg = "Switched to Standard Mode."
        else:
            self._mode = EditorMode.VIM_NORMAL
            self.status_msg = "Switched to Vim Mode."
        self._clamp_cursor()
        return self._mode

    def handle_key(self, event) -> EditorAction | None:
        """Apply one key event; return an action for the owner, if any."""
        key = event.key
        if key == "ctrl+v":
            self.toggle_vim()
            return None
        if key == "ctrl+x":
            return EditorAction.EXTERNAL_EDIT

        if self._mode is EditorMode.STANDARD:
            action = self._handle_standard(event)
        elif self._mode is EditorMode.VIM_NORMAL:
            action = self._handle_normal(event)
        elif self._mode is EditorMode.VIM_INSERT:
            action = self._handle_insert(event)
        else:
            raise ValueError(f"unknown editor mode: {self._mode}")

        self._clamp_cursor()
        return action

    # -- Helpers -----------------------------------------------------------

    def _clamp_cursor(self) -> None:
        self.buffer.clamp(block_cursor=self._mode is EditorMode.VIM_NORMAL)

    def _enter_insert(self) -> None:
        self._mode = EditorMode.VIM_INSERT
        self.status_msg = "-- INSERT --"

    # -- STANDARD ----------------------------------------------------------

    def _handle_standard(self, event) -> EditorAction | None:
        if event.key == "escape":
            return EditorAction.LEAVE
        return self._handle_text_entry(event)

    # -- NORMAL ------------------------------------------------------------

    def _handle_normal(self, event) -> EditorAction | None:
        key = event.key
        char = event.character or ""
        buf = self.buffer

        if key == "escape":
            return EditorAction.LEAVE
        if key == "enter":
            return EditorAction.SUBMIT

        if char in _VIM_MOTIONS:
            buf.move_cursor(_VIM_MOTIONS[char])
        elif key in _ARROWS:
            buf.move_cursor(_ARROWS[key])
        elif char == "0" or key == "home":
            buf.move_line_start()
        elif char == "$" or key == "end":
            buf.cursor_col = max(0, len(buf.current_line) - 1)
        elif char == "^":
            buf.move_first_non_blank()

        # enter insert mode
        elif char == "i":
            self._enter_insert()
        elif char == "I":
            buf.move_first_non_blank()
            self._enter_insert()
        elif char == "a":
            if buf.current_line:
                buf.cursor_col += 1
            self._enter_insert()
        elif char == "A":
            buf.move_line_end()
            self._enter_insert()
        elif char == "o":
            buf.open_line(below=True)
            self._enter_insert()
        elif char == "O":
            buf.open_line(below=False)
            self._enter_insert()

        elif char == "x":
            buf.delete_under_cursor()
        return None

    # -- INSERT ------------------------------------------------------------

    def _handle_insert(self, event) -> EditorAction | None:
        if event.key == "escape":
            self._mode = EditorMode.VIM_NORMAL
            self.buffer.cursor_col = max(0, self.buffer.cursor_col - 1)
            self.status_msg = "-- NORMAL --"
            return None
        return self._handle_text_entry(event)

    def _handle_text_entry(self, event) -> EditorAction | None:
        key = event.key
        char = event.character
        buf = self.buffer

        if key in NEWLINE_KEYS:
            buf.insert_char("\n")
            return None
        if key == "enter":
            return EditorAction.SUBMIT
        if key == "backspace":
            buf.delete_char()
            return None
        if key in _ARROWS:
            buf.move_cursor(_ARROWS[key])
            return None
        if key == "home":
            buf.move_line_start()
            return None
        if key == "end":
            buf.move_line_end()
            return None

        if char and char.isprintable():
            buf.insert_char(char)
        return None
