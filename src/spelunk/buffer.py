"""Editable query text and cursor position."""

from __future__ import annotations

from enum import Enum, auto


class Direction(Enum):
    LEFT = auto()
    RIGHT = auto()
    UP = auto()
    DOWN = auto()


class QueryBuffer:
    """Ordered text lines plus a zero-based ``(cursor_row, cursor_col)``.

    Every operation leaves ``0 <= cursor_row < len(lines)`` and
    ``0 <= cursor_col <= len(lines[cursor_row])``.
    """

    def __init__(self, content: str = "") -> None:
        self.lines: list[str] = content.split("\n") if content else [""]
        self.cursor_row: int = 0
        self.cursor_col: int = 0

    # -- Content -----------------------------------------------------------

    def get_content(self) -> str:
        return "\n".join(self.lines)

    def set_content(self, content: str) -> None:
        """Replace the text and put the cursor at its end."""
        self.lines = content.split("\n") if content else [""]
        self.cursor_row = len(self.lines) - 1
        self.cursor_col = len(self.lines[-1])

    def is_blank(self) -> bool:
        return not self.get_content().strip()

    @property
    def current_line(self) -> str:
        return self.lines[self.cursor_row]

    # -- Mutation ----------------------------------------------------------

    def insert_char(self, char: str) -> None:
        if char == "\n":
            line = self.lines[self.cursor_row]
            self.lines[self.cursor_row] = line[: self.cursor_col]
            self.lines.insert(self.cursor_row + 1, line[self.cursor_col :])
            self.cursor_row += 1
            self.cursor_col = 0
            return
        line = self.lines[self.cursor_row]
        self.lines[self.cursor_row] = (
            line[: self.cursor_col] + char + line[self.cursor_col :]
        )
        self.cursor_col += 1

    def insert_text(self, text: str) -> None:
        for char in text.replace("\r\n", "\n"):
            self.insert_char(char)

    def delete_char(self) -> None:
        """Backspace: remove the character before the cursor."""
        if self.cursor_col > 0:
            line = self.lines[self.cursor_row]
            self.lines[self.cursor_row] = (
                line[: self.cursor_col - 1] + line[self.cursor_col :]
            )
            self.cursor_col -= 1
        elif self.cursor_row > 0:
            prev = self.lines[self.cursor_row - 1]
            self.cursor_col = len(prev)
            self.lines[self.cursor_row - 1] = prev + self.lines[self.cursor_row]
            self.lines.pop(self.cursor_row)
            self.cursor_row -= 1

    def delete_under_cursor(self) -> None:
        line = self.lines[self.cursor_row]
        if line and self.cursor_col < len(line):
            self.lines[self.cursor_row] = (
                line[: self.cursor_col] + line[self.cursor_col + 1 :]
            )

    def open_line(self, below: bool = True) -> None:
        """Insert an empty line below (or above) and move the cursor onto it."""
        if below:
            self.cursor_row += 1
        self.lines.insert(self.cursor_row, "")
        self.cursor_col = 0

    # -- Movement ----------------------------------------------------------

    def move_cursor(self, direction: Direction) -> None:
        if direction is Direction.LEFT:
            self.cursor_col -= 1
        elif direction is Direction.RIGHT:
            self.cursor_col += 1
        elif direction is Direction.UP:
            self.cursor_row -= 1
        elif direction is Direction.DOWN:
            self.cursor_row += 1
        self.clamp()

    def move_line_start(self) -> None:
        self.cursor_col = 0

    def move_first_non_blank(self) -> None:
        line = self.lines[self.cursor_row]
        self.cursor_col = len(line) - len(line.lstrip())

    def move_line_end(self) -> None:
        self.cursor_col = len(self.lines[self.cursor_row])

    def clamp(self, block_cursor: bool = False) -> None:
        """Pull the cursor back inside the text.

        With *block_cursor* the column stops on the last character rather
        than after it, as in Vim normal mode.
        """
        self.cursor_row = max(0, min(self.cursor_row, len(self.lines) - 1))
        line_len = len(self.lines[self.cursor_row])
        if block_cursor:
            max_col = max(0, line_len - 1)
        else:
            max_col = line_len
        self.cursor_col = max(0, min(self.cursor_col, max_col))
