"""Which pane receives keystrokes, and how focus moves between panes."""

from __future__ import annotations

from enum import Enum, auto


class FocusTarget(Enum):
    EDITOR = auto()
    LIST = auto()
    DETAIL = auto()


CYCLE_ORDER: tuple[FocusTarget, ...] = (
    FocusTarget.EDITOR,
    FocusTarget.LIST,
    FocusTarget.DETAIL,
)

# Horizontal neighbours. The editor has none: it is reached only by
# cycling or by an explicit "enter edit".
_LEFT = {FocusTarget.DETAIL: FocusTarget.LIST}
_RIGHT = {FocusTarget.LIST: FocusTarget.DETAIL}


class FocusNavigator:
    def __init__(self, start: FocusTarget = FocusTarget.EDITOR) -> None:
        self.current: FocusTarget = start

    def cycle_forward(self) -> FocusTarget:
        idx = CYCLE_ORDER.index(self.current)
        self.current = CYCLE_ORDER[(idx + 1) % len(CYCLE_ORDER)]
        return self.current

    def move_left(self) -> FocusTarget:
        self.current = _LEFT.get(self.current, self.current)
        return self.current

    def move_right(self) -> FocusTarget:
        self.current = _RIGHT.get(self.current, self.current)
        return self.current

    def enter_edit(self) -> FocusTarget:
        self.current = FocusTarget.EDITOR
        return self.current

    def focus(self, target: FocusTarget) -> FocusTarget:
        self.current = target
        return self.current

    @property
    def editing(self) -> bool:
        return self.current is FocusTarget.EDITOR
