"""Tests for pane focus navigation."""

from spelunk.focus import FocusNavigator, FocusTarget


class TestFocus:
    def test_starts_in_editor(self):
        nav = FocusNavigator()
        assert nav.current is FocusTarget.EDITOR
        assert nav.editing

    def test_cycle_visits_every_pane(self):
        nav = FocusNavigator()
        seen = [nav.cycle_forward() for _ in range(3)]
        assert seen == [FocusTarget.LIST, FocusTarget.DETAIL, FocusTarget.EDITOR]

    def test_left_right_between_list_and_detail(self):
        nav = FocusNavigator(FocusTarget.LIST)
        assert nav.move_right() is FocusTarget.DETAIL
        assert nav.move_right() is FocusTarget.DETAIL
        assert nav.move_left() is FocusTarget.LIST
        assert nav.move_left() is FocusTarget.LIST

    def test_editor_has_no_horizontal_neighbours(self):
        nav = FocusNavigator()
        assert nav.move_left() is FocusTarget.EDITOR
        assert nav.move_right() is FocusTarget.EDITOR

    def test_enter_edit(self):
        nav = FocusNavigator(FocusTarget.DETAIL)
        assert nav.enter_edit() is FocusTarget.EDITOR
