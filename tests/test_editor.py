"""Tests for ModalEditor."""

from types import SimpleNamespace

from spelunk.editor import EditorAction, EditorMode, ModalEditor


def key(name, character=None):
    if character is None and len(name) == 1:
        character = name
    return SimpleNamespace(key=name, character=character)


def type_text(editor, text):
    for ch in text:
        editor.handle_key(key(ch))


class TestEditorBasic:
    def test_init_empty(self):
        editor = ModalEditor()
        assert editor.lines == [""]
        assert editor.cursor == (0, 0)
        assert editor.mode is EditorMode.STANDARD

    def test_init_with_content(self):
        editor = ModalEditor("index=main")
        assert editor.get_content() == "index=main"

    def test_set_content(self):
        editor = ModalEditor("old")
        editor.set_content("new\nquery")
        assert editor.lines == ["new", "query"]
        assert editor.cursor == (1, 5)

    def test_set_content_in_normal_mode_uses_block_cursor(self):
        editor = ModalEditor(mode=EditorMode.VIM_NORMAL)
        editor.set_content("abc")
        assert editor.cursor == (0, 2)

    def test_scroll_clamps_rows_and_column(self):
        editor = ModalEditor("abcdef\nxy\nlonger line")
        editor.scroll(-1)
        assert editor.cursor == (1, 2)
        editor.scroll(-10)
        assert editor.cursor[0] == 0
        editor.scroll(10)
        assert editor.cursor[0] == 2


class TestToggle:
    def test_toggle_enters_vim_normal(self):
        editor = ModalEditor()
        editor.handle_key(key("ctrl+v"))
        assert editor.mode is EditorMode.VIM_NORMAL
        assert editor.status_msg == "Switched to Vim Mode."

    def test_toggle_back_to_standard(self):
        editor = ModalEditor(mode=EditorMode.VIM_INSERT)
        editor.handle_key(key("ctrl+v"))
        assert editor.mode is EditorMode.STANDARD

    def test_toggle_twice_keeps_family_and_content(self):
        content = "index=main error\n| stats count by host\n| sort -count"
        editor = ModalEditor(content)
        editor.handle_key(key("ctrl+v"))
        editor.handle_key(key("ctrl+v"))
        assert editor.mode is EditorMode.STANDARD
        assert editor.get_content() == content

    def test_toggle_twice_from_vim(self):
        editor = ModalEditor("a\nb", mode=EditorMode.VIM_NORMAL)
        editor.toggle_vim()
        editor.toggle_vim()
        assert editor.mode.is_vim
        assert editor.get_content() == "a\nb"

    def test_mode_labels(self):
        assert EditorMode.STANDARD.label == "STANDARD"
        assert EditorMode.VIM_NORMAL.label == "NORMAL"
        assert EditorMode.VIM_INSERT.label == "INSERT"
        assert not EditorMode.STANDARD.is_vim


class TestStandardMode:
    def test_typing(self):
        editor = ModalEditor()
        type_text(editor, "index=main")
        assert editor.get_content() == "index=main"

    def test_enter_submits(self):
        editor = ModalEditor("x")
        assert editor.handle_key(key("enter")) is EditorAction.SUBMIT
        assert editor.get_content() == "x"

    def test_shift_enter_inserts_newline(self):
        editor = ModalEditor()
        type_text(editor, "a")
        assert editor.handle_key(key("shift+enter")) is None
        type_text(editor, "b")
        assert editor.lines == ["a", "b"]

    def test_ctrl_j_inserts_newline(self):
        editor = ModalEditor()
        editor.handle_key(key("ctrl+j"))
        assert editor.lines == ["", ""]

    def test_escape_leaves(self):
        editor = ModalEditor()
        assert editor.handle_key(key("escape")) is EditorAction.LEAVE

    def test_backspace(self):
        editor = ModalEditor()
        type_text(editor, "ab")
        editor.handle_key(key("backspace"))
        assert editor.get_content() == "a"

    def test_ctrl_x_requests_external_edit(self):
        editor = ModalEditor()
        assert editor.handle_key(key("ctrl+x")) is EditorAction.EXTERNAL_EDIT

    def test_home_end(self):
        editor = ModalEditor()
        type_text(editor, "abc")
        editor.handle_key(key("home"))
        assert editor.cursor == (0, 0)
        editor.handle_key(key("end"))
        assert editor.cursor == (0, 3)

    def test_non_printable_ignored(self):
        editor = ModalEditor()
        editor.handle_key(SimpleNamespace(key="ctrl+a", character="\x01"))
        assert editor.get_content() == ""


class TestVimNormal:
    def make(self, content=""):
        editor = ModalEditor(mode=EditorMode.VIM_NORMAL)
        editor.set_content(content)
        editor.buffer.cursor_row = 0
        editor.buffer.cursor_col = 0
        return editor

    def test_hjkl(self):
        editor = self.make("abc\ndef")
        editor.handle_key(key("l"))
        editor.handle_key(key("j"))
        assert editor.cursor == (1, 1)
        editor.handle_key(key("h"))
        editor.handle_key(key("k"))
        assert editor.cursor == (0, 0)

    def test_dollar_stops_on_last_char(self):
        editor = self.make("abc")
        editor.handle_key(key("$"))
        assert editor.cursor == (0, 2)

    def test_caret_and_zero(self):
        editor = self.make("  abc")
        editor.handle_key(key("^"))
        assert editor.cursor == (0, 2)
        editor.handle_key(key("0"))
        assert editor.cursor == (0, 0)

    def test_letters_do_not_insert(self):
        editor = self.make("abc")
        editor.handle_key(key("z"))
        assert editor.get_content() == "abc"

    def test_i_enters_insert(self):
        editor = self.make("bc")
        editor.handle_key(key("i"))
        assert editor.mode is EditorMode.VIM_INSERT
        type_text(editor, "a")
        assert editor.get_content() == "abc"

    def test_a_appends_after_cursor(self):
        editor = self.make("ac")
        editor.handle_key(key("a"))
        type_text(editor, "b")
        assert editor.get_content() == "abc"

    def test_capital_a_appends_at_end(self):
        editor = self.make("ab")
        editor.handle_key(key("A"))
        type_text(editor, "c")
        assert editor.get_content() == "abc"

    def test_capital_i_inserts_at_first_non_blank(self):
        editor = self.make("  b")
        editor.buffer.cursor_col = 2
        editor.handle_key(key("I"))
        type_text(editor, "a")
        assert editor.get_content() == "  ab"

    def test_o_opens_line_below(self):
        editor = self.make("a\nc")
        editor.handle_key(key("o"))
        type_text(editor, "b")
        assert editor.lines == ["a", "b", "c"]

    def test_capital_o_opens_line_above(self):
        editor = self.make("b")
        editor.handle_key(key("O"))
        type_text(editor, "a")
        assert editor.lines == ["a", "b"]

    def test_x_deletes_under_cursor(self):
        editor = self.make("abc")
        editor.handle_key(key("x"))
        assert editor.get_content() == "bc"

    def test_x_at_end_clamps(self):
        editor = self.make("ab")
        editor.handle_key(key("$"))
        editor.handle_key(key("x"))
        assert editor.get_content() == "a"
        assert editor.cursor == (0, 0)

    def test_enter_submits(self):
        editor = self.make("x")
        assert editor.handle_key(key("enter")) is EditorAction.SUBMIT

    def test_escape_leaves(self):
        editor = self.make("x")
        assert editor.handle_key(key("escape")) is EditorAction.LEAVE


class TestVimInsert:
    def test_escape_returns_to_normal_and_steps_back(self):
        editor = ModalEditor(mode=EditorMode.VIM_NORMAL)
        editor.handle_key(key("i"))
        type_text(editor, "abc")
        editor.handle_key(key("escape"))
        assert editor.mode is EditorMode.VIM_NORMAL
        assert editor.cursor == (0, 2)
        assert editor.status_msg == "-- NORMAL --"

    def test_enter_submits_in_insert(self):
        editor = ModalEditor(mode=EditorMode.VIM_INSERT)
        assert editor.handle_key(key("enter")) is EditorAction.SUBMIT

    def test_newline_in_insert(self):
        editor = ModalEditor(mode=EditorMode.VIM_INSERT)
        type_text(editor, "a")
        editor.handle_key(key("shift+enter"))
        type_text(editor, "b")
        assert editor.get_content() == "a\nb"
