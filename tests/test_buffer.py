"""Tests for QueryBuffer."""

import pytest

from spelunk.buffer import Direction, QueryBuffer


class TestBufferBasic:
    def test_init_empty(self):
        buf = QueryBuffer()
        assert buf.lines == [""]
        assert (buf.cursor_row, buf.cursor_col) == (0, 0)

    def test_init_multiline(self):
        buf = QueryBuffer("search index=main\n| stats count")
        assert buf.lines == ["search index=main", "| stats count"]

    def test_set_content_moves_cursor_to_end(self):
        buf = QueryBuffer()
        buf.set_content("a\nbcd")
        assert buf.cursor_row == 1
        assert buf.cursor_col == 3

    def test_get_content_roundtrip(self):
        buf = QueryBuffer("x\ny")
        assert buf.get_content() == "x\ny"

    def test_is_blank(self):
        assert QueryBuffer("  \n ").is_blank()
        assert not QueryBuffer(" x ").is_blank()


class TestBufferEditing:
    def test_insert_char(self):
        buf = QueryBuffer()
        for ch in "abc":
            buf.insert_char(ch)
        assert buf.lines == ["abc"]
        assert buf.cursor_col == 3

    def test_insert_newline_splits_line(self):
        buf = QueryBuffer("abcd")
        buf.cursor_col = 2
        buf.insert_char("\n")
        assert buf.lines == ["ab", "cd"]
        assert (buf.cursor_row, buf.cursor_col) == (1, 0)

    def test_insert_text_normalises_crlf(self):
        buf = QueryBuffer()
        buf.insert_text("a\r\nb")
        assert buf.lines == ["a", "b"]

    def test_backspace_within_line(self):
        buf = QueryBuffer("abc")
        buf.cursor_col = 3
        buf.delete_char()
        assert buf.lines == ["ab"]
        assert buf.cursor_col == 2

    def test_backspace_merges_lines(self):
        buf = QueryBuffer("ab\ncd")
        buf.cursor_row, buf.cursor_col = 1, 0
        buf.delete_char()
        assert buf.lines == ["abcd"]
        assert (buf.cursor_row, buf.cursor_col) == (0, 2)

    def test_backspace_at_origin_is_noop(self):
        buf = QueryBuffer("ab")
        buf.delete_char()
        assert buf.lines == ["ab"]
        assert (buf.cursor_row, buf.cursor_col) == (0, 0)

    def test_delete_under_cursor(self):
        buf = QueryBuffer("abc")
        buf.cursor_col = 1
        buf.delete_under_cursor()
        assert buf.lines == ["ac"]

    def test_delete_under_cursor_empty_line(self):
        buf = QueryBuffer()
        buf.delete_under_cursor()
        assert buf.lines == [""]

    def test_open_line_below_and_above(self):
        buf = QueryBuffer("a\nb")
        buf.open_line(below=True)
        assert buf.lines == ["a", "", "b"]
        assert buf.cursor_row == 1
        buf.open_line(below=False)
        assert buf.lines == ["a", "", "", "b"]
        assert buf.cursor_row == 1


class TestBufferMovement:
    def test_move_clamps_at_edges(self):
        buf = QueryBuffer("ab\nc")
        buf.move_cursor(Direction.UP)
        buf.move_cursor(Direction.LEFT)
        assert (buf.cursor_row, buf.cursor_col) == (0, 0)
        for _ in range(5):
            buf.move_cursor(Direction.RIGHT)
        assert buf.cursor_col == 2

    def test_move_down_clamps_column(self):
        buf = QueryBuffer("abcdef\nxy")
        buf.cursor_col = 5
        buf.move_cursor(Direction.DOWN)
        assert (buf.cursor_row, buf.cursor_col) == (1, 2)

    def test_first_non_blank(self):
        buf = QueryBuffer("   | head")
        buf.move_first_non_blank()
        assert buf.cursor_col == 3

    def test_line_start_end(self):
        buf = QueryBuffer("hello")
        buf.move_line_end()
        assert buf.cursor_col == 5
        buf.move_line_start()
        assert buf.cursor_col == 0

    def test_block_cursor_clamp(self):
        buf = QueryBuffer("abc")
        buf.cursor_col = 3
        buf.clamp(block_cursor=True)
        assert buf.cursor_col == 2

    def test_block_cursor_clamp_empty_line(self):
        buf = QueryBuffer()
        buf.clamp(block_cursor=True)
        assert buf.cursor_col == 0


SHAPES = [
    "",
    "a",
    "abc",
    "abc\n",
    "\n\n",
    "short\na much longer line\nx",
    "   indented\n\n  tail  ",
]


def assert_in_bounds(buf, block_cursor=False):
    assert 0 <= buf.cursor_row < len(buf.lines)
    line_len = len(buf.lines[buf.cursor_row])
    max_col = max(0, line_len - 1) if block_cursor else line_len
    assert 0 <= buf.cursor_col <= max_col


class TestCursorInvariant:
    @pytest.mark.parametrize("content", SHAPES)
    @pytest.mark.parametrize("direction", list(Direction))
    def test_repeated_moves_stay_in_bounds(self, content, direction):
        buf = QueryBuffer(content)
        for start_row in range(len(buf.lines)):
            for start_col in range(len(buf.lines[start_row]) + 1):
                buf.cursor_row, buf.cursor_col = start_row, start_col
                for _ in range(len(content) + 3):
                    buf.move_cursor(direction)
                    assert_in_bounds(buf)

    @pytest.mark.parametrize("content", SHAPES)
    def test_mixed_moves_and_edits_stay_in_bounds(self, content):
        buf = QueryBuffer(content)
        steps = [
            Direction.DOWN, Direction.RIGHT, Direction.RIGHT, Direction.UP,
            Direction.LEFT, Direction.DOWN, Direction.DOWN, Direction.RIGHT,
        ]
        for step in steps:
            buf.move_cursor(step)
            assert_in_bounds(buf)
            buf.delete_char()
            assert_in_bounds(buf)
            buf.insert_char("\n")
            assert_in_bounds(buf)
            buf.delete_under_cursor()
            buf.clamp(block_cursor=True)
            assert_in_bounds(buf, block_cursor=True)

    @pytest.mark.parametrize("content", SHAPES)
    def test_edges_do_not_wrap(self, content):
        buf = QueryBuffer(content)
        buf.move_cursor(Direction.LEFT)
        buf.move_cursor(Direction.UP)
        assert (buf.cursor_row, buf.cursor_col) == (0, 0)
        buf.set_content(content)
        end = (buf.cursor_row, buf.cursor_col)
        buf.move_cursor(Direction.DOWN)
        buf.move_cursor(Direction.RIGHT)
        assert (buf.cursor_row, buf.cursor_col) == end
