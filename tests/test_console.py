import pytest

from vantaos.console import (
    DEFAULT_COLOR,
    VGA_HEIGHT,
    VGA_WIDTH,
    VgaConsole,
    format_string,
)


def test_format_string_substitutes():
    assert format_string("name: %s", "shell") == "name: shell"
    assert format_string("%d", -42) == str(-42)
    assert format_string("%s%d", "a", 0) == "a0"


def test_format_string_percent_and_unknown():
    assert format_string("100%%") == "100%"
    assert format_string("%q") == "%q"
    assert format_string("end%") == "end%"


def test_format_string_none_string():
    assert format_string("[%s]", None) == "[]"


def test_format_string_too_few_args():
    with pytest.raises(TypeError):
        format_string("%s and %s", "one")


def test_write_and_cursor():
    con = VgaConsole()
    con.write("hello")
    assert con.row_text(0) == "hello"
    assert (con.row, con.col) == (0, len("hello"))


def test_newline_and_carriage_return():
    con = VgaConsole()
    con.write("abc\ndef\rX")
    assert con.row_text(0) == "abc"
    assert con.row_text(1) == "Xef"
    assert (con.row, con.col) == (1, 1)


def test_wraps_at_width():
    con = VgaConsole()
    con.write("a" * (VGA_WIDTH + 1))
    assert con.row_text(0) == "a" * VGA_WIDTH
    assert con.row_text(1) == "a"


def test_scrolls_at_bottom():
    con = VgaConsole()
    for i in range(30):
        con.write(f"L{i}\n")
    assert con.row == VGA_HEIGHT - 1
    assert con.row_text(VGA_HEIGHT - 2) == "L29"
    assert con.row_text(VGA_HEIGHT - 1) == ""


def test_backspace():
    con = VgaConsole()
    con.write("ab\b")
    assert con.row_text(0) == "a"
    assert con.col == 1
    con.write("\b\b")
    assert con.col == 0
    assert con.row_text(0) == ""


def test_tab_aligns_to_eight():
    con = VgaConsole()
    con.write("a\tb")
    assert con.row_text(0) == "a" + " " * 7 + "b"


def test_print_char_accepts_code():
    con = VgaConsole()
    con.print_char(ord("Z"))
    assert con.row_text(0) == "Z"


def test_print_int():
    con = VgaConsole()
    con.print_int(-123)
    con.print_char(" ")
    con.print_int(0)
    assert con.row_text(0) == "-123 0"


def test_printf_output_and_count():
    con = VgaConsole()
    assert con.printf("ab%s", "cd") == 4
    assert con.printf("%d", 5) == 10
    assert con.row_text(0) == "abcd5"


def test_print_at_keeps_cursor_and_color():
    con = VgaConsole()
    con.print_at("X", 2, 3, 0x0C)
    cell = con.cells[2 * VGA_WIDTH + 3]
    assert cell >> 8 == 0x0C
    assert chr(cell & 0xFF) == "X"
    assert (con.row, con.col) == (0, 0)


def test_print_at_default_color_and_truncation():
    con = VgaConsole()
    con.print_at("hello", VGA_HEIGHT - 1, VGA_WIDTH - 2)
    assert con.row_text(VGA_HEIGHT - 1).strip() == "he"
    assert con.cells[-1] >> 8 == DEFAULT_COLOR


def test_print_at_out_of_range():
    con = VgaConsole()
    with pytest.raises(ValueError):
        con.print_at("x", VGA_HEIGHT, 0)


def test_clear_resets():
    con = VgaConsole()
    con.write("text\nmore")
    con.clear()
    assert con.row_text(0) == ""
    assert con.row_text(1) == ""
    assert (con.row, con.col) == (0, 0)


def test_set_cursor():
    con = VgaConsole()
    con.set_cursor(5, 10)
    con.write("k")
    assert con.row_text(5) == " " * 10 + "k"
    with pytest.raises(ValueError):
        con.set_cursor(0, VGA_WIDTH)


def test_scroll_moves_rows_up():
    con = VgaConsole()
    con.write("first\nsecond")
    con.scroll()
    assert con.row_text(0) == "second"
    assert con.row_text(VGA_HEIGHT - 1) == ""