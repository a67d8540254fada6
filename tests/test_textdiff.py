import pytest

from avawatcher.errors import RenderError
from avawatcher.models import UnitChange
from avawatcher.textdiff import (
    DIVIDER,
    grouped_changes,
    render_change,
    render_diff,
    render_diff_with_header,
    tokenize,
)

from factories import make_unit


def test_identical_text_renders_nothing():
    text = "\n".join(f"line {n}" for n in range(10)) + "\n"

    rendered = render_diff(text, text, color=False)

    assert grouped_changes(text, text) == []
    assert rendered == ""


def test_changed_price_highlights_only_the_number():
    (hunk,) = grouped_changes("price: 4260\n", "price: 4300\n")

    deleted, inserted = hunk
    assert deleted.sign == "-"
    assert deleted.emphasized == ["4260"]
    assert deleted.segments == ((False, "price: "), (True, "4260"))
    assert inserted.sign == "+"
    assert inserted.emphasized == ["4300"]
    assert inserted.segments == ((False, "price: "), (True, "4300"))


def test_line_numbers_and_signs():
    old = "a\nb\nc\n"
    new = "a\nB\nc\nd\n"

    rendered = render_diff(old, new, color=False)

    assert rendered.splitlines() == [
        "1   1    │ a",
        "2        │-b",
        "    2    │+B",
        "3   3    │ c",
        "    4    │+d",
    ]


def test_context_is_limited_and_hunks_are_divided():
    old_lines = [f"line {n}" for n in range(30)]
    new_lines = list(old_lines)
    new_lines[2] = "line two"
    new_lines[25] = "line twenty-five"

    rendered = render_diff("\n".join(old_lines) + "\n", "\n".join(new_lines) + "\n", color=False)

    assert rendered.count(DIVIDER) == 1
    assert "line 10" not in rendered
    assert "line 22" in rendered
    assert "line 29" not in rendered
    hunks = grouped_changes("\n".join(old_lines), "\n".join(new_lines))
    assert len(hunks) == 2


def test_dissimilar_lines_are_not_emphasized():
    (hunk,) = grouped_changes("alpha beta\n", "12345 !!\n")

    assert all(change.emphasized == [] for change in hunk)


def test_missing_trailing_newline_still_terminates_lines():
    rendered = render_diff("a", "b", color=False)

    assert rendered.endswith("\n")
    assert rendered.count("\n") == 2


def test_header_precedes_body():
    rendered = render_diff_with_header("x\n", "y\n", "before", "after", color=False)

    lines = rendered.splitlines()
    assert lines[0] == "--- before"
    assert lines[1] == "+++ after"
    assert lines[2].endswith("│-x")


def test_color_output_uses_ansi_sequences():
    rendered = render_diff("price: 4260\n", "price: 4300\n", color=True)

    assert "\x1b[" in rendered
    assert "4260" in rendered and "4300" in rendered


def test_render_change_uses_unit_display_labels():
    change = UnitChange(old=make_unit(price=4260.0), new=make_unit(price=4300.0))

    rendered = render_change(change, color=False)

    assert rendered.startswith(f"--- {change.old.display()}\n+++ {change.new.display()}\n")
    assert '-    "price": 4260.0,' in rendered
    assert '+    "price": 4300.0,' in rendered


def test_invalid_input_raises_render_error():
    with pytest.raises(RenderError):
        render_diff(None, "text", color=False)


def test_tokenize_splits_words_space_and_punctuation():
    assert tokenize('"price": 4260.0,') == ['"', "price", '"', ":", " ", "4260", ".", "0", ","]
