"""Line- and word-level textual diffs for changed units.

Output looks like::

    12  12   │     "squareFeet": 1268.0,
    13       │-    "price": 4260.0,
        13   │+    "price": 4300.0,

Each line carries the old and new 1-based line numbers (blank on the side that
has no such line), a sign column and the line content. Within replaced lines
the tokens that actually differ are emphasized. Hunks that are not adjacent
are separated by a horizontal rule.
"""

from __future__ import annotations

import difflib
import io
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from rich.console import Console
from rich.text import Text

from .errors import RenderError
from .models import UnitChange

CONTEXT_LINES = 3
DIVIDER = "─" * 80
GUTTER = "│"
# Below this similarity ratio inline emphasis is noise rather than signal.
INLINE_RATIO_CUTOFF = 0.5

_TOKEN_PATTERN = re.compile(r"\w+|\s+|[^\w\s]")
_LINE_BREAK = "\n"

Segment = Tuple[bool, str]


@dataclass(frozen=True)
class LineStyle:
    sign: str
    line: str
    emphasis: str


STYLES = {
    "-": LineStyle(sign="bold bright_red", line="red", emphasis="bold underline bright_red on black"),
    "+": LineStyle(sign="bold bright_green", line="green", emphasis="bold underline bright_green on black"),
    " ": LineStyle(sign="bold dim", line="", emphasis="bold underline"),
}


@dataclass(frozen=True)
class InlineChange:
    """One rendered line of a hunk."""

    sign: str
    old_index: Optional[int]
    new_index: Optional[int]
    segments: Tuple[Segment, ...]

    @property
    def value(self) -> str:
        return "".join(text for _, text in self.segments)

    @property
    def emphasized(self) -> List[str]:
        return [text for emphasized, text in self.segments if emphasized]


def tokenize(line: str) -> List[str]:
    """Split a line into word, whitespace and punctuation tokens."""
    return _TOKEN_PATTERN.findall(line)


def grouped_changes(
    old: str,
    new: str,
    context: int = CONTEXT_LINES,
) -> List[List[InlineChange]]:
    """Return the hunks of a line diff between ``old`` and ``new``."""
    old_lines = [_strip_newline(line) for line in old.splitlines(keepends=True)]
    new_lines = [_strip_newline(line) for line in new.splitlines(keepends=True)]
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    hunks: List[List[InlineChange]] = []
    for group in matcher.get_grouped_opcodes(context):
        hunk: List[InlineChange] = []
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                for offset, line in enumerate(old_lines[i1:i2]):
                    hunk.append(
                        InlineChange(" ", i1 + offset, j1 + offset, ((False, line),))
                    )
            elif tag == "delete":
                hunk.extend(_plain_lines("-", old_lines[i1:i2], i1))
            elif tag == "insert":
                hunk.extend(_plain_lines("+", new_lines[j1:j2], j1))
            else:
                hunk.extend(_replaced_lines(old_lines[i1:i2], i1, new_lines[j1:j2], j1))
        if hunk:
            hunks.append(hunk)
    return hunks


def render_diff(old: str, new: str, color: Optional[bool] = None) -> str:
    """Format a diff of two strings.

    ``color`` defaults to whether stdout is a terminal.
    """
    text = Text()
    try:
        for idx, hunk in enumerate(grouped_changes(old, new)):
            if idx > 0:
                text.append(DIVIDER + "\n")
            for change in hunk:
                _append_change(text, change)
    except (AttributeError, TypeError, ValueError) as exc:
        raise RenderError(f"Could not render diff: {exc}") from exc
    return _export(text, color)


def render_diff_with_header(
    old: str,
    new: str,
    old_label: str,
    new_label: str,
    color: Optional[bool] = None,
) -> str:
    """Like :func:`render_diff` but preceded by ``---``/``+++`` label lines."""
    header = Text()
    header.append("---", style="bold bright_red")
    header.append(f" {old_label}\n", style="red")
    header.append("+++", style="bold bright_green")
    header.append(f" {new_label}\n", style="green")
    return _export(header, color) + render_diff(old, new, color=color)


def render_change(change: UnitChange, color: Optional[bool] = None) -> str:
    """Render the serialized before/after of a changed unit."""
    return render_diff_with_header(
        change.old.to_json(),
        change.new.to_json(),
        change.old.display(),
        change.new.display(),
        color=color,
    )


def _strip_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith(("\n", "\r")):
        return line[:-1]
    return line


def _plain_lines(sign: str, lines: Sequence[str], start: int) -> List[InlineChange]:
    changes = []
    for offset, line in enumerate(lines):
        index = start + offset
        changes.append(
            InlineChange(
                sign,
                index if sign == "-" else None,
                index if sign == "+" else None,
                ((False, line),),
            )
        )
    return changes


def _replaced_lines(
    old_lines: Sequence[str],
    old_start: int,
    new_lines: Sequence[str],
    new_start: int,
) -> List[InlineChange]:
    old_tokens = _block_tokens(old_lines)
    new_tokens = _block_tokens(new_lines)
    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)

    old_flags = [False] * len(old_tokens)
    new_flags = [False] * len(new_tokens)
    if matcher.ratio() >= INLINE_RATIO_CUTOFF:
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                continue
            for i in range(i1, i2):
                old_flags[i] = True
            for j in range(j1, j2):
                new_flags[j] = True

    changes = []
    for offset, segments in enumerate(_split_segments(old_tokens, old_flags)):
        changes.append(InlineChange("-", old_start + offset, None, segments))
    for offset, segments in enumerate(_split_segments(new_tokens, new_flags)):
        changes.append(InlineChange("+", None, new_start + offset, segments))
    return changes


def _block_tokens(lines: Sequence[str]) -> List[str]:
    tokens: List[str] = []
    for idx, line in enumerate(lines):
        if idx > 0:
            tokens.append(_LINE_BREAK)
        tokens.extend(tokenize(line))
    return tokens


def _split_segments(tokens: Sequence[str], flags: Sequence[bool]) -> List[Tuple[Segment, ...]]:
    """Regroup flagged tokens into per-line runs of equally flagged text."""
    lines: List[Tuple[Segment, ...]] = []
    current: List[Segment] = []
    for token, flag in zip(tokens, flags):
        if token == _LINE_BREAK:
            lines.append(tuple(current))
            current = []
            continue
        if current and current[-1][0] == flag:
            current[-1] = (flag, current[-1][1] + token)
        else:
            current.append((flag, token))
    lines.append(tuple(current))
    return lines


def _line_number(index: Optional[int]) -> str:
    if index is None:
        return "    "
    return f"{index + 1:<4}"


def _append_change(text: Text, change: InlineChange) -> None:
    style = STYLES[change.sign]
    text.append(_line_number(change.old_index), style="dim")
    text.append(_line_number(change.new_index), style="dim")
    text.append(f" {GUTTER}")
    text.append(change.sign, style=style.sign)
    for emphasized, value in change.segments:
        text.append(value, style=style.emphasis if emphasized else style.line)
    text.append("\n")


def _export(text: Text, color: Optional[bool]) -> str:
    if color is None:
        color = Console().is_terminal
    if not color:
        return text.plain
    console = Console(
        file=io.StringIO(),
        force_terminal=True,
        color_system="standard",
        soft_wrap=True,
        highlight=False,
    )
    with console.capture() as capture:
        console.print(text, end="")
    return capture.get()
