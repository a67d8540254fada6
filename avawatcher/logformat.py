"""Console log formatting."""

from __future__ import annotations

import logging
import shutil
import textwrap

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
SUBSEQUENT_INDENT = "    "


class WrappingFormatter(logging.Formatter):
    """Wrap long records to the terminal width.

    Records that span more than one line are surrounded by blank lines. When
    two long records follow each other only one blank line separates them,
    which is why the formatter remembers whether the previous record was long.
    """

    def __init__(self, fmt: str = DEFAULT_FORMAT, datefmt: str | None = None, width: int | None = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.width = width
        self.last_record_was_long = False

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        width = self.width or shutil.get_terminal_size().columns

        lines = []
        for paragraph in formatted.splitlines() or [""]:
            if len(paragraph) <= width:
                lines.append(paragraph)
                continue
            lines.extend(
                textwrap.wrap(
                    paragraph,
                    width=width,
                    subsequent_indent=SUBSEQUENT_INDENT,
                    break_long_words=False,
                    break_on_hyphens=False,
                )
            )

        is_long = len(lines) > 1
        previous_was_long = self.last_record_was_long
        self.last_record_was_long = is_long
        if not is_long:
            return lines[0] if lines else ""
        if previous_was_long:
            return "\n".join(lines) + "\n"
        return "\n" + "\n".join(lines) + "\n"


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(WrappingFormatter())
    logging.basicConfig(level=level, handlers=[handler])
