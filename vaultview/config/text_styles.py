"""
Settings that define the visual appearance of text outputs.
"""

import re

from rich.highlighter import _combine_regex, RegexHighlighter
from rich.style import Style


## Colors

COLOR_HEADING = "bold bright_green"

COLOR_EMPH = "bright_green"

COLOR_KEY = "bright_blue"

COLOR_VALUE = "cyan"

COLOR_PATH = "cyan"

COLOR_HINT = "bright_black"

COLOR_WARN = "bright_red"

COLOR_SAVED = "blue"


## Symbols and emojis

EMOJI_WARN = "△"

EMOJI_ERROR = EMOJI_WARN + EMOJI_WARN

EMOJI_SAVED = "⩣"

EMPTY_CELL = ""
"""How an empty or unresolvable cell is shown."""


class VaultHighlighter(RegexHighlighter):
    """
    Highlighter for log and status lines.
    """

    base_style = "vaultview."
    highlights = [
        _combine_regex(
            f"(?P<warn>{re.escape(EMOJI_WARN)})",
            f"(?P<saved>{re.escape(EMOJI_SAVED)})",
        ),
        _combine_regex(
            r"\b(?P<bool_true>True|true)\b|\b(?P<bool_false>False|false)\b|\b(?P<none>None|null)\b",
            r"(?P<path>\B(/[-\w._+]+)*\/)(?P<filename>[-\w._+]*)?",
            r"(?<![\\\w])(?P<str>'.*?(?<!\\)'|\".*?(?<!\\)\")",
            r"(?P<code_span>`[^`\n]+`)",
        ),
    ]


RICH_STYLES = {
    "vaultview.warn": Style(color=COLOR_WARN, bold=True),
    "vaultview.saved": Style(color=COLOR_SAVED, bold=True),
    "vaultview.bool_true": Style(color=COLOR_VALUE, italic=True),
    "vaultview.bool_false": Style(color=COLOR_VALUE, italic=True),
    "vaultview.none": Style(color=COLOR_VALUE, italic=True),
    "vaultview.path": Style(color=COLOR_PATH),
    "vaultview.filename": Style(color=COLOR_VALUE),
    "vaultview.str": Style(color=COLOR_KEY),
    "vaultview.code_span": Style(color=COLOR_VALUE),
    "vaultview.heading": Style(color=COLOR_EMPH, bold=True),
}
