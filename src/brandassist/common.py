"""Common utility functions for the project."""

from enum import Enum
from typing import (
    Any,
    Iterable,
)


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end


def truncate(text: str, limit: int) -> str:
    """Cut *text* to *limit* characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def keyword_snippet(
    text: str,
    keywords: Iterable[str],
    *,
    default_length: int,
    before: int,
    after: int,
) -> str:
    """
    Return a bounded preview of *text*.

    The preview is the first *default_length* characters, unless one of *keywords* occurs, in
    which case it is the window from *before* characters ahead of the first matching keyword to
    *after* characters past it.  Keywords are tried in order.  An ellipsis marks a preview
    shorter than the full text.
    """
    lowered = text.lower()
    snippet = text[:default_length]
    for keyword in keywords:
        index = lowered.find(keyword)
        if index != -1:
            snippet = text[max(0, index - before) : min(len(text), index + after)]
            break
    if len(snippet) < len(text):
        snippet += "..."
    return snippet
