"""
Position Parsing
================
Parses model-reported bug positions.

Accepted forms (1-based, inclusive):
    "Calculator.java:12-14"
    "src/main/java/Calculator.java:12-14"
    "12-14"
    "lines 12-14"

Cosmetic markdown (backticks, square brackets) is ignored. A position
without two integers is invalid; there is no single-line shorthand.
"""
import re
from typing import Optional, Tuple

_NOISE_RE = re.compile(r"[`\[\]]")
_POSITION_RE = re.compile(
    r"^\s*(?:(?P<file>.*?)\s*:)?\s*(?:lines?\s+)?(?P<start>\d+)\s*-\s*(?P<end>\d+)\s*$",
    re.IGNORECASE,
)


class InvalidPositionError(ValueError):
    """The position string does not contain a start-end line range."""


def _match(position: str) -> re.Match:
    cleaned = _NOISE_RE.sub("", position or "")
    match = _POSITION_RE.match(cleaned)
    if not match:
        raise InvalidPositionError(f"Invalid bug position format: {position!r}")
    return match


def parse_position(position: str) -> Tuple[int, int]:
    """
    Return the ``(start, end)`` line range of a position string.

    Raises
    ------
    InvalidPositionError
        If no ``start-end`` range can be read.
    """
    match = _match(position)
    return int(match.group("start")), int(match.group("end"))


def position_file(position: str) -> Optional[str]:
    """Return the file part of a position string, or None for a bare range."""
    try:
        match = _match(position)
    except InvalidPositionError:
        return None
    name = (match.group("file") or "").strip()
    return name or None
