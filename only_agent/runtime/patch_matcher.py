"""
patch_matcher.py - Locate a BEFORE snippet inside a live file.

Two strategies, tried in order:

1. exact: first verbatim occurrence of the snippet, no normalization.
2. fuzzy_lines: the snippet's lines (with leading/trailing blank lines
   dropped) must equal a contiguous run of file lines after stripping
   whitespace on both sides. The lowest matching start line wins. The
   returned range covers the whole matched lines, so the file's original
   indentation on those lines is replaced by the new content verbatim.

The matcher is a pure function of its inputs; callers must pass the file's
current text at execution time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import EmptyPatchBlockError

logger = logging.getLogger(__name__)

STRATEGY_EXACT = "exact"
STRATEGY_FUZZY_LINES = "fuzzy_lines"


@dataclass(frozen=True)
class PatchMatch:
    """Character range to replace.

    Attributes:
        start: Offset of the first replaced character.
        end: Offset one past the last replaced character.
        strategy: Which stage produced the match (exact or fuzzy_lines).
        first_line: 0-based index of the first line touched.
        last_line: 0-based index of the last line touched.
    """

    start: int
    end: int
    strategy: str
    first_line: int
    last_line: int

    @property
    def length(self) -> int:
        return self.end - self.start


def _effective_lines(before: str) -> List[str]:
    """Split the snippet into lines without leading/trailing blank lines."""
    lines = before.split("\n")
    first = 0
    last = len(lines)
    while first < last and not lines[first].strip():
        first += 1
    while last > first and not lines[last - 1].strip():
        last -= 1
    return lines[first:last]


def _line_starts(lines: List[str]) -> List[int]:
    """Offsets of each line's first character, assuming '\\n' separators."""
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts


def exact_match(full_text: str, before: str) -> Optional[PatchMatch]:
    """Stage 1: first verbatim occurrence of ``before``."""
    offset = full_text.find(before)
    if offset == -1:
        return None
    end = offset + len(before)
    return PatchMatch(
        start=offset,
        end=end,
        strategy=STRATEGY_EXACT,
        first_line=full_text.count("\n", 0, offset),
        last_line=full_text.count("\n", 0, max(offset, end - 1)),
    )


def fuzzy_line_match(full_text: str, before: str) -> Optional[PatchMatch]:
    """Stage 2: whitespace-tolerant, line-granular match.

    Raises:
        EmptyPatchBlockError: If ``before`` has no non-blank lines.
    """
    wanted = [line.strip() for line in _effective_lines(before)]
    if not wanted:
        raise EmptyPatchBlockError()

    doc_lines = full_text.split("\n")
    trimmed = [line.strip() for line in doc_lines]
    span = len(wanted)

    for i in range(len(doc_lines) - span + 1):
        if trimmed[i : i + span] == wanted:
            starts = _line_starts(doc_lines)
            last = i + span - 1
            last_line = doc_lines[last]
            # A CRLF file leaves '\r' on each line; it belongs to the line ending.
            if last_line.endswith("\r"):
                last_line = last_line[:-1]
            return PatchMatch(
                start=starts[i],
                end=starts[last] + len(last_line),
                strategy=STRATEGY_FUZZY_LINES,
                first_line=i,
                last_line=last,
            )
    return None


def locate(full_text: str, before: str) -> Optional[PatchMatch]:
    """Find the range of ``full_text`` that ``before`` describes.

    Args:
        full_text: Current content of the target file.
        before: Snippet the agent claims exists in the file.

    Returns:
        PatchMatch for the first exact occurrence, else the first fuzzy line
        match, else None.

    Raises:
        EmptyPatchBlockError: If ``before`` is empty after trimming. This is
            checked first, so a blank snippet never matches anything.
    """
    if not before.strip():
        raise EmptyPatchBlockError()

    match = exact_match(full_text, before)
    if match is None:
        match = fuzzy_line_match(full_text, before)

    if match is None:
        logger.debug("No match for %d-line BEFORE block", before.count("\n") + 1)
    else:
        logger.debug(
            "Matched BEFORE block via %s at [%d, %d) lines %d-%d",
            match.strategy,
            match.start,
            match.end,
            match.first_line + 1,
            match.last_line + 1,
        )
    return match
