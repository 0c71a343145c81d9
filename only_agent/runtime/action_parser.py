"""
action_parser.py - Recover typed actions from a freeform agent response.

The agent is asked to emit tool-call blocks in this format:

    {{TOOL_CALL:MODIFY}}
    FILE: src/app.py
    BEFORE:
    ```python
    old code
    ```
    AFTER:
    ```python
    new code
    ```

A block starts at a ``TOOL_CALL:<KIND>`` marker (braces, whitespace and
emphasis around it are tolerated) and runs to the next marker or the end of
the text. Inside a block:

- Scalar fields (FILE, COMMAND, URL) come from the first line outside a code
  fence that reads ``LABEL: value``. Labels are case-insensitive and may be
  wrapped in ``*``/``_`` emphasis.
- Code fields (BEFORE, AFTER, CONTENT) take the first fenced block after the
  label. The language tag is discarded and blank lines touching the fences
  are dropped; everything else is kept byte for byte. A missing or unclosed
  fence leaves the field absent, which is different from an empty block.

Blocks with an unknown kind or a missing required field are dropped and
reported as skipped. A response with no usable block raises ParseError.

Usage:
    from only_agent.runtime.action_parser import parse_response

    result = parse_response(agent_text)
    for action in result.actions:
        print(action.kind, action.target)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .actions import Action, ActionKind, build_action
from .errors import IncompleteActionError, ParseError

logger = logging.getLogger(__name__)


# =============================================================================
# Grammar
# =============================================================================

# {{TOOL_CALL:MODIFY}}, **{{ TOOL_CALL: create }}**, `TOOL_CALL:SHELL`
# The kind is the whole word token (MODIFY_FILE stays MODIFY_FILE); only
# trailing underscores are read as emphasis.
MARKER_PATTERN = re.compile(
    r"(?:\{\{)?[ \t*_`]*(?<![A-Za-z0-9])TOOL_CALL[ \t]*:[ \t]*"
    r"([A-Za-z](?:[A-Za-z0-9]|_+(?=[A-Za-z0-9]))*)[ \t*_`]*(?:\}\})?"
)

LABELS = ("FILE", "BEFORE", "AFTER", "CONTENT", "COMMAND", "URL")

# FILE: x, **FILE:** x, **FILE**: x, _URL_: x
LABEL_PATTERN = re.compile(
    r"^[ \t]*[*_]*[ \t]*(" + "|".join(LABELS) + r")[ \t]*[*_]*[ \t]*:(.*)$",
    re.IGNORECASE,
)

FENCE_OPEN_PATTERN = re.compile(r"^[ \t]*(`{3,})[ \t]*([^`]*)$")
FENCE_CLOSE_PATTERN = re.compile(r"^[ \t]*(`{3,})[ \t]*$")

SCALAR = "scalar"
BLOCK = "block"

# kind -> ((field name, label, field style), ...)
KIND_FIELDS: Dict[ActionKind, Tuple[Tuple[str, str, str], ...]] = {
    ActionKind.MODIFY: (("path", "FILE", SCALAR), ("before", "BEFORE", BLOCK), ("content", "AFTER", BLOCK)),
    ActionKind.CREATE: (("path", "FILE", SCALAR), ("content", "CONTENT", BLOCK)),
    ActionKind.DELETE: (("path", "FILE", SCALAR),),
    ActionKind.SHELL: (("command", "COMMAND", SCALAR),),
    ActionKind.FETCH: (("url", "URL", SCALAR),),
}


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class SkippedBlock:
    """A tool-call block that did not become an action.

    Attributes:
        kind: The kind token as written in the marker.
        line: 1-indexed line of the marker in the response.
        reason: "unknown_kind" or "incomplete_action".
        missing: Required fields that were not captured.
    """

    kind: str
    line: int
    reason: str
    missing: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "kind": self.kind,
            "line": self.line,
            "reason": self.reason,
            "missing": self.missing,
        }


@dataclass
class ParseResult:
    """Actions parsed from one agent response (a batch)."""

    actions: List[Action] = field(default_factory=list)
    skipped: List[SkippedBlock] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "actions": [a.to_dict() for a in self.actions],
            "skipped": [s.to_dict() for s in self.skipped],
            "action_count": len(self.actions),
        }


@dataclass
class _Token:
    """A label line or a fenced block inside one tool-call block."""

    kind: str  # "label" | "fence"
    text: str
    label: Optional[str] = None


# =============================================================================
# Tokenization
# =============================================================================


def _trim_blank_edges(lines: List[str]) -> List[str]:
    first, last = 0, len(lines)
    while first < last and not lines[first].strip():
        first += 1
    while last > first and not lines[last - 1].strip():
        last -= 1
    return lines[first:last]


def _read_fence(lines: List[str], open_index: int, ticks: int) -> Optional[Tuple[str, int]]:
    """Collect a fenced block whose opening fence is on ``open_index``.

    Returns (content, index after the closing fence), or None if unclosed.
    """
    for j in range(open_index + 1, len(lines)):
        close = FENCE_CLOSE_PATTERN.match(lines[j])
        if close and len(close.group(1)) >= ticks:
            content = "\n".join(_trim_blank_edges(lines[open_index + 1 : j]))
            return content, j + 1
    return None


def _tokenize(body: str) -> List[_Token]:
    """Split a block body into label lines and fenced blocks, in order.

    Text inside a fence is never read as a label.
    """
    lines = body.split("\n")
    tokens: List[_Token] = []
    i = 0
    while i < len(lines):
        line = lines[i]

        fence = FENCE_OPEN_PATTERN.match(line)
        if fence:
            block = _read_fence(lines, i, len(fence.group(1)))
            if block is not None:
                tokens.append(_Token(kind="fence", text=block[0]))
                i = block[1]
                continue
            i += 1
            continue

        label = LABEL_PATTERN.match(line)
        if label:
            name = label.group(1).upper()
            rest = label.group(2)
            tokens.append(_Token(kind="label", text=rest, label=name))
            # BEFORE: ```python  (fence opened on the label line)
            inline = FENCE_OPEN_PATTERN.match(rest)
            if inline:
                block = _read_fence(lines, i, len(inline.group(1)))
                if block is not None:
                    tokens.append(_Token(kind="fence", text=block[0]))
                    i = block[1]
                    continue
        i += 1
    return tokens


def _clean_scalar(raw: str) -> Optional[str]:
    """Trim a scalar value and drop emphasis/code wrapping around it."""
    value = raw.strip()
    # "**FILE:** a.txt" leaves emphasis markers around the value
    value = value.strip("*").strip()
    if len(value) >= 2 and value[0] == value[-1] == "`":
        value = value.strip("`").strip()
    return value or None


def _scalar_field(tokens: List[_Token], label: str) -> Optional[str]:
    for index, token in enumerate(tokens):
        if token.kind == "label" and token.label == label:
            value = None if FENCE_OPEN_PATTERN.match(token.text) else _clean_scalar(token.text)
            if value is None and index + 1 < len(tokens) and tokens[index + 1].kind == "fence":
                # COMMAND: followed by a fenced block instead of an inline value
                value = tokens[index + 1].text.strip() or None
            return value
    return None


def _block_field(tokens: List[_Token], label: str) -> Optional[str]:
    for index, token in enumerate(tokens):
        if token.kind == "label" and token.label == label:
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and following.kind == "fence":
                return following.text
    return None


def extract_fields(kind: ActionKind, body: str) -> Dict[str, Optional[str]]:
    """Extract the fields ``kind`` uses from a block body.

    Absent fields are returned as None.
    """
    tokens = _tokenize(body)
    values: Dict[str, Optional[str]] = {}
    for name, label, style in KIND_FIELDS[kind]:
        if style == SCALAR:
            values[name] = _scalar_field(tokens, label)
        else:
            values[name] = _block_field(tokens, label)
    return values


# =============================================================================
# Parsing
# =============================================================================


def iter_blocks(text: str) -> Iterator[Tuple[str, int, str]]:
    """Yield (kind token, marker line, body) for each tool-call block."""
    text = text.replace("\r\n", "\n")
    markers = list(MARKER_PATTERN.finditer(text))
    for index, marker in enumerate(markers):
        end = markers[index + 1].start() if index + 1 < len(markers) else len(text)
        line = text.count("\n", 0, marker.start()) + 1
        yield marker.group(1), line, text[marker.end() : end]


def iter_actions(
    text: str,
    on_skip: Optional[Callable[[SkippedBlock], None]] = None,
) -> Iterator[Action]:
    """Lazily yield actions from ``text`` in textual order.

    Args:
        text: Full agent response.
        on_skip: Called with a SkippedBlock for every dropped block.
    """
    for token, line, body in iter_blocks(text):
        kind = ActionKind.lookup(token)
        if kind is None:
            logger.debug("Ignoring unknown tool call kind %r at line %d", token, line)
            if on_skip is not None:
                on_skip(SkippedBlock(kind=token, line=line, reason="unknown_kind"))
            continue

        values = extract_fields(kind, body)
        try:
            action = build_action(kind, **values)
        except IncompleteActionError as e:
            logger.warning("Dropping %s block at line %d: %s", kind.value, line, e.message)
            if on_skip is not None:
                on_skip(
                    SkippedBlock(
                        kind=kind.value,
                        line=line,
                        reason="incomplete_action",
                        missing=e.missing,
                    )
                )
            continue

        yield action


def parse_response(text: str) -> ParseResult:
    """Parse a whole response into a batch of actions.

    Returns:
        ParseResult with the actions in textual order and any skipped blocks.

    Raises:
        ParseError: If no action was recognized.
    """
    result = ParseResult()
    result.actions.extend(iter_actions(text, on_skip=result.skipped.append))

    if not result.actions:
        if result.skipped:
            message = f"No actions recognized ({len(result.skipped)} block(s) skipped)"
        else:
            message = "No actions recognized: response contains no TOOL_CALL blocks"
        raise ParseError(message, skipped=result.skipped)

    logger.info(
        "Parsed %d action(s), skipped %d block(s)",
        len(result.actions),
        len(result.skipped),
    )
    return result
