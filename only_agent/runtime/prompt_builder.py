"""
prompt_builder.py - Build the context prompt pasted into a chat agent.

The prompt teaches the agent the tool-call format the parser understands,
then gives it the project file list, the open documents and the user's
request. The agent's reply is later fed to ``parse_response``.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple

from .workspace import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_MAX_LISTED_FILES, Workspace

logger = logging.getLogger(__name__)

NO_WORKSPACE_TEXT = "No workspace opened."

TOOL_CALL_INSTRUCTIONS = """\
You are a capable coding agent. You can perform the following tool calls.
Follow the format exactly; each call starts with its marker line.

1. Modify code (BEFORE must match the current file):
{{TOOL_CALL:MODIFY}}
FILE: path/to/file
BEFORE:
```
original code
```
AFTER:
```
replacement code
```

2. Create a file:
{{TOOL_CALL:CREATE}}
FILE: path/to/file
CONTENT:
```
file content
```

3. Delete a file:
{{TOOL_CALL:DELETE}}
FILE: path/to/file

4. Run a terminal command:
{{TOOL_CALL:SHELL}}
COMMAND: command to run

5. Open a URL:
{{TOOL_CALL:FETCH}}
URL: https://example.com
"""

_BACKTICK_RUN = re.compile(r"`{3,}")


def _fence_for(text: str) -> str:
    """Return a backtick fence longer than any run inside ``text``."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(text)), default=0)
    return "`" * max(3, longest + 1)


def build_project_structure(
    workspace: Workspace,
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    limit: int = DEFAULT_MAX_LISTED_FILES,
) -> str:
    """Render "Project: <name>" followed by one "- <path>" line per file."""
    root = workspace.root
    if root is None:
        return NO_WORKSPACE_TEXT

    lines = [f"Project: {root.name}"]
    files = workspace.list_project_files(exclude_patterns, limit)
    lines.extend(f"- {path}" for path in files)
    if len(files) >= limit:
        logger.debug("Project listing truncated at %d files", limit)
    return "\n".join(lines)


def render_open_documents(documents: Sequence[Tuple[str, str]]) -> str:
    """Render each open document as a labelled fenced block."""
    parts: List[str] = []
    for path, text in documents:
        fence = _fence_for(text)
        parts.append(f"File: {path}\n{fence}\n{text}\n{fence}")
    return "\n\n".join(parts)


def build_prompt(
    instruction: str,
    structure: str,
    open_documents: Optional[Sequence[Tuple[str, str]]] = None,
) -> str:
    """Assemble the full prompt.

    Args:
        instruction: The user's request.
        structure: Output of ``build_project_structure``.
        open_documents: (path, text) pairs to include verbatim.
    """
    sections = [
        TOOL_CALL_INSTRUCTIONS,
        f"Project structure:\n{structure}\n",
    ]
    if open_documents:
        sections.append(f"Open files:\n\n{render_open_documents(open_documents)}\n")
    sections.append(f"User Request: {instruction}")
    return "\n".join(sections)
