"""
workspace.py - Host collaborators the engine calls for side effects.

The executor never touches the file system, a terminal, a browser or the
clipboard directly. It goes through a Workspace:

- Workspace: abstract interface (one method per host operation)
- LocalWorkspace: standalone implementation backed by the local file system,
  ``subprocess`` for the terminal, ``webbrowser`` for URLs and the platform
  clipboard utilities

Hosts that have an editor (and its undo history) implement ``replace_range``
against the live document instead of rewriting the file.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import shutil
import subprocess
import tempfile
import webbrowser
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .errors import ActionIOError, NoWorkspaceError

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    "node_modules",
    ".git",
    "__pycache__",
    ".venv",
    "venv",
    ".mypy_cache",
    ".pytest_cache",
)

DEFAULT_MAX_LISTED_FILES = 100

# Tried in order; the first one found on PATH wins.
CLIPBOARD_COMMANDS: Tuple[Tuple[str, ...], ...] = (
    ("pbcopy",),
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
    ("clip",),
)


class Workspace(ABC):
    """Abstract host environment for action execution.

    Paths passed to file methods are relative to ``root``.
    """

    @property
    @abstractmethod
    def root(self) -> Optional[Path]:
        """Project root, or None when no project is open."""
        ...

    @abstractmethod
    def list_project_files(
        self,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
        limit: int = DEFAULT_MAX_LISTED_FILES,
    ) -> List[str]:
        """Relative paths of project files (for prompt context only)."""
        ...

    @abstractmethod
    def list_open_documents(self) -> List[Tuple[str, str]]:
        """(path, full text) for each document the user has open."""
        ...

    @abstractmethod
    def read_file(self, path: str) -> str:
        ...

    @abstractmethod
    def write_file(self, path: str, text: str) -> None:
        ...

    @abstractmethod
    def delete_file(self, path: str) -> None:
        ...

    @abstractmethod
    def replace_range(self, path: str, start: int, end: int, new_text: str) -> None:
        """Replace ``text[start:end]`` of the document at ``path``."""
        ...

    @abstractmethod
    def run_in_terminal(self, command: str) -> None:
        """Submit ``command`` to a terminal without waiting for it."""
        ...

    @abstractmethod
    def open_external(self, url: str) -> None:
        ...

    @abstractmethod
    def copy_to_clipboard(self, text: str) -> bool:
        """Copy ``text``; return False if no clipboard is available."""
        ...


def _is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """True if any path component (or the whole path) matches a pattern."""
    parts = rel_path.split("/")
    for pattern in patterns:
        if fnmatch.fnmatch(rel_path, pattern):
            return True
        if any(fnmatch.fnmatch(part, pattern) for part in parts):
            return True
    return False


class LocalWorkspace(Workspace):
    """Workspace backed by a directory on the local machine.

    Args:
        root: Project root. None models "no project open"; every file
            operation then raises NoWorkspaceError.
        open_paths: Files treated as the user's open documents.
        exclude_patterns: Patterns hidden from listings and open documents.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]],
        open_paths: Sequence[str] = (),
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    ):
        self._root = Path(root).resolve() if root is not None else None
        self.open_paths = list(open_paths)
        self.exclude_patterns = list(exclude_patterns)

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def resolve(self, path: str) -> Path:
        """Resolve a project-relative path, refusing anything outside root."""
        if self._root is None:
            raise NoWorkspaceError()
        rel = path.strip().replace("\\", "/")
        if "\x00" in rel:
            raise ActionIOError("resolve", path, "path contains a NUL byte")
        target = (self._root / rel).resolve()
        try:
            target.relative_to(self._root)
        except ValueError:
            raise ActionIOError("resolve", path, "path is outside the project root") from None
        return target

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    def list_project_files(
        self,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
        limit: int = DEFAULT_MAX_LISTED_FILES,
    ) -> List[str]:
        if self._root is None or not self._root.is_dir():
            return []

        files: List[str] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            rel_dir = Path(dirpath).relative_to(self._root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"
            dirnames[:] = sorted(
                d for d in dirnames if not _is_excluded(prefix + d, exclude_patterns)
            )
            for name in sorted(filenames):
                rel = prefix + name
                if _is_excluded(rel, exclude_patterns):
                    continue
                files.append(rel)
                if len(files) >= limit:
                    return files
        return files

    def list_open_documents(self) -> List[Tuple[str, str]]:
        if self._root is None:
            return []
        documents: List[Tuple[str, str]] = []
        for path in self.open_paths:
            rel = path.strip().replace("\\", "/")
            if _is_excluded(rel, self.exclude_patterns):
                continue
            try:
                documents.append((rel, self.read_file(rel)))
            except (OSError, UnicodeDecodeError, ActionIOError) as e:
                logger.warning("Skipping open document %s: %s", path, e)
        return documents

    # -------------------------------------------------------------------------
    # File operations
    # -------------------------------------------------------------------------

    def read_file(self, path: str) -> str:
        target = self.resolve(path)
        # newline="" keeps CRLF endings intact across read/replace/write
        with open(target, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_file(self, path: str, text: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            "w",
            delete=False,
            dir=str(target.parent),
            prefix=target.name + ".tmp.",
            encoding="utf-8",
            newline="",
        )
        tmp_path = Path(tmp.name)
        try:
            with tmp:
                tmp.write(text)
            tmp_path.replace(target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def delete_file(self, path: str) -> None:
        target = self.resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"No such file: {path}")
        target.unlink()

    def replace_range(self, path: str, start: int, end: int, new_text: str) -> None:
        text = self.read_file(path)
        if not 0 <= start <= end <= len(text):
            raise ActionIOError("replace", path, f"range [{start}, {end}) is out of bounds")
        self.write_file(path, text[:start] + new_text + text[end:])

    # -------------------------------------------------------------------------
    # Terminal, browser, clipboard
    # -------------------------------------------------------------------------

    def run_in_terminal(self, command: str) -> None:
        cwd = str(self._root) if self._root is not None else None
        logger.info("Launching shell command in %s: %s", cwd or os.getcwd(), command)
        subprocess.Popen(command, shell=True, cwd=cwd)

    def open_external(self, url: str) -> None:
        if not webbrowser.open(url):
            raise ActionIOError("open", url, "no browser available")

    def copy_to_clipboard(self, text: str) -> bool:
        for cmd in CLIPBOARD_COMMANDS:
            if shutil.which(cmd[0]) is None:
                continue
            try:
                result = subprocess.run(
                    list(cmd),
                    input=text.encode("utf-8"),
                    stderr=subprocess.DEVNULL,
                    timeout=3,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("Clipboard command %s failed: %s", cmd[0], e)
                continue
            if result.returncode == 0:
                return True
        logger.warning("No clipboard utility available")
        return False
