"""
Test fixtures shared across the only-agent test suite.

Provides an in-memory Workspace that records every host call, a temporary
project directory, and a clean configuration environment.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from only_agent.config import runtime_config
from only_agent.runtime.errors import ActionIOError, NoWorkspaceError
from only_agent.runtime.workspace import Workspace


class RecordingWorkspace(Workspace):
    """In-memory Workspace that records side effects instead of performing them.

    ``calls`` holds (operation, *args) tuples in call order.
    """

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        root: Optional[Path] = Path("/project"),
        open_documents: Sequence[Tuple[str, str]] = (),
        clipboard_available: bool = True,
        browser_available: bool = True,
    ):
        self.files: Dict[str, str] = dict(files or {})
        self._root = root
        self._open_documents = list(open_documents)
        self.clipboard_available = clipboard_available
        self.browser_available = browser_available
        self.clipboard: Optional[str] = None
        self.calls: List[Tuple] = []

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def list_project_files(self, exclude_patterns=(), limit=100) -> List[str]:
        return sorted(self.files)[:limit]

    def list_open_documents(self) -> List[Tuple[str, str]]:
        return list(self._open_documents)

    def _require_root(self) -> None:
        if self._root is None:
            raise NoWorkspaceError()

    def read_file(self, path: str) -> str:
        self._require_root()
        self.calls.append(("read", path))
        if path not in self.files:
            raise FileNotFoundError(2, "No such file or directory", path)
        return self.files[path]

    def write_file(self, path: str, text: str) -> None:
        self._require_root()
        self.calls.append(("write", path, text))
        self.files[path] = text

    def delete_file(self, path: str) -> None:
        self._require_root()
        self.calls.append(("delete", path))
        if path not in self.files:
            raise FileNotFoundError(2, "No such file or directory", path)
        del self.files[path]

    def replace_range(self, path: str, start: int, end: int, new_text: str) -> None:
        self.calls.append(("replace", path, start, end, new_text))
        text = self.files[path]
        self.files[path] = text[:start] + new_text + text[end:]

    def run_in_terminal(self, command: str) -> None:
        self.calls.append(("terminal", command))

    def open_external(self, url: str) -> None:
        self.calls.append(("open", url))
        if not self.browser_available:
            raise ActionIOError("open", url, "no browser available")

    def copy_to_clipboard(self, text: str) -> bool:
        self.calls.append(("clipboard", len(text)))
        if not self.clipboard_available:
            return False
        self.clipboard = text
        return True

    def operations(self) -> List[str]:
        """Names of the recorded operations, in order."""
        return [call[0] for call in self.calls]


@pytest.fixture
def workspace():
    """Empty in-memory workspace rooted at /project."""
    return RecordingWorkspace()


@pytest.fixture
def project_dir(tmp_path):
    """A small project tree on disk.

    Layout:
        src/app.py
        src/util.py
        README.md
        node_modules/pkg/index.js   (excluded from listings)
    """
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text("def main():\n    return 1\n", encoding="utf-8")
    (root / "src" / "util.py").write_text("X = 1\n", encoding="utf-8")
    (root / "README.md").write_text("# Project\n", encoding="utf-8")
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "node_modules" / "pkg" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path):
    """Isolate every test from the user's config file and environment."""
    for var in (
        "ONLY_AGENT_CONFIG",
        "ONLY_AGENT_ROOT",
        "ONLY_AGENT_MAX_FILES",
        "ONLY_AGENT_HOST",
        "ONLY_AGENT_PORT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    runtime_config.reset_config()
    yield
    runtime_config.reset_config()
