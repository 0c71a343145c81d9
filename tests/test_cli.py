"""Tests for the only-agent command-line tool."""

import io
import json
from unittest.mock import patch

import pytest

from only_agent.tools.cli import EXIT_FAILED, EXIT_OK, EXIT_PARSE_ERROR, main


REPLY = """
{{TOOL_CALL:MODIFY}}
FILE: src/util.py
BEFORE:
```
X = 1
```
AFTER:
```
X = 2
```
{{TOOL_CALL:CREATE}}
FILE: docs/notes.md
CONTENT:
```
# Notes
```
{{TOOL_CALL:SHELL}}
COMMAND: make test
"""


@pytest.fixture
def reply_file(tmp_path):
    path = tmp_path / "reply.md"
    path.write_text(REPLY, encoding="utf-8")
    return path


class TestPromptCommand:
    """Tests for `only-agent prompt`."""

    def test_prints_prompt(self, project_dir, capsys):
        code = main(["--root", str(project_dir), "prompt", "add", "logging", "--open", "src/app.py"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "- src/app.py" in out
        assert "File: src/app.py" in out
        assert out.rstrip().endswith("User Request: add logging")

    def test_copy_falls_back_to_print(self, project_dir, capsys):
        with patch("only_agent.runtime.workspace.shutil.which", return_value=None):
            code = main(["--root", str(project_dir), "prompt", "x", "--copy"])

        assert code == EXIT_OK
        assert "User Request: x" in capsys.readouterr().out


class TestApplyCommand:
    """Tests for `only-agent apply`."""

    def test_dry_run_lists_actions(self, project_dir, reply_file, capsys):
        code = main(["--root", str(project_dir), "apply", str(reply_file), "--dry-run"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "MODIFY src/util.py" in out
        assert "SHELL make test" in out
        assert (project_dir / "src" / "util.py").read_text(encoding="utf-8") == "X = 1\n"

    def test_dry_run_json(self, project_dir, reply_file, capsys):
        main(["--root", str(project_dir), "apply", str(reply_file), "--dry-run", "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["action_count"] == 3

    def test_apply_all_asks_for_shell(self, project_dir, reply_file, monkeypatch):
        """--all applies file actions and still confirms the SHELL command."""
        answers = []
        monkeypatch.setattr("builtins.input", lambda prompt: answers.append(prompt) or "n")

        with patch("only_agent.runtime.workspace.subprocess.Popen") as popen:
            code = main(["--root", str(project_dir), "apply", str(reply_file), "--all"])

        assert code == EXIT_OK
        assert (project_dir / "src" / "util.py").read_text(encoding="utf-8") == "X = 2\n"
        assert (project_dir / "docs" / "notes.md").read_text(encoding="utf-8") == "# Notes"
        assert len(answers) == 1
        assert "SHELL make test" in answers[0]
        popen.assert_not_called()

    def test_interactive_quit(self, project_dir, reply_file, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "q")

        code = main(["--root", str(project_dir), "apply", str(reply_file)])

        assert code == EXIT_OK
        assert not (project_dir / "docs" / "notes.md").exists()

    def test_failed_action_exit_code(self, project_dir, tmp_path):
        reply = tmp_path / "bad.md"
        reply.write_text("{{TOOL_CALL:DELETE}}\nFILE: missing.txt\n", encoding="utf-8")

        code = main(["--root", str(project_dir), "apply", str(reply), "--yes"])

        assert code == EXIT_FAILED

    def test_parse_error_exit_code(self, project_dir, tmp_path):
        reply = tmp_path / "empty.md"
        reply.write_text("Sorry, I can't help with that.", encoding="utf-8")

        assert main(["--root", str(project_dir), "apply", str(reply)]) == EXIT_PARSE_ERROR

    def test_reads_stdin(self, project_dir, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("{{TOOL_CALL:DELETE}}\nFILE: README.md\n"))

        code = main(["--root", str(project_dir), "apply", "-", "--yes"])

        assert code == EXIT_OK
        assert not (project_dir / "README.md").exists()
