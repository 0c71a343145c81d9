"""Tests for BEFORE-block location.

Covers the exact stage, the whitespace-tolerant line stage, and the
empty-block and not-found outcomes.
"""

import pytest

from only_agent.runtime.errors import EmptyPatchBlockError, PatchNotFoundError
from only_agent.runtime.patch_matcher import (
    STRATEGY_EXACT,
    STRATEGY_FUZZY_LINES,
    exact_match,
    fuzzy_line_match,
    locate,
)


class TestExactStage:
    """Tests for verbatim matching."""

    def test_exact_range(self):
        """An exact hit returns [offset, offset + len(before))."""
        match = locate("a\nb\nc\n", "b")

        assert (match.start, match.end) == (2, 3)
        assert match.strategy == STRATEGY_EXACT
        assert (match.first_line, match.last_line) == (1, 1)

    def test_first_occurrence_wins(self):
        """With duplicates, the earliest occurrence is used."""
        match = locate("x = 1\nx = 1\n", "x = 1")

        assert match.start == 0

    def test_exact_preferred_over_fuzzy(self):
        """Exact matching runs before line matching."""
        text = "if a:\n    pass\n"
        match = locate(text, "    pass")

        assert match.strategy == STRATEGY_EXACT
        assert text[match.start : match.end] == "    pass"

    def test_multiline_exact_lines(self):
        """Line span covers every line the snippet touches."""
        match = exact_match("one\ntwo\nthree\n", "two\nthree")

        assert (match.first_line, match.last_line) == (1, 2)


class TestFuzzyStage:
    """Tests for whitespace-tolerant line matching."""

    def test_reindented_snippet(self):
        """Lines equal after stripping match; the range covers whole lines."""
        text = "  def f():\n    return 1\n"
        match = locate(text, "def f():\nreturn 1")

        assert (match.start, match.end) == (0, 23)
        assert match.strategy == STRATEGY_FUZZY_LINES
        assert text[match.start : match.end] == "  def f():\n    return 1"

    def test_blank_edges_of_snippet_ignored(self):
        """Leading and trailing blank lines in BEFORE do not have to match."""
        match = locate("  def f():\n    return 1\n", "\n\ndef f():\nreturn 1\n\n")

        assert (match.start, match.end) == (0, 23)

    def test_lowest_start_line_wins(self):
        """The first matching start line is chosen."""
        match = locate("  x\ny\n x\ny\n", " x \n y")

        assert match.first_line == 0
        assert (match.start, match.end) == (0, 5)

    def test_crlf_range_excludes_carriage_return(self):
        """The last line's '\\r' stays outside the replaced range."""
        text = "a\r\n  b\r\nc\r\n"
        match = locate(text, "b  ")

        assert match.strategy == STRATEGY_FUZZY_LINES
        assert text[match.start : match.end] == "  b"

    def test_no_match_returns_none(self):
        """Non-contiguous lines are not a match."""
        assert locate("a\nb\nc", "a\nc") is None

    def test_snippet_longer_than_file(self):
        """A snippet with more lines than the file cannot match."""
        assert fuzzy_line_match("a", "a\nb\nc") is None


class TestEmptyBlock:
    """Tests for blank BEFORE blocks."""

    @pytest.mark.parametrize("before", ["", "   ", "\n\n", " \t\n  \n"])
    def test_blank_before_raises(self, before):
        """Blank snippets raise before any matching is attempted."""
        with pytest.raises(EmptyPatchBlockError):
            locate("   \n\n some text", before)

    def test_empty_block_is_a_not_found(self):
        """EmptyPatchBlockError is a PatchNotFoundError with its own code."""
        with pytest.raises(PatchNotFoundError) as exc_info:
            locate("text", "  ")

        assert exc_info.value.code == "empty_patch_block"


class TestPurity:
    """The matcher never changes its inputs."""

    def test_repeatable(self):
        """Same inputs give the same match."""
        text = "alpha\n  beta\ngamma\n"
        assert locate(text, "beta") == locate(text, "beta")
        assert text == "alpha\n  beta\ngamma\n"
