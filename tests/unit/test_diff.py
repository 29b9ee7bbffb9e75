"""Tests for dogvault.core.diff."""

from dogvault.core.diff import diff_documents, diff_text, render_for_diff


class TestDiffText:
    def test_identical_is_empty(self):
        assert diff_text("---\na: b\n", "---\na: b\n") == ""

    def test_prefixes(self):
        result = diff_text("---\na: 1\nb: 2\n", "---\na: 1\nb: 3\n")
        assert result.splitlines() == [" ---", " a: 1", "-b: 2", "+b: 3"]

    def test_removed_before_added(self):
        result = diff_text("x\ny\n", "z\n")
        assert result.splitlines() == ["-x", "-y", "+z"]

    def test_empty_current(self):
        assert diff_text("", "---\na: b\n").splitlines() == ["+---", "+a: b"]

    def test_full_context(self):
        current = "".join(f"k{i}: v\n" for i in range(20)) + "last: 1\n"
        stored = "".join(f"k{i}: v\n" for i in range(20)) + "last: 2\n"
        lines = diff_text(current, stored).splitlines()
        assert len(lines) == 22
        assert lines[0] == " k0: v"


class TestDiffDocuments:
    def test_order_insensitive(self):
        assert diff_documents({"a": [1, 2], "b": 1}, {"b": 1, "a": [2, 1]}) == ""

    def test_order_sensitive_when_not_sorting(self):
        lines = diff_documents({"a": [1, 2]}, {"a": [2, 1]}, sort_arrays=False).splitlines()
        assert lines[:2] == [" ---", " a:"]
        assert any(line.startswith("-") for line in lines)
        assert any(line.startswith("+") for line in lines)

    def test_none_renders_as_nothing(self):
        assert render_for_diff(None) == ""
        assert diff_documents(None, {"a": "b"}).splitlines() == ["+---", "+a: b"]

    def test_structural_change(self):
        result = diff_documents({"data": {"id": "x"}}, {"a": "b"})
        assert result.splitlines() == [" ---", "-data:", "-  id: x", "+a: b"]
