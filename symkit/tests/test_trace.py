"""Tests for simplification traces."""

import json

import pytest
from symkit import E, simplify, RewriteTrace, RewriteStep


class TestTraceRecording:
    """Tests for what simplify(trace=True) records."""

    def test_returns_tuple(self):
        """trace=True returns (result, trace)."""
        result, trace = simplify(E("(+ x 0)"), trace=True)
        assert result == E("x")
        assert isinstance(trace, RewriteTrace)

    def test_single_round(self):
        """One rewriting round produces one step."""
        _, trace = simplify(E("(+ x 0)"), trace=True)
        assert len(trace) == 1
        step = trace.steps[0]
        assert isinstance(step, RewriteStep)
        assert step.round_index == 1
        assert step.rules == ["add-zero"]
        assert step.before == E("(+ x 0)")
        assert step.after == E("x")

    def test_initial_and_final(self):
        """Trace keeps the input and the result."""
        _, trace = simplify(E("(+ x x)"), trace=True)
        assert trace.initial == E("(+ x x)")
        assert trace.final == E("(* 2 x)")
        assert trace.rules_applied() == ["combine-like-terms"]

    def test_multiple_rounds(self):
        """Rounds are numbered from 1."""
        _, trace = simplify(E("(+ (* x 1) (* x 1))"), trace=True)
        assert [step.round_index for step in trace] == list(range(1, len(trace) + 1))
        assert "mul-one" in trace.rules_applied()
        assert trace.final == E("(* 2 x)")

    def test_empty_trace(self):
        """Nothing to do gives an empty, falsy trace."""
        result, trace = simplify(E("(+ x y)"), trace=True)
        assert result == E("(+ x y)")
        assert not trace
        assert len(trace) == 0


class TestTraceFormatting:
    """Tests for trace format() method."""

    def setup_method(self):
        _, self.trace = simplify(E("(+ x 0)"), trace=True)

    def test_format_verbose(self):
        """Verbose format shows full details."""
        verbose = self.trace.format("verbose")
        assert verbose == repr(self.trace)
        assert verbose.startswith("Initial: (+ x 0)")
        assert "round 1 [add-zero]" in verbose
        assert verbose.endswith("Final: x")

    def test_format_compact(self):
        """Compact format is a single line."""
        assert self.trace.format("compact") == "(+ x 0) --[add-zero]--> x"

    def test_format_rules(self):
        """Rules format lists rule names."""
        assert self.trace.format("rules") == "add-zero"

    def test_format_chain(self):
        """Chain format shows each intermediate expression."""
        assert self.trace.format("chain") == "(+ x 0)\n  --(add-zero)-->\nx"

    def test_format_empty_trace(self):
        """Empty trace formats correctly."""
        _, trace = simplify(E("(+ x y)"), trace=True)
        assert trace.format("rules") == "(no rules applied)"
        assert trace.format("chain") == "(+ x y)"
        assert trace.format("compact").endswith("(+ x y)")

    def test_unknown_style(self):
        """Unknown style raises ValueError."""
        with pytest.raises(ValueError):
            self.trace.format("fancy")


class TestTraceSerialization:
    """Tests for to_dict, rule_counts and summary."""

    def test_to_dict(self):
        """to_dict is JSON serializable."""
        _, trace = simplify(E("(+ x 0)"), trace=True)
        data = trace.to_dict()
        assert data["initial"] == "(+ x 0)"
        assert data["final"] == "x"
        assert data["round_count"] == 1
        assert data["steps"] == [
            {"round": 1, "rules": ["add-zero"], "before": "(+ x 0)", "after": "x"}
        ]
        json.dumps(data)

    def test_rule_counts(self):
        """rule_counts counts every firing."""
        _, trace = simplify(E("(+ (* x 1) (* y 1))"), trace=True)
        assert trace.rule_counts()["mul-one"] == 2

    def test_summary(self):
        """summary names the most used rule."""
        _, trace = simplify(E("(+ x 0)"), trace=True)
        assert trace.summary() == "1 rounds using 1 unique rules. Most used: add-zero (1x)"

    def test_summary_empty(self):
        """Empty trace summary."""
        _, trace = simplify(E("x"), trace=True)
        assert trace.summary() == "No rewriting performed"
