"""Tests for summary reporters."""

import json
from io import StringIO

from rich.console import Console

from promptqc.models import (
    Assertion,
    AssertionKind,
    QCResult,
    QCSummary,
    ResultTimeStats,
    Stage,
    StageError,
    SummaryTimeStats,
)
from promptqc.reporters import (
    ConsoleReporter,
    JSONReporter,
    describe_assertion,
    describe_error,
    save_summary_to_json,
)


def _make_summary() -> QCSummary:
    passing = QCResult(
        name="Test 1",
        group="test1",
        prompts=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        num_assertions=1,
        num_passed=1,
        score=1.0,
        passed=True,
        stored_vars={"keystr": "value"},
        time_stats=ResultTimeStats(total_ms=12.5, completion_ms=10.0, test_ms=2.5),
    )
    failing = QCResult(
        name="Test 2",
        group="test2",
        num_assertions=2,
        num_passed=1,
        num_failed=1,
        score=0.5,
        passed=False,
        failed_assertions=[Assertion("assistant", "tool", AssertionKind.STRICT_EQUAL, False)],
        time_stats=ResultTimeStats(total_ms=3.0),
    )
    errored = QCResult(
        name="Test 3",
        group="test1",
        error=StageError(Stage.COMPLETION, "model unavailable", "ConnectionError"),
    )
    return QCSummary(
        results=[passing, failing, errored],
        time_stats=SummaryTimeStats(total_ms=20.0, avg_ms=6.67),
    )


class TestDescribe:
    """Tests for human-readable assertion and error text."""

    def test_strict_equal(self):
        assertion = Assertion("assistant", "tool", AssertionKind.STRICT_EQUAL, False)
        assert describe_assertion(assertion) == "'assistant' expected to strict equal 'tool'"

    def test_deep_strict_equal(self):
        assertion = Assertion({"a": 1}, {"a": 2}, AssertionKind.DEEP_STRICT_EQUAL, False)
        assert describe_assertion(assertion) == (
            '\'{"a": 1}\' expected to deep strict equal \'{"a": 2}\''
        )

    def test_includes(self):
        assertion = Assertion("content", "absent", AssertionKind.INCLUDES, False)
        assert describe_assertion(assertion) == "'content' expected to include 'absent'"

    def test_error_with_cause(self):
        error = StageError(Stage.TEST_EXECUTION, "bad test", "ValueError")
        assert describe_error(error) == "TestExecution: ValueError: bad test"

    def test_error_without_cause(self):
        error = StageError(Stage.COMPLETION, "'completion_fn' returned an empty value")
        assert describe_error(error) == "Completion: Error: 'completion_fn' returned an empty value"


class TestConsoleReporter:
    """Tests for ConsoleReporter."""

    def test_report_lines(self):
        report = ConsoleReporter().report(_make_summary())
        lines = report.splitlines()

        assert lines[0] == "+ Test 1 | test1 | Score: 1.00 (12.5ms)"
        assert lines[1] == "- Test 2 | test2 | Score: 0.50 (3.0ms)"
        assert lines[2] == "> 'assistant' expected to strict equal 'tool'"
        assert lines[3] == "- Test 3 | test1 (0.0ms)"
        assert lines[4] == "> Completion: ConnectionError: model unavailable"
        assert "* 3 qcs" in lines
        assert "* 20.0ms" in lines

    def test_print_does_not_raise(self):
        buffer = StringIO()
        console = Console(file=buffer, force_terminal=False, width=200)
        ConsoleReporter().print(_make_summary(), console)
        output = buffer.getvalue()
        assert "+ Test 1 | test1 | Score: 1.00" in output
        assert "> Completion: ConnectionError: model unavailable" in output

    def test_print_escapes_markup(self):
        summary = QCSummary(results=[QCResult(name="[bold]x[/bold]", group="g", passed=True)])
        buffer = StringIO()
        ConsoleReporter().print(summary, Console(file=buffer, width=200))
        assert "[bold]x[/bold]" in buffer.getvalue()

    def test_empty_summary(self):
        report = ConsoleReporter().report(QCSummary())
        assert "* 0 qcs" in report


class TestJSONReporter:
    """Tests for JSONReporter and file persistence."""

    def test_report_round_trips_structure(self):
        data = json.loads(JSONReporter().report(_make_summary()))

        assert data["time_stats"] == {"total_ms": 20.0, "avg_ms": 6.67}
        first, second, third = data["results"]
        assert first["prompts"][-1] == {"role": "assistant", "content": "hello"}
        assert first["stored_vars"] == {"keystr": "value"}
        assert first["error"] is None
        assert second["failed_assertions"] == [
            {"lval": "assistant", "rval": "tool", "type": "StrictEqual", "result": False}
        ]
        assert third["error"] == {
            "stage": "Completion",
            "message": "model unavailable",
            "cause_type": "ConnectionError",
        }

    def test_non_json_values_are_stringified(self):
        summary = QCSummary(results=[QCResult(name="n", group="g", prompts=[{1, 2}])])
        data = json.loads(JSONReporter().report(summary))
        assert isinstance(data["results"][0]["prompts"][0], str)

    def test_save_summary_to_json(self, tmp_path):
        path = tmp_path / "summary.json"
        save_summary_to_json(_make_summary(), path)
        data = json.loads(path.read_text())
        assert len(data["results"]) == 3
