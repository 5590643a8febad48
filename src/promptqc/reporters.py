"""Reporters for QC run summaries."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .models import Assertion, AssertionKind, QCResult, QCSummary, StageError


def describe_assertion(assertion: Assertion) -> str:
    """Describe a (failed) assertion in one line."""
    if assertion.kind == AssertionKind.STRICT_EQUAL:
        return f"'{assertion.lval}' expected to strict equal '{assertion.rval}'"
    if assertion.kind == AssertionKind.DEEP_STRICT_EQUAL:
        lstring = json.dumps(assertion.lval, default=str)
        rstring = json.dumps(assertion.rval, default=str)
        return f"'{lstring}' expected to deep strict equal '{rstring}'"
    if assertion.kind == AssertionKind.INCLUDES:
        return f"'{assertion.lval}' expected to include '{assertion.rval}'"
    return "assertion failed"


def describe_error(error: StageError) -> str:
    if error.cause_type:
        return f"{error.stage.value}: {error.cause_type}: {error.message}"
    return f"{error.stage.value}: Error: {error.message}"


class Reporter(ABC):
    """Abstract base class for summary reporters."""

    @abstractmethod
    def report(self, summary: QCSummary) -> str:
        """Generate a report from a run summary.

        Args:
            summary: Run summary

        Returns:
            Formatted report string
        """
        pass

    def save(self, summary: QCSummary, path: str | Path) -> None:
        """Save report to file.

        Args:
            summary: Run summary
            path: Output file path
        """
        report = self.report(summary)
        Path(path).write_text(report, encoding="utf-8")


class ConsoleReporter(Reporter):
    """Line-per-unit text reporter.

    Passing units print as ``+ name | group | Score: 1.00 (3.2ms)``,
    failing ones as ``- ...`` followed by one ``>`` line per failed
    assertion, or the error for units that errored.
    """

    def _result_lines(self, result: QCResult) -> list[tuple[str, str]]:
        """Return (style, text) pairs for one result."""
        total_ms = result.time_stats.total_ms
        score = f"{result.score:.2f}"

        if result.passed:
            return [("green", f"+ {result.name} | {result.group} | Score: {score} ({total_ms}ms)")]

        if result.error:
            return [
                ("red", f"- {result.name} | {result.group} ({total_ms}ms)"),
                ("red", f"> {describe_error(result.error)}"),
            ]

        lines = [("red", f"- {result.name} | {result.group} | Score: {score} ({total_ms}ms)")]
        for assertion in result.failed_assertions:
            lines.append(("red", f"> {describe_assertion(assertion)}"))
        return lines

    def _footer(self, summary: QCSummary) -> list[str]:
        return [
            "",
            f"* {summary.total} qcs",
            f"* {summary.time_stats.total_ms}ms",
        ]

    def report(self, summary: QCSummary) -> str:
        """Generate plain-text report."""
        lines = []
        for result in summary.results:
            lines.extend(text for _, text in self._result_lines(result))
        lines.extend(self._footer(summary))
        return "\n".join(lines)

    def print(self, summary: QCSummary, console: Console | None = None) -> None:
        """Print the report with colour."""
        console = console or Console()
        for result in summary.results:
            for style, text in self._result_lines(result):
                console.print(f"[{style}]{escape(text)}[/{style}]", highlight=False)
        for text in self._footer(summary):
            console.print(escape(text), highlight=False)


class JSONReporter(Reporter):
    """JSON format reporter."""

    def __init__(self, indent: int = 2):
        """Initialize JSON reporter.

        Args:
            indent: JSON indentation
        """
        self.indent = indent

    def report(self, summary: QCSummary) -> str:
        """Generate JSON report."""
        return json.dumps(summary.to_dict(), indent=self.indent, default=str)


def save_summary_to_json(summary: QCSummary, path: str | Path) -> None:
    """Write a run summary to ``path`` as JSON."""
    JSONReporter().save(summary, path)
