"""Data model for QC units, results, and run summaries."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_PASS_THRESHOLD = 1.0

# A prompt is whatever the fixture file holds; the engine never looks inside.
Prompt = Any
FixtureMap = dict[str, list[Prompt]]
StoredVal = int | float | str | bool

CompletionFn = Callable[[list[Prompt]], Any | Awaitable[Any]]
TestFn = Callable[[Any, Any], Any | Awaitable[Any]]


class Stage(str, Enum):
    """Pipeline stage an error is attributed to."""

    CONFIG_VALIDATION = "ConfigValidation"
    COMPLETION = "Completion"
    TEST_EXECUTION = "TestExecution"
    ENGINE = "Engine"


class AssertionKind(str, Enum):
    """Kind of comparison an assertion performed."""

    STRICT_EQUAL = "StrictEqual"
    DEEP_STRICT_EQUAL = "DeepStrictEqual"
    INCLUDES = "Includes"


@dataclass
class Assertion:
    """A single recorded assertion.

    Attributes:
        lval: Left operand (actual value, or container for INCLUDES)
        rval: Right operand (expected value, or item for INCLUDES)
        kind: Comparison performed
        result: Whether the assertion held
    """

    lval: Any
    rval: Any
    kind: AssertionKind
    result: bool

    def to_dict(self) -> dict:
        return {
            "lval": self.lval,
            "rval": self.rval,
            "type": self.kind.value,
            "result": self.result,
        }


@dataclass(frozen=True)
class QCConfig:
    """Configuration for one QC unit.

    Attributes:
        name: Unit name shown in reports
        fixture_file: Path to the fixture (prompt) file
        group: Name of the prompt group inside the fixture file
        pass_threshold: Minimum score needed to pass (defaults to 1.0)
    """

    name: str
    fixture_file: str
    group: str
    pass_threshold: float | None = None

    @property
    def effective_threshold(self) -> float:
        if self.pass_threshold is None:
            return DEFAULT_PASS_THRESHOLD
        return self.pass_threshold

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> QCConfig:
        """Build a config from a plain mapping (e.g. parsed from YAML)."""
        return cls(
            name=data.get("name"),
            fixture_file=data.get("fixture_file"),
            group=data.get("group"),
            pass_threshold=data.get("pass_threshold"),
        )


@dataclass(frozen=True)
class QCDefinition:
    """A registered unit: config plus its completion and test callbacks."""

    config: QCConfig
    completion_fn: CompletionFn
    test_fn: TestFn

    @property
    def name(self) -> str:
        return self.config.name


@dataclass
class StageError:
    """An error captured while processing a unit.

    Attributes:
        stage: Stage the error occurred in
        message: Human-readable message
        cause_type: Exception class name of the underlying failure, if any
    """

    stage: Stage
    message: str
    cause_type: str | None = None

    @classmethod
    def from_exception(cls, stage: Stage, exc: BaseException) -> StageError:
        message = str(exc) or f"{type(exc).__name__} raised in {stage.value}"
        return cls(stage=stage, message=message, cause_type=type(exc).__name__)

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "message": self.message,
            "cause_type": self.cause_type,
        }


@dataclass
class ResultTimeStats:
    total_ms: float = 0.0
    completion_ms: float = 0.0
    test_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_ms": self.total_ms,
            "completion_ms": self.completion_ms,
            "test_ms": self.test_ms,
        }


@dataclass
class QCResult:
    """Result of processing a single QC unit.

    When ``error`` is set, the score, pass flag and assertion counts hold
    their defaults and must not be read as a judgment.
    """

    name: str
    group: str
    pass_threshold: float = DEFAULT_PASS_THRESHOLD
    prompts: list[Prompt] = field(default_factory=list)
    num_assertions: int = 0
    num_passed: int = 0
    num_failed: int = 0
    score: float = 0.0
    passed: bool = False
    failed_assertions: list[Assertion] = field(default_factory=list)
    stored_vars: dict[str, StoredVal] = field(default_factory=dict)
    time_stats: ResultTimeStats = field(default_factory=ResultTimeStats)
    error: StageError | None = None

    @property
    def errored(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "group": self.group,
            "prompts": list(self.prompts),
            "num_assertions": self.num_assertions,
            "num_passed": self.num_passed,
            "num_failed": self.num_failed,
            "score": self.score,
            "pass_threshold": self.pass_threshold,
            "passed": self.passed,
            "failed_assertions": [a.to_dict() for a in self.failed_assertions],
            "stored_vars": dict(self.stored_vars),
            "time_stats": self.time_stats.to_dict(),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class SummaryTimeStats:
    total_ms: float = 0.0
    avg_ms: float = 0.0

    def to_dict(self) -> dict:
        return {"total_ms": self.total_ms, "avg_ms": self.avg_ms}


@dataclass
class QCSummary:
    """Result of a full runner pass.

    Attributes:
        results: Unit results in launch order
        time_stats: Total and mean wall time
    """

    results: list[QCResult] = field(default_factory=list)
    time_stats: SummaryTimeStats = field(default_factory=SummaryTimeStats)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.error is None)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.error is not None)

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.results)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "time_stats": self.time_stats.to_dict(),
        }
