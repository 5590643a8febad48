"""PromptQC - prompt quality control and testing.

Register units that pair a completion function with a test function on a
:class:`QCRunner`, point them at prompt groups in fixture files, and run
them concurrently to get scored results.
"""

__version__ = "1.0.0"

from .context import QCContext, deep_equal, round_to_hundredth, strict_equal
from .errors import (
    AssertionInfrastructureError,
    ConfigValidationError,
    EmptyFixtureError,
    FixtureError,
    FixtureParseError,
    FixtureReadError,
    InvalidFixtureError,
    PromptQCError,
)
from .fixtures import load_group, load_group_async, read_fixture_map, read_fixture_map_async
from .models import (
    Assertion,
    AssertionKind,
    QCConfig,
    QCDefinition,
    QCResult,
    QCSummary,
    ResultTimeStats,
    Stage,
    StageError,
    SummaryTimeStats,
)
from .processor import complete_only_test, process_unit
from .reporters import (
    ConsoleReporter,
    JSONReporter,
    describe_assertion,
    describe_error,
    save_summary_to_json,
)
from .runner import QCRunner
from .validation import validate_config

__all__ = [
    # Runner
    "QCRunner",
    "QCContext",
    "process_unit",
    "complete_only_test",
    "validate_config",
    # Models
    "Assertion",
    "AssertionKind",
    "QCConfig",
    "QCDefinition",
    "QCResult",
    "QCSummary",
    "ResultTimeStats",
    "Stage",
    "StageError",
    "SummaryTimeStats",
    # Fixtures
    "read_fixture_map",
    "read_fixture_map_async",
    "load_group",
    "load_group_async",
    # Errors
    "PromptQCError",
    "ConfigValidationError",
    "FixtureError",
    "FixtureReadError",
    "EmptyFixtureError",
    "FixtureParseError",
    "InvalidFixtureError",
    "AssertionInfrastructureError",
    # Helpers
    "round_to_hundredth",
    "strict_equal",
    "deep_equal",
    # Reporters
    "ConsoleReporter",
    "JSONReporter",
    "describe_assertion",
    "describe_error",
    "save_summary_to_json",
]
