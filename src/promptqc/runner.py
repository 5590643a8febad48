"""QC runner: registers units and runs them concurrently."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from .config.settings import Settings, get_settings
from .context import round_to_hundredth
from .errors import FixtureError
from .fixtures import read_fixture_map_async
from .models import (
    CompletionFn,
    Prompt,
    QCConfig,
    QCDefinition,
    QCResult,
    QCSummary,
    Stage,
    SummaryTimeStats,
    TestFn,
)
from .processor import complete_only_test, error_result, process_unit
from .validation import validate_config

logger = logging.getLogger(__name__)


class QCRunner:
    """Registry and runner for QC units.

    Units are grouped by fixture file. ``run()`` reads each fixture file
    once, resolves every unit's prompt group and processes all resolvable
    units concurrently. A bad fixture file or missing group skips the
    affected units (logged) without failing the run.

    Results come back in launch order: fixture files in the order they
    were first registered, units in registration order within a file.
    """

    def __init__(
        self,
        max_concurrency: int | None = None,
        offload_sync_callbacks: bool = False,
        fixture_encoding: str = "utf-8",
        progress_callback: Callable[[int, int, QCResult], None] | None = None,
    ):
        """Initialize the runner.

        Args:
            max_concurrency: Maximum units in flight at once (None = no limit)
            offload_sync_callbacks: Run sync callbacks in the default executor
            fixture_encoding: Text encoding of fixture files
            progress_callback: Called per result after a run (current, total, result)

        Raises:
            ValueError: max_concurrency is below 1
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self.offload_sync_callbacks = offload_sync_callbacks
        self.fixture_encoding = fixture_encoding
        self.progress_callback = progress_callback
        self.definitions: dict[str, list[QCDefinition]] = {}

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> QCRunner:
        """Create a runner configured from :class:`Settings`."""
        settings = settings or get_settings()
        return cls(**{**settings.runner_options(), **kwargs})

    def __len__(self) -> int:
        return sum(len(defs) for defs in self.definitions.values())

    def register(
        self,
        config: QCConfig | Mapping[str, Any],
        completion_fn: CompletionFn,
        test_fn: TestFn,
    ) -> QCDefinition:
        """Register a unit.

        Raises:
            ConfigValidationError: The config is invalid; nothing is registered.
        """
        if not isinstance(config, QCConfig):
            config = QCConfig.from_mapping(config)

        error = validate_config(config)
        if error:
            raise error

        definition = QCDefinition(config=config, completion_fn=completion_fn, test_fn=test_fn)
        self.definitions.setdefault(config.fixture_file, []).append(definition)
        logger.debug("Registered %s (%s:%s)", config.name, config.fixture_file, config.group)
        return definition

    def test(
        self,
        name: str,
        fixture_file: str,
        group: str,
        completion_fn: CompletionFn,
        test_fn: TestFn,
        *,
        pass_threshold: float | None = None,
    ) -> QCDefinition:
        """Complete the prompts of ``group`` and test the response."""
        config = QCConfig(
            name=name,
            fixture_file=fixture_file,
            group=group,
            pass_threshold=pass_threshold,
        )
        return self.register(config, completion_fn, test_fn)

    def complete(
        self,
        name: str,
        fixture_file: str,
        group: str,
        completion_fn: CompletionFn,
    ) -> QCDefinition:
        """Complete the prompts of ``group`` without testing the response."""
        config = QCConfig(name=name, fixture_file=fixture_file, group=group)
        return self.register(config, completion_fn, complete_only_test)

    async def _resolve(self) -> list[tuple[QCDefinition, list[Prompt]]]:
        """Load each fixture file once and pair every unit with its prompts."""
        resolved = []
        for fixture_file, definitions in self.definitions.items():
            try:
                fixture_map = await read_fixture_map_async(
                    fixture_file, encoding=self.fixture_encoding
                )
            except FixtureError as e:
                logger.error(
                    "Skipping %d unit(s): %s",
                    len(definitions),
                    e,
                    extra={"fixture_file": fixture_file},
                )
                continue

            for definition in definitions:
                group = definition.config.group
                prompts = fixture_map.get(group)
                if prompts is None:
                    logger.warning(
                        "%s: prompt group '%s' does not exist, skipping %s",
                        fixture_file,
                        group,
                        definition.name,
                        extra={"unit": definition.name, "group": group},
                    )
                    continue
                resolved.append((definition, prompts))
        return resolved

    async def run_async(self) -> QCSummary:
        """Run every registered unit.

        Returns:
            Summary with one result per launched unit
        """
        start_time = time.perf_counter()
        resolved = await self._resolve()

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def bounded_process(definition: QCDefinition, prompts: list[Prompt]) -> QCResult:
            if semaphore is None:
                return await process_unit(definition, prompts, self.offload_sync_callbacks)
            async with semaphore:
                return await process_unit(definition, prompts, self.offload_sync_callbacks)

        outcomes = await asyncio.gather(
            *(bounded_process(d, p) for d, p in resolved),
            return_exceptions=True,
        )

        results = []
        for (definition, prompts), outcome in zip(resolved, outcomes):
            if isinstance(outcome, BaseException):
                # process_unit captures callback failures, so this is an engine bug
                logger.error(
                    "Unexpected failure processing %s: %r",
                    definition.name,
                    outcome,
                    extra={"unit": definition.name, "stage": Stage.ENGINE.value},
                )
                outcome = error_result(definition, prompts, Stage.ENGINE, exc=outcome)
            results.append(outcome)

        total_ms = (time.perf_counter() - start_time) * 1000
        time_stats = SummaryTimeStats(total_ms=round_to_hundredth(total_ms))
        if resolved:
            time_stats.avg_ms = round_to_hundredth(total_ms / len(resolved))

        summary = QCSummary(results=results, time_stats=time_stats)

        if self.progress_callback:
            for i, result in enumerate(results):
                self.progress_callback(i + 1, len(results), result)

        logger.info(
            "Ran %d unit(s): %d passed, %d failed, %d errors in %.2fms",
            summary.total,
            summary.passed,
            summary.failed,
            summary.errors,
            time_stats.total_ms,
            extra={"duration_ms": time_stats.total_ms},
        )
        return summary

    def run(self) -> QCSummary:
        """Run every registered unit, blocking until all finish."""
        return asyncio.run(self.run_async())
