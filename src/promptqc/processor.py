"""Single-unit processing: completion, then test, then result assembly."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import math
import time
from collections.abc import Callable, Sequence
from typing import Any

from .context import QCContext, round_to_hundredth
from .models import Prompt, QCDefinition, QCResult, Stage, StageError

logger = logging.getLogger(__name__)

EMPTY_COMPLETION_MESSAGE = "'completion_fn' returned an empty value"


def complete_only_test(q: QCContext, response: Any) -> None:
    """Test function for units that only produce a completion."""
    return None


def _elapsed_ms(start: float) -> float:
    return round_to_hundredth((time.perf_counter() - start) * 1000)


async def _invoke(fn: Callable[..., Any], *args: Any, offload: bool = False) -> Any:
    """Call a sync or async callback and return its (awaited) value."""
    if offload and not inspect.iscoroutinefunction(fn):
        loop = asyncio.get_running_loop()
        value = await loop.run_in_executor(None, functools.partial(fn, *args))
    else:
        value = fn(*args)
    if inspect.isawaitable(value):
        value = await value
    return value


def _final_score(ctx: QCContext) -> float:
    score = ctx.score
    try:
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise TypeError(type(score).__name__)
        score = float(score)
        if math.isnan(score):
            raise ValueError("nan")
    except (TypeError, ValueError, OverflowError):
        logger.warning("%s: 'score' must be a number, got %r", ctx.config.name, ctx.score)
        return 0.0
    return round_to_hundredth(score)


def _final_passed(ctx: QCContext, score: float, threshold: float) -> bool:
    if ctx.passed is None:
        return score >= threshold
    if not isinstance(ctx.passed, bool):
        logger.warning("%s: 'passed' must be a boolean, got %r", ctx.config.name, ctx.passed)
        return score >= threshold
    return ctx.passed


def error_result(
    definition: QCDefinition,
    prompts: Sequence[Prompt],
    stage: Stage,
    exc: BaseException | None = None,
    message: str = "",
) -> QCResult:
    """Build a result for a unit that failed in ``stage``.

    Counters, score and pass flag keep their defaults.
    """
    config = definition.config
    if exc is not None:
        error = StageError.from_exception(stage, exc)
    else:
        error = StageError(stage=stage, message=message)
    return QCResult(
        name=config.name,
        group=config.group,
        pass_threshold=config.effective_threshold,
        prompts=list(prompts),
        error=error,
    )


async def process_unit(
    definition: QCDefinition,
    prompts: Sequence[Prompt],
    offload_sync_callbacks: bool = False,
) -> QCResult:
    """Run one unit's completion and test functions.

    Completion or test failures are captured on the result's ``error`` and
    never raised.

    Args:
        definition: Registered unit
        prompts: Resolved prompt group for the unit
        offload_sync_callbacks: Run sync callbacks in the default executor

    Returns:
        The unit result
    """
    config = definition.config
    start_total = time.perf_counter()
    logger.debug("Processing %s (%s, %d prompts)", config.name, config.group, len(prompts))

    start_completion = time.perf_counter()
    try:
        response = await _invoke(
            definition.completion_fn, list(prompts), offload=offload_sync_callbacks
        )
    except Exception as e:
        logger.debug("%s: completion failed: %s", config.name, e)
        result = error_result(definition, prompts, Stage.COMPLETION, exc=e)
        result.time_stats.completion_ms = _elapsed_ms(start_completion)
        result.time_stats.total_ms = _elapsed_ms(start_total)
        return result
    completion_ms = _elapsed_ms(start_completion)

    try:
        empty = not response
    except Exception as e:
        # e.g. arrays and frames with an ambiguous truth value
        result = error_result(definition, prompts, Stage.COMPLETION, exc=e)
        result.time_stats.completion_ms = completion_ms
        result.time_stats.total_ms = _elapsed_ms(start_total)
        return result

    if empty:
        result = error_result(
            definition, prompts, Stage.COMPLETION, message=EMPTY_COMPLETION_MESSAGE
        )
        result.time_stats.completion_ms = completion_ms
        result.time_stats.total_ms = _elapsed_ms(start_total)
        return result

    ctx = QCContext(config)
    start_test = time.perf_counter()
    try:
        returned = await _invoke(
            definition.test_fn, ctx, response, offload=offload_sync_callbacks
        )
    except Exception as e:
        logger.debug("%s: test function failed: %s", config.name, e)
        result = error_result(definition, prompts, Stage.TEST_EXECUTION, exc=e)
        result.time_stats.completion_ms = completion_ms
        result.time_stats.test_ms = _elapsed_ms(start_test)
        result.time_stats.total_ms = _elapsed_ms(start_total)
        return result
    test_ms = _elapsed_ms(start_test)

    response_prompt = response if returned is None else returned
    threshold = config.effective_threshold
    score = _final_score(ctx)

    result = QCResult(
        name=config.name,
        group=config.group,
        pass_threshold=threshold,
        prompts=[*prompts, response_prompt],
        num_assertions=ctx.num_assertions,
        num_passed=ctx.num_passed,
        num_failed=ctx.num_failed,
        score=score,
        passed=_final_passed(ctx, score, threshold),
        failed_assertions=list(ctx.failed_assertions),
        stored_vars=dict(ctx.stored_vars),
    )
    result.time_stats.completion_ms = completion_ms
    result.time_stats.test_ms = test_ms
    result.time_stats.total_ms = _elapsed_ms(start_total)

    logger.debug(
        "%s: score %.2f (%d/%d), passed=%s",
        config.name,
        result.score,
        result.num_passed,
        result.num_assertions,
        result.passed,
    )
    return result
