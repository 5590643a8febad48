"""Assertion-tracking context handed to test functions.

A fresh :class:`QCContext` is created for every unit right before its test
function runs. Each ``assert_*`` call records an :class:`Assertion`,
updates the pass/fail counters and recomputes the score as
``num_passed / num_assertions`` (1.0 while no assertions exist).

Assertions never raise on a mismatch; they return ``False`` and record the
failure. They raise :class:`AssertionInfrastructureError` only when the
comparison itself cannot be carried out.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Callable, Container, Mapping
from typing import Any

from .errors import AssertionInfrastructureError
from .models import Assertion, AssertionKind, QCConfig, StoredVal

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = (type(None), bool, int, float, str, bytes)
STORABLE_TYPES = (int, float, str, bool)


def round_to_hundredth(n: float) -> float:
    """Round to the nearest 0.01, halves rounding up.

    Infinities, NaN and floats too large to scale come back unchanged.
    """
    scaled = n * 100 + 0.5
    if not math.isfinite(scaled):
        return n
    return math.floor(scaled) / 100


def is_primitive(value: Any) -> bool:
    return isinstance(value, PRIMITIVE_TYPES)


def _is_object(value: Any) -> bool:
    # None dispatches with the composites
    return value is None or not is_primitive(value)


def _primitive_kind(value: Any) -> str:
    # bool first: bool is an int subclass but never equals a number here
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "str"
    if isinstance(value, bytes):
        return "bytes"
    return "none"


def strict_equal(lval: Any, rval: Any) -> bool:
    """Identity for composites, type-strict equality for primitives."""
    if is_primitive(lval) and is_primitive(rval):
        return _primitive_kind(lval) == _primitive_kind(rval) and lval == rval
    return lval is rval


def _same_value(a: Any, b: Any) -> bool:
    if _primitive_kind(a) != _primitive_kind(b):
        return False
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return a == b


def deep_equal(lval: Any, rval: Any) -> bool:
    """Structural equality of arbitrarily nested values.

    Containers must have the same type to compare equal. Mappings compare
    by key set and per-key value, lists and tuples element-wise, sets by
    membership, dataclasses and plain objects by their fields, and objects
    defining ``__eq__`` by that. Primitives compare as in
    :func:`strict_equal`, except NaN equals NaN.

    Walks iteratively, so depth is not bounded by the recursion limit, and
    tracks visited pairs so self-referencing structures terminate.
    """
    stack = [(lval, rval)]
    seen: set[tuple[int, int]] = set()

    while stack:
        a, b = stack.pop()
        if a is b:
            continue

        if is_primitive(a) or is_primitive(b):
            if not (is_primitive(a) and is_primitive(b)) or not _same_value(a, b):
                return False
            continue

        if type(a) is not type(b):
            return False

        pair = (id(a), id(b))
        if pair in seen:
            continue
        seen.add(pair)

        if isinstance(a, Mapping):
            if a.keys() != b.keys():
                return False
            stack.extend((a[k], b[k]) for k in a)
        elif isinstance(a, (list, tuple)):
            if len(a) != len(b):
                return False
            stack.extend(zip(a, b))
        elif isinstance(a, (set, frozenset)):
            if a != b:
                return False
        elif dataclasses.is_dataclass(a) and not isinstance(a, type):
            stack.extend(
                (getattr(a, f.name), getattr(b, f.name)) for f in dataclasses.fields(a)
            )
        elif type(a).__eq__ is object.__eq__ and hasattr(a, "__dict__") and not callable(a):
            stack.append((vars(a), vars(b)))
        elif not a == b:
            return False

    return True


class QCContext:
    """Per-unit scratchpad for assertions, score and stored values.

    Test functions may set ``score`` to override the derived score and
    ``passed`` to override the ``score >= pass_threshold`` comparison.
    """

    def __init__(self, config: QCConfig):
        self.config = config
        self.num_assertions = 0
        self.num_passed = 0
        self.num_failed = 0
        # No assertions yet counts as passing
        self.score = 1.0
        self.passed: bool | None = None
        self.assertions: list[Assertion] = []
        self.failed_assertions: list[Assertion] = []
        self.stored_vars: dict[str, StoredVal] = {}

    def store_var(self, name: str, value: StoredVal) -> None:
        """Keep a number, string or boolean with the unit result.

        Values of any other type are ignored.
        """
        if not isinstance(value, STORABLE_TYPES):
            logger.debug(
                "%s: ignoring stored var %r of type %s",
                self.config.name,
                name,
                type(value).__name__,
            )
            return
        self.stored_vars[name] = value

    def assert_equal(self, lval: Any, rval: Any) -> bool:
        """Deep comparison when both operands are composite or None, strict otherwise."""
        if _is_object(lval) and _is_object(rval):
            return self.assert_deep_strict_equal(lval, rval)
        return self.assert_strict_equal(lval, rval)

    def assert_strict_equal(self, lval: Any, rval: Any) -> bool:
        result = self._evaluate(strict_equal, lval, rval)
        self.record_assertion(lval, rval, AssertionKind.STRICT_EQUAL, result)
        return result

    def assert_deep_strict_equal(self, lval: Any, rval: Any) -> bool:
        result = self._evaluate(deep_equal, lval, rval)
        self.record_assertion(lval, rval, AssertionKind.DEEP_STRICT_EQUAL, result)
        return result

    def assert_includes(self, container: Any, item: Any) -> bool:
        """Assert that ``item`` is in ``container``.

        Raises:
            AssertionInfrastructureError: ``container`` has no membership check,
                or the check itself raised.
        """
        if not isinstance(container, Container):
            raise AssertionInfrastructureError(
                f"'includes' is not supported for 'lval' of type {type(container).__name__}"
            )
        result = self._evaluate(lambda c, i: i in c, container, item)
        self.record_assertion(container, item, AssertionKind.INCLUDES, result)
        return result

    def _evaluate(self, compare: Callable[[Any, Any], Any], lval: Any, rval: Any) -> bool:
        try:
            return bool(compare(lval, rval))
        except Exception as e:
            raise AssertionInfrastructureError(f"{type(e).__name__}: {e}", e) from e

    def record_assertion(self, lval: Any, rval: Any, kind: AssertionKind, result: bool) -> None:
        assertion = Assertion(lval=lval, rval=rval, kind=kind, result=result)
        self.assertions.append(assertion)
        self.num_assertions += 1
        if result:
            self.num_passed += 1
        else:
            self.num_failed += 1
            self.failed_assertions.append(assertion)
        self.calc_score()

    def calc_score(self) -> float:
        """Recompute the unrounded score from the counters."""
        if self.num_assertions == 0:
            return 1.0
        self.score = self.num_passed / self.num_assertions
        return self.score

    def round_score(self) -> float:
        return round_to_hundredth(self.score)
