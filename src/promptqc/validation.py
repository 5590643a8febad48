"""Validation of QC unit configurations before registration."""

from __future__ import annotations

import math
import os
import stat

from .errors import ConfigValidationError
from .models import QCConfig


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _check_non_empty_str(value: object, field: str) -> ConfigValidationError | None:
    if not isinstance(value, str):
        return ConfigValidationError(f"'{field}' must be a string", field)
    if not value:
        return ConfigValidationError(f"'{field}' cannot be empty", field)
    return None


def _check_fixture_file(path: str) -> ConfigValidationError | None:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return ConfigValidationError(f"'fixture_file' '{path}' does not exist", "fixture_file")
    except (OSError, ValueError):
        return ConfigValidationError(f"'fixture_file' '{path}' is inaccessible", "fixture_file")

    if stat.S_ISDIR(st.st_mode):
        return ConfigValidationError(f"'fixture_file' '{path}' is a directory", "fixture_file")
    return None


def validate_config(config: QCConfig) -> ConfigValidationError | None:
    """Check a unit configuration.

    Checks run in order (name, fixture_file, group, pass_threshold) and the
    first problem found is returned. The fixture file is stat'ed, so this
    touches the filesystem.

    Returns:
        The first violation as a ConfigValidationError, or None if valid.
    """
    error = _check_non_empty_str(config.name, "name")
    if error:
        return error

    error = _check_non_empty_str(config.fixture_file, "fixture_file")
    if error:
        return error
    error = _check_fixture_file(config.fixture_file)
    if error:
        return error

    error = _check_non_empty_str(config.group, "group")
    if error:
        return error

    threshold = config.pass_threshold
    if threshold is not None:
        if not _is_number(threshold):
            return ConfigValidationError("'pass_threshold' must be a number", "pass_threshold")
        if threshold < 0:
            return ConfigValidationError("'pass_threshold' should be >= 0", "pass_threshold")

    return None
