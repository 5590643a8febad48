"""Fixture (prompt file) loading.

A fixture file maps prompt group names to lists of prompts::

    {
        "greeting": [{"role": "user", "content": "hi"}],
        "farewell": [{"role": "user", "content": "bye"}]
    }

JSON is the default format; files ending in ``.yaml``/``.yml`` are parsed
as YAML.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .errors import (
    EmptyFixtureError,
    FixtureParseError,
    FixtureReadError,
    InvalidFixtureError,
)
from .models import FixtureMap, Prompt

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def check_fixture_map(data: Any) -> str | None:
    """Check that parsed data is a valid fixture map.

    Returns:
        An error message describing the first problem, or None if valid.
    """
    if not isinstance(data, Mapping):
        return f"expected a map of prompt groups, got {type(data).__name__}"
    if len(data) == 0:
        return "No prompt groups defined"
    for group, prompts in data.items():
        if not isinstance(prompts, list):
            return f"'{group}' missing array of prompts"
    return None


def _parse(text: str, path: Path) -> Any:
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise FixtureParseError(f"Error parsing YAML: {e}", str(path)) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise FixtureParseError(f"Error parsing JSON: {e}", str(path)) from e


def read_fixture_map(path: str | Path, encoding: str = "utf-8") -> FixtureMap:
    """Read and validate a fixture file.

    Args:
        path: Fixture file path
        encoding: Text encoding of the file

    Returns:
        Mapping of group name to list of prompts

    Raises:
        FixtureReadError: File missing or unreadable
        EmptyFixtureError: File is empty or whitespace only
        FixtureParseError: Content is not valid JSON/YAML
        InvalidFixtureError: Content is not a non-empty map of lists
    """
    path = Path(path)
    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise FixtureReadError(f"Problem reading file: {e}", str(path)) from e

    if not text.strip():
        raise EmptyFixtureError("File is empty", str(path))

    data = _parse(text, path)
    if data is None:
        raise FixtureParseError("Document has no value", str(path))

    error_msg = check_fixture_map(data)
    if error_msg:
        raise InvalidFixtureError(error_msg, str(path))

    logger.debug("Loaded fixture %s: %d groups", path, len(data))
    return dict(data)


def load_group(path: str | Path, group: str, encoding: str = "utf-8") -> list[Prompt]:
    """Load one prompt group from a fixture file.

    Returns an empty list when either argument is empty or the group does
    not exist. Fixture errors propagate.
    """
    if not path or not group:
        return []
    fixture_map = read_fixture_map(path, encoding=encoding)
    return fixture_map.get(group) or []


async def read_fixture_map_async(path: str | Path, encoding: str = "utf-8") -> FixtureMap:
    """Read a fixture file without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: read_fixture_map(path, encoding))


async def load_group_async(path: str | Path, group: str, encoding: str = "utf-8") -> list[Prompt]:
    """Async variant of :func:`load_group`."""
    if not path or not group:
        return []
    fixture_map = await read_fixture_map_async(path, encoding=encoding)
    return fixture_map.get(group) or []
