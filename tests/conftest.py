"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

PROMPTS_DIR = Path(__file__).parent / "prompts"

TEST1_FILEPATH = str(PROMPTS_DIR / "test1.prompt.json")
TEST2_FILEPATH = str(PROMPTS_DIR / "test2.prompt.json")
TEST3_YAML_FILEPATH = str(PROMPTS_DIR / "test3.prompt.yaml")
EMPTY_FILEPATH = str(PROMPTS_DIR / "empty.prompt.json")
UNPARSABLE_FILEPATH = str(PROMPTS_DIR / "unparse.prompt.json")
NO_PROMPTGRPS_FILEPATH = str(PROMPTS_DIR / "nopromptgrps.prompt.json")
MISSING_PROMPTARRAY_FILEPATH = str(PROMPTS_DIR / "misspromptarray.prompt.json")

# Group sizes in test1.prompt.json
TEST1_NUM_PROMPTS = 1
TEST2_NUM_PROMPTS = 3

DUMMY_PROMPT = {"role": "assistant", "content": "This is some content"}


def dummy_completion(prompts):
    return dict(DUMMY_PROMPT)


def dummy_test(q, response):
    return response


@pytest.fixture
def fixture_file(tmp_path):
    """Write a fixture file into tmp_path and return its path as a string."""

    def _write(content: str, name: str = "prompts.json") -> str:
        path = tmp_path / name
        path.write_text(content)
        return str(path)

    return _write
