"""Pytest configuration.

Ensures local packages can be imported consistently during test collection.
"""

import sys
from pathlib import Path

import pytest


def _prepend_sys_path(path: Path) -> None:
    resolved = str(path.resolve())
    if resolved not in sys.path:
        sys.path.insert(0, resolved)


REPO_ROOT = Path(__file__).resolve().parent

# Allow importing `src.*` package explicitly.
_prepend_sys_path(REPO_ROOT)


@pytest.fixture
def case_api_env_vars():
    """Environment for code paths that build settings from the environment."""
    return {
        "CASE_API_BASE_URL": "http://test-case-api",
        "CASE_API_TOKEN": "test_token",
        "PARTNER_SHARE_PER_CASE": "10.00",
        "OPERATIONAL_COST_PER_CASE": "0",
    }
