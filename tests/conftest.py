"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Ensure the application package is importable when running tests without an
# editable install; ``app`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def database_url(tmp_path) -> str:
    """Return a SQLite URL backed by a per-test temporary file."""

    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"
