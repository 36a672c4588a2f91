"""Shared pytest configuration for graphreg."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make sure the repository root is on ``sys.path`` for imports."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    """Show diagnostic context for the test run."""

    root = Path.cwd()
    log_level = os.environ.get("GRAPHREG_LOG_LEVEL", "WARNING")
    return [f"graphreg repo: {root}", f"GRAPHREG_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _set_verbose_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run tests with INFO logging so that failures come with context."""

    monkeypatch.setenv("GRAPHREG_LOG_LEVEL", "INFO")


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add ``--slow`` to enable the benchmark-sized simulations."""

    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Enable slow simulation benchmarks.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: benchmark-sized simulation; use --slow to enable it.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip ``slow`` tests unless ``--slow`` is set."""

    if config.getoption("--slow"):
        return

    skip_marker = pytest.mark.skip(reason="slow tests disabled; run pytest --slow to enable them")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_marker)
