"""Root conftest.py for the benchlink monorepo.

Puts every package's ``src`` directory on ``sys.path``, registers the custom
markers, and marks tests that replace hardware with mocks so coverage from
emulator-backed tests can be told apart from mock-backed ones.
"""

from __future__ import annotations

import ast
import inspect
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


# Add all package src directories to path for imports
PROJECT_ROOT = Path(__file__).parent
for pkg_dir in sorted(PROJECT_ROOT.glob("benchlink-*/src")):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "uses_mock: Test uses mocking (auto-detected or manually marked)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring real hardware",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


_MOCK_NAMES = frozenset({"MagicMock", "Mock", "patch", "create_autospec", "PropertyMock"})


class MockDetector(ast.NodeVisitor):
    """AST visitor that flags calls to ``unittest.mock`` helpers."""

    def __init__(self) -> None:
        self.uses_mock = False

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", "")
        if name in _MOCK_NAMES:
            self.uses_mock = True
        self.generic_visit(node)


def _uses_mock(item: Item) -> bool:
    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        tree = ast.parse(inspect.getsource(obj).strip())
    except (OSError, TypeError, SyntaxError, IndentationError):
        return False
    detector = MockDetector()
    detector.visit(tree)
    return detector.uses_mock


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Auto-detect and mark tests that use mocking."""
    for item in items:
        if item.get_closest_marker("uses_mock"):
            continue
        if _uses_mock(item):
            item.add_marker(pytest.mark.uses_mock)


def pytest_report_header(config: Config) -> list[str]:
    """Add coverage mode info to the pytest header."""
    lines = ["benchlink monorepo test suite"]
    if getattr(config.option, "cov_source", None):
        lines.append("Coverage: enabled with mock detection")
    return lines
