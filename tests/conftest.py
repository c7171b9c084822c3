"""Shared pytest fixtures for the clean scaffold test suite.

Provides reusable fixtures for:
- Configurations for the common option combinations
- Component graphs built from them
- The in-memory project tool and an orchestrator wired to it
- Mock subprocess helpers
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from clean_scaffold.config import Configuration, DatabaseProvider, Feature
from clean_scaffold.scaffolder.graph import ComponentGraph, build_graph
from clean_scaffold.scaffolder.orchestrator import ScaffoldOrchestrator
from clean_scaffold.scaffolder.tool_client import InMemoryToolClient


# ---------------------------------------------------------------------------
# Configurations
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Configuration]:
    """Factory for configurations rooted in a temporary output directory."""

    def _make(
        name: str = "Shop",
        *,
        cqrs: bool = False,
        framework: str = "net8.0",
        db_provider: DatabaseProvider = DatabaseProvider.SQLSERVER,
        include_tests: bool = False,
    ) -> Configuration:
        return Configuration(
            name=name,
            features=frozenset({Feature.CQRS}) if cqrs else frozenset(),
            framework=framework,
            db_provider=db_provider,
            include_tests=include_tests,
            output_dir=tmp_path,
        )

    return _make


@pytest.fixture
def default_config(make_config) -> Configuration:
    """``--name Shop`` with every other option defaulted."""
    return make_config()


@pytest.fixture
def full_config(make_config) -> Configuration:
    """CQRS, PostgreSQL, net9.0 and test projects enabled."""
    return make_config(
        cqrs=True,
        framework="net9.0",
        db_provider=DatabaseProvider.POSTGRES,
        include_tests=True,
    )


# ---------------------------------------------------------------------------
# Graphs, tools and orchestrators
# ---------------------------------------------------------------------------


@pytest.fixture
def default_graph(default_config: Configuration) -> ComponentGraph:
    return build_graph(default_config)


@pytest.fixture
def full_graph(full_config: Configuration) -> ComponentGraph:
    return build_graph(full_config)


@pytest.fixture
def fake_tool() -> InMemoryToolClient:
    """Project tool that records calls instead of running dotnet."""
    return InMemoryToolClient()


@pytest.fixture
def accept() -> MagicMock:
    """Confirm callback that always answers yes."""
    return MagicMock(return_value=True)


@pytest.fixture
def decline() -> MagicMock:
    """Confirm callback that always answers no."""
    return MagicMock(return_value=False)


@pytest.fixture
def orchestrator(
    full_config: Configuration,
    full_graph: ComponentGraph,
    fake_tool: InMemoryToolClient,
    accept: MagicMock,
) -> ScaffoldOrchestrator:
    return ScaffoldOrchestrator(full_config, full_graph, fake_tool, confirm=accept)


# ---------------------------------------------------------------------------
# Subprocess helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_run_command():
    """Factory for an ``AsyncMock`` standing in for ``run_command``.

    Usage::

        run = mock_run_command(returncode=1, stderr="boom")
        with patch("clean_scaffold.scaffolder.tool_client.run_command", run):
            ...
    """

    def _factory(returncode: int = 0, stdout: str = "", stderr: str = "") -> AsyncMock:
        return AsyncMock(return_value=(returncode, stdout, stderr))

    return _factory
