"""Shared fixtures for CLI command tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from proxydeck.config.defaults import ENV_VAR_FIELDS


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup() -> Generator[MagicMock]:
    """Keep CLI invocations from reconfiguring the root logger."""
    with patch("proxydeck.cli.main.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def cli_env(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Clean environment with both secrets set, inside a project directory."""
    for name in ENV_VAR_FIELDS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-cli")
    monkeypatch.setenv("LITELLM_MASTER_KEY", "sk-master-cli")
    return project_dir
