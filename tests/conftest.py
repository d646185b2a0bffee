"""Shared fixtures: every test gets its own workspace directory."""

from __future__ import annotations

import pytest
import structlog

from readlater.config import settings


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Point the image store at a per-test temp directory."""
    workspace = tmp_path / "workspace"
    monkeypatch.setattr(settings, "workspace_dir", workspace)
    return workspace


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo per-test logging configuration (e.g. CLI runs bound to a closed stream)."""
    yield
    structlog.reset_defaults()
