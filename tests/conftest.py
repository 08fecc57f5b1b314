"""Shared fixtures for agent tests."""

from __future__ import annotations

import pytest

from buildkit_agent.metrics import BuildkitMetrics

from .fakes import FakeControlClient


@pytest.fixture
def fake_client() -> FakeControlClient:
    return FakeControlClient()


@pytest.fixture
def metrics() -> BuildkitMetrics:
    """Fresh metrics with a private registry per test."""
    return BuildkitMetrics()
