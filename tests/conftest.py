"""
Pytest configuration and fixtures.
"""

from unittest.mock import Mock, AsyncMock

import pytest

from code_debugger.client import ExecutionServiceClient, RunResponse, RepairResponse
from code_debugger.config import DebuggerConfig, TimingConfig, SessionConfig


@pytest.fixture
def fast_config():
    """Config with timers shortened for tests."""
    return DebuggerConfig(
        timing=TimingConfig(ticker_interval_ms=20, auto_run_delay_ms=50),
    )


@pytest.fixture
def discard_config():
    return DebuggerConfig(
        timing=TimingConfig(ticker_interval_ms=20, auto_run_delay_ms=50),
        session=SessionConfig(stale_responses="discard"),
    )


@pytest.fixture
def fake_client():
    """Service client double with async run/repair."""
    client = Mock(spec=ExecutionServiceClient)
    client.run = AsyncMock(return_value=RunResponse(stdout="ok\n", stderr="", error_type="NONE"))
    client.repair = AsyncMock(return_value=RepairResponse(final_code="", final_status="SUCCESS"))
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def temp_file(tmp_path):
    """Create a temporary file."""
    def _create(name: str, content: str = ""):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _create
