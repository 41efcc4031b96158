"""
Pytest configuration and shared fixtures for HSSE workflow tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

import pytest

from tests.helpers import FakeTimeAuthority, WorkflowHarness


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Frozen clock at 2026-01-01T00:00:00Z."""
    return FakeTimeAuthority()


@pytest.fixture
def harness(fake_time_authority: FakeTimeAuthority) -> WorkflowHarness:
    """Workflow services over fresh stubs, sharing the fake clock."""
    return WorkflowHarness(time_authority=fake_time_authority)
