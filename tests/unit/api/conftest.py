"""Fixtures for API tests.

The app is built over the harness services and driven through httpx's
ASGI transport on the test's own event loop.
"""

from collections.abc import AsyncIterator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient

from hsse_workflow.api.dependencies import reset_workflow_services
from hsse_workflow.api.main import create_app
from tests.helpers import WorkflowHarness


@pytest.fixture(autouse=True)
def reset_services() -> Iterator[None]:
    """Reset the services singleton before and after each test."""
    reset_workflow_services()
    yield
    reset_workflow_services()


@pytest.fixture
async def client(harness: WorkflowHarness) -> AsyncIterator[AsyncClient]:
    app = create_app(harness.services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
