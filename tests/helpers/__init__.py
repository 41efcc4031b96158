"""Test helpers for HSSE workflow tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    WorkflowHarness: Services wired over stubs plus a registered cast of actors
    ok: Unwrap a WorkflowResult, failing the test on rejection
    photo: Build an evidence photo
    as_actor: X-Actor-ID header for API calls

Usage:
    from tests.helpers import FakeTimeAuthority, WorkflowHarness, ok
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.workflow_harness import Cast, WorkflowHarness, as_actor, ok, photo

__all__ = ["Cast", "FakeTimeAuthority", "WorkflowHarness", "as_actor", "ok", "photo"]
