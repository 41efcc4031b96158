"""Production adapters for HSSE workflow ports."""

from hsse_workflow.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)

__all__ = ["SystemTimeAuthority"]
