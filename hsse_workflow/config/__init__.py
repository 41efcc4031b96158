"""Configuration for the HSSE workflow.

Available Configurations:
- WorkflowConfig: Transition engine tunables (justification length, timeouts,
  on-the-spot closure limits)
- SlaSweepConfig: SLA sweep interval, batch size and fallback thresholds
"""

from hsse_workflow.config.workflow_config import (
    DEFAULT_SLA_SWEEP_CONFIG,
    DEFAULT_WORKFLOW_CONFIG,
    TEST_SLA_SWEEP_CONFIG,
    TEST_WORKFLOW_CONFIG,
    SlaSweepConfig,
    WorkflowConfig,
)

__all__ = [
    "DEFAULT_SLA_SWEEP_CONFIG",
    "DEFAULT_WORKFLOW_CONFIG",
    "TEST_SLA_SWEEP_CONFIG",
    "TEST_WORKFLOW_CONFIG",
    "SlaSweepConfig",
    "WorkflowConfig",
]
