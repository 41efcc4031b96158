"""HSSE workflow configuration.

Defines the tunables of the transition engine and the SLA sweep, with
environment variable overrides for production tuning.

Environment Variables (Workflow):
- HSSE_WORKFLOW_MIN_JUSTIFICATION_LENGTH: Minimum justification length (default: 10)
- HSSE_WORKFLOW_STORE_TIMEOUT: Store call timeout in seconds (default: 5.0)
- HSSE_WORKFLOW_NOTIFICATION_TIMEOUT: Dispatcher call timeout in seconds (default: 5.0)
- HSSE_WORKFLOW_MAX_ON_SPOT_PHOTOS: Photos allowed for on-the-spot closure (default: 2)
- HSSE_WORKFLOW_MAX_PHOTO_BYTES: Maximum photo size in bytes (default: 10 MiB)
- HSSE_WORKFLOW_MAX_ON_SPOT_SEVERITY: Highest severity closable on the spot (default: 2)
- HSSE_WORKFLOW_STORE_RETRY_AFTER: Retry-After header for store failures (default: 5)

Environment Variables (SLA sweep):
- HSSE_SLA_INTERVAL: Seconds between sweep ticks (default: 60)
- HSSE_SLA_BATCH_LIMIT: Events examined per sweep (default: 500)
- HSSE_SLA_DEFAULT_MAX_RESPONSE: Fallback level 1 threshold (default: 120)
- HSSE_SLA_DEFAULT_ESCALATION_AFTER: Fallback level 2 threshold (default: 300)
- HSSE_SLA_DEFAULT_SECOND_ESCALATION: Fallback level 3 threshold (default: 600)
- HSSE_SLA_MONITOR_ENABLED: Start the sweep loop with the API (default: true)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from uuid import UUID

from hsse_workflow.domain.models.sla_config import (
    DEFAULT_ESCALATION_AFTER_SECONDS,
    DEFAULT_MAX_RESPONSE_SECONDS,
    DEFAULT_SECOND_ESCALATION_SECONDS,
    SlaConfig,
)

ONE_MIB = 1024 * 1024


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable ("1", "true", "yes", "on" are true)."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class WorkflowConfig:
    """Configuration of the incident transition engine.

    Attributes:
        min_justification_length: Minimum stripped length of any required
            justification, rejection reason or mediation note.
        store_timeout_seconds: Timeout applied to every store call.
            A timeout is a retryable StoreError.
        notification_timeout_seconds: Timeout applied to every dispatcher call.
        max_on_spot_photos: Maximum evidence photos for on-the-spot closure.
        max_photo_bytes: Maximum size of a single evidence photo.
        max_on_spot_severity: Highest realized severity eligible for
            on-the-spot closure.
        store_retry_after_seconds: Retry-After hint returned with store failures.
    """

    min_justification_length: int = 10
    store_timeout_seconds: float = 5.0
    notification_timeout_seconds: float = 5.0
    max_on_spot_photos: int = 2
    max_photo_bytes: int = 10 * ONE_MIB
    max_on_spot_severity: int = 2
    store_retry_after_seconds: int = 5

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.min_justification_length < 1:
            raise ValueError(
                "min_justification_length must be positive, "
                f"got {self.min_justification_length}"
            )
        if self.store_timeout_seconds <= 0:
            raise ValueError(
                f"store_timeout_seconds must be positive, got {self.store_timeout_seconds}"
            )
        if self.notification_timeout_seconds <= 0:
            raise ValueError(
                "notification_timeout_seconds must be positive, "
                f"got {self.notification_timeout_seconds}"
            )
        if self.max_on_spot_photos < 1:
            raise ValueError(
                f"max_on_spot_photos must be at least 1, got {self.max_on_spot_photos}"
            )
        if self.max_photo_bytes < 1:
            raise ValueError(
                f"max_photo_bytes must be positive, got {self.max_photo_bytes}"
            )
        if not 1 <= self.max_on_spot_severity <= 5:
            raise ValueError(
                f"max_on_spot_severity must be between 1 and 5, got {self.max_on_spot_severity}"
            )
        if self.store_retry_after_seconds < 1:
            raise ValueError(
                "store_retry_after_seconds must be at least 1, "
                f"got {self.store_retry_after_seconds}"
            )

    @classmethod
    def from_environment(cls) -> WorkflowConfig:
        """Create config from environment variables with defaults."""
        return cls(
            min_justification_length=_get_int_env(
                "HSSE_WORKFLOW_MIN_JUSTIFICATION_LENGTH", 10
            ),
            store_timeout_seconds=_get_float_env("HSSE_WORKFLOW_STORE_TIMEOUT", 5.0),
            notification_timeout_seconds=_get_float_env(
                "HSSE_WORKFLOW_NOTIFICATION_TIMEOUT", 5.0
            ),
            max_on_spot_photos=_get_int_env("HSSE_WORKFLOW_MAX_ON_SPOT_PHOTOS", 2),
            max_photo_bytes=_get_int_env("HSSE_WORKFLOW_MAX_PHOTO_BYTES", 10 * ONE_MIB),
            max_on_spot_severity=_get_int_env("HSSE_WORKFLOW_MAX_ON_SPOT_SEVERITY", 2),
            store_retry_after_seconds=_get_int_env("HSSE_WORKFLOW_STORE_RETRY_AFTER", 5),
        )


@dataclass(frozen=True)
class SlaSweepConfig:
    """Configuration of the SLA escalation sweep.

    Attributes:
        interval_seconds: Seconds between sweep ticks. A tick that fires
            while the previous sweep is still running is skipped.
        batch_limit: Maximum events examined per sweep, oldest first.
        default_max_response_seconds: Level 1 threshold when no tenant config exists.
        default_escalation_after_seconds: Level 2 threshold fallback.
        default_second_escalation_seconds: Level 3 threshold fallback.
        monitor_enabled: Whether the API starts the sweep loop.
    """

    interval_seconds: float = 60.0
    batch_limit: int = 500
    default_max_response_seconds: int = DEFAULT_MAX_RESPONSE_SECONDS
    default_escalation_after_seconds: int = DEFAULT_ESCALATION_AFTER_SECONDS
    default_second_escalation_seconds: int = DEFAULT_SECOND_ESCALATION_SECONDS
    monitor_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got {self.interval_seconds}"
            )
        if self.batch_limit < 1:
            raise ValueError(f"batch_limit must be positive, got {self.batch_limit}")
        if not (
            0
            < self.default_max_response_seconds
            <= self.default_escalation_after_seconds
            <= self.default_second_escalation_seconds
        ):
            raise ValueError(
                "default SLA thresholds must be positive and ordered "
                f"({self.default_max_response_seconds} <= "
                f"{self.default_escalation_after_seconds} <= "
                f"{self.default_second_escalation_seconds})"
            )

    def default_sla_config(self, tenant_id: UUID) -> SlaConfig:
        """Build the hard-coded fallback config for a tenant."""
        return SlaConfig(
            tenant_id=tenant_id,
            max_response_seconds=self.default_max_response_seconds,
            escalation_after_seconds=self.default_escalation_after_seconds,
            second_escalation_seconds=self.default_second_escalation_seconds,
        )

    @classmethod
    def from_environment(cls) -> SlaSweepConfig:
        """Create config from environment variables with defaults."""
        return cls(
            interval_seconds=_get_float_env("HSSE_SLA_INTERVAL", 60.0),
            batch_limit=_get_int_env("HSSE_SLA_BATCH_LIMIT", 500),
            default_max_response_seconds=_get_int_env(
                "HSSE_SLA_DEFAULT_MAX_RESPONSE", DEFAULT_MAX_RESPONSE_SECONDS
            ),
            default_escalation_after_seconds=_get_int_env(
                "HSSE_SLA_DEFAULT_ESCALATION_AFTER", DEFAULT_ESCALATION_AFTER_SECONDS
            ),
            default_second_escalation_seconds=_get_int_env(
                "HSSE_SLA_DEFAULT_SECOND_ESCALATION", DEFAULT_SECOND_ESCALATION_SECONDS
            ),
            monitor_enabled=_get_bool_env("HSSE_SLA_MONITOR_ENABLED", True),
        )


# Pre-defined configurations

DEFAULT_WORKFLOW_CONFIG = WorkflowConfig()

# Short timeouts so tests exercising timeouts finish quickly
TEST_WORKFLOW_CONFIG = WorkflowConfig(
    store_timeout_seconds=0.2,
    notification_timeout_seconds=0.2,
)

DEFAULT_SLA_SWEEP_CONFIG = SlaSweepConfig()

TEST_SLA_SWEEP_CONFIG = SlaSweepConfig(
    interval_seconds=0.05,
    batch_limit=50,
    monitor_enabled=False,
)
