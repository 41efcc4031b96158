"""Decision vocabularies accepted by workflow operations."""

from __future__ import annotations

from enum import Enum


class ReporterAction(str, Enum):
    """Reporter responses to an expert rejection or a return."""

    CONFIRM = "confirm"
    DISPUTE = "dispute"
    RESUBMIT = "resubmit"


class ManagerDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ScreeningRecommendation(str, Enum):
    """HSSE expert screening outcomes."""

    INVESTIGATE = "investigate"
    NO_INVESTIGATION = "no_investigation"
    RETURN = "return"
    REJECT = "reject"


class HsseManagerDecision(str, Enum):
    OVERRIDE = "override"
    MAINTAIN = "maintain"


class ViolationDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class AcknowledgmentDecision(str, Enum):
    """Contractor response. REJECTED means the violation is contested."""

    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"


class ViolationReviewDecision(str, Enum):
    """HSSE final ruling on a contested violation."""

    ENFORCE = "enforce"
    MODIFY = "modify"
    CANCEL = "cancel"


class ValidationDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
