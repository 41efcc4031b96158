"""
HSSE Workflow - Incident resolution workflow engine

The role-gated, multi-stage approval process behind incident and
observation reporting: expert screening, manager approval, investigation,
contractor violation approval, dispute mediation, severity-gated closure
and time-based SLA escalation.

Operating rules:
- Status is only ever changed through validated transitions
- Every committed transition leaves an audit entry
- Notification is best-effort; the committed transition is the source of truth
- Catastrophic incidents close only through the HSSE manager tier
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
