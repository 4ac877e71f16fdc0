"""
Risk classification and approval gating for tool invocations.

Components:
- RiskClassifier: safe / sensitive / dangerous with pattern escalation
- AuditTrail: append-only record of every classification
- ApprovalGate: suspend/resume point for risky calls, 5 minute timeout
"""

from reactloop.safety.approval import ApprovalGate
from reactloop.safety.audit import AuditTrail
from reactloop.safety.risk import DANGEROUS_PATTERNS, DEFAULT_RISK_LEVELS, RiskClassifier

__all__ = [
    "ApprovalGate",
    "AuditTrail",
    "DANGEROUS_PATTERNS",
    "DEFAULT_RISK_LEVELS",
    "RiskClassifier",
]
