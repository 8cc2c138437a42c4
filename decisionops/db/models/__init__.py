"""Re-export all models so Base.metadata sees them."""

from decisionops.db.models.audit_entry import AuditEntry
from decisionops.db.models.decision import Decision, DecisionComment, DecisionVote
from decisionops.db.models.hypothesis import Hypothesis
from decisionops.db.models.person import Person
from decisionops.db.models.stakeholder import Stakeholder

__all__ = [
    "AuditEntry",
    "Decision",
    "DecisionComment",
    "DecisionVote",
    "Hypothesis",
    "Person",
    "Stakeholder",
]
