"""Contracts (inputs and step results) for the enrichment workflow."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from profile_enrichment.models.profile import ProjectSummary


class OutcomeStatus(str, Enum):
    """Result of one workflow step.

    DEGRADED steps fell back or were skipped and are recorded, never raised.
    FATAL steps propagate to the caller.
    """

    SUCCESS = "success"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class StepOutcome:
    """Outcome of a single named step of the workflow."""
    step: str
    status: OutcomeStatus
    detail: Optional[str] = None
    attempts: int = 0
    error: Optional[Exception] = None

    @classmethod
    def success(cls, step: str, attempts: int = 0) -> "StepOutcome":
        return cls(step=step, status=OutcomeStatus.SUCCESS, attempts=attempts)

    @classmethod
    def degraded(cls, step: str, detail: str, error: Optional[Exception] = None, attempts: int = 0) -> "StepOutcome":
        return cls(step=step, status=OutcomeStatus.DEGRADED, detail=detail, error=error, attempts=attempts)

    @classmethod
    def fatal(cls, step: str, error: Exception) -> "StepOutcome":
        return cls(step=step, status=OutcomeStatus.FATAL, detail=str(error), error=error)


@dataclass
class SubjectContext:
    """Identity fields used by prompts and templated fallbacks."""
    subject_id: UUID
    full_name: str
    current_role: Optional[str] = None
    target_role: Optional[str] = None
    company_name: Optional[str] = None


@dataclass
class EnrichmentOutcome:
    """Everything one enrich() call produced."""
    subject_id: UUID
    completed: bool
    bio: str = ""
    project_summaries: List[ProjectSummary] = field(default_factory=list)
    value_statement: str = ""
    completed_at: Optional[datetime] = None
    steps: List[StepOutcome] = field(default_factory=list)

    @property
    def degraded_steps(self) -> List[str]:
        return [step.step for step in self.steps if step.status == OutcomeStatus.DEGRADED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": str(self.subject_id),
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "bio": self.bio,
            "project_summaries": [summary.model_dump() for summary in self.project_summaries],
            "value_statement": self.value_statement,
            "degraded_steps": self.degraded_steps,
        }
