"""Data models for ingested, merged and enriched profile data.

These models are the shapes stored in raw data records (as JSON) and passed
between the classifier, the merger and the enrichment orchestrator.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DataSource(str, Enum):
    """Source keys a raw data record can be stored under."""

    DOCUMENT = "document"
    MANUAL = "manual"
    PROVIDER_A = "provider_a"  # professional-network profile
    PROVIDER_B = "provider_b"  # code-hosting profile
    MERGED = "merged"


# Sources whose presence makes a subject ready for enrichment
QUALIFYING_SOURCES = (DataSource.DOCUMENT, DataSource.PROVIDER_B)

PROVIDER_SOURCES = (DataSource.PROVIDER_A, DataSource.PROVIDER_B)


class ProfileField(str, Enum):
    """List-valued buckets shared by classified documents and merged profiles."""

    SKILLS = "skills"
    LANGUAGES = "languages"
    EDUCATION = "education"
    WORK_EXPERIENCE = "work_experience"
    VOLUNTEER = "volunteer"
    MILITARY = "military"
    COURSES = "courses"
    PROJECTS = "projects"


class StructuredBuckets(BaseModel):
    """Classified content of one source. Every bucket is always present."""

    skills: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)
    work_experience: List[str] = Field(default_factory=list)
    volunteer: List[str] = Field(default_factory=list)
    military: List[str] = Field(default_factory=list)
    courses: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)
    provider_a_profile: Optional[Dict[str, Any]] = Field(
        None, description="Raw professional-network payload, when attached"
    )
    provider_b_profile: Optional[Dict[str, Any]] = Field(
        None, description="Raw code-hosting payload, when attached"
    )

    def is_empty(self) -> bool:
        return not any(getattr(self, field.value) for field in ProfileField)


class MergedProfile(BaseModel):
    """Combined view of every raw record for one subject.

    Derived data: rebuilt on every merge and stored only under the merged source.
    """

    work_experience: List[Any] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    education: List[Any] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    projects: List[Any] = Field(
        default_factory=list, description="Code-hosting repositories, copied verbatim"
    )
    volunteer: List[Any] = Field(default_factory=list)
    military: List[Any] = Field(default_factory=list)
    courses: List[Any] = Field(default_factory=list)
    provider_a_profile: Optional[Dict[str, Any]] = None
    provider_b_profile: Optional[Dict[str, Any]] = None

    def has_content(self) -> bool:
        """True when any list field is non-empty or a provider profile is attached."""
        list_fields = (
            self.work_experience,
            self.skills,
            self.education,
            self.languages,
            self.projects,
            self.volunteer,
            self.military,
            self.courses,
        )
        return any(list_fields) or bool(self.provider_a_profile) or bool(self.provider_b_profile)


class ManualProfileInput(BaseModel):
    """Form-entered profile data. Free-text fields hold one entry per line."""

    work_experience: Optional[str] = Field(None, description="Free text, one role per line")
    skills: Optional[str] = Field(None, description="Comma-separated skills")
    education: Optional[str] = Field(None, description="Free text, one entry per line")
    languages: Optional[str] = Field(None, description="Comma-separated spoken languages")
    volunteer: Optional[str] = None
    military: Optional[str] = None
    courses: Optional[str] = None

    def is_blank(self) -> bool:
        """True when none of the required fields (work experience, skills, education) is filled."""
        return not any(
            (value or "").strip() for value in (self.work_experience, self.skills, self.education)
        )


class ProjectSummary(BaseModel):
    """Generated one-paragraph summary of a code repository."""

    project_name: str
    source_url: Optional[str] = None
    summary: str


class EnrichmentState(str, Enum):
    """Lifecycle of the one-time enrichment for a subject."""

    NOT_READY = "not_ready"
    READY = "ready"
    ENRICHING = "enriching"
    COMPLETED = "completed"


class EnrichmentStatus(BaseModel):
    """Readiness snapshot returned by status queries."""

    subject_id: UUID
    state: EnrichmentState
    is_ready: bool
    completed: bool
    completed_at: Optional[datetime] = None
    available_sources: List[str] = Field(default_factory=list)
