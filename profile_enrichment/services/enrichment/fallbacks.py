"""Templated text used when generation fails after every retry."""

from typing import List

from profile_enrichment.models.profile import ProjectSummary
from profile_enrichment.services.enrichment.contracts import SubjectContext


def fallback_bio(subject: SubjectContext) -> str:
    role = subject.current_role or "a team member"
    company = subject.company_name or "the company"
    return (
        f"{subject.full_name} works as {role} at {company}, "
        f"contributing their experience and expertise to the team."
    )


def fallback_value_statement(subject: SubjectContext) -> str:
    company = subject.company_name or "the company"
    if subject.target_role and subject.target_role != subject.current_role:
        return (
            f"{subject.full_name} supports the success of {company} and is "
            f"progressing toward the role of {subject.target_role}, where they "
            f"will bring growing impact to the organization."
        )
    role = subject.current_role or "their current role"
    return (
        f"In {role} at {company}, {subject.full_name} continues to bring "
        f"dependable value to the organization."
    )


def fallback_project_summaries() -> List[ProjectSummary]:
    return []
