"""One-time enrichment of a subject's profile.

Flow: guard -> claim -> merge -> (legacy fallback) -> generate bio, project
summaries and value statement -> persist -> notify downstream services.

Every step yields a StepOutcome. Degraded steps fall back and are recorded;
only a missing subject, an already processed subject and a failure to persist
the result leave this service as exceptions.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from profile_enrichment.core.exceptions import (
    AlreadyProcessedError,
    AppError,
    EnrichmentInProgressError,
    NotificationError,
    SubjectNotFoundError,
)
from profile_enrichment.database.models import Subject
from profile_enrichment.models.profile import (
    DataSource,
    EnrichmentState,
    EnrichmentStatus,
    MergedProfile,
    ProjectSummary,
)
from profile_enrichment.repositories.enrichment_repository import (
    STATUS_ENRICHING,
    EnrichmentRepository,
)
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.repositories.subject_repository import SubjectRepository
from profile_enrichment.services.base_service import BaseService
from profile_enrichment.services.enrichment.contracts import (
    EnrichmentOutcome,
    StepOutcome,
    SubjectContext,
)
from profile_enrichment.services.enrichment.fallbacks import (
    fallback_bio,
    fallback_project_summaries,
    fallback_value_statement,
)
from profile_enrichment.services.enrichment.generation_service import GenerationService
from profile_enrichment.services.merge.data_merger import DataMerger, combine
from profile_enrichment.services.notifications.downstream_clients import (
    ApprovalQueueClient,
    SkillsNormalizationClient,
)
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

STEP_MERGE = "merge"
STEP_LEGACY_FALLBACK = "legacy_fallback"
STEP_BIO = "bio"
STEP_PROJECT_SUMMARIES = "project_summaries"
STEP_VALUE_STATEMENT = "value_statement"
STEP_PERSIST = "persist"
STEP_SKILLS_NORMALIZATION = "skills_normalization"
STEP_APPROVAL_QUEUE = "approval_queue"

DEFAULT_CLAIM_LEASE_SECONDS = 600


class EnrichmentOrchestrator(BaseService):
    """Runs the enrichment workflow for one subject at a time."""

    def __init__(
        self,
        subject_repository: SubjectRepository,
        raw_data_repository: RawDataRepository,
        enrichment_repository: EnrichmentRepository,
        data_merger: DataMerger,
        generation_service: Optional[GenerationService],
        skills_client: Optional[SkillsNormalizationClient] = None,
        approval_client: Optional[ApprovalQueueClient] = None,
        claim_lease_seconds: int = DEFAULT_CLAIM_LEASE_SECONDS,
    ):
        super().__init__()
        self.subject_repository = subject_repository
        self.raw_data_repository = raw_data_repository
        self.enrichment_repository = enrichment_repository
        self.data_merger = data_merger
        self.generation_service = generation_service
        self.skills_client = skills_client
        self.approval_client = approval_client
        self.claim_lease_seconds = claim_lease_seconds

    async def run(self, subject_id: uuid.UUID) -> EnrichmentOutcome:
        return await self.enrich(subject_id)

    async def _get_subject(self, subject_id: uuid.UUID) -> Subject:
        subject = await self.subject_repository.get_by_id(subject_id)
        if subject is None:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")
        return subject

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    async def _has_enrichment_source(self, subject: Subject) -> bool:
        if await self.raw_data_repository.has_qualifying_source(subject.id):
            return True
        return bool(subject.legacy_provider_a_data) and bool(subject.legacy_provider_b_data)

    async def is_ready(self, subject_id: uuid.UUID) -> bool:
        """Not yet enriched, and a document or code-hosting source is available."""
        subject = await self._get_subject(subject_id)
        if await self.enrichment_repository.is_completed(subject_id):
            return False
        return await self._has_enrichment_source(subject)

    async def get_status(self, subject_id: uuid.UUID) -> EnrichmentStatus:
        subject = await self._get_subject(subject_id)
        record = await self.enrichment_repository.get_by_subject(subject_id)
        sources = await self.raw_data_repository.get_available_sources(subject_id)

        if record is not None and record.completed:
            return EnrichmentStatus(
                subject_id=subject_id,
                state=EnrichmentState.COMPLETED,
                is_ready=False,
                completed=True,
                completed_at=record.completed_at,
                available_sources=sources,
            )

        ready = await self._has_enrichment_source(subject)
        if record is not None and record.status == STATUS_ENRICHING:
            state = EnrichmentState.ENRICHING
        else:
            state = EnrichmentState.READY if ready else EnrichmentState.NOT_READY

        return EnrichmentStatus(
            subject_id=subject_id,
            state=state,
            is_ready=ready,
            completed=False,
            available_sources=sources,
        )

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def enrich(self, subject_id: uuid.UUID) -> EnrichmentOutcome:
        """Enrich a subject exactly once.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            AlreadyProcessedError: If enrichment already completed
            EnrichmentInProgressError: If another call holds a live claim
            DatabaseError: If the completed result cannot be persisted
        """
        subject = await self._get_subject(subject_id)

        if await self.enrichment_repository.is_completed(subject_id):
            raise AlreadyProcessedError(f"Subject {subject_id} has already been enriched")

        if not await self.enrichment_repository.claim(subject_id, self.claim_lease_seconds):
            if await self.enrichment_repository.is_completed(subject_id):
                raise AlreadyProcessedError(f"Subject {subject_id} has already been enriched")
            raise EnrichmentInProgressError(f"Enrichment for subject {subject_id} is already in progress")

        LOGGER.info("Enrichment claimed", extra={"subject_id": str(subject_id)})

        try:
            if not await self._has_enrichment_source(subject):
                LOGGER.warning(
                    "Enriching a subject without a document or code-hosting source",
                    extra={"subject_id": str(subject_id)}
                )
            return await self._enrich_claimed(subject)
        except Exception:
            await self._release_claim(subject_id)
            raise

    async def _enrich_claimed(self, subject: Subject) -> EnrichmentOutcome:
        context = SubjectContext(
            subject_id=subject.id,
            full_name=subject.full_name,
            current_role=subject.current_role,
            target_role=subject.target_role,
            company_name=subject.company_name,
        )
        steps: List[StepOutcome] = []

        merged = await self._merge(subject.id, steps)

        if not merged.has_content():
            merged = self._legacy_profile(subject, steps)

        if not merged.has_content():
            LOGGER.warning(
                "No profile data available, completing with empty enrichment",
                extra={"subject_id": str(subject.id)}
            )
            return await self._persist(context, "", [], "", steps)

        bio = await self._generate_bio(context, merged, steps)
        project_summaries = await self._generate_project_summaries(merged, steps)
        value_statement = await self._generate_value_statement(context, steps)

        outcome = await self._persist(context, bio, project_summaries, value_statement, steps)

        await self._notify(subject, merged, outcome, steps)

        LOGGER.info(
            "Enrichment completed",
            extra={"subject_id": str(subject.id), "degraded_steps": outcome.degraded_steps}
        )
        return outcome

    async def _merge(self, subject_id: uuid.UUID, steps: List[StepOutcome]) -> MergedProfile:
        try:
            merged = await self.data_merger.merge(subject_id)
        except Exception as e:
            LOGGER.warning(
                f"Merge failed, continuing with an empty profile: {e}",
                exc_info=True,
                extra={"subject_id": str(subject_id)}
            )
            steps.append(StepOutcome.degraded(STEP_MERGE, "merge failed", error=e))
            return MergedProfile()

        steps.append(StepOutcome.success(STEP_MERGE))
        return merged

    def _legacy_profile(self, subject: Subject, steps: List[StepOutcome]) -> MergedProfile:
        """Combine the legacy provider columns in memory; nothing is persisted."""
        payloads: Dict[DataSource, Dict[str, Any]] = {}
        if subject.legacy_provider_a_data:
            payloads[DataSource.PROVIDER_A] = subject.legacy_provider_a_data
        if subject.legacy_provider_b_data:
            payloads[DataSource.PROVIDER_B] = subject.legacy_provider_b_data

        if not payloads:
            return MergedProfile()

        LOGGER.info(
            "Using legacy provider columns for enrichment",
            extra={"subject_id": str(subject.id), "sources": sorted(s.value for s in payloads)}
        )
        steps.append(StepOutcome.degraded(STEP_LEGACY_FALLBACK, "merged profile empty, used legacy columns"))
        return combine(payloads)

    async def _attempt(
        self,
        step: str,
        steps: List[StepOutcome],
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> T:
        """Run one generation step, falling back on failure."""
        if self.generation_service is None:
            steps.append(StepOutcome.degraded(step, "text generation is not configured"))
            return fallback()

        try:
            value = await operation()
        except Exception as e:
            # Unexpected failures degrade the step like provider errors do
            LOGGER.warning(
                f"{step} generation failed, using fallback: {e}",
                exc_info=not isinstance(e, AppError),
                extra={"step": step}
            )
            steps.append(
                StepOutcome.degraded(
                    step, "generation failed", error=e, attempts=getattr(e, "attempts", 0)
                )
            )
            return fallback()

        steps.append(StepOutcome.success(step))
        return value

    async def _generate_bio(
        self, context: SubjectContext, merged: MergedProfile, steps: List[StepOutcome]
    ) -> str:
        return await self._attempt(
            STEP_BIO,
            steps,
            lambda: self.generation_service.generate_bio(context, merged),
            lambda: fallback_bio(context),
        )

    async def _generate_project_summaries(
        self, merged: MergedProfile, steps: List[StepOutcome]
    ) -> List[ProjectSummary]:
        repositories = [project for project in merged.projects if isinstance(project, dict)]
        if not repositories:
            return []
        return await self._attempt(
            STEP_PROJECT_SUMMARIES,
            steps,
            lambda: self.generation_service.generate_project_summaries(repositories),
            fallback_project_summaries,
        )

    async def _generate_value_statement(
        self, context: SubjectContext, steps: List[StepOutcome]
    ) -> str:
        return await self._attempt(
            STEP_VALUE_STATEMENT,
            steps,
            lambda: self.generation_service.generate_value_statement(context),
            lambda: fallback_value_statement(context),
        )

    async def _persist(
        self,
        context: SubjectContext,
        bio: str,
        project_summaries: List[ProjectSummary],
        value_statement: str,
        steps: List[StepOutcome],
    ) -> EnrichmentOutcome:
        try:
            record = await self.enrichment_repository.complete(
                context.subject_id,
                bio=bio,
                project_summaries=[summary.model_dump(mode="json") for summary in project_summaries],
                value_statement=value_statement,
            )
        except AppError as e:
            LOGGER.error(
                "Failed to persist enrichment result",
                exc_info=True,
                extra={"subject_id": str(context.subject_id)}
            )
            steps.append(StepOutcome.fatal(STEP_PERSIST, e))
            raise

        steps.append(StepOutcome.success(STEP_PERSIST))
        return EnrichmentOutcome(
            subject_id=context.subject_id,
            completed=True,
            bio=bio,
            project_summaries=project_summaries,
            value_statement=value_statement,
            completed_at=record.completed_at or datetime.now(timezone.utc),
            steps=steps,
        )

    async def _notify(
        self,
        subject: Subject,
        merged: MergedProfile,
        outcome: EnrichmentOutcome,
        steps: List[StepOutcome],
    ) -> None:
        """Best-effort downstream notifications; failures never undo the enrichment."""
        notifications: List[Tuple[str, Any, Callable[[], Awaitable[Any]]]] = [
            (
                STEP_SKILLS_NORMALIZATION,
                self.skills_client,
                lambda: self.skills_client.normalize(
                    subject.id,
                    merged.model_dump(mode="json"),
                    user_name=subject.full_name,
                    company_id=str(subject.company_id) if subject.company_id else None,
                    company_name=subject.company_name,
                    path_career=subject.target_role,
                ),
            ),
            (
                STEP_APPROVAL_QUEUE,
                self.approval_client,
                lambda: self.approval_client.create_entry(subject.id, outcome.completed_at),
            ),
        ]

        for step, client, call in notifications:
            if client is None or not client.is_configured:
                steps.append(StepOutcome.degraded(step, "endpoint not configured"))
                continue
            try:
                await call()
            except Exception as e:
                # The result is already committed; a notification never fails the run
                LOGGER.warning(
                    f"{step} notification failed: {e}",
                    exc_info=not isinstance(e, NotificationError),
                    extra={"subject_id": str(subject.id)}
                )
                steps.append(StepOutcome.degraded(step, "notification failed", error=e))
                continue
            steps.append(StepOutcome.success(step))

    async def _release_claim(self, subject_id: uuid.UUID) -> None:
        try:
            await self.enrichment_repository.release(subject_id)
        except AppError as e:
            LOGGER.error(
                f"Failed to release enrichment claim: {e}",
                extra={"subject_id": str(subject_id)}
            )
