"""Centralized dependency injection for FastAPI application.

Each request gets repositories bound to its session; the orchestrator is
assembled from them plus the generation service and downstream clients.
"""

from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from profile_enrichment.core.config import settings
from profile_enrichment.core.database import get_async_session
from profile_enrichment.core.exceptions import ConfigurationError
from profile_enrichment.core.llm_client import create_text_generation_client
from profile_enrichment.repositories.enrichment_repository import EnrichmentRepository
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.repositories.subject_repository import SubjectRepository
from profile_enrichment.services.enrichment.enrichment_orchestrator import EnrichmentOrchestrator
from profile_enrichment.services.enrichment.generation_service import GenerationService
from profile_enrichment.services.enrichment.retry_policy import RetryPolicy
from profile_enrichment.services.ingestion.ingestion_service import IngestionService
from profile_enrichment.services.merge.data_merger import DataMerger
from profile_enrichment.services.notifications.downstream_clients import (
    ApprovalQueueClient,
    SkillsNormalizationClient,
)
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)


async def get_subject_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> SubjectRepository:
    return SubjectRepository(db_session)


async def get_raw_data_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> RawDataRepository:
    """Get raw data repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        RawDataRepository: Repository for per-source raw records
    """
    return RawDataRepository(db_session)


async def get_enrichment_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> EnrichmentRepository:
    return EnrichmentRepository(db_session)


async def get_ingestion_service(
    subject_repository: Annotated[SubjectRepository, Depends(get_subject_repository)],
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)],
) -> IngestionService:
    return IngestionService(subject_repository, raw_data_repository)


async def get_data_merger(
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)],
) -> DataMerger:
    return DataMerger(raw_data_repository)


def get_generation_service() -> Optional[GenerationService]:
    """Build the generation service, or None when no provider is configured.

    Without a provider every generation step degrades to its templated fallback.
    """
    try:
        client = create_text_generation_client(settings.llm)
    except ConfigurationError as e:
        LOGGER.warning(f"Text generation disabled: {e}")
        return None

    retry_policy = RetryPolicy(
        max_attempts=settings.enrichment.max_attempts,
        backoff_base=settings.enrichment.backoff_base_seconds,
    )
    return GenerationService(client, settings.llm, retry_policy)


async def get_enrichment_orchestrator(
    subject_repository: Annotated[SubjectRepository, Depends(get_subject_repository)],
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)],
    enrichment_repository: Annotated[EnrichmentRepository, Depends(get_enrichment_repository)],
    data_merger: Annotated[DataMerger, Depends(get_data_merger)],
    generation_service: Annotated[Optional[GenerationService], Depends(get_generation_service)],
) -> EnrichmentOrchestrator:
    """Get the enrichment orchestrator with all collaborators wired in."""
    return EnrichmentOrchestrator(
        subject_repository=subject_repository,
        raw_data_repository=raw_data_repository,
        enrichment_repository=enrichment_repository,
        data_merger=data_merger,
        generation_service=generation_service,
        skills_client=SkillsNormalizationClient(settings.services),
        approval_client=ApprovalQueueClient(settings.services),
        claim_lease_seconds=settings.enrichment.claim_lease_seconds,
    )
