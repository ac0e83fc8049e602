import uuid
from unittest.mock import AsyncMock

import pytest

from profile_enrichment.core.exceptions import (
    ExtractionError,
    SubjectNotFoundError,
    ValidationError,
)
from profile_enrichment.models.profile import DataSource, ManualProfileInput, StructuredBuckets
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.repositories.subject_repository import SubjectRepository
from profile_enrichment.services.extraction.document_text_extractor import DocumentTextExtractor
from profile_enrichment.services.extraction.section_classifier import SectionClassifier
from profile_enrichment.services.ingestion.ingestion_service import IngestionService


@pytest.fixture
def subject_repository():
    repository = AsyncMock(spec=SubjectRepository)
    repository.exists.return_value = True
    return repository


@pytest.fixture
def raw_data_repository():
    repository = AsyncMock(spec=RawDataRepository)
    repository.has_qualifying_source.return_value = False
    return repository


@pytest.fixture
def extractor():
    extractor = AsyncMock(spec=DocumentTextExtractor)
    extractor.extract.return_value = "Skills\nPython, Docker\nExperience\nBackend Developer at Acme"
    return extractor


@pytest.fixture
def service(subject_repository, raw_data_repository, extractor):
    return IngestionService(
        subject_repository=subject_repository,
        raw_data_repository=raw_data_repository,
        extractor=extractor,
        classifier=SectionClassifier(),
    )


class TestUploadDocument:

    @pytest.mark.asyncio
    async def test_stores_classified_buckets(self, service, raw_data_repository, sample_pdf_content):
        subject_id = uuid.uuid4()

        buckets = await service.upload_document(subject_id, sample_pdf_content)

        assert isinstance(buckets, StructuredBuckets)
        assert buckets.skills == ["Python", "Docker"]
        assert buckets.work_experience == ["Backend Developer at Acme"]
        raw_data_repository.upsert.assert_awaited_once_with(
            subject_id, DataSource.DOCUMENT, buckets.model_dump(mode="json")
        )

    @pytest.mark.asyncio
    async def test_extraction_failure_stores_nothing(
        self, service, extractor, raw_data_repository, sample_pdf_content
    ):
        extractor.extract.side_effect = ExtractionError("No text could be extracted from the document")

        with pytest.raises(ExtractionError):
            await service.upload_document(uuid.uuid4(), sample_pdf_content)

        raw_data_repository.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_subject(self, service, subject_repository, extractor, sample_pdf_content):
        subject_repository.exists.return_value = False

        with pytest.raises(SubjectNotFoundError):
            await service.upload_document(uuid.uuid4(), sample_pdf_content)

        extractor.extract.assert_not_awaited()


class TestSaveManualData:

    @pytest.mark.asyncio
    async def test_splits_lists_and_lines(self, service, raw_data_repository):
        subject_id = uuid.uuid4()
        manual = ManualProfileInput(
            work_experience="Team Lead at Initech\n\nDeveloper at Acme",
            skills="Python, Kubernetes, ",
            languages="English,Hebrew",
        )

        data = await service.save_manual_data(subject_id, manual)

        assert data["work_experience"] == ["Team Lead at Initech", "Developer at Acme"]
        assert data["skills"] == ["Python", "Kubernetes"]
        assert data["languages"] == ["English", "Hebrew"]
        assert data["education"] == []
        raw_data_repository.upsert.assert_awaited_once_with(subject_id, DataSource.MANUAL, data)

    @pytest.mark.asyncio
    async def test_redacts_contact_details(self, service):
        manual = ManualProfileInput(
            skills="Python",
            volunteer="Mentor at Code Club, contact dana@example.com",
        )

        data = await service.save_manual_data(uuid.uuid4(), manual)

        assert "dana@example.com" not in data["volunteer"][0]
        assert "[EMAIL_REMOVED]" in data["volunteer"][0]

    @pytest.mark.asyncio
    async def test_blank_form_rejected_without_qualifying_source(self, service, raw_data_repository):
        with pytest.raises(ValidationError):
            await service.save_manual_data(uuid.uuid4(), ManualProfileInput(skills="   "))

        raw_data_repository.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_optional_fields_alone_rejected_without_qualifying_source(
        self, service, raw_data_repository
    ):
        manual = ManualProfileInput(languages="English, Hebrew", courses="AWS Bootcamp")

        with pytest.raises(ValidationError):
            await service.save_manual_data(uuid.uuid4(), manual)

        raw_data_repository.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_form_accepted_with_qualifying_source(self, service, raw_data_repository):
        raw_data_repository.has_qualifying_source.return_value = True

        data = await service.save_manual_data(uuid.uuid4(), ManualProfileInput())

        assert all(entries == [] for entries in data.values())
        raw_data_repository.upsert.assert_awaited_once()


class TestSaveProviderProfile:

    @pytest.mark.asyncio
    async def test_stores_payload_verbatim(self, service, raw_data_repository):
        subject_id = uuid.uuid4()
        payload = {"repositories": [{"name": "api-gateway"}], "languages": {"Go": 1200}}

        stored = await service.save_provider_profile(subject_id, "provider_b", payload)

        assert stored == payload
        raw_data_repository.upsert.assert_awaited_once_with(subject_id, DataSource.PROVIDER_B, payload)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source", ["fax", "manual", "merged", "document"])
    async def test_rejects_non_provider_sources(self, service, raw_data_repository, source):
        with pytest.raises(ValidationError):
            await service.save_provider_profile(uuid.uuid4(), source, {"headline": "Engineer"})

        raw_data_repository.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejects_empty_payload(self, service):
        with pytest.raises(ValidationError):
            await service.save_provider_profile(uuid.uuid4(), DataSource.PROVIDER_A, {})

    @pytest.mark.asyncio
    async def test_unknown_subject(self, service, subject_repository):
        subject_repository.exists.return_value = False

        with pytest.raises(SubjectNotFoundError):
            await service.save_provider_profile(uuid.uuid4(), "provider_a", {"headline": "Engineer"})


def test_defaults_use_shared_instances(subject_repository, raw_data_repository):
    service = IngestionService(subject_repository, raw_data_repository)

    assert service.classifier is SectionClassifier.get_instance()
    assert isinstance(service.extractor, DocumentTextExtractor)
    assert service.extractor.timeout_seconds > 0
