"""Entry points that turn uploads, forms and provider callbacks into raw records."""

import uuid
from typing import Any, Dict, List, Optional, Union

from profile_enrichment.core.exceptions import SubjectNotFoundError, ValidationError
from profile_enrichment.models.profile import (
    DataSource,
    ManualProfileInput,
    PROVIDER_SOURCES,
    StructuredBuckets,
)
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.repositories.subject_repository import SubjectRepository
from profile_enrichment.services.extraction.document_text_extractor import DocumentTextExtractor
from profile_enrichment.services.extraction.section_classifier import SectionClassifier
from profile_enrichment.services.redaction.pii_redactor import PIIRedactor
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Manual fields entered as comma-separated lists; the rest are one entry per line
MANUAL_LIST_FIELDS = ("skills", "languages")


class IngestionService:
    """Writes one raw data record per submission via the raw data store."""

    def __init__(
        self,
        subject_repository: SubjectRepository,
        raw_data_repository: RawDataRepository,
        extractor: Optional[DocumentTextExtractor] = None,
        classifier: Optional[SectionClassifier] = None,
        redactor: Optional[PIIRedactor] = None,
    ):
        self.subject_repository = subject_repository
        self.raw_data_repository = raw_data_repository
        self.extractor = extractor or DocumentTextExtractor()
        self.classifier = classifier or SectionClassifier.get_instance()
        self.redactor = redactor or PIIRedactor.get_instance()

    async def _ensure_subject(self, subject_id: uuid.UUID) -> None:
        if not await self.subject_repository.exists(subject_id):
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

    async def upload_document(self, subject_id: uuid.UUID, content: bytes) -> StructuredBuckets:
        """Extract, classify and store a CV document.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            ExtractionError: If no text can be read from the document
        """
        await self._ensure_subject(subject_id)

        text = await self.extractor.extract(content)
        buckets = self.classifier.classify(text)

        await self.raw_data_repository.upsert(
            subject_id, DataSource.DOCUMENT, buckets.model_dump(mode="json")
        )

        LOGGER.info(
            "Stored classified document",
            extra={
                "subject_id": str(subject_id),
                "bucket_sizes": {
                    name: len(value)
                    for name, value in buckets.model_dump().items()
                    if isinstance(value, list)
                },
            }
        )
        return buckets

    async def save_manual_data(
        self, subject_id: uuid.UUID, manual: ManualProfileInput
    ) -> Dict[str, List[str]]:
        """Store form-entered data.

        Every field is optional, but at least one must be filled when the
        subject has no document or code-hosting data yet.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            ValidationError: If the form is blank and no qualifying source exists
        """
        await self._ensure_subject(subject_id)

        if manual.is_blank() and not await self.raw_data_repository.has_qualifying_source(subject_id):
            raise ValidationError(
                "At least one of work experience, skills or education is required "
                "when no CV or code-hosting profile is connected"
            )

        data = self.normalize_manual_input(manual)
        await self.raw_data_repository.upsert(subject_id, DataSource.MANUAL, data)

        LOGGER.info("Stored manual profile data", extra={"subject_id": str(subject_id)})
        return data

    def normalize_manual_input(self, manual: ManualProfileInput) -> Dict[str, List[str]]:
        """Split free text into entries and redact contact details typed into the form."""
        data: Dict[str, List[str]] = {}
        for field_name, value in manual.model_dump().items():
            separator = "," if field_name in MANUAL_LIST_FIELDS else "\n"
            parts = [part.strip() for part in (value or "").split(separator)]
            data[field_name] = [self.redactor.redact(part) for part in parts if part]
        return data

    async def save_provider_profile(
        self,
        subject_id: uuid.UUID,
        source: Union[DataSource, str],
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Store a third-party profile payload as received.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            ValidationError: If the source is not a provider or the payload is empty
        """
        try:
            source = DataSource(source)
        except ValueError as e:
            raise ValidationError(f"Unknown data source: {source}", original_error=e) from e

        if source not in PROVIDER_SOURCES:
            raise ValidationError(f"{source.value} is not a provider source")
        if not isinstance(payload, dict) or not payload:
            raise ValidationError("Provider payload must be a non-empty object")

        await self._ensure_subject(subject_id)
        await self.raw_data_repository.upsert(subject_id, source, payload)

        LOGGER.info(
            "Stored provider profile",
            extra={"subject_id": str(subject_id), "source": source.value}
        )
        return payload
