"""Tests for API endpoints."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from profile_enrichment.core.database import db_client
from profile_enrichment.core.exceptions import (
    AlreadyProcessedError,
    DatabaseError,
    EnrichmentInProgressError,
    ExtractionError,
    SubjectNotFoundError,
    ValidationError,
)
from profile_enrichment.dependencies import (
    get_data_merger,
    get_enrichment_orchestrator,
    get_ingestion_service,
    get_raw_data_repository,
    get_subject_repository,
)
from profile_enrichment.main import app
from profile_enrichment.models.profile import (
    DataSource,
    EnrichmentState,
    EnrichmentStatus,
    MergedProfile,
    ProjectSummary,
    StructuredBuckets,
)
from profile_enrichment.services.enrichment.contracts import EnrichmentOutcome, StepOutcome


def subjects_url(subject_id, path):
    return f"/api/v1/subjects/{subject_id}/{path}"


class TestIngestionEndpoints:
    """Uploads, manual data and provider payloads."""

    def test_upload_document(self, test_client: TestClient, subject_id, sample_pdf_content) -> None:
        mock_service = AsyncMock()
        mock_service.upload_document.return_value = StructuredBuckets(skills=["Python"])
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(
            subjects_url(subject_id, "documents"),
            files={"file": ("cv.pdf", sample_pdf_content, "application/pdf")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] is True
        assert body["data"]["skills"] == ["Python"]
        assert body["data"]["military"] == []
        mock_service.upload_document.assert_awaited_once_with(subject_id, sample_pdf_content)

    def test_upload_unreadable_document(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        mock_service.upload_document.side_effect = ExtractionError("Uploaded document is not a PDF")
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(
            subjects_url(subject_id, "documents"),
            files={"file": ("cv.docx", b"PK\x03\x04", "application/octet-stream")},
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["title"] == "Extraction Failed"
        assert detail["detail"] == "Uploaded document is not a PDF"

    def test_upload_too_large(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        with patch("profile_enrichment.api.v1.endpoints.subjects.settings") as mock_settings:
            mock_settings.max_upload_bytes = 8
            response = test_client.post(
                subjects_url(subject_id, "documents"),
                files={"file": ("cv.pdf", b"%PDF-1.4 and much more", "application/pdf")},
            )

        assert response.status_code == 413
        mock_service.upload_document.assert_not_awaited()

    def test_save_manual_data(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        mock_service.save_manual_data.return_value = {"skills": ["Python", "SQL"]}
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(
            subjects_url(subject_id, "manual-data"),
            json={"skills": "Python, SQL"},
        )

        assert response.status_code == 201
        assert response.json()["data"] == {"skills": ["Python", "SQL"]}
        manual = mock_service.save_manual_data.await_args.args[1]
        assert manual.skills == "Python, SQL"

    def test_blank_manual_data_rejected(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        mock_service.save_manual_data.side_effect = ValidationError("At least one field is required")
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(subjects_url(subject_id, "manual-data"), json={})

        assert response.status_code == 400
        assert response.json()["detail"]["title"] == "Invalid Request"

    def test_save_provider_profile(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service
        payload = {"repositories": [{"name": "api-gateway"}]}

        response = test_client.post(subjects_url(subject_id, "providers/provider_b"), json=payload)

        assert response.status_code == 201
        assert response.json()["data"] == {"subject_id": str(subject_id), "source": "provider_b"}
        mock_service.save_provider_profile.assert_awaited_once_with(subject_id, "provider_b", payload)

    def test_unknown_subject(self, test_client: TestClient, subject_id) -> None:
        mock_service = AsyncMock()
        mock_service.save_provider_profile.side_effect = SubjectNotFoundError(f"Subject {subject_id} not found")
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(
            subjects_url(subject_id, "providers/provider_a"), json={"headline": "Engineer"}
        )

        assert response.status_code == 404
        detail = response.json()["detail"]
        assert detail["status"] == 404
        assert detail["instance"] == f"/api/v1/subjects/{subject_id}/providers/provider_a"

    def test_invalid_subject_id(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        app.dependency_overrides[get_ingestion_service] = lambda: mock_service

        response = test_client.post(subjects_url("not-a-uuid", "manual-data"), json={})

        assert response.status_code == 422
        mock_service.save_manual_data.assert_not_awaited()


class TestRawDataEndpoints:
    """Raw record listing and merging."""

    def test_list_raw_data(self, test_client: TestClient, subject_id) -> None:
        subject_repository = AsyncMock()
        subject_repository.exists.return_value = True
        raw_data_repository = AsyncMock()
        record = MagicMock()
        record.source = "document"
        record.data = {"skills": ["Python"]}
        record.created_at = datetime(2026, 1, 5, tzinfo=timezone.utc)
        record.updated_at = None
        raw_data_repository.list_by_subject.return_value = [record]
        app.dependency_overrides = {
            get_subject_repository: lambda: subject_repository,
            get_raw_data_repository: lambda: raw_data_repository,
        }

        response = test_client.get(subjects_url(subject_id, "raw-data"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["records"][0]["source"] == "document"
        assert data["records"][0]["updated_at"] is None

    def test_list_raw_data_unknown_subject(self, test_client: TestClient, subject_id) -> None:
        subject_repository = AsyncMock()
        subject_repository.exists.return_value = False
        app.dependency_overrides = {
            get_subject_repository: lambda: subject_repository,
            get_raw_data_repository: lambda: AsyncMock(),
        }

        response = test_client.get(subjects_url(subject_id, "raw-data"))

        assert response.status_code == 404

    def test_delete_raw_data(self, test_client: TestClient, subject_id) -> None:
        raw_data_repository = AsyncMock()
        raw_data_repository.delete_by_subject_and_source.return_value = True
        app.dependency_overrides = {get_raw_data_repository: lambda: raw_data_repository}

        response = test_client.delete(subjects_url(subject_id, "raw-data/provider_a"))

        assert response.status_code == 200
        assert response.json()["data"] == {"subject_id": str(subject_id), "source": "provider_a"}
        raw_data_repository.delete_by_subject_and_source.assert_awaited_once_with(
            subject_id, DataSource.PROVIDER_A
        )

    def test_delete_missing_raw_data(self, test_client: TestClient, subject_id) -> None:
        raw_data_repository = AsyncMock()
        raw_data_repository.delete_by_subject_and_source.return_value = False
        app.dependency_overrides = {get_raw_data_repository: lambda: raw_data_repository}

        response = test_client.delete(subjects_url(subject_id, "raw-data/document"))

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Raw Data Not Found"

    def test_delete_unknown_source(self, test_client: TestClient, subject_id) -> None:
        app.dependency_overrides = {get_raw_data_repository: lambda: AsyncMock()}

        response = test_client.delete(subjects_url(subject_id, "raw-data/fax"))

        assert response.status_code == 422

    def test_merge(self, test_client: TestClient, subject_id) -> None:
        subject_repository = AsyncMock()
        subject_repository.exists.return_value = True
        data_merger = AsyncMock()
        data_merger.merge.return_value = MergedProfile(skills=["Python", "Go"])
        app.dependency_overrides = {
            get_subject_repository: lambda: subject_repository,
            get_data_merger: lambda: data_merger,
        }

        response = test_client.post(subjects_url(subject_id, "merge"))

        assert response.status_code == 200
        assert response.json()["data"]["skills"] == ["Python", "Go"]

    def test_merged_profile_missing(self, test_client: TestClient, subject_id) -> None:
        raw_data_repository = AsyncMock()
        raw_data_repository.get.return_value = None
        app.dependency_overrides[get_raw_data_repository] = lambda: raw_data_repository

        response = test_client.get(subjects_url(subject_id, "merged"))

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Merged Profile Not Found"

    def test_storage_failure_is_500(self, test_client: TestClient, subject_id) -> None:
        raw_data_repository = AsyncMock()
        raw_data_repository.get.side_effect = DatabaseError("Failed retrieving RawDataRecord")
        app.dependency_overrides[get_raw_data_repository] = lambda: raw_data_repository

        response = test_client.get(subjects_url(subject_id, "merged"))

        assert response.status_code == 500
        assert response.json()["detail"]["title"] == "Internal Error"


class TestEnrichmentEndpoints:
    """Enrichment status and the one-time enrich call."""

    def test_status(self, test_client: TestClient, subject_id) -> None:
        orchestrator = AsyncMock()
        orchestrator.get_status.return_value = EnrichmentStatus(
            subject_id=subject_id,
            state=EnrichmentState.READY,
            is_ready=True,
            completed=False,
            available_sources=["document"],
        )
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.get(subjects_url(subject_id, "enrichment/status"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["state"] == "ready"
        assert data["is_ready"] is True

    def test_enrich(self, test_client: TestClient, subject_id) -> None:
        orchestrator = AsyncMock()
        orchestrator.execute.return_value = EnrichmentOutcome(
            subject_id=subject_id,
            completed=True,
            bio="Dana builds APIs.",
            project_summaries=[ProjectSummary(project_name="api-gateway", summary="A Go gateway.")],
            value_statement="Dana is progressing toward Tech Lead.",
            completed_at=datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc),
            steps=[StepOutcome.success("bio")],
        )
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.post(
            subjects_url(subject_id, "enrichment"),
            headers={"X-Correlation-ID": "req-123"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile enriched successfully"
        assert body["data"]["bio"] == "Dana builds APIs."
        assert body["data"]["project_summaries"][0]["project_name"] == "api-gateway"
        assert body["meta"]["request_id"] == "req-123"
        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_enrich_reports_fallbacks(self, test_client: TestClient, subject_id) -> None:
        orchestrator = AsyncMock()
        orchestrator.execute.return_value = EnrichmentOutcome(
            subject_id=subject_id,
            completed=True,
            bio="Fallback bio.",
            steps=[StepOutcome.degraded("bio", "generation failed")],
        )
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.post(subjects_url(subject_id, "enrichment"))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile enriched with fallbacks for: bio"
        assert body["data"]["degraded_steps"] == ["bio"]

    def test_enrich_twice_conflicts(self, test_client: TestClient, subject_id) -> None:
        orchestrator = AsyncMock()
        orchestrator.execute.side_effect = AlreadyProcessedError("already enriched")
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.post(subjects_url(subject_id, "enrichment"))

        assert response.status_code == 409
        assert response.json()["detail"]["title"] == "Already Processed"

    def test_enrich_in_progress_conflicts(self, test_client: TestClient, subject_id) -> None:
        orchestrator = AsyncMock()
        orchestrator.execute.side_effect = EnrichmentInProgressError("in progress")
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.post(subjects_url(subject_id, "enrichment"))

        assert response.status_code == 409
        assert response.json()["detail"]["title"] == "Enrichment In Progress"

    def test_enrich_unknown_subject(self, test_client: TestClient) -> None:
        orchestrator = AsyncMock()
        orchestrator.execute.side_effect = SubjectNotFoundError("not found")
        app.dependency_overrides[get_enrichment_orchestrator] = lambda: orchestrator

        response = test_client.post(subjects_url(uuid.uuid4(), "enrichment"))

        assert response.status_code == 404


class TestHealthEndpoints:

    def test_root(self, test_client: TestClient) -> None:
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    def test_health_healthy(self, test_client: TestClient) -> None:
        with patch.object(db_client, "health_check", AsyncMock(return_value={"status": "healthy"})):
            response = test_client.get("/health/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
        assert body["integrations"] == {
            "text_generation": True,
            "skills_engine": False,
            "approval_queue": False,
        }

    def test_health_degraded(self, test_client: TestClient) -> None:
        with patch.object(db_client, "health_check", AsyncMock(return_value={"status": "unhealthy"})):
            response = test_client.get("/health/")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
