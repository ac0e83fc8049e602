"""Subject ingestion, merge and enrichment endpoints."""

from typing import Annotated, Any, Dict, NoReturn
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile, status

from profile_enrichment.core.config import settings
from profile_enrichment.core.exceptions import (
    AlreadyProcessedError,
    AppError,
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
from profile_enrichment.models.profile import DataSource, ManualProfileInput
from profile_enrichment.repositories.raw_data_repository import RawDataRepository
from profile_enrichment.repositories.subject_repository import SubjectRepository
from profile_enrichment.schemas.common import ApiResponse
from profile_enrichment.services.enrichment.enrichment_orchestrator import EnrichmentOrchestrator
from profile_enrichment.services.ingestion.ingestion_service import IngestionService
from profile_enrichment.services.merge.data_merger import DataMerger
from profile_enrichment.utils.logging import get_logger
from profile_enrichment.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter()

# Most specific first: EnrichmentInProgressError subclasses AlreadyProcessedError
ERROR_RESPONSES = (
    (EnrichmentInProgressError, status.HTTP_409_CONFLICT, "Enrichment In Progress"),
    (AlreadyProcessedError, status.HTTP_409_CONFLICT, "Already Processed"),
    (SubjectNotFoundError, status.HTTP_404_NOT_FOUND, "Subject Not Found"),
    (ExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Extraction Failed"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Invalid Request"),
)


def raise_http_error(request: Request, error: AppError) -> NoReturn:
    """Translate an application error into an HTTPException with problem details."""
    for error_type, status_code, title in ERROR_RESPONSES:
        if isinstance(error, error_type):
            break
    else:
        status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error"
        LOGGER.error(
            f"Unhandled application error: {error}",
            exc_info=error,
            extra={"path": request.url.path}
        )

    error_detail = create_error_detail(
        title=title,
        status=status_code,
        detail=str(error),
        request=request
    )
    raise HTTPException(status_code=status_code, detail=error_detail.model_dump(mode="json")) from error


def _record_to_dict(record) -> Dict[str, Any]:
    return {
        "source": record.source,
        "data": record.data,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


@router.post(
    "/{subject_id}/documents",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a CV document",
    operation_id="upload_subject_document",
)
async def upload_document(
    request: Request,
    subject_id: UUID,
    file: UploadFile = File(..., description="CV document (PDF)"),
    ingestion_service: Annotated[IngestionService, Depends(get_ingestion_service)] = None,
) -> ApiResponse:
    """Extract, classify and store a CV under the document source."""
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        error_detail = create_error_detail(
            title="File Too Large",
            status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds {settings.max_upload_bytes} bytes",
            request=request
        )
        raise HTTPException(status_code=413, detail=error_detail.model_dump(mode="json"))

    try:
        buckets = await ingestion_service.upload_document(subject_id, content)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=buckets,
        message=f"Document {file.filename} processed successfully",
        request=request
    )


@router.post(
    "/{subject_id}/manual-data",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save form-entered profile data",
    operation_id="save_subject_manual_data",
)
async def save_manual_data(
    request: Request,
    subject_id: UUID,
    manual: ManualProfileInput,
    ingestion_service: Annotated[IngestionService, Depends(get_ingestion_service)] = None,
) -> ApiResponse:
    try:
        data = await ingestion_service.save_manual_data(subject_id, manual)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=data,
        message="Manual data saved successfully",
        request=request
    )


@router.post(
    "/{subject_id}/providers/{source}",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a third-party profile payload",
    operation_id="save_subject_provider_profile",
)
async def save_provider_profile(
    request: Request,
    subject_id: UUID,
    source: str,
    payload: Dict[str, Any] = Body(..., description="Provider profile payload"),
    ingestion_service: Annotated[IngestionService, Depends(get_ingestion_service)] = None,
) -> ApiResponse:
    try:
        await ingestion_service.save_provider_profile(subject_id, source, payload)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data={"subject_id": str(subject_id), "source": source},
        message="Provider profile saved successfully",
        request=request
    )


@router.get(
    "/{subject_id}/raw-data",
    response_model=ApiResponse,
    summary="List raw data records",
    operation_id="list_subject_raw_data",
)
async def list_raw_data(
    request: Request,
    subject_id: UUID,
    subject_repository: Annotated[SubjectRepository, Depends(get_subject_repository)] = None,
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)] = None,
) -> ApiResponse:
    """Return every stored record for the subject, merged included."""
    try:
        if not await subject_repository.exists(subject_id):
            raise SubjectNotFoundError(f"Subject {subject_id} not found")
        records = await raw_data_repository.list_by_subject(subject_id)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data={"total": len(records), "records": [_record_to_dict(record) for record in records]},
        message="Raw data retrieved successfully",
        request=request
    )


@router.delete(
    "/{subject_id}/raw-data/{source}",
    response_model=ApiResponse,
    summary="Delete one raw data record",
    operation_id="delete_subject_raw_data",
)
async def delete_raw_data(
    request: Request,
    subject_id: UUID,
    source: DataSource,
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)] = None,
) -> ApiResponse:
    """Remove the record a subject holds for one source, e.g. a disconnected provider."""
    try:
        deleted = await raw_data_repository.delete_by_subject_and_source(subject_id, source)
    except AppError as e:
        raise_http_error(request, e)

    if not deleted:
        error_detail = create_error_detail(
            title="Raw Data Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=f"No {source.value} record stored for subject {subject_id}",
            request=request
        )
        raise HTTPException(status_code=404, detail=error_detail.model_dump(mode="json"))

    LOGGER.info(
        "Deleted raw data record",
        extra={"subject_id": str(subject_id), "source": source.value}
    )
    return create_api_response(
        data={"subject_id": str(subject_id), "source": source.value},
        message="Raw data deleted successfully",
        request=request
    )


@router.post(
    "/{subject_id}/merge",
    response_model=ApiResponse,
    summary="Merge raw data records",
    operation_id="merge_subject_raw_data",
)
async def merge_raw_data(
    request: Request,
    subject_id: UUID,
    subject_repository: Annotated[SubjectRepository, Depends(get_subject_repository)] = None,
    data_merger: Annotated[DataMerger, Depends(get_data_merger)] = None,
) -> ApiResponse:
    try:
        if not await subject_repository.exists(subject_id):
            raise SubjectNotFoundError(f"Subject {subject_id} not found")
        merged = await data_merger.merge(subject_id)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=merged,
        message="Raw data merged successfully",
        request=request
    )


@router.get(
    "/{subject_id}/merged",
    response_model=ApiResponse,
    summary="Get the stored merged profile",
    operation_id="get_subject_merged_profile",
)
async def get_merged_profile(
    request: Request,
    subject_id: UUID,
    raw_data_repository: Annotated[RawDataRepository, Depends(get_raw_data_repository)] = None,
) -> ApiResponse:
    try:
        record = await raw_data_repository.get(subject_id, DataSource.MERGED)
    except AppError as e:
        raise_http_error(request, e)

    if record is None:
        error_detail = create_error_detail(
            title="Merged Profile Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=f"No merged profile stored for subject {subject_id}",
            request=request
        )
        raise HTTPException(status_code=404, detail=error_detail.model_dump(mode="json"))

    return create_api_response(
        data=record.data,
        message="Merged profile retrieved successfully",
        request=request
    )


@router.get(
    "/{subject_id}/enrichment/status",
    response_model=ApiResponse,
    summary="Get enrichment readiness",
    operation_id="get_subject_enrichment_status",
)
async def get_enrichment_status(
    request: Request,
    subject_id: UUID,
    orchestrator: Annotated[EnrichmentOrchestrator, Depends(get_enrichment_orchestrator)] = None,
) -> ApiResponse:
    try:
        enrichment_status = await orchestrator.get_status(subject_id)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=enrichment_status,
        message="Enrichment status retrieved successfully",
        request=request
    )


@router.post(
    "/{subject_id}/enrichment",
    response_model=ApiResponse,
    summary="Run the one-time profile enrichment",
    operation_id="enrich_subject_profile",
)
async def enrich_profile(
    request: Request,
    subject_id: UUID,
    orchestrator: Annotated[EnrichmentOrchestrator, Depends(get_enrichment_orchestrator)] = None,
) -> ApiResponse:
    """Enrich the subject once; repeated calls answer 409."""
    try:
        outcome = await orchestrator.execute(subject_id)
    except AppError as e:
        raise_http_error(request, e)

    message = "Profile enriched successfully"
    if outcome.degraded_steps:
        message = f"Profile enriched with fallbacks for: {', '.join(outcome.degraded_steps)}"

    return create_api_response(
        data=outcome.to_dict(),
        message=message,
        request=request
    )
