"""Response envelope and problem-detail helpers shared by the v1 routes."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from fastapi import Request
from pydantic import BaseModel

from profile_enrichment.schemas.common import ApiResponse, ErrorDetail, ResponseMeta


def _request_id(request: Optional[Request]) -> str:
    """Correlation id set by the middleware, or a fresh one outside a request."""
    if request is not None and hasattr(request.state, "correlation_id"):
        return request.state.correlation_id
    return str(uuid4())


def create_api_response(
    data: Union[BaseModel, Dict[str, Any], None],
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1"
) -> Dict[str, Any]:
    """Wrap a model or dict payload in the standard envelope, JSON-ready."""
    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json")
    else:
        payload = dict(data or {})

    response = ApiResponse(
        status=status,
        message=message,
        data=payload,
        meta=ResponseMeta(
            timestamp=datetime.now(timezone.utc),
            request_id=_request_id(request),
            api_version=api_version,
        ),
    )
    return response.model_dump(mode="json")


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
) -> ErrorDetail:
    """Problem details (RFC 7807) for an error response; `instance` is the request path."""
    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=request.url.path if request is not None else None,
        request_id=_request_id(request),
        timestamp=datetime.now(timezone.utc),
    )
