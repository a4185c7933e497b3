"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.core.exceptions import MalformedInput, NotFound, PersistenceFailure, PlannerError, PreconditionFailed
from app.schemas.common import StandardResponse, ErrorResponse

# Service errors and the status they map to
ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND, "not_found"),
    (MalformedInput, status.HTTP_400_BAD_REQUEST, "malformed_input"),
    (PreconditionFailed, status.HTTP_400_BAD_REQUEST, "precondition_failed"),
    (PersistenceFailure, status.HTTP_500_INTERNAL_SERVER_ERROR, "persistence_failure"),
)

def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [_dump(item) for item in data]
    if isinstance(data, dict):
        return {key: _dump(value) for key, value in data.items()}
    return data

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=_dump(data)
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=_dump(details)
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def planner_error_response(exc: PlannerError) -> JSONResponse:
    """Translate a service error into the error envelope"""
    for error_type, status_code, error_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return error_response(message=str(exc), error_code=error_code, status_code=status_code)
    return error_response(message=str(exc), error_code="bad_request", status_code=400)

def rate_limit_error():
    """Create rate limit error"""
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later."
    )
