from typing import Any, Optional, Dict
from datetime import datetime
from bson import ObjectId
from fastapi.responses import JSONResponse


def serialize_document(value: Any) -> Any:
    """Recursively convert ObjectId/datetime values to JSON-safe strings"""
    if isinstance(value, ObjectId):
        return str(value)
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_document(item) for item in value]
    return value


def success_response(
    message: str = "Success",
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """
    Standard success response

    Args:
        message: Success message
        data: Response data (optional), serialized with serialize_document
        status_code: HTTP status code (default: 200)

    Returns:
        JSONResponse with success format
    """
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = serialize_document(data)

    return JSONResponse(content=response, status_code=status_code)


def error_response(
    message: str = "Error",
    status_code: int = 400,
    kind: Optional[str] = None
) -> JSONResponse:
    """
    Standard error response

    Args:
        message: Error message
        status_code: HTTP status code (default: 400)
        kind: Stable failure kind (optional)

    Returns:
        JSONResponse with error format
    """
    content = {
        "success": False,
        "message": message
    }

    if kind:
        content["kind"] = kind

    return JSONResponse(content=content, status_code=status_code)


def validation_error_response(
    message: str = "Validation error",
    errors: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Standard validation error response

    Args:
        message: Validation error message
        errors: Dictionary of validation errors (optional)

    Returns:
        JSONResponse with validation error format (422)
    """
    response = {
        "success": False,
        "message": message,
        "kind": "validation_error"
    }

    if errors:
        response["errors"] = serialize_document(errors)

    return JSONResponse(content=response, status_code=422)
