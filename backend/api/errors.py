from typing import Any, Dict, Mapping, Optional

from fastapi.responses import JSONResponse


def error_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    context: Optional[Dict[str, Any]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> JSONResponse:
    """Return a consistent error payload for API responses."""
    payload: Dict[str, Any] = {"error": code, "detail": detail}
    if extra:
        payload.update(extra)
    if context:
        payload["context"] = context
    return JSONResponse(status_code=status_code, content=payload)


def validation_error_response(messages: Mapping[str, str], codes: Mapping[str, str]) -> JSONResponse:
    """400 payload carrying every field-level failure at once."""
    return error_response(
        status_code=400,
        code="validation_error",
        detail="One or more calculator fields are invalid.",
        context={"codes": dict(codes)},
        extra={"validationErrors": dict(messages)},
    )
