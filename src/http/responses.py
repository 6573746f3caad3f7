import unicodedata
from typing import Any, Dict, Optional
from urllib.parse import quote

import azure.functions as func
from pydantic import BaseModel, ValidationError

from src.media.compositor import CompositionResult
from src.shared.logging_utils import error as log_error
from src.shared.session import ListingSession
from src.specs.common.errors import MerchantAIError
from src.specs.http.listing import CompositionView, ErrorResponse, SessionSnapshot

STATUS_BY_CODE: Dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "RESOURCE_NOT_FOUND": 404,
    "SESSION_BUSY": 409,
    "LISTING_REQUIRED": 409,
    "CONFIGURATION_ERROR": 500,
    "CONTENT_GENERATION_ERROR": 502,
    "MEDIA_GENERATION_ERROR": 502,
}


def json_response(model: BaseModel, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(),
        mimetype="application/json",
        status_code=status_code,
    )


def error_response(
    message: str,
    status_code: int,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> func.HttpResponse:
    err = ErrorResponse(message=message, errorCode=error_code, details=details)
    return json_response(err, status_code)


def from_error(exc: MerchantAIError, session_id: Optional[str] = None) -> func.HttpResponse:
    details = dict(exc.details)
    if session_id:
        details["sessionId"] = session_id
    return error_response(
        str(exc),
        STATUS_BY_CODE.get(exc.code, 500),
        error_code=exc.code,
        details=details or None,
    )


def read_json(req: func.HttpRequest, trace_tag: str) -> Dict[str, Any]:
    """Return the JSON body, or raise ValueError with a client-facing message."""
    try:
        data = req.get_json()
    except ValueError:
        log_error(None, f"{trace_tag}:invalid_json")
        raise ValueError("Invalid JSON body")
    if not isinstance(data, dict):
        log_error(None, f"{trace_tag}:invalid_json")
        raise ValueError("Invalid JSON body")
    return data


def invalid_request(exc: ValidationError, trace_tag: str) -> func.HttpResponse:
    log_error(None, f"{trace_tag}:invalid_request", error=str(exc))
    return error_response(f"Invalid request: {str(exc)}", 400, error_code="VALIDATION_ERROR")


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and an RFC 5987 UTF-8 name."""
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def png_response(result: CompositionResult) -> func.HttpResponse:
    return func.HttpResponse(
        body=result.png,
        status_code=200,
        mimetype="image/png",
        headers={"Content-Disposition": content_disposition(result.filename)},
    )


def snapshot(session: ListingSession) -> SessionSnapshot:
    composition = None
    if session.composition is not None:
        composition = CompositionView(
            hasBaseImage=bool(session.composition.base_image),
            hasLogo=session.composition.logo is not None,
            businessName=session.composition.business_name,
            price=session.composition.price,
        )
    return SessionSnapshot(
        sessionId=session.session_id,
        status=session.phase,
        listing=session.listing,
        error=session.error,
        imagePreview=session.source_image.to_data_uri() if session.source_image else None,
        textInput=session.text_input,
        isGeneratingImage=session.is_generating_image,
        marketingImage=session.marketing_image,
        composition=composition,
    )
