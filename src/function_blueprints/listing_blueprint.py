from typing import Optional

import azure.functions as func
import requests
from pydantic import ValidationError

from src.http.responses import (
    error_response,
    from_error,
    invalid_request,
    json_response,
    png_response,
    read_json,
    snapshot,
)
from src.media.image_encoding import load_image_bytes, parse_data_uri
from src.shared.logging_utils import info as log_info, error as log_error
from src.shared.state import SessionStore
from src.specs.common.errors import MerchantAIError
from src.specs.http.listing import (
    BrandingRequest,
    GenerateImageRequest,
    GenerateListingRequest,
    SessionRef,
)


bp = func.Blueprint()


@bp.function_name(name="generate_listing")
@bp.route(route="listing", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def generate_listing(req: func.HttpRequest) -> func.HttpResponse:
    return handle_generate_listing(req)


@bp.function_name(name="generate_listing_image")
@bp.route(route="listing/image", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def generate_listing_image(req: func.HttpRequest) -> func.HttpResponse:
    return handle_generate_image(req)


@bp.function_name(name="update_listing_branding")
@bp.route(route="listing/branding", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def update_listing_branding(req: func.HttpRequest) -> func.HttpResponse:
    return handle_update_branding(req)


@bp.function_name(name="download_listing_image")
@bp.route(route="listing/download", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def download_listing_image(req: func.HttpRequest) -> func.HttpResponse:
    return handle_download(req)


@bp.function_name(name="listing_status")
@bp.route(route="listing/status", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def listing_status(req: func.HttpRequest) -> func.HttpResponse:
    return handle_status(req)


@bp.function_name(name="reset_listing")
@bp.route(route="listing/reset", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def reset_listing(req: func.HttpRequest) -> func.HttpResponse:
    return handle_reset(req)


def handle_generate_listing(req: func.HttpRequest) -> func.HttpResponse:
    try:
        data = read_json(req, "listing")
    except ValueError as exc:
        return error_response(str(exc), 400)
    try:
        parsed = GenerateListingRequest(**data)
    except ValidationError as exc:
        return invalid_request(exc, "listing")

    session = SessionStore.get_or_create(parsed.sessionId)
    try:
        if parsed.image:
            session.select_image(parse_data_uri(parsed.image))
        session.set_text(parsed.text or "")
        session.generate_listing()
    except MerchantAIError as exc:
        log_error(session.session_id, "listing:failed", code=exc.code)
        return from_error(exc, session.session_id)

    log_info(session.session_id, "listing:completed")
    return json_response(snapshot(session))


def handle_generate_image(req: func.HttpRequest) -> func.HttpResponse:
    try:
        data = read_json(req, "listing_image")
    except ValueError as exc:
        return error_response(str(exc), 400)
    try:
        parsed = GenerateImageRequest(**data)
    except ValidationError as exc:
        return invalid_request(exc, "listing_image")

    try:
        session = SessionStore.get(parsed.sessionId)
        data_uri = session.generate_image(parsed.editInstruction or "")
    except MerchantAIError as exc:
        log_error(parsed.sessionId, "listing_image:failed", code=exc.code)
        return from_error(exc, parsed.sessionId)

    if data_uri is None:
        return error_response(
            "Generate a listing before creating an image",
            409,
            error_code="LISTING_REQUIRED",
            details={"sessionId": parsed.sessionId},
        )
    log_info(parsed.sessionId, "listing_image:completed", isEdit=bool(parsed.editInstruction))
    return json_response(snapshot(session))


def handle_update_branding(req: func.HttpRequest) -> func.HttpResponse:
    try:
        data = read_json(req, "branding")
    except ValueError as exc:
        return error_response(str(exc), 400)
    try:
        parsed = BrandingRequest(**data)
    except ValidationError as exc:
        return invalid_request(exc, "branding")

    try:
        session = SessionStore.get(parsed.sessionId)
        logo = load_image_bytes(parsed.logo) if parsed.logo else None
        session.update_branding(
            business_name=parsed.businessName,
            logo=logo,
            price=parsed.price,
            clear_logo=parsed.clearLogo,
        )
    except MerchantAIError as exc:
        return from_error(exc, parsed.sessionId)
    except requests.RequestException as exc:
        log_error(parsed.sessionId, "branding:logo_fetch_failed", error=str(exc))
        return error_response(
            "Could not load logo image",
            400,
            error_code="VALIDATION_ERROR",
            details={"sessionId": parsed.sessionId},
        )

    return json_response(snapshot(session))


def _session_id_from(req: func.HttpRequest) -> Optional[str]:
    session_id = req.params.get("sessionId")
    if not session_id:
        try:
            body = req.get_json()
            session_id = body.get("sessionId") if isinstance(body, dict) else None
        except ValueError:
            session_id = None
    return session_id


def handle_download(req: func.HttpRequest) -> func.HttpResponse:
    session_id = _session_id_from(req)
    if not session_id:
        log_error(None, "download:missing_sessionId")
        return error_response("Missing sessionId", 400, error_code="VALIDATION_ERROR")
    try:
        session = SessionStore.get(session_id)
    except MerchantAIError as exc:
        return from_error(exc, session_id)

    result = session.compose()
    if result is None:
        log_info(session_id, "download:nothing_to_compose")
        return func.HttpResponse(status_code=204)
    log_info(session_id, "download:composed", width=result.size[0], height=result.size[1])
    return png_response(result)


def handle_status(req: func.HttpRequest) -> func.HttpResponse:
    session_id = _session_id_from(req)
    log_info(session_id, "status:request")
    if not session_id:
        log_error(None, "status:missing_sessionId")
        return error_response("Missing sessionId", 400, error_code="VALIDATION_ERROR")
    try:
        session = SessionStore.get(session_id)
    except MerchantAIError as exc:
        log_info(session_id, "status:not_found")
        return from_error(exc, session_id)
    return json_response(snapshot(session))


def handle_reset(req: func.HttpRequest) -> func.HttpResponse:
    try:
        data = read_json(req, "reset")
    except ValueError as exc:
        return error_response(str(exc), 400)
    try:
        parsed = SessionRef(**data)
    except ValidationError as exc:
        return invalid_request(exc, "reset")
    try:
        session = SessionStore.get(parsed.sessionId)
    except MerchantAIError as exc:
        return from_error(exc, parsed.sessionId)
    session.reset()
    log_info(parsed.sessionId, "reset:done")
    return json_response(snapshot(session))
