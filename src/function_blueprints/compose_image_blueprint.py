import azure.functions as func
from pydantic import ValidationError

from src.http.responses import error_response, invalid_request, png_response, read_json
from src.media.compositor import compose
from src.shared.logging_utils import info as log_info
from src.specs.functions.compose_image_spec import ComposeImageRequest

bp = func.Blueprint()

@bp.route(route="compose_image", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
@bp.function_name(name="compose_image")
def compose_image_handler(req: func.HttpRequest) -> func.HttpResponse:
    return handle_compose_image(req)


def handle_compose_image(req: func.HttpRequest) -> func.HttpResponse:
    log_info(None, "compose_image:request")
    try:
        data = read_json(req, "compose_image")
    except ValueError as exc:
        return error_response(str(exc), 400)
    try:
        parsed = ComposeImageRequest(**data)
    except ValidationError as exc:
        return invalid_request(exc, "compose_image")

    result = compose(
        parsed.baseImage,
        logo_image=parsed.logo,
        business_name=parsed.businessName,
        price_text=parsed.price,
        product_name=parsed.productName,
    )
    if result is None:
        # No base image: nothing to brand, nothing to download
        return func.HttpResponse(status_code=204)
    return png_response(result)
