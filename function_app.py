
import os
import logging
import azure.functions as func

from src.function_blueprints.compose_image_blueprint import bp as compose_image_bp
from src.function_blueprints.listing_blueprint import bp as listing_bp

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
    app_lvl = (os.getenv("MERCHANTAI_LOG_LEVEL") or "INFO").upper()
    logging.getLogger("merchantai").setLevel(getattr(logging, app_lvl, logging.INFO))
    # google-genai and httpx log every request at INFO
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


_configure_logging()

app.register_functions(listing_bp)
app.register_functions(compose_image_bp)
