import logging
from typing import Any, Dict, Optional


_LOGGER = logging.getLogger("merchantai")


def log(level: int, trace_id: Optional[str], message: str, exc_info: bool = False, **dimensions: Any) -> None:
    dims: Dict[str, Any] = {"traceId": trace_id} if trace_id else {}
    dims.update(dimensions)
    try:
        _LOGGER.log(level, message, exc_info=exc_info, extra={"custom_dimensions": dims})
    except Exception:
        # Fallback if extra/custom_dimensions not supported in the environment
        _LOGGER.log(level, f"{message} | {dims}", exc_info=exc_info)


def info(trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, trace_id, message, **dimensions)


def warning(trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, trace_id, message, **dimensions)


def error(trace_id: Optional[str], message: str, exc_info: bool = False, **dimensions: Any) -> None:
    log(logging.ERROR, trace_id, message, exc_info=exc_info, **dimensions)
