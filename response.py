import logging
from typing import Any, Dict, Mapping, Tuple

from avatar import generate
from errors import InvalidRequest
from models import GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)


def create_response(result: GenerationResult, gender: str) -> Dict[str, Any]:
    """Response body for a generated character."""
    body = {
        "success": True,
        "image": result.data_uri(),
        "selectedLayers": dict(result.assignment),
        "gender": gender,
    }
    if result.used_fallback:
        body["warning"] = result.warning or "Placeholder character returned"
    return body


def create_error_response(error: Exception) -> Dict[str, Any]:
    return {"success": False, "error": str(error)}


def handle_generation_request(
    payload: Mapping[str, Any], **generate_kwargs
) -> Tuple[int, Dict[str, Any]]:
    """Turn a decoded request body into a status code and response body.

    Only caller errors produce a non 200 status; generation failures come
    back as a placeholder with a warning.
    """
    try:
        request = GenerationRequest.from_payload(payload)
        result = generate(request, **generate_kwargs)
    except InvalidRequest as e:
        logger.info("Rejected generation request: %s", e)
        return 400, create_error_response(e)

    return 200, create_response(result, request.gender.value)
