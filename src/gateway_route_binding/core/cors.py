"""Text view of a structured CORS preflight response.

The response editor shows a cors-preflight binding's structured value as
JSON text. `encode_cors_preflight` and `decode_cors_preflight` are inverse
operations; decoding validates the text instead of trusting it.
"""

import json

from pydantic import ValidationError

from gateway_route_binding.core.models import CorsPreflight
from gateway_route_binding.exceptions import CorsPreflightDecodeError


def encode_cors_preflight(value: CorsPreflight) -> str:
    """Serialize a CORS preflight value to editable JSON text.

    Unset optional fields are left out so the text stays short.
    """
    payload = value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, indent=2)


def decode_cors_preflight(text: str) -> CorsPreflight:
    """Parse editable JSON text back into a CORS preflight value.

    Args:
        text: JSON object text as produced by encode_cors_preflight.

    Returns:
        The structured CorsPreflight value.

    Raises:
        CorsPreflightDecodeError: If the text is not JSON or does not
            describe a CORS preflight response.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorsPreflightDecodeError(
            f"CORS preflight response is not valid JSON: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})"
        ) from exc

    if not isinstance(payload, dict):
        raise CorsPreflightDecodeError(
            f"CORS preflight response must be a JSON object, got {type(payload).__name__}"
        )

    try:
        return CorsPreflight.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "(root)" for error in exc.errors()
        )
        raise CorsPreflightDecodeError(
            f"CORS preflight response has invalid fields: {fields}"
        ) from exc
