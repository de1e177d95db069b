"""Decoding of the X-WebPA-Convey device telemetry header."""

import base64
import binascii

from pydantic import ValidationError

from redirect_gateway.rewriter_service.errors import ConveyHeaderError
from redirect_gateway.shared.models import ConveyHeaderData

CONVEY_HEADER = "X-WebPA-Convey"


def decode_convey_header(raw_value: str) -> ConveyHeaderData | None:
    """
    Decode a convey header value.

    Args:
        raw_value: Header value, base64 encoded JSON object

    Returns:
        The decoded telemetry, or None when the header is empty

    Raises:
        ConveyHeaderError: If the value is not valid base64 or not a JSON object
    """
    if not raw_value:
        return None

    try:
        decoded = base64.b64decode(raw_value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConveyHeaderError(f"failed to decode base64 string: {exc}") from exc

    try:
        return ConveyHeaderData.model_validate_json(decoded)
    except ValidationError as exc:
        raise ConveyHeaderError(f"failed to unmarshal decoded {CONVEY_HEADER} data: {exc}") from exc
