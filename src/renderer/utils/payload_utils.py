# src/renderer/utils/payload_utils.py
import base64
import binascii
import logging

from renderer.errors import InputError

logger = logging.getLogger(__name__)


def decode_base64_document(payload: str) -> bytes:
    """
    Decodes a base64 document payload. Accepts an optional data-URL prefix
    and embedded line breaks. Raises InputError for empty or malformed input.
    """
    if not payload or not isinstance(payload, str) or not payload.strip():
        raise InputError("Document content is required")

    data = payload.strip()
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    data = "".join(data.split())

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.info("Rejected document payload: %s", e)
        raise InputError("Invalid base64 document", str(e)) from e

    if not raw:
        raise InputError("Document content is required")
    return raw


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
