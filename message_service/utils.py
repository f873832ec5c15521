"""
Identifier helpers for the Message API.
"""

import logging
import uuid
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


def generate_message_id() -> str:
    """Return a new random (UUID4) message identifier."""
    return str(uuid.uuid4())


def resolve_message_id(message_id: Optional[str]) -> str:
    """
    Pick the identifier a message is stored under.

    A caller-supplied id is used as-is, with no uniqueness pre-check.
    When none is supplied a random one is generated.

    Args:
        message_id: Identifier from the request body, or None

    Returns:
        The identifier to persist
    """
    if message_id is not None:
        return message_id

    generated = generate_message_id()
    logger.debug(f"No message id supplied, generated {generated}")
    return generated


def encode_header_id(message_id: str) -> str:
    """
    Percent-encode an id for use as an HTTP header value.

    Header values are latin-1 and may not contain CR/LF, while ids are
    arbitrary strings. Decode with urllib.parse.unquote.
    """
    return quote(message_id, safe="")
