"""Opaque cursors for cursor-based pagination.

Callers treat a cursor as an opaque token and pass it back to get the next
page.
"""

import base64


def encode_cursor(value: str) -> str:
    """Encode a cursor value (timestamp or id) to url-safe base64."""
    return base64.urlsafe_b64encode(value.encode()).decode()


def decode_cursor(cursor: str) -> str:
    """Decode a base64 cursor value.

    Raises:
        ValueError: If cursor is invalid
    """
    try:
        return base64.urlsafe_b64decode(cursor.encode()).decode()
    except Exception as e:
        raise ValueError("Invalid cursor") from e
