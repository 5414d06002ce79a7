"""Base64 helpers shared by the codec and the crypto layer."""

import base64


def b64e(data: bytes) -> str:
    """Encode bytes to a Base64 string."""
    return base64.b64encode(data).decode("ascii")


def b64d(data) -> bytes:
    """
    Decode a Base64 string (or bytes) strictly.

    Raises:
        ValueError: If the input is not valid Base64
    """
    if isinstance(data, str):
        data = data.encode("ascii", errors="strict")
    return base64.b64decode(data, validate=True)
