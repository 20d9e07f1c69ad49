"""Base64 encoding and lenient decoding."""

from __future__ import annotations

import base64 as _stdlib_base64

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_DECODE_MAP = {ch: index for index, ch in enumerate(_ALPHABET)}


def base64_size(length: int) -> int:
    """Return the buffer size needed to encode ``length`` bytes, terminator included."""
    if length < 0:
        raise ValueError("length must not be negative")
    return (length + 2) // 3 * 4 + 1


def encode_base64(data: bytes | str) -> str:
    """Encode ``data`` to padded base64 text; text input is encoded as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data:
        return ""
    return _stdlib_base64.b64encode(bytes(data)).decode("ascii")


def decode_base64(text: str | bytes) -> bytes:
    """Decode base64 text.

    Decoding stops at the first ``=`` or NUL character, so missing padding and
    trailing data after the padding are tolerated. Any character outside the
    base64 alphabet makes the whole input invalid and yields ``b""``.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    out = bytearray()
    accumulator = 0
    for position, ch in enumerate(text):
        if ch in ("=", "\0"):
            break
        value = _DECODE_MAP.get(ch)
        if value is None:
            return b""
        accumulator = ((accumulator << 6) + value) & 0xFFFF
        phase = position & 3
        if phase:
            out.append((accumulator >> (6 - 2 * phase)) & 0xFF)
    return bytes(out)