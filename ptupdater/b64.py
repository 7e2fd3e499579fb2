"""Lenient base64 decoding."""

from __future__ import annotations

import base64
import re
from typing import Union

from .log import VerboseLevel, output

_NOT_ALPHABET = re.compile(rb"[^A-Za-z0-9+/]")


def b64_decode(text: Union[str, bytes]) -> bytes:
    """Decode base64 text, skipping characters outside the alphabet.

    Padding is optional; a trailing lone character carries too few bits
    for a byte and is dropped.
    """
    output(VerboseLevel.DEBUG, "b64_decode: Starting.\n")
    raw = text.encode("ascii", "ignore") if isinstance(text, str) else bytes(text)
    cleaned = _NOT_ALPHABET.sub(b"", raw)
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    cleaned += b"=" * (-len(cleaned) % 4)
    result = base64.b64decode(cleaned)
    output(VerboseLevel.DEBUG, "b64_decode: Returning.\n")
    return result