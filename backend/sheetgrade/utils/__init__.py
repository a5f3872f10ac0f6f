"""Utility functions for the SheetGrade backend."""

import math
from typing import Any, Optional


MIME_TYPES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}
DEFAULT_MIME_TYPE = "image/jpeg"


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a loosely typed value into a finite float.

    Returns None for None, booleans, blank strings, non-numeric text,
    NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def get_mime_type(url: str) -> str:
    """Guess the inline-data MIME type from a file URL's extension."""
    path = (url or "").split("?", 1)[0].split("#", 1)[0]
    filename = path.rsplit("/", 1)[-1]
    file_ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_TYPES.get(file_ext, DEFAULT_MIME_TYPE)
