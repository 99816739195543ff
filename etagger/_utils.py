from __future__ import annotations

import hashlib
import typing as tp
from datetime import timedelta
from http import HTTPStatus

HEADERS_ENCODING = "iso-8859-1"

ETAG_MARKER = "0"

_DIGEST_CHUNK_SIZE = 8192


def generate_etag(stream: tp.BinaryIO) -> str:
    """
    Generate a strong ETag value from the bytes of a binary stream.

    The value is the MD5 hex digest of the stream content, prefixed with a
    fixed ``0`` marker and wrapped in double quotes.

    Args:
        stream: A readable binary stream. It is read until exhausted.

    Returns:
        The quoted ETag value, ready to be used as a header value.

    Example:
        ```python
        >>> generate_etag(io.BytesIO(b"Hello, World!"))
        '"065a8e27d8879283831b664bd8b7f0ad4"'
        ```
    """
    digest = hashlib.md5(usedforsecurity=False)
    while True:
        chunk = stream.read(_DIGEST_CHUNK_SIZE)
        if not chunk:
            break
        digest.update(chunk)
    return f'"{ETAG_MARKER}{digest.hexdigest()}"'


def to_seconds(duration: tp.Union[timedelta, int, float]) -> int:
    """
    Convert a duration to whole seconds, truncating any fraction.

    Examples:
        >>> to_seconds(timedelta(hours=1))
        3600
        >>> to_seconds(90.5)
        90
    """
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    return int(duration)


def status_line(status_code: int) -> str:
    """
    Build a WSGI status string such as ``"200 OK"``.

    Unknown status codes get an empty reason phrase.
    """
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        phrase = ""
    return f"{status_code} {phrase}"
