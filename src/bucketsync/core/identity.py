"""Content identity for bucketsync.

This module provides:
- fingerprint: MD5-based content fingerprint formatted like an S3 ETag
- content_type: MIME type (with charset) derived from a file extension
- etags_match: case-insensitive ETag comparison

The fingerprint is a change detector, not a security control.
"""

from __future__ import annotations

import hashlib
import mimetypes
import re
from pathlib import PurePath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# MIME types served with a charset (text/*, javascript and json are UTF-8)
_UTF8_TYPES = re.compile(r"^text/|^application/(javascript|json)")


def fingerprint(data: bytes) -> str:
    """Compute the fingerprint of file contents.

    Args:
        data: Raw file contents.

    Returns:
        Quoted hexadecimal MD5 digest, e.g. '"d41d8cd98f00b204e9800998ecf8427e"'.
    """
    return '"' + hashlib.md5(data).hexdigest() + '"'


def charset_for(mime_type: str) -> str | None:
    """Return the default charset for a MIME type, if one is known."""
    if _UTF8_TYPES.match(mime_type):
        return "UTF-8"
    return None


def content_type(path: str | PurePath) -> str:
    """Determine the Content-Type header for a file.

    Args:
        path: File path; only the extension is used.

    Returns:
        MIME type, with "; charset=<charset>" appended when a charset is known.
    """
    mime_type, _ = mimetypes.guess_type(str(path), strict=False)
    if mime_type is None:
        mime_type = DEFAULT_CONTENT_TYPE

    charset = charset_for(mime_type)
    if charset:
        return f"{mime_type}; charset={charset.lower()}"
    return mime_type


def _normalize_etag(etag: str) -> str:
    etag = etag.strip().lower()
    if not etag.startswith('"'):
        etag = f'"{etag}"'
    return etag


def etags_match(a: str | None, b: str | None) -> bool:
    """Compare two ETags case-insensitively.

    Quotes are optional on either side. None never matches.
    """
    if not a or not b:
        return False
    return _normalize_etag(a) == _normalize_etag(b)
