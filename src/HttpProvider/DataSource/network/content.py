"""Content-Type classification for HTTP response bodies.

The data source returns bodies as strings, so responses that are not text (or
that declare a charset other than UTF-8/US-ASCII) earn an advisory warning.
Classification never raises: anything that fails to parse is simply not text.
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

__all__ = ["parse_media_type", "is_text_content_type"]

# RFC 7230 token characters
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_MEDIA_TYPE_RE = re.compile(rf"^({_TOKEN})/({_TOKEN})$")
_PARAM_RE = re.compile(rf'^\s*({_TOKEN})\s*=\s*(?:({_TOKEN})|"((?:[^"\\]|\\.)*)")\s*$')

_TEXT_TYPE_PATTERNS = (
    re.compile(r"^text/.+"),
    re.compile(r"^application/json$"),
    re.compile(r"^application/samlmetadata\+xml"),
)
_TEXT_CHARSETS = frozenset({"", "utf-8", "us-ascii"})


def parse_media_type(value: str) -> Tuple[str, Dict[str, str]]:
    """Split a media type into its lower-cased base type and parameters.

    Parameter names are lower-cased; values keep their case with quoted-string
    escapes removed.

    Raises:
        ValueError: If the media type or any parameter is malformed, or a
            parameter name repeats.
    """

    base, _, remainder = value.partition(";")
    match = _MEDIA_TYPE_RE.match(base.strip())
    if match is None:
        raise ValueError(f"invalid media type: {value!r}")
    media_type = f"{match.group(1)}/{match.group(2)}".lower()

    params: Dict[str, str] = {}
    if remainder:
        for chunk in remainder.split(";"):
            if not chunk.strip():
                continue
            param = _PARAM_RE.match(chunk)
            if param is None:
                raise ValueError(f"invalid media type parameter: {chunk!r}")
            name = param.group(1).lower()
            if name in params:
                raise ValueError(f"duplicate media type parameter: {name!r}")
            if param.group(2) is not None:
                params[name] = param.group(2)
            else:
                params[name] = re.sub(r"\\(.)", r"\1", param.group(3))
    return media_type, params


def is_text_content_type(content_type: Optional[str]) -> bool:
    """Return ``True`` when ``content_type`` denotes UTF-8 compatible text.

    Examples:
        >>> is_text_content_type("text/plain; charset=UTF-8")
        True
        >>> is_text_content_type("application/json; charset=UTF-16")
        False
        >>> is_text_content_type("application/x-x509-ca-cert")
        False
    """

    if not content_type:
        return False
    try:
        media_type, params = parse_media_type(content_type)
    except ValueError:
        return False

    for pattern in _TEXT_TYPE_PATTERNS:
        if pattern.match(media_type):
            return params.get("charset", "").lower() in _TEXT_CHARSETS
    return False
