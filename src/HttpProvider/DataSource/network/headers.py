"""Response header folding.

Multiple occurrences of a header are combined into one comma-separated value,
as permitted for list-valued fields by RFC 7230 section 3.2.2. Values keep the
order the server emitted them; nothing is deduplicated or sorted.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

import httpx

__all__ = ["HEADER_SEPARATOR", "canonical_header_name", "fold_headers", "fold_response_headers"]

HEADER_SEPARATOR = ", "


def canonical_header_name(name: str) -> str:
    """Return ``name`` in canonical MIME form (``x-double`` -> ``X-Double``).

    Names containing characters outside the token alphabet are returned
    unchanged.
    """

    if not name or any(ch.isspace() or ch in ":\"()<>@,;\\/[]?={}" for ch in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def fold_headers(headers: Mapping[str, Sequence[str]]) -> Dict[str, str]:
    """Join each header's values with ``", "``.

    Examples:
        >>> fold_headers({"X-Double": ["1", "2"]})
        {'X-Double': '1, 2'}
    """

    return {name: HEADER_SEPARATOR.join(values) for name, values in headers.items()}


def fold_response_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Group raw response header lines by canonical name, then fold them."""

    grouped: Dict[str, List[str]] = {}
    encoding = headers.encoding
    for raw_name, raw_value in headers.raw:
        name = canonical_header_name(raw_name.decode(encoding))
        grouped.setdefault(name, []).append(raw_value.decode(encoding))
    return fold_headers(grouped)
