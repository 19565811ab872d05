"""Attribute contract exposed to the host configuration engine.

The engine owns planning, state storage, and attribute marshaling; this module
only declares which attributes exist, their types, and whether they are inputs
or computed outputs, for both the current (v1) and legacy (v0) shapes.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

__all__ = ["CURRENT_SCHEMA_VERSION", "LEGACY_SCHEMA_VERSION", "get_schema"]

CURRENT_SCHEMA_VERSION = 1
LEGACY_SCHEMA_VERSION = 0

_DESCRIPTION = (
    "The `http` data source makes an HTTP GET request to the given URL and exports "
    "information about the response.\n\n"
    "The given URL may be either an `http` or `https` URL. Responses whose content type "
    "is not `text/*`, `application/json`, or `application/samlmetadata+xml` with a UTF-8 "
    "or US-ASCII charset produce a warning, and the body is always decoded as UTF-8 "
    "regardless of the returned content type header.\n\n"
    "Although `https` URLs can be used, there is no mechanism to authenticate the remote "
    "server except for general verification of the server certificate's chain of trust. "
    "Data retrieved from servers not under your control should be treated as untrustworthy."
)

_COMMON_ATTRIBUTES: Dict[str, Dict[str, Any]] = {
    "id": {
        "type": "string",
        "computed": True,
        "description": "The URL used for the request.",
    },
    "url": {
        "type": "string",
        "required": True,
        "description": "The URL for the request. Supported schemes are `http` and `https`.",
    },
    "request_headers": {
        "type": {"map": "string"},
        "optional": True,
        "description": "A map of request header field names and values.",
    },
    "response_body": {
        "type": "string",
        "computed": True,
        "description": "The response body returned as a string.",
    },
    "response_headers": {
        "type": {"map": "string"},
        "computed": True,
        "description": (
            "A map of response header field names and values. Duplicate headers are "
            "concatenated according to RFC 2616 section 4.2."
        ),
    },
    "status_code": {
        "type": "integer",
        "computed": True,
        "description": "The HTTP response status code.",
    },
}

_V1_ATTRIBUTES: Dict[str, Dict[str, Any]] = {
    "request_timeout": {
        "type": "integer",
        "optional": True,
        "description": "The request timeout in milliseconds. Must be at least 1 when set.",
    },
    "retry": {
        "type": {
            "object": {
                "attempts": "integer",
                "min_delay_ms": "integer",
                "max_delay_ms": "integer",
            }
        },
        "optional": True,
        "description": (
            "Retry request configuration. `attempts` is the number of times the request "
            "is retried after a transport failure (default 0); `min_delay_ms` and "
            "`max_delay_ms` bound the exponential backoff between attempts. Responses "
            "with any status code are never retried."
        ),
    },
}

_V0_ATTRIBUTES: Dict[str, Dict[str, Any]] = {
    "response_body_base64_std": {
        "type": "string",
        "computed": True,
        "description": (
            "The response body encoded as base64 (standard) as defined in RFC 4648 "
            "section 4."
        ),
    },
}


def get_schema(version: int = CURRENT_SCHEMA_VERSION) -> Dict[str, Any]:
    """Return the attribute contract for ``version`` (0 or 1).

    Raises:
        ValueError: If ``version`` is not a known schema version.
    """

    if version == CURRENT_SCHEMA_VERSION:
        extra = _V1_ATTRIBUTES
    elif version == LEGACY_SCHEMA_VERSION:
        extra = _V0_ATTRIBUTES
    else:
        raise ValueError(f"unknown schema version: {version}")

    attributes = copy.deepcopy(_COMMON_ATTRIBUTES)
    attributes.update(copy.deepcopy(extra))
    return {
        "version": version,
        "description": _DESCRIPTION,
        "attributes": dict(sorted(attributes.items())),
    }
