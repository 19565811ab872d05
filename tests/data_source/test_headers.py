"""Response header folding."""

from __future__ import annotations

import httpx

from HttpProvider.DataSource.network.headers import (
    canonical_header_name,
    fold_headers,
    fold_response_headers,
)


def test_fold_headers_joins_values_in_order():
    assert fold_headers({"X-Double": ["1", "2"]}) == {"X-Double": "1, 2"}
    assert fold_headers({"X-Single": ["only"]}) == {"X-Single": "only"}


def test_fold_headers_keeps_duplicates_and_empty_values():
    assert fold_headers({"X-Repeat": ["a", "a", ""]}) == {"X-Repeat": "a, a, "}


def test_canonical_header_name():
    assert canonical_header_name("x-double") == "X-Double"
    assert canonical_header_name("CONTENT-TYPE") == "Content-Type"
    assert canonical_header_name("etag") == "Etag"
    assert canonical_header_name("bad header") == "bad header"


def test_fold_response_headers_groups_case_insensitive_names():
    headers = httpx.Headers(
        [
            ("Content-Type", "text/plain"),
            ("X-Double", "1"),
            ("x-double", "2"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
        ]
    )

    folded = fold_response_headers(headers)

    assert folded == {
        "Content-Type": "text/plain",
        "X-Double": "1, 2",
        "Set-Cookie": "a=1, b=2",
    }
    assert list(folded) == ["Content-Type", "X-Double", "Set-Cookie"]
