"""Diagnostics attached to data-source reads.

A read never raises to the host engine; instead fatal errors and advisories are
collected as :class:`Diagnostic` entries so one failing data source cannot
disturb its siblings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional

from .errors import HttpDataSourceError

__all__ = [
    "Severity",
    "Diagnostic",
    "Diagnostics",
    "content_type_warning",
    "encoding_warning",
]


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """Single error or advisory surfaced alongside a read result."""

    severity: Severity
    summary: str
    detail: str = ""
    kind: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "detail": self.detail,
            "kind": self.kind,
        }


def content_type_warning(content_type: str) -> Diagnostic:
    """Advisory emitted when a response is not recognised as text."""

    return Diagnostic(
        severity=Severity.WARNING,
        summary=f'Content-Type is not recognized as a text type, got "{content_type}"',
        detail=(
            "If the content is binary data, the configuration engine may not properly "
            "handle the contents of the response."
        ),
        kind="content_type",
    )


def encoding_warning() -> Diagnostic:
    """Advisory emitted by the legacy output shape for non UTF-8 bodies."""

    return Diagnostic(
        severity=Severity.WARNING,
        summary="Response body is not recognized as UTF-8",
        detail="The configuration engine may not properly handle the response_body if the contents are binary.",
        kind="encoding",
    )


class Diagnostics:
    """Ordered collection of diagnostics for one data-source read."""

    def __init__(self, entries: Optional[Iterable[Diagnostic]] = None) -> None:
        self._entries: List[Diagnostic] = list(entries or ())

    def append(self, diagnostic: Diagnostic) -> None:
        self._entries.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._entries.extend(diagnostics)

    def add_error(self, summary: str, detail: str = "", *, kind: Optional[str] = None) -> None:
        self._entries.append(Diagnostic(Severity.ERROR, summary, detail, kind))

    def add_exception(self, exc: HttpDataSourceError) -> None:
        """Record a classified failure as an error diagnostic."""

        self.add_error(exc.summary, exc.detail, kind=exc.kind.value)

    @property
    def errors(self) -> List[Diagnostic]:
        return [entry for entry in self._entries if entry.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [entry for entry in self._entries if entry.severity is Severity.WARNING]

    def to_list(self) -> List[dict]:
        return [entry.to_dict() for entry in self._entries]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Diagnostics({self._entries!r})"
