"""Error types and source locations shared by the MusicXML parsing layers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from mxscore.musicxml.diagnostics import Diagnostic


@dataclass(frozen=True)
class SourceLocation:
    """Where in the document a value came from."""

    part: str = ""
    measure: Optional[str] = None
    line: Optional[int] = None
    extra: Tuple[Tuple[str, str], ...] = ()

    def with_line(self, line: Optional[int]) -> "SourceLocation":
        return replace(self, line=line)

    def with_extra(self, **values: Any) -> "SourceLocation":
        pairs = tuple((key, str(value)) for key, value in values.items() if value is not None)
        return replace(self, extra=self.extra + pairs)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"part": self.part}
        if self.measure is not None:
            payload["measure"] = self.measure
        if self.line is not None:
            payload["line"] = int(self.line)
        if self.extra:
            payload["extra"] = dict(self.extra)
        return payload

    def describe(self) -> str:
        parts = []
        if self.part:
            parts.append(f"part={self.part}")
        if self.measure is not None:
            parts.append(f"measure={self.measure}")
        if self.line is not None:
            parts.append(f"line={self.line}")
        parts.extend(f"{key}={value}" for key, value in self.extra)
        return " ".join(parts)


@dataclass(eq=False)
class MusicXmlError(ValueError):
    """Base class for fatal MusicXML parsing failures.

    When raised out of a parse call, ``diagnostics`` holds everything that
    call collected, ending with the fatal entry for this error.
    """

    message: str
    location: SourceLocation = field(default_factory=SourceLocation)
    rule: Optional[str] = None
    diagnostics: Tuple["Diagnostic", ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "location": self.location.to_payload(),
        }
        if self.rule is not None:
            payload["rule"] = self.rule
        if self.diagnostics:
            payload["diagnostics"] = [entry.to_payload() for entry in self.diagnostics]
        return payload

    def __str__(self) -> str:
        where = self.location.describe()
        prefix = f"{self.rule}: " if self.rule else ""
        if where:
            return f"{prefix}{self.message} ({where})"
        return f"{prefix}{self.message}"


class MusicXmlParseError(MusicXmlError):
    """Raised for malformed markup, unreadable archives and unparsable values."""


class MusicXmlStructureError(MusicXmlError):
    """Raised when a required element or attribute is missing."""


class UnsupportedFormatError(MusicXmlStructureError):
    """Raised for recognized document kinds the parser does not handle."""


class MusicXmlValidationError(MusicXmlError):
    """Raised when a value is present but outside its legal domain."""
