"""Per-parse sink for non-fatal issues found while assembling a score."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional, Tuple

from mxscore.logging_utils import get_logger
from mxscore.musicxml.errors import MusicXmlError, SourceLocation
from mxscore.musicxml.rules import RULE_SPECS, Severity

logger = get_logger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    rule: str
    category: str
    location: SourceLocation

    @classmethod
    def from_error(cls, error: MusicXmlError) -> "Diagnostic":
        rule = error.rule or "unclassified"
        spec = RULE_SPECS.get(rule)
        return cls(
            severity=Severity.FATAL,
            message=error.message,
            rule=rule,
            category=spec.category if spec else "error",
            location=error.location,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "rule": self.rule,
            "category": self.category,
            "location": self.location.to_payload(),
        }


class DiagnosticsCollector:
    """Append-only, bounded list of diagnostics owned by a single parse call.

    When more than ``max_entries`` diagnostics are recorded the oldest ones are
    discarded; ``dropped`` counts how many were lost.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive.")
        self._entries: Deque[Diagnostic] = deque(maxlen=max_entries)
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        if len(self._entries) == self._entries.maxlen:
            self.dropped += 1
        self._entries.append(diagnostic)
        level = "warning" if diagnostic.severity is Severity.WARNING else "error"
        getattr(logger, level)(
            "diagnostic rule=%s %s (%s)",
            diagnostic.rule,
            diagnostic.message,
            diagnostic.location.describe(),
        )
        return diagnostic

    def warn(
        self,
        rule: str,
        message: str,
        location: Optional[SourceLocation] = None,
    ) -> Diagnostic:
        """Record a warning, taking its category from the rule catalogue."""
        spec = RULE_SPECS.get(rule)
        return self.add(
            Diagnostic(
                severity=Severity.WARNING,
                message=message,
                rule=rule,
                category=spec.category if spec else "general",
                location=location or SourceLocation(),
            )
        )

    def snapshot(self) -> Tuple[Diagnostic, ...]:
        return tuple(self._entries)

    def drain(self) -> Tuple[Diagnostic, ...]:
        """Return every collected diagnostic and empty the collector."""
        entries = tuple(self._entries)
        self._entries.clear()
        self.dropped = 0
        return entries

    def by_rule(self, rule: str) -> Tuple[Diagnostic, ...]:
        return tuple(entry for entry in self._entries if entry.rule == rule)

    def by_category(self, category: str) -> Tuple[Diagnostic, ...]:
        return tuple(entry for entry in self._entries if entry.category == category)

    def by_severity(self, severity: Severity) -> Tuple[Diagnostic, ...]:
        return tuple(entry for entry in self._entries if entry.severity is severity)

    def counts_by_category(self) -> Dict[str, int]:
        return dict(Counter(entry.category for entry in self._entries))

    def summary(self) -> Dict[str, Any]:
        return {
            "total": len(self._entries),
            "dropped": self.dropped,
            "by_severity": dict(Counter(entry.severity.value for entry in self._entries)),
            "by_category": self.counts_by_category(),
            "by_rule": dict(Counter(entry.rule for entry in self._entries)),
        }
