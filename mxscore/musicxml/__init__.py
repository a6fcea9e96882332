from .diagnostics import Diagnostic, DiagnosticsCollector
from .errors import (
    MusicXmlError,
    MusicXmlParseError,
    MusicXmlStructureError,
    MusicXmlValidationError,
    SourceLocation,
    UnsupportedFormatError,
)
from .models import ParseResult, Score
from .parser import MusicXmlParser, parse_musicxml, parse_musicxml_file
from .rules import Severity

__all__ = [
    "Diagnostic",
    "DiagnosticsCollector",
    "MusicXmlError",
    "MusicXmlParseError",
    "MusicXmlParser",
    "MusicXmlStructureError",
    "MusicXmlValidationError",
    "ParseResult",
    "Score",
    "Severity",
    "SourceLocation",
    "UnsupportedFormatError",
    "parse_musicxml",
    "parse_musicxml_file",
]
