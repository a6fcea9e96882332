from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from mxscore.config import Settings
from mxscore.logging_utils import get_logger, log_context
from mxscore.musicxml.archive import is_zip_container, resolve_document
from mxscore.musicxml.diagnostics import Diagnostic, DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlError
from mxscore.musicxml.layout import LayoutParser, OpaqueLayoutParser
from mxscore.musicxml.models import MeasureContext, ParseResult
from mxscore.musicxml.score import ScoreAssembler
from mxscore.musicxml.xml_helpers import parse_xml

logger = get_logger(__name__)


class MusicXmlParser:
    """Entry point for turning MusicXML or MXL input into a :class:`ParseResult`.

    The parser holds only immutable settings and a stateless layout
    collaborator. Each call creates its own diagnostics collector and
    assemblers, so one instance can serve concurrent calls from several
    threads.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        layout_parser: Optional[LayoutParser] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.layout_parser = layout_parser or OpaqueLayoutParser()

    def parse(
        self,
        data: Union[bytes, str],
        *,
        source: str = "<memory>",
        seed: Optional[MeasureContext] = None,
    ) -> ParseResult:
        """Parse XML text or MXL bytes.

        Fatal problems raise a :class:`MusicXmlError` subclass; recoverable ones
        are returned in ``ParseResult.diagnostics``.
        """
        encoding = None
        if isinstance(data, str):
            # Text is already decoded; an XML declaration must not re-decode it.
            data = data.encode("utf-8")
            encoding = "utf-8"
        diagnostics = DiagnosticsCollector(self.settings.max_diagnostics)
        with log_context(source=source):
            try:
                document = resolve_document(
                    data,
                    max_entry_bytes=self.settings.max_archive_entry_bytes,
                    diagnostics=diagnostics,
                )
                root = parse_xml(document, source=source, encoding=encoding)
                assembler = ScoreAssembler(diagnostics, self.settings, self.layout_parser)
                score = assembler.assemble(root, seed=seed)
            except MusicXmlError as exc:
                diagnostics.add(Diagnostic.from_error(exc))
                exc.diagnostics = diagnostics.drain()
                raise
            dropped = diagnostics.dropped
            if dropped:
                logger.warning(
                    "diagnostics_truncated source=%s dropped=%s limit=%s",
                    source,
                    dropped,
                    self.settings.max_diagnostics,
                )
            logger.info(
                "parse_complete source=%s compressed=%s parts=%s diagnostics=%s",
                source,
                is_zip_container(data),
                len(score.parts),
                len(diagnostics),
            )
            return ParseResult(
                score=score,
                diagnostics=diagnostics.drain(),
                dropped_diagnostics=dropped,
            )

    def parse_file(self, path: Union[str, Path]) -> ParseResult:
        file_path = Path(path)
        return self.parse(file_path.read_bytes(), source=str(file_path))


def parse_musicxml(data: Union[bytes, str], settings: Optional[Settings] = None) -> ParseResult:
    """Parse in-memory MusicXML/MXL content with default collaborators."""
    return MusicXmlParser(settings).parse(data)


def parse_musicxml_file(path: Union[str, Path], settings: Optional[Settings] = None) -> ParseResult:
    """Read ``path`` (.xml, .musicxml or .mxl) and parse it."""
    return MusicXmlParser(settings).parse_file(path)
