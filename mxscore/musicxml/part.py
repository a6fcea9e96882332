"""Assembly of one <part>: measures in order with context carried forward."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from lxml import etree

from mxscore.config import Settings
from mxscore.logging_utils import get_logger, log_context
from mxscore.musicxml import validation
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlStructureError, SourceLocation
from mxscore.musicxml.layout import LayoutParser
from mxscore.musicxml.measure import MeasureAssembler
from mxscore.musicxml.models import Measure, MeasureContext, Part, TieType
from mxscore.musicxml.xml_helpers import child_text, get_attr, iter_children

logger = get_logger(__name__)

_TieKey = Tuple[Optional[int], str, int, float]


def find_score_part(part_list: etree._Element, part_id: str) -> Optional[etree._Element]:
    for score_part in iter_children(part_list, "score-part"):
        if get_attr(score_part, "id") == part_id:
            return score_part
    return None


class PartAssembler:
    def __init__(
        self,
        diagnostics: DiagnosticsCollector,
        settings: Settings,
        layout_parser: LayoutParser,
    ) -> None:
        self.diagnostics = diagnostics
        self.measure_assembler = MeasureAssembler(diagnostics, settings, layout_parser)

    def assemble(
        self,
        element: etree._Element,
        part_list: Optional[etree._Element],
        seed: Optional[MeasureContext] = None,
    ) -> Part:
        """Assemble a part.

        ``seed`` supplies divisions/key/time/clefs inherited from outside the
        part; without it the context starts unset.
        """
        part_id = get_attr(element, "id")
        location = SourceLocation(part=part_id or "", line=element.sourceline)
        if not part_id:
            raise MusicXmlStructureError(
                "<part> is missing required 'id' attribute",
                location=location,
                rule="part_id_required",
            )

        name = None
        abbreviation = None
        if part_list is not None:
            score_part = find_score_part(part_list, part_id)
            if score_part is None:
                validation.enforce(
                    validation.RuleViolation.of(
                        "part_id_in_part_list_validation",
                        f"Part {part_id!r} has no matching <score-part> in the part-list",
                        part_id=part_id,
                    ),
                    location,
                )
            else:
                name = child_text(score_part, "part-name") or None
                abbreviation = child_text(score_part, "part-abbreviation") or None

        with log_context(part=part_id):
            measures = self._assemble_measures(element, part_id, seed or MeasureContext())
            self._check_ties(measures, location)
        logger.debug("part_assembled id=%s measures=%s", part_id, len(measures))
        return Part(id=part_id, name=name, abbreviation=abbreviation, measures=tuple(measures))

    def _assemble_measures(
        self, element: etree._Element, part_id: str, context: MeasureContext
    ) -> List[Measure]:
        measures: List[Measure] = []
        for measure_el in iter_children(element, "measure"):
            measure, context = self.measure_assembler.assemble(measure_el, part_id, context)
            measures.append(measure)
        return measures

    def _check_ties(self, measures: List[Measure], location: SourceLocation) -> None:
        """Warn about tie stops with no open start and starts that never close."""
        open_ties: Dict[_TieKey, str] = {}
        for measure in measures:
            where = SourceLocation(part=location.part, measure=measure.number)
            for note in measure.notes:
                if note.pitch is None or not note.ties:
                    continue
                key = (note.voice, note.pitch.step, note.pitch.octave, note.pitch.alter or 0.0)
                tie_types = {tie.type for tie in note.ties}
                if TieType.STOP in tie_types or TieType.CONTINUE in tie_types:
                    if key not in open_ties:
                        self.diagnostics.warn(
                            "orphaned_tie",
                            f"Tie on {note.pitch.step}{note.pitch.octave} has no open start",
                            where,
                        )
                    elif TieType.CONTINUE not in tie_types:
                        del open_ties[key]
                if TieType.START in tie_types or TieType.CONTINUE in tie_types:
                    open_ties[key] = measure.number
        for (voice, step, octave, _alter), measure_number in open_ties.items():
            self.diagnostics.warn(
                "unterminated_tie",
                f"Tie started on {step}{octave} (voice {voice}) is never closed",
                SourceLocation(part=location.part, measure=measure_number),
            )
