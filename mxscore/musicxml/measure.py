"""Assembly of a single <measure> from its children, in document order."""

from __future__ import annotations

from collections import defaultdict
from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from lxml import etree

from mxscore.config import Settings
from mxscore.logging_utils import get_logger, log_context
from mxscore.musicxml import validation
from mxscore.musicxml.annotations import AnnotationParser
from mxscore.musicxml.attributes import AttributesParser
from mxscore.musicxml.beams import merge_beams
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlStructureError, SourceLocation
from mxscore.musicxml.layout import LayoutParser
from mxscore.musicxml.models import (
    Barline,
    BeamFragment,
    Clef,
    Direction,
    Ending,
    Measure,
    MeasureContext,
    Note,
    PrintInfo,
    TimeSignature,
)
from mxscore.musicxml.notes import NoteParser
from mxscore.musicxml.xml_helpers import (
    find_child,
    get_attr,
    is_yes,
    iter_children,
    local_name,
    located,
    parse_float,
    text_of,
    try_int,
)

logger = get_logger(__name__)


class MeasureAssembler:
    """Fold the children of one <measure> into a :class:`Measure`.

    The assembler owns no per-measure state between calls; everything that
    changes while walking a measure lives in locals of :meth:`assemble`.
    """

    def __init__(
        self,
        diagnostics: DiagnosticsCollector,
        settings: Settings,
        layout_parser: LayoutParser,
    ) -> None:
        self.diagnostics = diagnostics
        self.settings = settings
        self.note_parser = NoteParser(diagnostics, skip_invalid_notes=settings.skip_invalid_notes)
        self.attributes_parser = AttributesParser(diagnostics)
        self.annotation_parser = AnnotationParser(diagnostics, layout_parser)

    def assemble(
        self,
        element: etree._Element,
        part_id: str,
        inherited: MeasureContext,
    ) -> Tuple[Measure, MeasureContext]:
        """Return the measure and the context the next sibling measure inherits."""
        raw_number = get_attr(element, "number")
        location = SourceLocation(part=part_id, measure=raw_number, line=element.sourceline)
        if not raw_number:
            raise MusicXmlStructureError(
                "<measure> is missing required 'number' attribute",
                location=location,
                rule="measure_number_required",
            )
        implicit = is_yes(get_attr(element, "implicit"))
        validation.enforce(validation.check_measure_number(raw_number, implicit), location)
        is_pickup = implicit and int(raw_number) == 0

        width = None
        raw_width = get_attr(element, "width")
        if raw_width:
            width = parse_float(raw_width, what="measure width", location=location)

        with log_context(measure=raw_number):
            return self._walk(element, raw_number, location, inherited, width, implicit, is_pickup)

    def _walk(
        self,
        element: etree._Element,
        number: str,
        location: SourceLocation,
        inherited: MeasureContext,
        width: Optional[float],
        implicit: bool,
        is_pickup: bool,
    ) -> Tuple[Measure, MeasureContext]:
        divisions = inherited.divisions
        key = inherited.key_signature
        time = inherited.time_signature
        clefs: Dict[int, Clef] = {clef.number: clef for clef in inherited.clefs}

        notes: List[Note] = []
        fragments: List[BeamFragment] = []
        barlines: List[Barline] = []
        endings: List[Ending] = []
        directions: List[Direction] = []
        print_info: Optional[PrintInfo] = None

        for child in iter_children(element):
            name = local_name(child)
            if name == "attributes":
                update = self.attributes_parser.parse(child, location)
                if update.divisions is not None:
                    divisions = update.divisions
                if update.key_signature is not None:
                    key = update.key_signature
                if update.time_signature is not None:
                    time = update.time_signature
                for clef in update.clefs:
                    clefs[clef.number] = clef
            elif name == "note":
                parsed = self.note_parser.parse(child, divisions, location, len(notes))
                if parsed is None:
                    continue
                if divisions is None and parsed.note.duration is not None:
                    # Defaulted divisions stay in effect for the rest of the part.
                    divisions = parsed.note.duration.divisions
                notes.append(parsed.note)
                fragments.extend(parsed.beam_fragments)
            elif name in ("backup", "forward"):
                self._check_timeline_element(child, name, location)
            elif name == "barline":
                barline = self.annotation_parser.parse_barline(child, location)
                barlines.append(barline)
                if barline.ending is not None:
                    endings.append(barline.ending)
            elif name == "ending":
                ending = self.annotation_parser.parse_ending(child, location)
                if ending is not None:
                    endings.append(ending)
            elif name == "direction":
                directions.append(self.annotation_parser.parse_direction(child, location))
            elif name == "print":
                print_info = self.annotation_parser.parse_print(child, location)
            else:
                logger.debug("measure_child_ignored element=%s line=%s", name, child.sourceline)

        beams = merge_beams(fragments, number)
        for beam in beams:
            violation = validation.check_beam_note_count(
                beam.number, beam.type.is_hook, len(beam.note_indices)
            )
            if violation is not None:
                self.diagnostics.warn(violation.rule, violation.message, location)

        if self.settings.validate_measure_duration and not implicit:
            self._check_measure_duration(notes, time, divisions, location)

        resolved_clefs = tuple(clefs[number_key] for number_key in sorted(clefs))
        measure = Measure(
            number=number,
            notes=tuple(notes),
            key_signature=key,
            time_signature=time,
            divisions=divisions,
            clefs=resolved_clefs,
            width=width,
            beams=beams,
            barlines=tuple(barlines),
            endings=tuple(endings),
            directions=tuple(directions),
            print_info=print_info,
            is_pickup=is_pickup,
            implicit=implicit,
        )
        logger.debug(
            "measure_assembled number=%s notes=%s beams=%s divisions=%s",
            number,
            len(notes),
            len(beams),
            divisions,
        )
        context = MeasureContext(
            divisions=divisions,
            key_signature=key,
            time_signature=time,
            clefs=resolved_clefs,
        )
        return measure, context

    def _check_timeline_element(
        self, element: etree._Element, name: str, location: SourceLocation
    ) -> None:
        where = located(location, element)
        duration_el = find_child(element, "duration")
        raw = text_of(duration_el) if duration_el is not None else None
        value = try_int(raw)
        if value is None or value < 0:
            raise MusicXmlStructureError(
                f"<{name}> requires a non-negative integer <duration>, got {raw!r}",
                location=where.with_extra(element=name),
                rule="timeline_duration_invalid",
            )
        self.diagnostics.warn(
            f"{name}_partially_processed",
            f"<{name}> of {value} divisions validated but not applied to the voice timeline",
            where.with_extra(duration=value),
        )

    def _check_measure_duration(
        self,
        notes: List[Note],
        time: Optional[TimeSignature],
        divisions: Optional[int],
        location: SourceLocation,
    ) -> None:
        if time is None or divisions is None:
            return
        totals: Dict[Optional[int], Fraction] = defaultdict(Fraction)
        for note in notes:
            if note.is_chord or note.is_grace or note.duration is None:
                continue
            totals[note.voice] += note.quarter_length * divisions
        expected = validation.expected_measure_ticks(time.beats, time.beat_type, divisions)
        for voice in sorted(totals, key=lambda value: -1 if value is None else value):
            violation = validation.check_measure_duration(voice, totals[voice], expected)
            if violation is None:
                continue
            if self.settings.measure_duration_fatal:
                validation.enforce(violation, location)
            self.diagnostics.warn(violation.rule, violation.message, location)
