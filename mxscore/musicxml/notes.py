"""Leaf parsing for <note> and its children."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from lxml import etree

from mxscore.logging_utils import get_logger
from mxscore.musicxml.beams import parse_beam_fragment
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import MusicXmlValidationError, SourceLocation
from mxscore.musicxml.models import (
    Articulation,
    BeamFragment,
    Duration,
    Note,
    Pitch,
    Slur,
    Tie,
    TieType,
    TimeModification,
)
from mxscore.musicxml.validation import check_note_voice
from mxscore.musicxml.xml_helpers import (
    child_text,
    find_child,
    get_attr,
    has_child,
    iter_children,
    local_name,
    located,
    parse_float,
    parse_int,
    require_attr,
    require_child,
    text_of,
    try_int,
)

logger = get_logger(__name__)

_TIE_TYPES = {member.value: member for member in TieType}


@dataclass(frozen=True)
class ParsedNote:
    note: Note
    beam_fragments: Tuple[BeamFragment, ...] = ()


@dataclass(frozen=True)
class _Notations:
    slurs: Tuple[Slur, ...] = ()
    articulations: Tuple[Articulation, ...] = ()
    ties: Tuple[Tie, ...] = ()


class NoteParser:
    """Parse <note> elements; holds only the per-call diagnostics sink and a leniency flag."""

    def __init__(self, diagnostics: DiagnosticsCollector, *, skip_invalid_notes: bool = False) -> None:
        self.diagnostics = diagnostics
        self.skip_invalid_notes = skip_invalid_notes

    def parse(
        self,
        element: etree._Element,
        divisions: Optional[int],
        location: SourceLocation,
        note_index: int,
    ) -> Optional[ParsedNote]:
        """Return the parsed note, or None when it was skipped with a warning."""
        where = located(location, element)
        try:
            return self._parse(element, divisions, where, note_index)
        except MusicXmlValidationError as exc:
            if not self.skip_invalid_notes:
                raise
            self.diagnostics.warn(
                "note_validation_skipped",
                f"Skipping invalid note: {exc.message} (rule {exc.rule})",
                exc.location,
            )
            return None

    def _parse(
        self,
        element: etree._Element,
        divisions: Optional[int],
        where: SourceLocation,
        note_index: int,
    ) -> Optional[ParsedNote]:
        is_rest = has_child(element, "rest")
        is_unpitched = has_child(element, "unpitched")

        pitch_el = find_child(element, "pitch")
        pitch = parse_pitch(pitch_el, where) if pitch_el is not None else None

        duration: Optional[Duration] = None
        duration_el = find_child(element, "duration")
        if duration_el is not None:
            raw_value = text_of(duration_el)
            value = try_int(raw_value)
            if value is None or value < 0:
                self.diagnostics.warn(
                    "note_duration_invalid",
                    f"Invalid duration value {raw_value!r}; note skipped",
                    located(where, duration_el),
                )
                return None
            if divisions is None or divisions <= 0:
                self.diagnostics.warn(
                    "note_divisions_defaulted",
                    "No valid divisions in effect for note with duration; using divisions=1",
                    where.with_extra(original_divisions=divisions),
                )
                divisions = 1
            duration = Duration.validated(
                value=value, divisions=divisions, location=located(where, duration_el)
            )

        voice: Optional[int] = None
        raw_voice = child_text(element, "voice")
        if raw_voice is not None:
            violation = check_note_voice(raw_voice)
            if violation is not None:
                self.diagnostics.warn(violation.rule, violation.message, where)
            else:
                voice = int(raw_voice)

        staff: Optional[int] = None
        raw_staff = child_text(element, "staff")
        if raw_staff is not None:
            staff = parse_int(raw_staff, what="staff", location=where)

        time_modification = None
        tm_el = find_child(element, "time-modification")
        if tm_el is not None:
            time_modification = parse_time_modification(tm_el, where)

        notations = self._parse_notations(element, where)

        note = Note.validated(
            location=where,
            pitch=pitch,
            duration=duration,
            type=child_text(element, "type") or None,
            voice=voice,
            staff=staff,
            dots=sum(1 for _ in iter_children(element, "dot")),
            time_modification=time_modification,
            slurs=notations.slurs,
            articulations=notations.articulations,
            ties=notations.ties,
            is_chord=has_child(element, "chord"),
            is_rest=is_rest,
            is_unpitched=is_unpitched,
            is_grace=has_child(element, "grace"),
            default_x=_optional_float(element, "default-x", where),
            default_y=_optional_float(element, "default-y", where),
            dynamics=_optional_float(element, "dynamics", where),
        )
        fragments = tuple(
            parse_beam_fragment(beam_el, note_index, where)
            for beam_el in iter_children(element, "beam")
        )
        logger.debug(
            "note_parsed index=%s rest=%s chord=%s beams=%s",
            note_index,
            note.is_rest,
            note.is_chord,
            len(fragments),
        )
        return ParsedNote(note=note, beam_fragments=fragments)

    def _parse_notations(self, element: etree._Element, where: SourceLocation) -> _Notations:
        slurs: List[Slur] = []
        articulations: List[Articulation] = []
        ties: List[Tie] = []
        for notations_el in iter_children(element, "notations"):
            for child in iter_children(notations_el):
                name = local_name(child)
                if name == "slur":
                    slur_type = require_attr(child, "type", where)
                    number = try_int(get_attr(child, "number")) or 1
                    slurs.append(
                        Slur(type=slur_type, number=number, placement=get_attr(child, "placement"))
                    )
                elif name == "tied":
                    raw_type = get_attr(child, "type")
                    tie_type = _TIE_TYPES.get(raw_type or "")
                    if tie_type is None:
                        self.diagnostics.warn(
                            "tie_type_invalid",
                            f"<tied> has invalid or missing type {raw_type!r}; tie skipped",
                            located(where, child),
                        )
                        continue
                    ties.append(Tie(type=tie_type, placement=get_attr(child, "placement")))
                elif name == "articulations":
                    for art in iter_children(child):
                        articulations.append(
                            Articulation(type=local_name(art), placement=get_attr(art, "placement"))
                        )
        return _Notations(slurs=tuple(slurs), articulations=tuple(articulations), ties=tuple(ties))


def parse_pitch(element: etree._Element, location: SourceLocation) -> Pitch:
    where = located(location, element)
    step = text_of(require_child(element, "step", where))
    octave = parse_int(text_of(require_child(element, "octave", where)), what="octave", location=where)
    alter: Optional[float] = None
    raw_alter = child_text(element, "alter")
    if raw_alter:
        alter = parse_float(raw_alter, what="alter", location=where)
    return Pitch.validated(step=step, octave=octave, alter=alter, location=where)


def parse_time_modification(element: etree._Element, location: SourceLocation) -> TimeModification:
    where = located(location, element)
    actual_el = require_child(element, "actual-notes", where)
    normal_el = require_child(element, "normal-notes", where)
    actual = parse_int(text_of(actual_el), what="actual-notes", location=located(where, actual_el))
    normal = parse_int(text_of(normal_el), what="normal-notes", location=located(where, normal_el))
    dot_count = sum(1 for _ in iter_children(element, "normal-dot"))
    return TimeModification.validated(
        actual_notes=actual,
        normal_notes=normal,
        normal_type=child_text(element, "normal-type") or None,
        normal_dot_count=dot_count if dot_count else None,
        location=where,
    )


def _optional_float(element: etree._Element, name: str, where: SourceLocation) -> Optional[float]:
    raw = get_attr(element, name)
    if not raw:
        return None
    return parse_float(raw, what=name, location=where)
