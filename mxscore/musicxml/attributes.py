"""Leaf parsing for <attributes>: divisions, key, time and clefs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from lxml import etree

from mxscore.musicxml import validation
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import SourceLocation
from mxscore.musicxml.models import Clef, KeySignature, TimeSignature
from mxscore.musicxml.xml_helpers import (
    child_text,
    find_child,
    get_attr,
    has_child,
    iter_children,
    located,
    parse_int,
    require_child,
    text_of,
)


@dataclass(frozen=True)
class AttributesUpdate:
    """Values declared by one <attributes> element; None means "not declared here"."""

    divisions: Optional[int] = None
    key_signature: Optional[KeySignature] = None
    time_signature: Optional[TimeSignature] = None
    clefs: Tuple[Clef, ...] = ()


class AttributesParser:
    def __init__(self, diagnostics: DiagnosticsCollector) -> None:
        self.diagnostics = diagnostics

    def parse(self, element: etree._Element, location: SourceLocation) -> AttributesUpdate:
        where = located(location, element)
        divisions = None
        divisions_el = find_child(element, "divisions")
        if divisions_el is not None:
            divisions_where = located(where, divisions_el)
            divisions = parse_int(text_of(divisions_el), what="divisions", location=divisions_where)
            validation.enforce(validation.check_divisions(divisions), divisions_where)

        key_el = find_child(element, "key")
        key = self.parse_key(key_el, where) if key_el is not None else None

        time_el = find_child(element, "time")
        time = self.parse_time(time_el, where) if time_el is not None else None

        clefs = tuple(parse_clef(clef_el, where) for clef_el in iter_children(element, "clef"))
        return AttributesUpdate(divisions=divisions, key_signature=key, time_signature=time, clefs=clefs)

    def parse_key(self, element: etree._Element, location: SourceLocation) -> Optional[KeySignature]:
        where = located(location, element)
        if not has_child(element, "fifths") and has_child(element, "key-step"):
            self.diagnostics.warn(
                "key_nontraditional_unsupported",
                "Non-traditional key signature ignored; prior key stays in effect",
                where,
            )
            return None
        fifths_el = require_child(element, "fifths", where)
        fifths = parse_int(text_of(fifths_el), what="fifths", location=located(where, fifths_el))
        mode = child_text(element, "mode") or None
        return KeySignature.validated(fifths=fifths, mode=mode, location=where)

    def parse_time(self, element: etree._Element, location: SourceLocation) -> Optional[TimeSignature]:
        where = located(location, element)
        if has_child(element, "senza-misura"):
            self.diagnostics.warn(
                "time_senza_misura_unsupported",
                "Unmeasured time ignored; prior time signature stays in effect",
                where,
            )
            return None
        beats_el = require_child(element, "beats", where)
        beat_type_el = require_child(element, "beat-type", where)
        beats = _parse_composite(text_of(beats_el), "beats", located(where, beats_el))
        beat_type = parse_int(
            text_of(beat_type_el), what="beat-type", location=located(where, beat_type_el)
        )
        return TimeSignature.validated(
            beats=beats,
            beat_type=beat_type,
            symbol=get_attr(element, "symbol") or None,
            location=where,
        )


def parse_clef(element: etree._Element, location: SourceLocation) -> Clef:
    where = located(location, element)
    sign = text_of(require_child(element, "sign", where))
    line = None
    raw_line = child_text(element, "line")
    if raw_line is not None:
        line = parse_int(raw_line, what="clef line", location=where)
    octave_change = None
    raw_octave_change = child_text(element, "clef-octave-change")
    if raw_octave_change is not None:
        octave_change = parse_int(raw_octave_change, what="clef-octave-change", location=where)
    number = 1
    raw_number = get_attr(element, "number")
    if raw_number:
        number = parse_int(raw_number, what="clef number", location=where)
    return Clef.validated(
        sign=sign, line=line, octave_change=octave_change, number=number, location=where
    )


def _parse_composite(raw: str, what: str, location: SourceLocation) -> int:
    """Sum a composite numerator such as ``3+2``."""
    return sum(parse_int(piece, what=what, location=location) for piece in raw.split("+"))
