"""Leaf parsing for measure annotations: barlines, endings, directions and print hints."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Type, TypeVar

from lxml import etree

from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import SourceLocation
from mxscore.musicxml.layout import LayoutParser
from mxscore.musicxml.models import (
    Barline,
    BarlineLocation,
    BarlineStyle,
    Coda,
    Direction,
    DirectionType,
    Dynamics,
    Ending,
    EndingType,
    PrintInfo,
    Repeat,
    RepeatDirection,
    Segno,
    Sound,
    Words,
)
from mxscore.musicxml.xml_helpers import (
    child_text,
    find_child,
    get_attr,
    is_yes,
    iter_children,
    local_name,
    located,
    parse_float,
    parse_int,
    text_of,
    try_int,
)

E = TypeVar("E", bound=Enum)


class AnnotationParser:
    """Parse barline/ending/direction/print elements into model values.

    Unknown values of closed vocabularies are reported as ``unknown_enum_variant``
    warnings and the affected field is dropped.
    """

    def __init__(self, diagnostics: DiagnosticsCollector, layout_parser: LayoutParser) -> None:
        self.diagnostics = diagnostics
        self.layout_parser = layout_parser

    def _enum(self, enum_cls: Type[E], raw: str, what: str, where: SourceLocation) -> Optional[E]:
        try:
            return enum_cls(raw)
        except ValueError:
            self.diagnostics.warn(
                "unknown_enum_variant",
                f"Unknown {what} {raw!r}; value dropped",
                where.with_extra(field=what, value=raw),
            )
            return None

    def parse_barline(self, element: etree._Element, location: SourceLocation) -> Barline:
        where = located(location, element)
        barline_location = BarlineLocation.RIGHT
        raw_location = get_attr(element, "location")
        if raw_location:
            barline_location = self._enum(BarlineLocation, raw_location, "barline location", where) or (
                BarlineLocation.RIGHT
            )

        style = None
        raw_style = child_text(element, "bar-style")
        if raw_style:
            style = self._enum(BarlineStyle, raw_style, "bar-style", where)

        repeat = None
        repeat_el = find_child(element, "repeat")
        if repeat_el is not None:
            repeat = self.parse_repeat(repeat_el, where)

        ending = None
        ending_el = find_child(element, "ending")
        if ending_el is not None:
            ending = self.parse_ending(ending_el, where)

        return Barline(location=barline_location, style=style, repeat=repeat, ending=ending)

    def parse_repeat(self, element: etree._Element, location: SourceLocation) -> Optional[Repeat]:
        where = located(location, element)
        raw_direction = get_attr(element, "direction")
        if not raw_direction:
            self.diagnostics.warn("repeat_incomplete", "Repeat without direction dropped", where)
            return None
        direction = self._enum(RepeatDirection, raw_direction, "repeat direction", where)
        if direction is None:
            return None
        times = None
        raw_times = get_attr(element, "times")
        if raw_times:
            times = try_int(raw_times)
            if times is None or times < 1:
                self.diagnostics.warn(
                    "repeat_incomplete", f"Invalid repeat times {raw_times!r} ignored", where
                )
                times = None
        return Repeat(direction=direction, times=times)

    def parse_ending(self, element: etree._Element, location: SourceLocation) -> Optional[Ending]:
        where = located(location, element)
        text = text_of(element) or None
        number = get_attr(element, "number") or text
        raw_type = get_attr(element, "type")
        if not number or not raw_type:
            self.diagnostics.warn(
                "ending_incomplete",
                "Ending without a resolvable number and type dropped",
                where.with_extra(number=number, type=raw_type),
            )
            return None
        ending_type = self._enum(EndingType, raw_type, "ending type", where)
        if ending_type is None:
            return None
        print_object = get_attr(element, "print-object") != "no"
        return Ending(number=number, type=ending_type, print_object=print_object, text=text)

    def parse_direction(self, element: etree._Element, location: SourceLocation) -> Direction:
        where = located(location, element)
        direction_types = list(iter_children(element, "direction-type"))
        if not direction_types:
            self.diagnostics.warn("direction_without_type", "<direction> has no <direction-type>", where)
        types: List[DirectionType] = []
        for direction_type in direction_types:
            for child in iter_children(direction_type):
                parsed = self._parse_direction_type(child, where)
                if parsed is not None:
                    types.append(parsed)

        offset = None
        raw_offset = child_text(element, "offset")
        if raw_offset:
            offset = parse_int(raw_offset, what="offset", location=where)
        staff = None
        raw_staff = child_text(element, "staff")
        if raw_staff:
            staff = parse_int(raw_staff, what="staff", location=where)
        sound_el = find_child(element, "sound")
        return Direction(
            types=tuple(types),
            offset=offset,
            staff=staff,
            voice=try_int(child_text(element, "voice")),
            sound=self.parse_sound(sound_el, where) if sound_el is not None else None,
            placement=get_attr(element, "placement") or None,
            directive=is_yes(get_attr(element, "directive")),
        )

    def _parse_direction_type(
        self, element: etree._Element, where: SourceLocation
    ) -> Optional[DirectionType]:
        name = local_name(element)
        if name == "words":
            text = text_of(element)
            if not text:
                self.diagnostics.warn("words_empty", "Empty <words> direction skipped", located(where, element))
                return None
            return Words(
                text=text,
                default_x=_position(element, "default-x", where),
                default_y=_position(element, "default-y", where),
            )
        if name == "segno":
            return Segno(
                default_x=_position(element, "default-x", where),
                default_y=_position(element, "default-y", where),
            )
        if name == "coda":
            return Coda(
                default_x=_position(element, "default-x", where),
                default_y=_position(element, "default-y", where),
            )
        if name == "dynamics":
            values = []
            for child in iter_children(element):
                child_name = local_name(child)
                if child_name == "other-dynamics":
                    values.append(text_of(child))
                else:
                    values.append(child_name)
            return Dynamics(values=tuple(values), placement=get_attr(element, "placement") or None)
        return None

    def parse_sound(self, element: etree._Element, location: SourceLocation) -> Sound:
        where = located(location, element)
        tempo = None
        raw_tempo = get_attr(element, "tempo")
        if raw_tempo:
            tempo = parse_float(raw_tempo, what="sound tempo", location=where)
        dynamics = None
        raw_dynamics = get_attr(element, "dynamics")
        if raw_dynamics:
            dynamics = parse_float(raw_dynamics, what="sound dynamics", location=where)
        return Sound(
            tempo=tempo,
            dynamics=dynamics,
            dacapo=is_yes(get_attr(element, "dacapo")),
            dalsegno=get_attr(element, "dalsegno") or None,
            segno=get_attr(element, "segno") or None,
            tocoda=get_attr(element, "tocoda") or None,
            coda=get_attr(element, "coda") or None,
            fine=get_attr(element, "fine"),
        )

    def parse_print(self, element: etree._Element, location: SourceLocation) -> PrintInfo:
        where = located(location, element)
        blank_page = None
        raw_blank = get_attr(element, "blank-page")
        if raw_blank:
            blank_page = parse_int(raw_blank, what="blank-page", location=where)
        page_layout_el = find_child(element, "page-layout")
        system_layout_el = find_child(element, "system-layout")
        return PrintInfo(
            new_page=is_yes(get_attr(element, "new-page")),
            new_system=is_yes(get_attr(element, "new-system")),
            blank_page=blank_page,
            page_number=get_attr(element, "page-number") or None,
            page_layout=self.layout_parser.parse(page_layout_el) if page_layout_el is not None else None,
            system_layout=(
                self.layout_parser.parse(system_layout_el) if system_layout_el is not None else None
            ),
            staff_layouts=tuple(
                self.layout_parser.parse(staff_el) for staff_el in iter_children(element, "staff-layout")
            ),
        )


def _position(element: etree._Element, name: str, where: SourceLocation) -> Optional[float]:
    raw = get_attr(element, name)
    if not raw:
        return None
    return parse_float(raw, what=name, location=located(where, element))
