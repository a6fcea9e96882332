"""Beam fragment parsing and reconstruction of beam groups within a measure."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lxml import etree

from mxscore.musicxml import validation
from mxscore.musicxml.errors import SourceLocation
from mxscore.musicxml.models import Beam, BeamFragment, BeamType
from mxscore.musicxml.xml_helpers import get_attr, located, text_of, try_int

_KNOWN_BEAM_TYPES: Tuple[str, ...] = tuple(member.value for member in BeamType)


def parse_beam_fragment(
    element: etree._Element, note_index: int, location: SourceLocation
) -> BeamFragment:
    """Read one ``<beam>`` child of a note.

    A missing number defaults to 1. Unknown values and non-positive numbers are
    validation failures.
    """
    where = located(location, element)
    raw_type = text_of(element)
    validation.enforce(validation.check_beam_type(raw_type, _KNOWN_BEAM_TYPES), where)
    raw_number = get_attr(element, "number")
    number = 1
    if raw_number:
        parsed = try_int(raw_number)
        if parsed is None:
            validation.enforce(
                validation.RuleViolation.of(
                    "beam_number_validation",
                    f"Beam number must be a positive integer, got {raw_number!r}",
                    number=raw_number,
                ),
                where,
            )
        number = parsed
    validation.enforce(validation.check_beam_number(number), where)
    return BeamFragment(number=number, type=BeamType(raw_type), note_index=note_index)


def merge_beams(fragments: Iterable[BeamFragment], measure_number: str) -> Tuple[Beam, ...]:
    """Merge per-note beam fragments into beam groups.

    Fragments are partitioned by beam number and walked in note-index order.
    A ``begin`` opens a group (flushing any group already open), ``continue``
    and ``end`` extend it, and ``end`` closes it. ``continue``/``end`` with no
    open group and every hook become standalone one-note beams. Groups still
    open at the end of a partition are flushed.
    """
    partitions: Dict[int, List[BeamFragment]] = defaultdict(list)
    for fragment in fragments:
        partitions[fragment.number].append(fragment)

    beams: List[Beam] = []
    for number in sorted(partitions):
        ordered = sorted(partitions[number], key=lambda fragment: fragment.note_index)
        beams.extend(_merge_partition(number, ordered, measure_number))
    return tuple(beams)


def _merge_partition(
    number: int, fragments: Sequence[BeamFragment], measure_number: str
) -> List[Beam]:
    beams: List[Beam] = []
    open_type: Optional[BeamType] = None
    open_indices: List[int] = []

    def flush() -> None:
        nonlocal open_type, open_indices
        if open_type is not None and open_indices:
            beams.append(
                Beam(
                    number=number,
                    type=open_type,
                    measure_number=measure_number,
                    note_indices=tuple(open_indices),
                )
            )
        open_type = None
        open_indices = []

    for fragment in fragments:
        if fragment.type.is_hook:
            beams.append(_standalone(fragment, measure_number))
        elif fragment.type is BeamType.BEGIN:
            flush()
            open_type = BeamType.BEGIN
            open_indices = [fragment.note_index]
        elif open_type is None:
            # Dangling continue/end: keep it rather than lose the marker.
            beams.append(_standalone(fragment, measure_number))
        else:
            open_indices.append(fragment.note_index)
            if fragment.type is BeamType.END:
                flush()
    flush()
    return beams


def _standalone(fragment: BeamFragment, measure_number: str) -> Beam:
    return Beam(
        number=fragment.number,
        type=fragment.type,
        measure_number=measure_number,
        note_indices=(fragment.note_index,),
    )
