"""Immutable score model produced by the MusicXML assemblers.

Types with invariants expose a ``validated(...)`` factory that runs the checks
in :mod:`mxscore.musicxml.validation` and raises
:class:`~mxscore.musicxml.errors.MusicXmlValidationError` on failure. Plain
construction skips validation and is reserved for values that are already
known to be valid (for example beams produced by the merge step).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, Optional, Tuple, Union

from mxscore.musicxml import validation
from mxscore.musicxml.diagnostics import Diagnostic
from mxscore.musicxml.errors import SourceLocation
from mxscore.musicxml.rules import Severity


class BeamType(str, Enum):
    BEGIN = "begin"
    CONTINUE = "continue"
    END = "end"
    FORWARD_HOOK = "forward hook"
    BACKWARD_HOOK = "backward hook"

    @property
    def is_hook(self) -> bool:
        return self in (BeamType.FORWARD_HOOK, BeamType.BACKWARD_HOOK)


class BarlineLocation(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"


class BarlineStyle(str, Enum):
    REGULAR = "regular"
    DOTTED = "dotted"
    DASHED = "dashed"
    HEAVY = "heavy"
    LIGHT_LIGHT = "light-light"
    LIGHT_HEAVY = "light-heavy"
    HEAVY_LIGHT = "heavy-light"
    HEAVY_HEAVY = "heavy-heavy"
    TICK = "tick"
    SHORT = "short"
    NONE = "none"


class RepeatDirection(str, Enum):
    BACKWARD = "backward"
    FORWARD = "forward"


class EndingType(str, Enum):
    START = "start"
    STOP = "stop"
    DISCONTINUE = "discontinue"


class TieType(str, Enum):
    START = "start"
    STOP = "stop"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Pitch:
    step: str
    octave: int
    alter: Optional[float] = None

    @classmethod
    def validated(
        cls, *, step: str, octave: int, alter: Optional[float] = None, location: SourceLocation
    ) -> "Pitch":
        validation.enforce(validation.check_pitch_step(step), location)
        validation.enforce(validation.check_pitch_octave(octave), location)
        validation.enforce(validation.check_pitch_alter(alter), location)
        return cls(step=step, octave=octave, alter=alter)

    @property
    def name_with_octave(self) -> str:
        """music21-style spelling, e.g. ``F#4`` or ``B-3``; microtones are rounded."""
        accidental = ""
        if self.alter:
            semitones = int(round(self.alter))
            accidental = "#" * semitones if semitones > 0 else "-" * -semitones
        return f"{self.step}{accidental}{self.octave}"


@dataclass(frozen=True)
class Duration:
    value: int
    divisions: int

    @classmethod
    def validated(cls, *, value: int, divisions: int, location: SourceLocation) -> "Duration":
        validation.enforce(validation.check_duration_value(value), location)
        validation.enforce(validation.check_duration_divisions(divisions), location)
        return cls(value=value, divisions=divisions)

    @property
    def quarter_length(self) -> Fraction:
        return Fraction(self.value, self.divisions)


@dataclass(frozen=True)
class KeySignature:
    fifths: int
    mode: Optional[str] = None

    @classmethod
    def validated(
        cls, *, fifths: int, mode: Optional[str] = None, location: SourceLocation
    ) -> "KeySignature":
        validation.enforce(validation.check_key_fifths(fifths), location)
        validation.enforce(validation.check_key_mode(mode), location)
        return cls(fifths=fifths, mode=mode.lower() if mode is not None else None)


@dataclass(frozen=True)
class TimeSignature:
    beats: int
    beat_type: int
    symbol: Optional[str] = None

    @classmethod
    def validated(
        cls, *, beats: int, beat_type: int, symbol: Optional[str] = None, location: SourceLocation
    ) -> "TimeSignature":
        validation.enforce(validation.check_time_beats(beats), location)
        validation.enforce(validation.check_time_beat_type(beat_type), location)
        return cls(beats=beats, beat_type=beat_type, symbol=symbol)


@dataclass(frozen=True)
class Clef:
    sign: str
    line: Optional[int] = None
    octave_change: Optional[int] = None
    number: int = 1

    @classmethod
    def validated(
        cls,
        *,
        sign: str,
        line: Optional[int] = None,
        octave_change: Optional[int] = None,
        number: int = 1,
        location: SourceLocation,
    ) -> "Clef":
        validation.enforce(validation.check_clef(sign, line), location)
        return cls(sign=sign, line=line, octave_change=octave_change, number=number)


@dataclass(frozen=True)
class TimeModification:
    actual_notes: int
    normal_notes: int
    normal_type: Optional[str] = None
    normal_dot_count: Optional[int] = None

    @classmethod
    def validated(
        cls,
        *,
        actual_notes: int,
        normal_notes: int,
        normal_type: Optional[str] = None,
        normal_dot_count: Optional[int] = None,
        location: SourceLocation,
    ) -> "TimeModification":
        validation.enforce(
            validation.check_time_modification(actual_notes, normal_notes, normal_dot_count),
            location,
        )
        return cls(
            actual_notes=actual_notes,
            normal_notes=normal_notes,
            normal_type=normal_type,
            normal_dot_count=normal_dot_count,
        )


@dataclass(frozen=True)
class Slur:
    type: str
    number: int = 1
    placement: Optional[str] = None


@dataclass(frozen=True)
class Tie:
    type: TieType
    placement: Optional[str] = None


@dataclass(frozen=True)
class Articulation:
    type: str
    placement: Optional[str] = None


@dataclass(frozen=True)
class Note:
    pitch: Optional[Pitch] = None
    duration: Optional[Duration] = None
    type: Optional[str] = None
    voice: Optional[int] = None
    staff: Optional[int] = None
    dots: int = 0
    time_modification: Optional[TimeModification] = None
    slurs: Tuple[Slur, ...] = ()
    articulations: Tuple[Articulation, ...] = ()
    ties: Tuple[Tie, ...] = ()
    is_chord: bool = False
    is_rest: bool = False
    is_unpitched: bool = False
    is_grace: bool = False
    default_x: Optional[float] = None
    default_y: Optional[float] = None
    dynamics: Optional[float] = None

    @classmethod
    def validated(cls, *, location: SourceLocation, **fields: Any) -> "Note":
        note = cls(**fields)
        has_pitch = note.pitch is not None
        validation.enforce(validation.check_rest_pitch(note.is_rest, has_pitch), location)
        validation.enforce(
            validation.check_pitch_required(note.is_rest, note.is_unpitched, has_pitch), location
        )
        return note

    @property
    def quarter_length(self) -> Fraction:
        if self.duration is None:
            return Fraction(0)
        return self.duration.quarter_length


@dataclass(frozen=True)
class BeamFragment:
    """One ``<beam>`` marker as it appears on a single note."""

    number: int
    type: BeamType
    note_index: int


@dataclass(frozen=True)
class Beam:
    number: int
    type: BeamType
    measure_number: str
    note_indices: Tuple[int, ...]


@dataclass(frozen=True)
class Ending:
    number: str
    type: EndingType
    print_object: bool = True
    text: Optional[str] = None


@dataclass(frozen=True)
class Repeat:
    direction: RepeatDirection
    times: Optional[int] = None


@dataclass(frozen=True)
class Barline:
    location: BarlineLocation = BarlineLocation.RIGHT
    style: Optional[BarlineStyle] = None
    repeat: Optional[Repeat] = None
    ending: Optional[Ending] = None


@dataclass(frozen=True)
class Words:
    text: str
    default_x: Optional[float] = None
    default_y: Optional[float] = None


@dataclass(frozen=True)
class Segno:
    default_x: Optional[float] = None
    default_y: Optional[float] = None


@dataclass(frozen=True)
class Coda:
    default_x: Optional[float] = None
    default_y: Optional[float] = None


@dataclass(frozen=True)
class Dynamics:
    values: Tuple[str, ...]
    placement: Optional[str] = None


DirectionType = Union[Words, Segno, Coda, Dynamics]


@dataclass(frozen=True)
class Sound:
    tempo: Optional[float] = None
    dynamics: Optional[float] = None
    dacapo: bool = False
    dalsegno: Optional[str] = None
    segno: Optional[str] = None
    tocoda: Optional[str] = None
    coda: Optional[str] = None
    fine: Optional[str] = None


@dataclass(frozen=True)
class Direction:
    types: Tuple[DirectionType, ...]
    offset: Optional[int] = None
    staff: Optional[int] = None
    voice: Optional[int] = None
    sound: Optional[Sound] = None
    placement: Optional[str] = None
    directive: bool = False


@dataclass(frozen=True)
class PrintInfo:
    new_page: bool = False
    new_system: bool = False
    blank_page: Optional[int] = None
    page_number: Optional[str] = None
    page_layout: Any = None
    system_layout: Any = None
    staff_layouts: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class Measure:
    number: str
    notes: Tuple[Note, ...] = ()
    key_signature: Optional[KeySignature] = None
    time_signature: Optional[TimeSignature] = None
    divisions: Optional[int] = None
    clefs: Tuple[Clef, ...] = ()
    width: Optional[float] = None
    beams: Tuple[Beam, ...] = ()
    barlines: Tuple[Barline, ...] = ()
    endings: Tuple[Ending, ...] = ()
    directions: Tuple[Direction, ...] = ()
    print_info: Optional[PrintInfo] = None
    is_pickup: bool = False
    implicit: bool = False


@dataclass(frozen=True)
class MeasureContext:
    """Musical state in effect at a measure boundary, inherited by the next measure."""

    divisions: Optional[int] = None
    key_signature: Optional[KeySignature] = None
    time_signature: Optional[TimeSignature] = None
    clefs: Tuple[Clef, ...] = ()


@dataclass(frozen=True)
class Part:
    id: str
    name: Optional[str] = None
    abbreviation: Optional[str] = None
    measures: Tuple[Measure, ...] = ()


@dataclass(frozen=True)
class Work:
    title: Optional[str] = None
    number: Optional[str] = None


@dataclass(frozen=True)
class Encoding:
    software: Tuple[str, ...] = ()
    date: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Identification:
    creators: Tuple[Tuple[str, str], ...] = ()
    rights: Tuple[str, ...] = ()
    source: Optional[str] = None
    encoding: Optional[Encoding] = None

    def creator(self, creator_type: str) -> Optional[str]:
        for kind, name in self.creators:
            if kind == creator_type:
                return name
        return None


@dataclass(frozen=True)
class Credit:
    page: Optional[int] = None
    type: Optional[str] = None
    words: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Score:
    parts: Tuple[Part, ...]
    version: str = "1.0"
    title: Optional[str] = None
    composer: Optional[str] = None
    work: Optional[Work] = None
    movement_number: Optional[str] = None
    movement_title: Optional[str] = None
    identification: Optional[Identification] = None
    credits: Tuple[Credit, ...] = ()
    scaling: Any = None
    page_layout: Any = None
    system_layout: Any = None
    staff_layouts: Tuple[Any, ...] = ()
    appearance: Any = None

    def part(self, part_id: str) -> Optional[Part]:
        for part in self.parts:
            if part.id == part_id:
                return part
        return None


@dataclass(frozen=True)
class ParseResult:
    score: Score
    diagnostics: Tuple[Diagnostic, ...] = ()
    dropped_diagnostics: int = 0

    @property
    def warnings(self) -> Tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity is Severity.WARNING)
