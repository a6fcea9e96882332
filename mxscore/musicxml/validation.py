"""Stateless value checks for music-notation invariants.

Every ``check_*`` function returns ``None`` when the value is acceptable and a
:class:`RuleViolation` otherwise. Callers decide what a violation means: model
factories pass it to :func:`enforce`, which raises, while recoverable checks
are turned into warnings by the assemblers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Optional, Tuple

from mxscore.musicxml.errors import MusicXmlValidationError, SourceLocation

VALID_STEPS = frozenset("ABCDEFG")
VALID_MODES = frozenset(
    {
        "major",
        "minor",
        "dorian",
        "phrygian",
        "lydian",
        "mixolydian",
        "aeolian",
        "ionian",
        "locrian",
    }
)
MIN_OCTAVE, MAX_OCTAVE = 0, 9
MIN_ALTER, MAX_ALTER = -2, 2
MIN_FIFTHS, MAX_FIFTHS = -7, 7
_MEASURE_NUMBER = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class RuleViolation:
    rule: str
    message: str
    context: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, rule: str, message: str, **context: Any) -> "RuleViolation":
        return cls(rule=rule, message=message, context=tuple((k, str(v)) for k, v in context.items()))


def enforce(violation: Optional[RuleViolation], location: SourceLocation) -> None:
    """Raise a validation error for ``violation``; no-op when it is ``None``."""
    if violation is None:
        return
    raise MusicXmlValidationError(
        violation.message,
        location=SourceLocation(
            part=location.part,
            measure=location.measure,
            line=location.line,
            extra=location.extra + violation.context,
        ),
        rule=violation.rule,
    )


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def check_pitch_step(step: str) -> Optional[RuleViolation]:
    if step not in VALID_STEPS:
        return RuleViolation.of("pitch_step_validation", f"Invalid pitch step: {step!r}", step=step)
    return None


def check_pitch_octave(octave: int) -> Optional[RuleViolation]:
    if not MIN_OCTAVE <= octave <= MAX_OCTAVE:
        return RuleViolation.of(
            "pitch_octave_validation",
            f"Octave {octave} is outside [{MIN_OCTAVE}, {MAX_OCTAVE}]",
            octave=octave,
        )
    return None


def check_pitch_alter(alter: Optional[float]) -> Optional[RuleViolation]:
    if alter is not None and not MIN_ALTER <= alter <= MAX_ALTER:
        return RuleViolation.of(
            "pitch_alter_validation",
            f"Alter {alter} is outside [{MIN_ALTER}, {MAX_ALTER}]",
            alter=alter,
        )
    return None


def check_duration_value(value: int) -> Optional[RuleViolation]:
    if value <= 0:
        return RuleViolation.of(
            "duration_positive_validation", f"Duration must be positive, got {value}", value=value
        )
    return None


def check_duration_divisions(divisions: int) -> Optional[RuleViolation]:
    if divisions <= 0:
        return RuleViolation.of(
            "duration_divisions_validation",
            f"Duration divisions must be positive, got {divisions}",
            divisions=divisions,
        )
    return None


def check_divisions(divisions: int) -> Optional[RuleViolation]:
    if divisions <= 0:
        return RuleViolation.of(
            "divisions_positive_validation",
            f"Divisions value must be positive, got {divisions}",
            divisions=divisions,
        )
    return None


def check_key_fifths(fifths: int) -> Optional[RuleViolation]:
    if not MIN_FIFTHS <= fifths <= MAX_FIFTHS:
        return RuleViolation.of(
            "key_signature_fifths_validation",
            f"Key fifths {fifths} is outside [{MIN_FIFTHS}, {MAX_FIFTHS}]",
            fifths=fifths,
        )
    return None


def check_key_mode(mode: Optional[str]) -> Optional[RuleViolation]:
    if mode is not None and mode.lower() not in VALID_MODES:
        return RuleViolation.of("key_signature_mode_validation", f"Unknown key mode: {mode!r}", mode=mode)
    return None


def check_time_beats(beats: int) -> Optional[RuleViolation]:
    if beats <= 0:
        return RuleViolation.of(
            "time_signature_beats_validation",
            f"Time signature beats must be positive, got {beats}",
            beats=beats,
        )
    return None


def check_time_beat_type(beat_type: int) -> Optional[RuleViolation]:
    if not is_power_of_two(beat_type):
        return RuleViolation.of(
            "time_signature_beat_type_validation",
            f"Time signature beat type must be a positive power of two, got {beat_type}",
            beat_type=beat_type,
        )
    return None


def check_rest_pitch(is_rest: bool, has_pitch: bool) -> Optional[RuleViolation]:
    if is_rest and has_pitch:
        return RuleViolation.of("rest_no_pitch_validation", "Rest notes must not carry a pitch")
    return None


def check_pitch_required(is_rest: bool, is_unpitched: bool, has_pitch: bool) -> Optional[RuleViolation]:
    if not is_rest and not is_unpitched and not has_pitch:
        return RuleViolation.of(
            "note_pitch_required_validation", "Pitched notes must carry a <pitch> element"
        )
    return None


def check_note_voice(raw_voice: str) -> Optional[RuleViolation]:
    try:
        voice = int(raw_voice)
    except ValueError:
        voice = 0
    if voice <= 0:
        return RuleViolation.of(
            "note_voice_validation",
            f"Voice must be a positive integer, got {raw_voice!r}; voice dropped",
            voice=raw_voice,
        )
    return None


def check_beam_number(number: int) -> Optional[RuleViolation]:
    if number <= 0:
        return RuleViolation.of(
            "beam_number_validation", f"Beam number must be positive, got {number}", number=number
        )
    return None


def check_beam_type(raw_type: str, known: Tuple[str, ...]) -> Optional[RuleViolation]:
    if raw_type not in known:
        return RuleViolation.of(
            "beam_type_validation", f"Unknown beam type: {raw_type!r}", type=raw_type
        )
    return None


def check_beam_note_count(number: int, is_hook: bool, note_count: int) -> Optional[RuleViolation]:
    if not is_hook and note_count < 2:
        return RuleViolation.of(
            "beam_note_count_validation",
            f"Beam {number} connects {note_count} note(s); at least 2 expected",
            number=number,
            notes=note_count,
        )
    return None


def check_time_modification(
    actual_notes: int, normal_notes: int, normal_dot_count: Optional[int]
) -> Optional[RuleViolation]:
    if actual_notes <= 0:
        return RuleViolation.of(
            "time_modification_actual_notes_validation",
            f"actual-notes must be positive, got {actual_notes}",
            actual_notes=actual_notes,
        )
    if normal_notes <= 0:
        return RuleViolation.of(
            "time_modification_normal_notes_validation",
            f"normal-notes must be positive, got {normal_notes}",
            normal_notes=normal_notes,
        )
    if normal_dot_count is not None and normal_dot_count < 0:
        return RuleViolation.of(
            "time_modification_normal_dot_validation",
            f"normal-dot count must not be negative, got {normal_dot_count}",
            normal_dot_count=normal_dot_count,
        )
    return None


def check_clef(sign: str, line: Optional[int]) -> Optional[RuleViolation]:
    if not sign:
        return RuleViolation.of("clef_sign_not_empty", "Clef <sign> element cannot be empty")
    if sign in {"G", "F", "C"} and line is None:
        return RuleViolation.of(
            "clef_line_required_for_sign", f"Clef sign {sign!r} requires a <line> element", sign=sign
        )
    return None


def check_measure_number(number: str, implicit: bool) -> Optional[RuleViolation]:
    if not _MEASURE_NUMBER.fullmatch(number):
        return RuleViolation.of(
            "measure_number_validation",
            f"Measure number must be a non-negative integer, got {number!r}",
            number=number,
        )
    if int(number) == 0 and not implicit:
        return RuleViolation.of(
            "pickup_measure_validation",
            'Measure number 0 requires implicit="yes"',
            number=number,
        )
    return None


def check_measure_duration(
    voice: Optional[int],
    actual: Fraction,
    expected: Fraction,
) -> Optional[RuleViolation]:
    """Compare summed note ticks of one voice with the time-signature length."""
    if actual != expected:
        return RuleViolation.of(
            "measure_duration_validation",
            f"Voice {voice if voice is not None else '-'} fills {actual} ticks; "
            f"time signature implies {expected}",
            voice=voice if voice is not None else "-",
            actual=actual,
            expected=expected,
        )
    return None


def expected_measure_ticks(beats: int, beat_type: int, divisions: int) -> Fraction:
    return Fraction(beats * divisions * 4, beat_type)

