"""Conversion of parsed scores into music21 streams for playback and analysis."""

from __future__ import annotations

from fractions import Fraction
from typing import Dict, Optional

from music21 import chord, clef, key, metadata, meter, note, stream, tempo

from mxscore.logging_utils import get_logger
from mxscore.musicxml.models import Clef, Measure, Note, Part, Score

logger = get_logger(__name__)

_CLEF_SIGNS = {"G", "F", "C", "percussion"}


def to_music21(score: Score) -> stream.Score:
    """Build a music21 score.

    Each voice starts at the measure's downbeat; chord members are merged into
    a single music21 chord. Notes without a duration become grace notes.
    Microtonal alterations are rounded to the nearest semitone.
    """
    m21_score = stream.Score()
    m21_score.metadata = metadata.Metadata()
    if score.title:
        m21_score.metadata.title = score.title
    if score.composer:
        m21_score.metadata.composer = score.composer
    for part in score.parts:
        m21_score.insert(0, _convert_part(part))
    logger.debug("to_music21 parts=%s", len(score.parts))
    return m21_score


def _convert_part(part: Part) -> stream.Part:
    m21_part = stream.Part(id=part.id)
    if part.name:
        m21_part.partName = part.name
    previous: Optional[Measure] = None
    for measure in part.measures:
        m21_part.append(_convert_measure(measure, previous))
        previous = measure
    return m21_part


def _convert_measure(measure: Measure, previous: Optional[Measure]) -> stream.Measure:
    m21_measure = stream.Measure(number=int(measure.number))
    time = measure.time_signature
    if time is not None and (previous is None or previous.time_signature != time):
        m21_measure.insert(0, meter.TimeSignature(f"{time.beats}/{time.beat_type}"))
    key_sig = measure.key_signature
    if key_sig is not None and (previous is None or previous.key_signature != key_sig):
        m21_measure.insert(0, key.KeySignature(key_sig.fifths))
    if measure.clefs and (previous is None or previous.clefs != measure.clefs):
        m21_clef = _convert_clef(measure.clefs[0])
        if m21_clef is not None:
            m21_measure.insert(0, m21_clef)
    for direction in measure.directions:
        if direction.sound is not None and direction.sound.tempo is not None:
            m21_measure.insert(0, tempo.MetronomeMark(number=direction.sound.tempo))

    offsets: Dict[Optional[int], Fraction] = {}
    last_element: Dict[Optional[int], note.GeneralNote] = {}
    for item in measure.notes:
        voice = item.voice
        if item.is_chord and voice in last_element:
            if not _merge_into_chord(m21_measure, last_element, voice, item):
                # Unpitched and rest members sound with the previous note.
                logger.debug(
                    "chord_member_unmerged measure=%s voice=%s", measure.number, voice
                )
                onset = last_element[voice].getOffsetBySite(m21_measure)
                m21_measure.insert(onset, _convert_note(item))
            continue
        element = _convert_note(item)
        onset = offsets.get(voice, Fraction(0))
        m21_measure.insert(onset, element)
        last_element[voice] = element
        if not item.is_grace:
            offsets[voice] = onset + item.quarter_length
    return m21_measure


def _merge_into_chord(
    m21_measure: stream.Measure,
    last_element: Dict[Optional[int], note.GeneralNote],
    voice: Optional[int],
    item: Note,
) -> bool:
    """Fold a pitched chord member into the voice's previous element."""
    if item.is_rest or item.pitch is None:
        return False
    previous = last_element[voice]
    if isinstance(previous, chord.Chord):
        previous.add(item.pitch.name_with_octave)
        return True
    if isinstance(previous, note.Note):
        merged = chord.Chord([previous.pitch, item.pitch.name_with_octave])
        merged.duration = previous.duration
        m21_measure.replace(previous, merged)
        last_element[voice] = merged
        return True
    return False


def _convert_note(item: Note) -> note.GeneralNote:
    if item.is_rest:
        element: note.GeneralNote = note.Rest()
    elif item.pitch is None:
        element = note.Unpitched()
    else:
        element = note.Note(item.pitch.name_with_octave)
    if item.duration is None or item.is_grace:
        if isinstance(element, note.NotRest):
            return element.getGrace()
        element.duration.quarterLength = 0
        return element
    element.duration.quarterLength = item.quarter_length
    return element


def _convert_clef(value: Clef) -> Optional[clef.Clef]:
    if value.sign not in _CLEF_SIGNS:
        return None
    name = value.sign if value.line is None else f"{value.sign}{value.line}"
    return clef.clefFromString(name, octaveShift=value.octave_change or 0)
