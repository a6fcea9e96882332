"""
Score parsing APIs.
"""

import dataclasses
import logging
from enum import Enum
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mxscore.config import Settings
from mxscore.logging_utils import get_logger, summarize_payload
from mxscore.musicxml import parse_musicxml_file
from mxscore.musicxml.models import Part, Score

logger = get_logger(__name__)


def parse_score(
    file_path: Union[str, Path],
    *,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Parse a MusicXML file into a JSON-serializable score dict.

    Args:
        file_path: Path to MusicXML file (.xml, .musicxml or .mxl)
        settings: Parse settings; defaults to Settings.from_env()

    Returns:
        {
            "score": {...},          # the full model as plain dicts/lists
            "diagnostics": [...],    # warnings collected during the parse
            "diagnostics_dropped": int,  # warnings lost to the max_diagnostics cap
            "score_summary": {...},
            "source_musicxml_path": str,
        }
    """
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("parse_score input=%s", summarize_payload({"file_path": str(file_path)}))
    result = parse_musicxml_file(file_path, settings or Settings.from_env())

    score_dict = {
        "score": to_jsonable(result.score),
        "diagnostics": [diagnostic.to_payload() for diagnostic in result.diagnostics],
        "diagnostics_dropped": result.dropped_diagnostics,
        "score_summary": summarize_score(result.score),
        "source_musicxml_path": str(Path(file_path).resolve()),
    }

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("parse_score output=%s", summarize_payload(score_dict))
    return score_dict


def summarize_score(score: Score) -> Dict[str, Any]:
    """Build a compact overview of a parsed score."""
    return {
        "title": score.title,
        "composer": score.composer,
        "version": score.version,
        "part_count": len(score.parts),
        "parts": [_summarize_part(part) for part in score.parts],
    }


def _summarize_part(part: Part) -> Dict[str, Any]:
    note_count = 0
    rest_count = 0
    total = Fraction(0)
    time_signatures: List[str] = []
    for measure in part.measures:
        voice_lengths: Dict[Optional[int], Fraction] = {}
        for note in measure.notes:
            if note.is_rest:
                rest_count += 1
            else:
                note_count += 1
            if note.is_chord or note.is_grace:
                continue
            voice_lengths[note.voice] = voice_lengths.get(note.voice, Fraction(0)) + note.quarter_length
        total += max(voice_lengths.values(), default=Fraction(0))
        time = measure.time_signature
        if time is not None:
            label = f"{time.beats}/{time.beat_type}"
            if not time_signatures or time_signatures[-1] != label:
                time_signatures.append(label)
    first = part.measures[0] if part.measures else None
    return {
        "part_id": part.id,
        "part_name": part.name,
        "measure_count": len(part.measures),
        "note_count": note_count,
        "rest_count": rest_count,
        "has_pickup": bool(first is not None and first.is_pickup),
        "duration_quarters": float(total),
        "time_signatures": time_signatures,
        "key_fifths": (
            first.key_signature.fifths if first is not None and first.key_signature else None
        ),
    }


def to_jsonable(value: Any) -> Any:
    """Convert model dataclasses, enums and tuples into plain JSON types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_jsonable(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    return value
