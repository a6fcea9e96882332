"""Canonical rule metadata for MusicXML validation and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Severity(str, Enum):
    FATAL = "fatal"
    WARNING = "warning"


@dataclass(frozen=True)
class RuleSpec:
    code: str
    name: str
    definition: str
    category: str
    severity: Severity


def _fatal(code: str, name: str, definition: str, category: str = "validation") -> RuleSpec:
    return RuleSpec(code=code, name=name, definition=definition, category=category, severity=Severity.FATAL)


def _warning(code: str, name: str, definition: str, category: str) -> RuleSpec:
    return RuleSpec(code=code, name=name, definition=definition, category=category, severity=Severity.WARNING)


_RULES = (
    # Value-domain rules enforced at model construction.
    _fatal(
        "pitch_step_validation",
        "Pitch Step In A-G",
        "A pitch step must be one of the letters A through G.",
    ),
    _fatal(
        "pitch_octave_validation",
        "Pitch Octave In Range",
        "A pitch octave must lie in [0, 9].",
    ),
    _fatal(
        "pitch_alter_validation",
        "Pitch Alter In Range",
        "A pitch alteration must lie in [-2, 2]; fractional microtones are allowed.",
    ),
    _fatal(
        "duration_positive_validation",
        "Duration Positive",
        "A note duration must be greater than zero ticks.",
    ),
    _fatal(
        "duration_divisions_validation",
        "Duration Divisions Positive",
        "The divisions attached to a duration must be greater than zero.",
    ),
    _fatal(
        "divisions_positive_validation",
        "Divisions Positive",
        "A declared <divisions> value must be greater than zero.",
    ),
    _fatal(
        "key_signature_fifths_validation",
        "Key Fifths In Range",
        "Key signature fifths must lie in [-7, 7].",
    ),
    _fatal(
        "key_signature_mode_validation",
        "Key Mode Known",
        "A key mode must be major, minor, or one of the church modes.",
    ),
    _fatal(
        "time_signature_beats_validation",
        "Time Beats Positive",
        "The time signature numerator must be greater than zero.",
    ),
    _fatal(
        "time_signature_beat_type_validation",
        "Time Beat Type Power Of Two",
        "The time signature denominator must be a positive power of two.",
    ),
    _fatal(
        "rest_no_pitch_validation",
        "Rest Without Pitch",
        "A rest must not carry a <pitch>.",
    ),
    _fatal(
        "note_pitch_required_validation",
        "Pitched Note Requires Pitch",
        "A note that is neither a rest nor unpitched must carry a <pitch>.",
    ),
    _fatal(
        "beam_number_validation",
        "Beam Number Positive",
        "A beam number must be a positive integer.",
    ),
    _fatal(
        "beam_type_validation",
        "Beam Type Known",
        "A beam value must be begin, continue, end, forward hook or backward hook.",
    ),
    _fatal(
        "time_modification_actual_notes_validation",
        "Tuplet Actual Notes Positive",
        "<actual-notes> must be greater than zero.",
    ),
    _fatal(
        "time_modification_normal_notes_validation",
        "Tuplet Normal Notes Positive",
        "<normal-notes> must be greater than zero.",
    ),
    _fatal(
        "time_modification_normal_dot_validation",
        "Tuplet Normal Dots Non-Negative",
        "The <normal-dot> count must not be negative.",
    ),
    _fatal(
        "clef_sign_not_empty",
        "Clef Sign Present",
        "A clef <sign> must not be empty.",
    ),
    _fatal(
        "clef_line_required_for_sign",
        "Clef Line Required",
        "G, F and C clefs must declare a staff <line>.",
    ),
    _fatal(
        "measure_number_validation",
        "Measure Number Non-Negative Integer",
        "A measure number must parse as a non-negative integer.",
    ),
    _fatal(
        "pickup_measure_validation",
        "Measure Zero Is A Pickup",
        "Measure number 0 is only legal when the measure is marked implicit=\"yes\".",
    ),
    _fatal(
        "part_id_in_part_list_validation",
        "Part Declared In Part List",
        "When a part-list is present every part id must resolve to a score-part.",
    ),
    _fatal(
        "part_id_unique_validation",
        "Part Id Unique",
        "Part ids must be unique within a score.",
    ),
    # Structural rules: a required element or attribute is absent.
    _fatal(
        "measure_number_required",
        "Measure Number Required",
        "Every <measure> must carry a number attribute.",
        category="structure",
    ),
    _fatal(
        "part_id_required",
        "Part Id Required",
        "Every <part> must carry a non-empty id attribute.",
        category="structure",
    ),
    _fatal(
        "required_element_missing",
        "Required Element Missing",
        "An element required by its parent is absent.",
        category="structure",
    ),
    _fatal(
        "required_attribute_missing",
        "Required Attribute Missing",
        "An attribute required by its element is absent.",
        category="structure",
    ),
    _fatal(
        "timeline_duration_invalid",
        "Backup/Forward Duration Invalid",
        "<backup> and <forward> must carry a non-negative integer <duration>.",
        category="structure",
    ),
    _fatal(
        "unrecognized_root",
        "Unrecognized Root",
        "The document root is not a MusicXML score.",
        category="structure",
    ),
    _fatal(
        "score_timewise_unsupported",
        "Timewise Scores Unsupported",
        "score-timewise documents are recognized but not supported.",
        category="structure",
    ),
    _fatal(
        "invalid_numeric_value",
        "Numeric Value Unparsable",
        "An element or attribute that must hold a number holds something else.",
        category="parse",
    ),
    _fatal(
        "xml_not_well_formed",
        "Markup Not Well-Formed",
        "The document or archive could not be read as XML.",
        category="parse",
    ),
    # Recoverable rules: recorded as diagnostics while parsing continues.
    _warning(
        "measure_duration_validation",
        "Measure Duration Matches Time Signature",
        "Per voice, the summed non-chord note durations should equal beats * divisions * 4 / beat_type.",
        "measure_duration",
    ),
    _warning(
        "beam_note_count_validation",
        "Beam Connects Two Notes",
        "A beam group that is not a hook should connect at least two notes.",
        "beam",
    ),
    _warning(
        "note_voice_validation",
        "Voice Is A Positive Integer",
        "A <voice> value should be a positive integer; other values are dropped.",
        "note",
    ),
    _warning(
        "note_duration_invalid",
        "Note Duration Unparsable",
        "A note <duration> that is not a non-negative integer causes the note to be skipped.",
        "duration",
    ),
    _warning(
        "note_divisions_defaulted",
        "Divisions Defaulted",
        "A note carries a duration while no divisions are in effect; divisions of 1 are assumed.",
        "duration",
    ),
    _warning(
        "note_validation_skipped",
        "Invalid Note Skipped",
        "A note failed validation and was dropped because lenient note handling is enabled.",
        "note",
    ),
    _warning(
        "tie_type_invalid",
        "Tie Type Invalid",
        "A <tied> element has a missing or unknown type and was skipped.",
        "tie",
    ),
    _warning(
        "orphaned_tie",
        "Orphaned Tie",
        "A tie stop or continue has no open tie start on the same pitch.",
        "tie",
    ),
    _warning(
        "unterminated_tie",
        "Unterminated Tie",
        "A tie start is never closed before the end of the part.",
        "tie",
    ),
    _warning(
        "part_list_missing",
        "Part List Missing",
        "The score has no <part-list>; part names cannot be resolved.",
        "structure",
    ),
    _warning(
        "part_group_unsupported",
        "Part Groups Unsupported",
        "<part-group> brackets are not modeled.",
        "unsupported",
    ),
    _warning(
        "ending_incomplete",
        "Ending Incomplete",
        "An ending without a resolvable number and type is dropped.",
        "structure",
    ),
    _warning(
        "repeat_incomplete",
        "Repeat Incomplete",
        "A repeat without a direction, or with an invalid times value, is dropped or trimmed.",
        "structure",
    ),
    _warning(
        "direction_without_type",
        "Direction Without Type",
        "A <direction> has no <direction-type> child.",
        "structure",
    ),
    _warning(
        "words_empty",
        "Empty Words",
        "A <words> direction has no text.",
        "direction",
    ),
    _warning(
        "backup_partially_processed",
        "Backup Not Applied",
        "<backup> is validated but the voice timeline is not repositioned.",
        "partial_processing",
    ),
    _warning(
        "forward_partially_processed",
        "Forward Not Applied",
        "<forward> is validated but the voice timeline is not repositioned.",
        "partial_processing",
    ),
    _warning(
        "unknown_enum_variant",
        "Unknown Enumeration Value",
        "A closed-vocabulary value was not recognized; the field is dropped.",
        "enum",
    ),
    _warning(
        "key_nontraditional_unsupported",
        "Non-Traditional Keys Unsupported",
        "A key declared with <key-step>/<key-alter> instead of <fifths> is ignored.",
        "unsupported",
    ),
    _warning(
        "time_senza_misura_unsupported",
        "Senza Misura Unsupported",
        "An unmeasured <senza-misura> time leaves the prior time signature in effect.",
        "unsupported",
    ),
    _warning(
        "container_unreadable",
        "Container Descriptor Unreadable",
        "META-INF/container.xml could not be used; a fallback entry was chosen.",
        "archive",
    ),
)


RULE_SPECS: Dict[str, RuleSpec] = {spec.code: spec for spec in _RULES}


def get_rule_spec(code: str) -> RuleSpec:
    try:
        return RULE_SPECS[code]
    except KeyError as exc:
        raise KeyError(f"Unknown rule code: {code}") from exc
