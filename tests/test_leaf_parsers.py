import pytest
from lxml import etree

from mxscore.musicxml.annotations import AnnotationParser
from mxscore.musicxml.attributes import AttributesParser, parse_clef
from mxscore.musicxml.diagnostics import DiagnosticsCollector
from mxscore.musicxml.errors import (
    MusicXmlParseError,
    MusicXmlStructureError,
    MusicXmlValidationError,
    SourceLocation,
)
from mxscore.musicxml.layout import OpaqueLayoutParser
from mxscore.musicxml.models import (
    BarlineLocation,
    BarlineStyle,
    BeamType,
    Dynamics,
    EndingType,
    TieType,
)
from mxscore.musicxml.notes import NoteParser

LOC = SourceLocation(part="P1", measure="1")


def _el(xml: str) -> etree._Element:
    return etree.fromstring(xml)


def _rules(diagnostics: DiagnosticsCollector):
    return [d.rule for d in diagnostics.snapshot()]


# Notes


def test_pitched_note():
    parsed = NoteParser(DiagnosticsCollector()).parse(
        _el(
            '<note default-x="12.5"><pitch><step>E</step><alter>-1</alter><octave>5</octave></pitch>'
            "<duration>3</duration><voice>2</voice><type>quarter</type><dot/><staff>2</staff>"
            '<beam number="1">begin</beam></note>'
        ),
        2,
        LOC,
        4,
    )
    note = parsed.note
    assert note.pitch.name_with_octave == "E-5"
    assert note.duration.value == 3
    assert note.duration.divisions == 2
    assert note.voice == 2
    assert note.staff == 2
    assert note.dots == 1
    assert note.default_x == 12.5
    assert parsed.beam_fragments[0].type is BeamType.BEGIN
    assert parsed.beam_fragments[0].note_index == 4


def test_unpitched_note_has_no_pitch():
    note = NoteParser(DiagnosticsCollector()).parse(
        _el("<note><unpitched><display-step>E</display-step></unpitched><duration>1</duration></note>"),
        1,
        LOC,
        0,
    ).note
    assert note.is_unpitched
    assert note.pitch is None


def test_rest_with_pitch_is_fatal():
    with pytest.raises(MusicXmlValidationError) as excinfo:
        NoteParser(DiagnosticsCollector()).parse(
            _el("<note><rest/><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration></note>"),
            1,
            LOC,
            0,
        )
    assert excinfo.value.rule == "rest_no_pitch_validation"
    assert excinfo.value.location.part == "P1"


def test_invalid_note_is_skipped_when_lenient():
    diagnostics = DiagnosticsCollector()
    parsed = NoteParser(diagnostics, skip_invalid_notes=True).parse(
        _el("<note><pitch><step>X</step><octave>4</octave></pitch><duration>1</duration></note>"),
        1,
        LOC,
        0,
    )
    assert parsed is None
    assert _rules(diagnostics) == ["note_validation_skipped"]
    assert ("step", "X") in diagnostics.snapshot()[0].location.extra


def test_invalid_duration_skips_note():
    diagnostics = DiagnosticsCollector()
    parsed = NoteParser(diagnostics).parse(
        _el("<note><rest/><duration>half</duration></note>"), 1, LOC, 0
    )
    assert parsed is None
    assert _rules(diagnostics) == ["note_duration_invalid"]


def test_missing_divisions_default_to_one():
    diagnostics = DiagnosticsCollector()
    note = NoteParser(diagnostics).parse(_el("<note><rest/><duration>2</duration></note>"), None, LOC, 0).note
    assert note.duration.divisions == 1
    assert _rules(diagnostics) == ["note_divisions_defaulted"]


def test_bad_voice_is_dropped_with_warning():
    diagnostics = DiagnosticsCollector()
    note = NoteParser(diagnostics).parse(
        _el("<note><rest/><duration>1</duration><voice>soprano</voice></note>"), 1, LOC, 0
    ).note
    assert note.voice is None
    assert _rules(diagnostics) == ["note_voice_validation"]


def test_pitch_missing_octave_is_structural():
    with pytest.raises(MusicXmlStructureError) as excinfo:
        NoteParser(DiagnosticsCollector()).parse(
            _el("<note><pitch><step>C</step></pitch><duration>1</duration></note>"), 1, LOC, 0
        )
    assert excinfo.value.rule == "required_element_missing"


def test_unparsable_staff_is_a_parse_error():
    with pytest.raises(MusicXmlParseError) as excinfo:
        NoteParser(DiagnosticsCollector()).parse(
            _el("<note><rest/><duration>1</duration><staff>two</staff></note>"), 1, LOC, 0
        )
    assert excinfo.value.rule == "invalid_numeric_value"


def test_ties_and_invalid_tie_type():
    diagnostics = DiagnosticsCollector()
    note = NoteParser(diagnostics).parse(
        _el(
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
            '<notations><tied type="stop"/><tied type="sideways"/><tied type="start"/></notations></note>'
        ),
        1,
        LOC,
        0,
    ).note
    assert [tie.type for tie in note.ties] == [TieType.STOP, TieType.START]
    assert _rules(diagnostics) == ["tie_type_invalid"]


def test_slur_requires_type():
    with pytest.raises(MusicXmlStructureError) as excinfo:
        NoteParser(DiagnosticsCollector()).parse(
            _el(
                "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
                "<notations><slur number=\"2\"/></notations></note>"
            ),
            1,
            LOC,
            0,
        )
    assert excinfo.value.rule == "required_attribute_missing"


# Attributes


def test_attributes_update():
    update = AttributesParser(DiagnosticsCollector()).parse(
        _el(
            "<attributes><divisions>8</divisions><key><fifths>-3</fifths></key>"
            '<time symbol="cut"><beats>2</beats><beat-type>2</beat-type></time>'
            "<clef><sign>G</sign><line>2</line><clef-octave-change>-1</clef-octave-change></clef>"
            "</attributes>"
        ),
        LOC,
    )
    assert update.divisions == 8
    assert update.key_signature.fifths == -3
    assert update.key_signature.mode is None
    assert update.time_signature.symbol == "cut"
    assert update.clefs[0].octave_change == -1


def test_attributes_without_declarations():
    update = AttributesParser(DiagnosticsCollector()).parse(_el("<attributes><staves>2</staves></attributes>"), LOC)
    assert update.divisions is None
    assert update.key_signature is None
    assert update.time_signature is None
    assert update.clefs == ()


def test_zero_divisions_is_fatal():
    with pytest.raises(MusicXmlValidationError) as excinfo:
        AttributesParser(DiagnosticsCollector()).parse(
            _el("<attributes><divisions>0</divisions></attributes>"), LOC
        )
    assert excinfo.value.rule == "divisions_positive_validation"


def test_composite_time_signature_is_summed():
    time = AttributesParser(DiagnosticsCollector()).parse_time(
        _el("<time><beats>3+2</beats><beat-type>8</beat-type></time>"), LOC
    )
    assert (time.beats, time.beat_type) == (5, 8)


def test_senza_misura_and_nontraditional_key_are_warnings():
    diagnostics = DiagnosticsCollector()
    parser = AttributesParser(diagnostics)
    assert parser.parse_time(_el("<time><senza-misura/></time>"), LOC) is None
    assert parser.parse_key(_el("<key><key-step>C</key-step><key-alter>1</key-alter></key>"), LOC) is None
    assert _rules(diagnostics) == ["time_senza_misura_unsupported", "key_nontraditional_unsupported"]


def test_time_requires_beat_type():
    with pytest.raises(MusicXmlStructureError):
        AttributesParser(DiagnosticsCollector()).parse_time(_el("<time><beats>3</beats></time>"), LOC)


def test_clef_number_and_percussion():
    clef = parse_clef(_el('<clef number="2"><sign>percussion</sign></clef>'), LOC)
    assert clef.number == 2
    assert clef.line is None


# Annotations


def _annotations(diagnostics: DiagnosticsCollector) -> AnnotationParser:
    return AnnotationParser(diagnostics, OpaqueLayoutParser())


def test_barline_defaults_to_right():
    barline = _annotations(DiagnosticsCollector()).parse_barline(
        _el("<barline><bar-style>light-light</bar-style></barline>"), LOC
    )
    assert barline.location is BarlineLocation.RIGHT
    assert barline.style is BarlineStyle.LIGHT_LIGHT
    assert barline.repeat is None


def test_unknown_bar_style_is_dropped():
    diagnostics = DiagnosticsCollector()
    barline = _annotations(diagnostics).parse_barline(
        _el('<barline location="left"><bar-style>zigzag</bar-style></barline>'), LOC
    )
    assert barline.location is BarlineLocation.LEFT
    assert barline.style is None
    assert _rules(diagnostics) == ["unknown_enum_variant"]


def test_repeat_without_direction_is_dropped():
    diagnostics = DiagnosticsCollector()
    barline = _annotations(diagnostics).parse_barline(_el("<barline><repeat/></barline>"), LOC)
    assert barline.repeat is None
    assert _rules(diagnostics) == ["repeat_incomplete"]


def test_ending_number_falls_back_to_text():
    ending = _annotations(DiagnosticsCollector()).parse_ending(
        _el('<ending type="start" print-object="no">1, 2</ending>'), LOC
    )
    assert ending.number == "1, 2"
    assert ending.type is EndingType.START
    assert ending.print_object is False


def test_ending_without_type_is_dropped():
    diagnostics = DiagnosticsCollector()
    assert _annotations(diagnostics).parse_ending(_el('<ending number="1"/>'), LOC) is None
    assert _rules(diagnostics) == ["ending_incomplete"]


def test_direction_types():
    diagnostics = DiagnosticsCollector()
    direction = _annotations(diagnostics).parse_direction(
        _el(
            '<direction directive="yes"><direction-type><words/></direction-type>'
            "<direction-type><dynamics><f/><other-dynamics>sfzp</other-dynamics></dynamics></direction-type>"
            '<offset>-2</offset><voice>1</voice><sound tempo="96.5" dacapo="yes"/></direction>'
        ),
        LOC,
    )
    assert direction.types == (Dynamics(values=("f", "sfzp")),)
    assert direction.offset == -2
    assert direction.voice == 1
    assert direction.directive is True
    assert direction.sound.tempo == 96.5
    assert direction.sound.dacapo is True
    assert _rules(diagnostics) == ["words_empty"]


def test_direction_without_type_warns():
    diagnostics = DiagnosticsCollector()
    direction = _annotations(diagnostics).parse_direction(_el("<direction><sound tempo=\"60\"/></direction>"), LOC)
    assert direction.types == ()
    assert _rules(diagnostics) == ["direction_without_type"]


def test_print_layout_blocks():
    info = _annotations(DiagnosticsCollector()).parse_print(
        _el(
            '<print new-page="yes" page-number="3"><page-layout><page-margins type="odd">'
            "<left-margin>70</left-margin></page-margins></page-layout>"
            '<staff-layout number="2"><staff-distance>65</staff-distance></staff-layout></print>'
        ),
        LOC,
    )
    assert info.new_page is True
    assert info.page_number == "3"
    assert info.page_layout.get("page-margins@type") == "odd"
    assert info.page_layout.get("page-margins/left-margin") == "70"
    assert info.staff_layouts[0].get("@number") == "2"
    assert info.staff_layouts[0].get("staff-distance") == "65"
