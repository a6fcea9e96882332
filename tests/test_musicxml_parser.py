from __future__ import annotations

import unittest
import zipfile
from pathlib import Path

from mxscore.config import Settings
from mxscore.musicxml import (
    MusicXmlParseError,
    MusicXmlParser,
    MusicXmlStructureError,
    UnsupportedFormatError,
    parse_musicxml,
    parse_musicxml_file,
)
from mxscore.musicxml.layout import LayoutBlock
from mxscore.musicxml.models import (
    BarlineLocation,
    BarlineStyle,
    BeamType,
    Coda,
    Dynamics,
    EndingType,
    RepeatDirection,
    Segno,
    TieType,
    Words,
)

TEST_DATA = Path(__file__).resolve().parents[1] / "assets" / "test_data"
TWO_PART_XML = TEST_DATA / "two_part_score.xml"
PICKUP_XML = TEST_DATA / "pickup_repeats.xml"
TIMEWISE_XML = TEST_DATA / "timewise.xml"


class TwoPartScoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.result = parse_musicxml_file(TWO_PART_XML)
        self.score = self.result.score

    def test_metadata(self) -> None:
        self.assertEqual(self.score.version, "4.0")
        self.assertEqual(self.score.title, "Little Study")
        self.assertEqual(self.score.movement_title, "First Movement")
        self.assertEqual(self.score.composer, "Ada Example")
        self.assertEqual(self.score.work.number, "Op. 1")
        self.assertEqual(self.score.identification.creator("lyricist"), "Ben Example")
        self.assertEqual(self.score.identification.rights, ("Public Domain",))
        self.assertEqual(self.score.identification.encoding.software, ("Handwritten",))
        self.assertEqual(self.score.credits[0].words, ("Little Study",))
        self.assertEqual(self.score.credits[0].page, 1)

    def test_layout_defaults_are_opaque_blocks(self) -> None:
        self.assertIsInstance(self.score.scaling, LayoutBlock)
        self.assertEqual(self.score.scaling.get("tenths"), "40")
        self.assertEqual(self.score.page_layout.get("page-width"), "1190")
        self.assertIsNone(self.score.appearance)

    def test_parts_and_names(self) -> None:
        self.assertEqual([part.id for part in self.score.parts], ["P1", "P2"])
        self.assertEqual(self.score.parts[0].name, "Flute")
        self.assertEqual(self.score.parts[0].abbreviation, "Fl.")
        self.assertEqual(self.score.part("P2").name, "Cello")
        self.assertIsNone(self.score.part("P9"))

    def test_attribute_inheritance(self) -> None:
        m1, m2, m3 = self.score.parts[0].measures
        self.assertEqual(m1.divisions, 2)
        self.assertEqual(m1.key_signature.fifths, 1)
        self.assertEqual(m1.key_signature.mode, "major")
        self.assertEqual((m1.time_signature.beats, m1.time_signature.beat_type), (4, 4))
        self.assertEqual(m2.divisions, m1.divisions)
        self.assertEqual(m2.key_signature, m1.key_signature)
        self.assertEqual(m2.time_signature, m1.time_signature)
        self.assertEqual(m2.clefs, m1.clefs)
        self.assertEqual(m3.divisions, m2.divisions)
        self.assertEqual(m3.key_signature, m2.key_signature)
        self.assertEqual((m3.time_signature.beats, m3.time_signature.beat_type), (3, 4))

    def test_context_does_not_leak_between_parts(self) -> None:
        self.assertEqual(self.score.parts[1].measures[0].divisions, 1)
        self.assertEqual(self.score.parts[1].measures[0].clefs[0].sign, "F")

    def test_notes_and_beams(self) -> None:
        m1 = self.score.parts[0].measures[0]
        self.assertEqual(len(m1.notes), 5)
        self.assertEqual(m1.width, 200.5)
        first = m1.notes[0]
        self.assertEqual((first.pitch.step, first.pitch.octave), ("G", 4))
        self.assertEqual(first.duration.value, 1)
        self.assertEqual(first.duration.divisions, 2)
        self.assertEqual(first.voice, 1)
        self.assertEqual(first.type, "eighth")
        self.assertEqual(m1.notes[4].pitch.alter, 1.0)
        self.assertEqual(m1.notes[4].ties[0].type, TieType.START)
        self.assertEqual(len(m1.beams), 1)
        self.assertEqual(m1.beams[0].note_indices, (0, 1, 2, 3))
        self.assertEqual(m1.beams[0].type, BeamType.BEGIN)

    def test_dotted_note_and_final_barline(self) -> None:
        m3 = self.score.parts[0].measures[2]
        self.assertEqual(m3.notes[0].dots, 1)
        self.assertEqual(m3.barlines[0].location, BarlineLocation.RIGHT)
        self.assertEqual(m3.barlines[0].style, BarlineStyle.LIGHT_HEAVY)

    def test_direction_with_tempo(self) -> None:
        direction = self.score.parts[0].measures[0].directions[0]
        self.assertEqual(direction.types, (Words(text="Allegro"),))
        self.assertEqual(direction.sound.tempo, 120.0)
        self.assertEqual(direction.placement, "above")

    def test_clean_score_has_no_diagnostics(self) -> None:
        self.assertEqual(self.result.diagnostics, ())

    def test_measure_duration_check_passes_for_well_formed_score(self) -> None:
        result = parse_musicxml_file(TWO_PART_XML, Settings(validate_measure_duration=True))
        self.assertEqual(result.diagnostics, ())


class PickupScoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.result = parse_musicxml_file(PICKUP_XML)
        self.part = self.result.score.parts[0]

    def test_title_falls_back_to_movement_title(self) -> None:
        self.assertEqual(self.result.score.title, "Pickup Song")
        self.assertIsNone(self.result.score.composer)

    def test_pickup_measure(self) -> None:
        pickup = self.part.measures[0]
        self.assertEqual(pickup.number, "0")
        self.assertTrue(pickup.is_pickup)
        self.assertTrue(pickup.implicit)
        self.assertFalse(self.part.measures[1].is_pickup)
        self.assertEqual(pickup.time_signature.symbol, "common")
        self.assertEqual(pickup.key_signature.mode, "minor")
        self.assertEqual([clef.number for clef in pickup.clefs], [1, 2])

    def test_notations(self) -> None:
        note = self.part.measures[0].notes[0]
        self.assertEqual(note.slurs[0].type, "start")
        self.assertEqual(note.slurs[0].number, 1)
        self.assertEqual(note.slurs[0].placement, "above")
        self.assertEqual([art.type for art in note.articulations], ["staccato", "accent"])
        self.assertEqual(note.articulations[0].placement, "below")
        self.assertEqual(note.staff, 1)

    def test_grace_chord_and_tuplets(self) -> None:
        notes = self.part.measures[1].notes
        self.assertEqual(len(notes), 8)
        self.assertTrue(notes[0].is_grace)
        self.assertIsNone(notes[0].duration)
        self.assertTrue(notes[2].is_chord)
        tm = notes[3].time_modification
        self.assertEqual((tm.actual_notes, tm.normal_notes, tm.normal_type), (3, 2, "eighth"))
        self.assertIsNone(notes[4].time_modification.normal_type)
        self.assertEqual(notes[7].voice, 5)
        self.assertEqual(notes[7].staff, 2)

    def test_beams_with_hook(self) -> None:
        beams = self.part.measures[1].beams
        by_number = {beam.number: beam for beam in beams}
        self.assertEqual(by_number[1].note_indices, (3, 4, 5))
        self.assertEqual(by_number[2].type, BeamType.FORWARD_HOOK)
        self.assertEqual(by_number[2].note_indices, (4,))

    def test_barlines_and_endings(self) -> None:
        m1 = self.part.measures[1]
        self.assertEqual(m1.barlines[0].location, BarlineLocation.LEFT)
        self.assertEqual(m1.barlines[0].repeat.direction, RepeatDirection.FORWARD)
        m2 = self.part.measures[2]
        self.assertEqual([ending.type for ending in m2.endings], [EndingType.START, EndingType.STOP])
        self.assertEqual(m2.barlines[1].repeat.direction, RepeatDirection.BACKWARD)
        self.assertEqual(m2.barlines[1].repeat.times, 2)
        m3 = self.part.measures[3]
        self.assertEqual(m3.endings[0].number, "2")
        self.assertEqual(m3.endings[0].type, EndingType.DISCONTINUE)
        self.assertEqual(m3.endings[0].text, "2.")

    def test_directions(self) -> None:
        m1 = self.part.measures[1]
        self.assertEqual(m1.directions[0].types, (Segno(),))
        dynamics = m1.directions[1]
        self.assertEqual(dynamics.types, (Dynamics(values=("p",)),))
        self.assertEqual(dynamics.staff, 1)
        self.assertEqual(dynamics.sound.dynamics, 54.0)
        coda = self.part.measures[3].directions[0]
        self.assertEqual(coda.types, (Words(text="To Coda"), Coda()))
        self.assertEqual(coda.sound.tocoda, "coda1")
        self.assertEqual(coda.sound.fine, "yes")

    def test_print_layout_is_delegated(self) -> None:
        print_info = self.part.measures[1].print_info
        self.assertTrue(print_info.new_system)
        self.assertFalse(print_info.new_page)
        self.assertEqual(print_info.system_layout.get("system-distance"), "120")

    def test_warnings(self) -> None:
        rules = sorted(diagnostic.rule for diagnostic in self.result.diagnostics)
        self.assertEqual(
            rules,
            [
                "backup_partially_processed",
                "forward_partially_processed",
                "part_group_unsupported",
                "part_group_unsupported",
            ],
        )
        backup = next(d for d in self.result.diagnostics if d.rule == "backup_partially_processed")
        self.assertEqual(backup.location.part, "P1")
        self.assertEqual(backup.location.measure, "1")
        self.assertIsNotNone(backup.location.line)
        self.assertEqual(backup.category, "partial_processing")
        self.assertEqual(self.result.warnings, self.result.diagnostics)

    def test_measure_duration_check_skips_pickup(self) -> None:
        result = parse_musicxml_file(PICKUP_XML, Settings(validate_measure_duration=True))
        self.assertFalse(any(d.rule == "measure_duration_validation" for d in result.diagnostics))


class DocumentKindTests(unittest.TestCase):
    def test_timewise_is_rejected_explicitly(self) -> None:
        with self.assertRaises(UnsupportedFormatError) as ctx:
            parse_musicxml_file(TIMEWISE_XML)
        self.assertEqual(ctx.exception.rule, "score_timewise_unsupported")
        self.assertIsInstance(ctx.exception, MusicXmlStructureError)

    def test_unknown_root(self) -> None:
        with self.assertRaises(MusicXmlStructureError) as ctx:
            parse_musicxml("<opus><title>x</title></opus>")
        self.assertNotIsInstance(ctx.exception, UnsupportedFormatError)
        self.assertEqual(ctx.exception.rule, "unrecognized_root")

    def test_malformed_xml_is_wrapped(self) -> None:
        with self.assertRaises(MusicXmlParseError) as ctx:
            parse_musicxml(b"<score-partwise><part-list></score-partwise>")
        self.assertEqual(ctx.exception.rule, "xml_not_well_formed")
        self.assertIsNotNone(ctx.exception.__cause__)

    def test_str_input_is_accepted(self) -> None:
        text = TWO_PART_XML.read_text(encoding="utf-8")
        self.assertEqual(len(parse_musicxml(text).score.parts), 2)

    def test_str_input_ignores_declared_encoding(self) -> None:
        text = (
            '<?xml version="1.0" encoding="ISO-8859-1"?>'
            "<score-partwise><work><work-title>Café</work-title></work><part-list/></score-partwise>"
        )
        self.assertEqual(parse_musicxml(text).score.title, "Café")


class MxlRoundTripTests(unittest.TestCase):
    def test_archive_payload_parses_identically(self) -> None:
        import tempfile

        raw = TWO_PART_XML.read_bytes()
        with tempfile.TemporaryDirectory() as tmp:
            mxl_path = Path(tmp) / "score.mxl"
            with zipfile.ZipFile(mxl_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(
                    "META-INF/container.xml",
                    '<?xml version="1.0"?><container><rootfiles>'
                    '<rootfile full-path="music/score.xml"/></rootfiles></container>',
                )
                archive.writestr("music/score.xml", raw)
            from_archive = parse_musicxml_file(mxl_path)
        direct = parse_musicxml(raw)
        self.assertEqual(from_archive.score, direct.score)


class ParserReuseTests(unittest.TestCase):
    def test_parser_instance_can_be_reused(self) -> None:
        parser = MusicXmlParser()
        first = parser.parse_file(PICKUP_XML)
        second = parser.parse_file(PICKUP_XML)
        self.assertEqual(first.diagnostics, second.diagnostics)
        self.assertEqual(len(second.diagnostics), 4)


if __name__ == "__main__":
    unittest.main()
