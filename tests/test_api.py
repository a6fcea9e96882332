"""
Tests for the public score API module.
"""

import json
import unittest
from pathlib import Path

from music21 import chord, meter, note, stream, tempo

from mxscore.api import parse_score, summarize_score, to_music21
from mxscore.config import Settings
from mxscore.musicxml import parse_musicxml, parse_musicxml_file

ROOT_DIR = Path(__file__).parent.parent
TWO_PART_XML = ROOT_DIR / "assets/test_data/two_part_score.xml"
PICKUP_XML = ROOT_DIR / "assets/test_data/pickup_repeats.xml"


class TestParseScore(unittest.TestCase):
    """Tests for parse_score."""

    def test_parse_returns_json_serializable_dict(self):
        result = parse_score(TWO_PART_XML, settings=Settings())
        self.assertIsInstance(result, dict)
        json.dumps(result)

    def test_parse_has_required_keys(self):
        result = parse_score(TWO_PART_XML, settings=Settings())
        self.assertIn("score", result)
        self.assertIn("diagnostics", result)
        self.assertIn("score_summary", result)
        self.assertEqual(result["diagnostics_dropped"], 0)
        self.assertEqual(result["source_musicxml_path"], str(TWO_PART_XML.resolve()))

    def test_score_model_is_flattened(self):
        score = parse_score(TWO_PART_XML, settings=Settings())["score"]
        self.assertEqual(score["title"], "Little Study")
        first_note = score["parts"][0]["measures"][0]["notes"][0]
        self.assertEqual(first_note["pitch"], {"step": "G", "octave": 4, "alter": None})
        beam = score["parts"][0]["measures"][0]["beams"][0]
        self.assertEqual(beam["type"], "begin")
        self.assertEqual(beam["note_indices"], [0, 1, 2, 3])

    def test_diagnostics_are_payloads(self):
        diagnostics = parse_score(PICKUP_XML, settings=Settings())["diagnostics"]
        self.assertEqual(len(diagnostics), 4)
        self.assertTrue(all(item["severity"] == "warning" for item in diagnostics))
        self.assertIn("location", diagnostics[0])


class TestSummarizeScore(unittest.TestCase):
    def test_two_part_summary(self):
        summary = summarize_score(parse_musicxml_file(TWO_PART_XML).score)
        self.assertEqual(summary["part_count"], 2)
        flute = summary["parts"][0]
        self.assertEqual(flute["part_name"], "Flute")
        self.assertEqual(flute["measure_count"], 3)
        self.assertEqual(flute["note_count"], 7)
        self.assertEqual(flute["rest_count"], 1)
        self.assertEqual(flute["duration_quarters"], 11.0)
        self.assertEqual(flute["time_signatures"], ["4/4", "3/4"])
        self.assertEqual(flute["key_fifths"], 1)
        self.assertFalse(flute["has_pickup"])

    def test_pickup_summary(self):
        summary = summarize_score(parse_musicxml_file(PICKUP_XML).score)
        piano = summary["parts"][0]
        self.assertTrue(piano["has_pickup"])
        self.assertEqual(piano["time_signatures"], ["4/4"])
        self.assertEqual(piano["key_fifths"], -2)
        self.assertEqual(piano["duration_quarters"], 13.0)


class TestToMusic21(unittest.TestCase):
    def setUp(self):
        self.two_part = to_music21(parse_musicxml_file(TWO_PART_XML).score)

    def test_parts_and_metadata(self):
        self.assertIsInstance(self.two_part, stream.Score)
        self.assertEqual(len(self.two_part.parts), 2)
        self.assertEqual(self.two_part.metadata.title, "Little Study")
        self.assertEqual(self.two_part.parts[0].partName, "Flute")

    def test_notes_and_durations(self):
        flute = self.two_part.parts[0]
        notes = list(flute.recurse().getElementsByClass(note.Note))
        self.assertEqual(len(notes), 7)
        self.assertEqual(notes[0].nameWithOctave, "G4")
        self.assertEqual(notes[4].nameWithOctave, "F#5")
        self.assertEqual(float(notes[0].quarterLength), 0.5)
        self.assertEqual(float(flute.highestTime), 11.0)

    def test_time_signature_changes_only(self):
        flute = self.two_part.parts[0]
        signatures = [ts.ratioString for ts in flute.recurse().getElementsByClass(meter.TimeSignature)]
        self.assertEqual(signatures, ["4/4", "3/4"])

    def test_tempo_mark(self):
        marks = list(self.two_part.parts[0].recurse().getElementsByClass(tempo.MetronomeMark))
        self.assertEqual(len(marks), 1)
        self.assertEqual(marks[0].number, 120)

    def test_chords_and_grace_notes(self):
        piano = to_music21(parse_musicxml_file(PICKUP_XML).score).parts[0]
        measure_one = piano.getElementsByClass(stream.Measure)[1]
        chords = list(measure_one.getElementsByClass(chord.Chord))
        self.assertEqual(len(chords), 1)
        self.assertEqual([p.nameWithOctave for p in chords[0].pitches], ["D5", "F5"])
        graces = [n for n in measure_one.notes if n.duration.isGrace]
        self.assertEqual(len(graces), 1)

    def test_unpitched_chord_members_share_onset(self):
        drum = "<note>{chord}<unpitched><display-step>E</display-step><display-octave>4</display-octave></unpitched><duration>4</duration><voice>1</voice></note>"
        doc = (
            '<score-partwise><part-list><score-part id="P1"><part-name>Drums</part-name></score-part></part-list>'
            '<part id="P1"><measure number="1"><attributes><divisions>1</divisions></attributes>'
            + drum.format(chord="")
            + drum.format(chord="<chord/>")
            + "</measure></part></score-partwise>"
        )
        measure = to_music21(parse_musicxml(doc).score).parts[0].getElementsByClass(stream.Measure)[0]
        hits = list(measure.getElementsByClass(note.Unpitched))
        self.assertEqual(len(hits), 2)
        self.assertEqual([float(hit.offset) for hit in hits], [0.0, 0.0])


if __name__ == "__main__":
    unittest.main()
