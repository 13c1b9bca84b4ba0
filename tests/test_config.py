"""
Tests for the export configuration.

These tests focus on:
- JSON roundtrip using a temporary file
- falling back to defaults for missing files and broken values
- reading the legacy configuration workbook
"""

import json
import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font as CellFont
from openpyxl.styles import PatternFill

from quartertable.config import (
    ExportConfig,
    add_lecture_names,
    config_from_dict,
    load_config,
    load_config_workbook,
    save_config,
)
from quartertable.model import Font, PropertyEntry


class TestJsonConfig(unittest.TestCase):
    def test_missing_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            self.assertEqual(load_config(Path(d) / "missing.json"), ExportConfig())
        self.assertEqual(load_config(None), ExportConfig())

    def test_broken_json_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(p), ExportConfig())

    def test_roundtrip(self) -> None:
        config = ExportConfig(
            properties=(PropertyEntry("Stat*", "Stat", "FF0000", Font(color="0000FF", bold=True)),),
            highlights={"Exam": Font(color="FF0000")},
            ignore_prefixes=("WKL",),
            holiday_locale="DE-BY",
            quarter_start_weeks=(1, 14),
            exam_week_length=5,
            quarter_start_date=date(2024, 1, 8),
            timezone="Europe/Berlin",
            exam_week_text="Klausurwoche",
            exam_week_font=Font(color="FF0000", bold=True),
        )
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "sub" / "config.json"
            save_config(config, p)
            self.assertEqual(load_config(p), config)

    def test_invalid_values_fall_back_per_field(self) -> None:
        config = config_from_dict(
            {
                "lectures": [{"match": "Algorithms", "fill": "#ff8800"}, {"match": ""}, "junk"],
                "quarter_start_weeks": "2,15",
                "exam_week_length": 25,
                "quarter_start_date": "soon",
                "exam_week_fill": "blue",
            }
        )
        self.assertEqual(config.properties, (PropertyEntry("Algorithms", fill_color="FF8800"),))
        self.assertEqual(config.quarter_start_weeks, (2, 15, 27, 40))
        self.assertEqual(config.exam_week_length, 10)
        self.assertIsNone(config.quarter_start_date)
        self.assertEqual(config.exam_week_fill, "00FFFF")
        self.assertEqual(config.layout.exam_week_length, 10)

    def test_duplicate_highlight_keeps_last(self) -> None:
        config = config_from_dict(
            {"highlights": [{"text": "Exam", "font_color": "FF0000"}, {"text": "Exam", "font_color": "00FF00"}]}
        )
        self.assertEqual(config.highlights, {"Exam": Font(color="00FF00")})

    def test_saved_file_is_plain_json(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            save_config(ExportConfig(properties=(PropertyEntry("Math"),)), p)
            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(data["lectures"], [{"match": "Math", "short": ""}])
            self.assertEqual(data["holiday_locale"], "DE-BW")


class TestAddLectureNames(unittest.TestCase):
    def test_new_names_are_appended(self) -> None:
        config = ExportConfig(properties=(PropertyEntry("Alg*", "Alg"),), ignore_prefixes=("WKL",))
        updated = add_lecture_names(config, ["Algorithms", "WKL Statistics", "Physics"])
        self.assertEqual([e.matcher for e in updated.properties], ["Alg*", "Statistics", "Physics"])

    def test_nothing_new_returns_same_config(self) -> None:
        config = ExportConfig(properties=(PropertyEntry("*"),))
        self.assertIs(add_lecture_names(config, ["Algorithms"]), config)


class TestConfigWorkbook(unittest.TestCase):
    def test_legacy_workbook(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws["A3"] = "Statistics"
        ws["A3"].fill = PatternFill(fill_type="solid", fgColor="FFFF0000")
        ws["A3"].font = CellFont(color="FF0000FF")
        ws["B3"] = "Stat"
        ws["C3"] = "Exam"
        ws["C3"].font = CellFont(color="FF00FF00")
        ws["D3"] = "WKL"
        ws["E3"] = "DE"
        ws["E4"] = "BY"
        ws["F3"] = 2
        ws["F4"] = 15
        ws["G3"] = 4
        ws["H3"] = datetime(2024, 1, 8)
        ws["H4"] = "Europe/Berlin"
        ws["I3"] = "Klausurwoche"
        ws["I3"].font = CellFont(color="FFFF0000", bold=True)
        ws["I3"].fill = PatternFill(fill_type="solid", fgColor="FFFFFF00")

        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.xlsx"
            wb.save(p)
            config = load_config_workbook(p)

        self.assertEqual(len(config.properties), 1)
        entry = config.properties[0]
        self.assertEqual((entry.matcher, entry.short_label, entry.fill_color), ("Statistics", "Stat", "FF0000"))
        self.assertEqual(entry.font.color, "0000FF")
        self.assertEqual(config.highlights["Exam"].color, "00FF00")
        self.assertEqual(config.ignore_prefixes, ("WKL",))
        self.assertEqual(config.holiday_locale, "DE-BY")
        self.assertEqual(config.quarter_start_weeks, (2, 15))
        self.assertEqual(config.exam_week_length, 4)
        self.assertEqual(config.quarter_start_date, date(2024, 1, 8))
        self.assertEqual(config.timezone, "Europe/Berlin")
        self.assertEqual(config.exam_week_text, "Klausurwoche")
        self.assertEqual(config.exam_week_font, Font(color="FF0000", bold=True))
        self.assertEqual(config.exam_week_fill, "FFFF00")

    def test_missing_workbook_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            self.assertEqual(load_config_workbook(Path(d) / "missing.xlsx"), ExportConfig())

    def test_corrupt_workbook_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.xlsx"
            p.write_text("not a zip", encoding="utf-8")
            with self.assertLogs("quartertable.config", level="WARNING"):
                self.assertEqual(load_config_workbook(p), ExportConfig())


if __name__ == "__main__":
    unittest.main()
