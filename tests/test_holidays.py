"""
Tests for the holiday lookup. HTTP is replaced by mocks, no network access.
"""

import unittest
from datetime import date
from unittest import mock

import requests

from quartertable.errors import HolidayLookupError
from quartertable.holidays import fetch_holidays, parse_locale

HOLIDAYS_2024 = [
    {"date": "2024-01-01", "localName": "Neujahr", "name": "New Year's Day", "global": True, "counties": None},
    {
        "date": "2024-01-06",
        "localName": "Heilige Drei Könige",
        "name": "Epiphany",
        "global": False,
        "counties": ["DE-BW", "DE-BY", "DE-ST"],
    },
    {"date": "2024-03-08", "localName": "Frauentag", "name": "Women's Day", "global": False, "counties": ["DE-BE"]},
    {"date": "2024-03-29", "localName": "Karfreitag", "name": "Good Friday", "global": True, "counties": None},
]


def fake_session(payload) -> mock.Mock:
    response = mock.Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    session = mock.Mock()
    session.get.return_value = response
    return session


class TestParseLocale(unittest.TestCase):
    def test_formats(self) -> None:
        self.assertEqual(parse_locale("DE-BW"), ("DE", ["DE-BW"]))
        self.assertEqual(parse_locale("de_DE_bw"), ("DE", ["DE-BW"]))
        self.assertEqual(parse_locale("de-bw"), ("DE", ["DE-BW"]))
        self.assertEqual(parse_locale("DE"), ("DE", []))

    def test_empty_locale(self) -> None:
        with self.assertRaises(ValueError):
            parse_locale(" ")


class TestFetchHolidays(unittest.TestCase):
    def test_global_and_subdivision_holidays(self) -> None:
        session = fake_session(HOLIDAYS_2024)
        found = fetch_holidays(date(2024, 1, 1), date(2024, 3, 24), "DE-BW", session=session)

        self.assertEqual(found, {date(2024, 1, 1): "Neujahr", date(2024, 1, 6): "Heilige Drei Könige"})
        url = session.get.call_args[0][0]
        self.assertTrue(url.endswith("/2024/DE"))

    def test_country_only_skips_regional_holidays(self) -> None:
        found = fetch_holidays(date(2024, 1, 1), date(2024, 12, 31), "DE", session=fake_session(HOLIDAYS_2024))
        self.assertEqual(list(found), [date(2024, 1, 1), date(2024, 3, 29)])

    def test_one_request_per_year(self) -> None:
        session = fake_session([])
        fetch_holidays(date(2023, 12, 1), date(2024, 2, 1), "DE-BW", session=session)
        self.assertEqual(session.get.call_count, 2)

    def test_network_error(self) -> None:
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(HolidayLookupError):
            fetch_holidays(date(2024, 1, 1), date(2024, 3, 24), "DE-BW", session=session)

    def test_unexpected_payload(self) -> None:
        with self.assertRaises(HolidayLookupError):
            fetch_holidays(date(2024, 1, 1), date(2024, 3, 24), "DE-BW", session=fake_session({"error": 1}))

    def test_default_http_client(self) -> None:
        with mock.patch("quartertable.holidays.requests.get") as get:
            get.return_value = fake_session(HOLIDAYS_2024).get.return_value
            found = fetch_holidays(date(2024, 3, 25), date(2024, 3, 31), "DE-BW")
        self.assertEqual(found, {date(2024, 3, 29): "Karfreitag"})


if __name__ == "__main__":
    unittest.main()
