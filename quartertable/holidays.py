"""
Public holidays via the Nager.Date API.

Holiday locale format: country code plus optional subdivisions, e.g.
"DE" or "DE-BW" (also "de_DE_bw" style with the language first).

    fetch_holidays(date(2024, 1, 1), date(2024, 3, 24), "DE-BW")
    -> {date(2024, 1, 1): "Neujahr", date(2024, 1, 6): "Heilige Drei Könige"}
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import requests

from quartertable.errors import HolidayLookupError


API_URL = "https://date.nager.at/api/v3/PublicHolidays/{year}/{country}"


def parse_locale(locale: str) -> Tuple[str, List[str]]:
    """
    Split a locale into (country, subdivision codes).

    'DE-BW' -> ('DE', ['DE-BW']); 'de_DE_bw' -> ('DE', ['DE-BW'])
    """
    parts = [p for p in re.split(r"[-_]", locale.strip()) if p]
    if not parts:
        raise ValueError(f"Invalid holiday locale: {locale!r}")
    # a leading language code ('de') is followed by the country code
    if len(parts) >= 3 or (len(parts) == 2 and parts[0].islower() and parts[1].isupper()):
        parts = parts[1:]
    country = parts[0].upper()
    return country, [f"{country}-{p.upper()}" for p in parts[1:]]


def _fetch_year(year: int, country: str, http: Any, timeout: float) -> list:
    url = API_URL.format(year=year, country=country)
    try:
        resp = http.get(url, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise HolidayLookupError(f"holiday lookup failed for {country} {year}: {exc}") from exc
    if not isinstance(data, list):
        raise HolidayLookupError(f"unexpected holiday data for {country} {year}")
    return data


def fetch_holidays(
    start: date,
    end: date,
    locale: str,
    session: Optional[requests.Session] = None,
    timeout: float = 30,
) -> Dict[date, str]:
    """
    Return {date: local holiday name} for start..end (both inclusive).
    """
    try:
        country, subdivisions = parse_locale(locale)
    except ValueError as exc:
        raise HolidayLookupError(str(exc)) from exc

    http = session or requests
    holidays: Dict[date, str] = {}

    for year in range(start.year, end.year + 1):
        for item in _fetch_year(year, country, http, timeout):
            if not isinstance(item, dict):
                continue
            try:
                day = date.fromisoformat(str(item.get("date", "")))
            except ValueError:
                continue
            if not (start <= day <= end):
                continue

            counties = item.get("counties")
            is_global = item.get("global", counties is None)
            if not is_global:
                if not subdivisions or not isinstance(counties, list):
                    continue
                if not any(code in counties for code in subdivisions):
                    continue

            name = item.get("localName") or item.get("name") or ""
            holidays.setdefault(day, str(name))

    return dict(sorted(holidays.items()))
