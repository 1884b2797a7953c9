"""
Public holiday lookup backed by the local ``holidays`` table.

Holidays are read from the database first.  When a month has no stored
holidays and its year has not been fetched yet, the full year is fetched from the public holiday API (a JSON
object mapping ``"YYYY-MM-DD"`` to a label), cached, and the requested
month is returned from it.
"""

import logging

import requests

from errors import HolidayUnavailable, ReadError, ValidationError, WriteError
from weekly_template import parse_date

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://calendrier.api.gouv.fr/jours-feries'
DEFAULT_ZONE = 'metropole'
DEFAULT_TIMEOUT = 10


def fetch_holidays_from_api(year, base_url=DEFAULT_API_URL, zone=DEFAULT_ZONE,
                            timeout=DEFAULT_TIMEOUT, session=None):
    """Fetch ``{"YYYY-MM-DD": name}`` for ``year`` from the holiday API."""
    url = f"{base_url.rstrip('/')}/{zone}/{year}.json"
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        holidays = response.json()
    except requests.RequestException as e:
        raise HolidayUnavailable(f"holiday API request failed for {year}: {e}") from e
    except ValueError as e:
        raise HolidayUnavailable(f"holiday API returned invalid JSON for {year}: {e}") from e

    if not isinstance(holidays, dict):
        raise HolidayUnavailable(f"holiday API returned {type(holidays).__name__} for {year}, expected an object")
    return holidays


def parse_holiday_table(table):
    """Turn the API document into ``(date, name)`` pairs, skipping bad keys."""
    parsed = []
    for date_str, name in table.items():
        try:
            holiday_date = parse_date(date_str)
        except ValidationError:
            logger.warning(f"Skipping holiday with malformed date {date_str!r}")
            continue
        parsed.append((holiday_date, str(name)))
    return parsed


class HolidayCalendar:
    """Holiday lookup used by :class:`scheduling_engine.SchedulingEngine`.

    ``repository`` provides ``find_holidays(year, month)``,
    ``is_holiday_year_fetched(year)`` and ``save_holidays(pairs, year)``;
    ``fetcher(year)`` returns the raw API table.  A year is fetched at
    most once, so months without holidays do not hit the API again.
    """

    def __init__(self, repository, fetcher=fetch_holidays_from_api):
        self.repository = repository
        self.fetcher = fetcher

    def get_holidays(self, year, month):
        try:
            stored = self.repository.find_holidays(year, month)
            if stored:
                return {(holiday.holiday_date, holiday.holiday_name) for holiday in stored}
            if self.repository.is_holiday_year_fetched(year):
                return set()

            logger.info(f"No cached holidays for {year}-{month:02d}, fetching {year} from the holiday API")
            year_holidays = [
                (holiday_date, name)
                for holiday_date, name in parse_holiday_table(self.fetcher(year))
                if holiday_date.year == year
            ]
            saved = self.repository.save_holidays(year_holidays, year=year)
            logger.info(f"Cached {saved} holidays for {year}")
        except (ReadError, WriteError) as e:
            raise HolidayUnavailable(str(e)) from e

        return {(holiday_date, name) for holiday_date, name in year_holidays if holiday_date.month == month}
