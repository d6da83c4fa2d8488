"""
Attendance Sheet Lookup - Core Logic Module
This module contains the sheet layout, the cached lookups and the event
description formatting. Shared by the terminal interface and the bot layer.
"""

import json
import logging
import os
import re
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

# Global variables and setup
SCOPE = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
]

SPREADSHEET_ID = os.environ.get("ATTENDANCE_SPREADSHEET_ID", "")
SHEET_NAME = os.environ.get("ATTENDANCE_SHEET_NAME", "Attendance")

DEFAULT_CREDENTIALS_PATH = os.environ.get(
    "ATTENDANCE_CREDENTIALS",
    os.path.join(os.path.expanduser("~"), ".config", "attendance", "credentials.json"),
)
DEFAULT_REDIS_URL = os.environ.get("ATTENDANCE_REDIS_URL", "redis://localhost:6379/0")

# =============================================================================
# SHEET LAYOUT (1-indexed, as the sheet shows them)
# =============================================================================

USERNAME_COL = 1
HEADER_ROWS = 5   # info rows above the first username
HEADER_COLS = 2   # username + display name columns before the first event

FIRST_INFO_ROW = 1
DESCRIPTION_ROW = 1
DATE_ROW = 2
TIME_ROW = 3
LOCATION_ROW = 4
COUNT_ROW = 5
LAST_INFO_ROW = 5

# Events highlighted any other colour hide their time and location
WHITE_COLOR = "#ffffff"

# =============================================================================
# CACHE SETTINGS
# =============================================================================

USERNAME_COL_CACHE_KEY = "usernames"
DATE_ROW_CACHE_KEY = "date_row"
EVENT_INFO_CACHE_KEY_PREFIX = "event_info_"

CACHE_DURATION = 25 * 60        # usernames and dates rarely change
CACHE_DURATION_SHORT = 2 * 60   # counts change as people sign up

MAX_EVENT_SEARCH_DISTANCE = 7   # days

DATE_HELP_INFO = (
    " Dates look like 3/8/2024 (or 3/8 for this year); "
    "add +1 to pick the event column after that date."
)


# =============================================================================
# ERRORS
# =============================================================================

class SheetLookupError(Exception):
    """Base class for lookups that cannot be answered from the sheet."""


class NotFoundError(SheetLookupError):
    def __init__(self, username):
        self.username = username
        super().__init__(f"username {username} not found on spreadsheet!")


class DateNotFoundError(SheetLookupError):
    """
    Raised when an explicit date is not in the date row.
    next_practice is the date text of the next upcoming event, or None when
    there is no event within MAX_EVENT_SEARCH_DISTANCE days.
    """

    def __init__(self, date, next_practice=None):
        self.date = date
        self.next_practice = next_practice
        message = f"couldn't find any event on {date}."
        if next_practice:
            message += f" Next practice is on {next_practice}."
        super().__init__(message + DATE_HELP_INFO)


class NoUpcomingEventError(SheetLookupError):
    def __init__(self, max_days):
        self.max_days = max_days
        super().__init__(f"no practice in next {max_days} days.")


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass(frozen=True)
class DateLocator:
    """
    Points at an event column: an explicit date plus a column offset, or
    (valid=False) whatever the next upcoming event is, moved by the offset.
    """
    date: str = ""
    offset: int = 0
    valid: bool = False

    @classmethod
    def for_date(cls, date_text, offset=0):
        return cls(date=date_text, offset=offset, valid=True)

    @classmethod
    def next_upcoming(cls, offset=0):
        return cls(offset=offset)

    @classmethod
    def parse(cls, text, today=None):
        """
        Build a locator from user text.

        Accepts "" or "next" (next upcoming event), "m/d/yyyy", "m/d" (this
        year) or "yyyy-mm-dd", optionally followed by "+N" to move N event
        columns to the right. Text that doesn't look like a date is kept as
        is, so the lookup fails with a DateNotFoundError carrying help text.
        """
        text = (text or "").strip()
        offset = 0
        match = re.fullmatch(r"(.*?)\s*\+\s*(\d+)", text)
        if match:
            text, offset = match.group(1), int(match.group(2))

        # "+1" and "next +1" count from the next upcoming event
        if not text or text.lower() == "next":
            return cls.next_upcoming(offset)

        today = today or date.today()
        candidates = [
            (text, "%m/%d/%Y"),
            (f"{text}/{today.year}", "%m/%d/%Y"),
            (text, "%Y-%m-%d"),
        ]
        for value, fmt in candidates:
            try:
                parsed = datetime.strptime(value, fmt).date()
            except ValueError:
                continue
            return cls.for_date(get_date_text(parsed), offset)

        return cls.for_date(text, offset)

    def __str__(self):
        if not self.valid:
            return f"next practice +{self.offset}" if self.offset else "next practice"
        if self.offset:
            return f"{self.date} +{self.offset}"
        return self.date


@dataclass(frozen=True)
class EventInfo:
    """The info block at the top of one event column."""
    event_type: str
    event_date: str
    event_time: str
    event_location: str
    count: Optional[int]
    include_time_loc: bool

    def to_json(self):
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw):
        return cls(**json.loads(raw))


@dataclass
class EventLookup:
    """Result of lookup_event: where the user's cell is and what the event is."""
    row: int
    col: int
    info: EventInfo
    description: str


# =============================================================================
# TEXT HELPERS
# =============================================================================

def get_date_text(date_obj):
    """Format a date the way the date row shows it: 3/8/2024 (no zero padding)."""
    return f"{date_obj.month}/{date_obj.day}/{date_obj.year}"


def fix_case(text):
    """'PRACTICE' / 'practice' -> 'Practice'. Applying it twice changes nothing."""
    text = (text or "").strip()
    return text[:1].upper() + text[1:].lower()


def parse_count(text):
    """
    Parse the attendance count cell.
    Takes the leading integer ("12", "12 going" -> 12). Cells without one
    (blank, "n/a") give None instead of raising.
    """
    match = re.match(r"\s*([+-]?\d+)", text or "")
    if not match:
        logger.warning(f"Count cell {text!r} is not a number")
        return None
    return int(match.group(1))


def format_description(info, include_time_loc):
    """[type] on [date] from [time] at [location], or [type] on [date]."""
    if include_time_loc:
        return (f"{info.event_type} on {info.event_date} "
                f"from {info.event_time} at {info.event_location}")
    return f"{info.event_type} on {info.event_date}"


def _find(values, target, start):
    """Index of target in values at or after start, or None."""
    try:
        return values.index(target, start)
    except ValueError:
        return None


# =============================================================================
# CACHED LOOKUPS
# =============================================================================

def get_user_row(username, sheet, cache):
    """
    Find the row holding the given username.

    The whole username column is cached for CACHE_DURATION after the first
    read. Header rows are never matched.

    Args:
        username: username to look for (exact match)
        sheet: sheet client (see sheet_clients)
        cache: cache client (see cache_clients)

    Returns:
        1-indexed row number

    Raises:
        NotFoundError: username is not on the sheet
    """
    cached = cache.get(USERNAME_COL_CACHE_KEY)
    if cached is not None:
        logger.debug("Username column cache hit")
        usernames = json.loads(cached)
    else:
        logger.info("Username column cache miss, reading sheet")
        last_row = sheet.get_last_row()
        usernames = [row[0] for row in sheet.get_values(1, USERNAME_COL, last_row, 1)]
        cache.put(USERNAME_COL_CACHE_KEY, json.dumps(usernames), CACHE_DURATION)

    index = _find(usernames, username, HEADER_ROWS)
    if index is None:
        raise NotFoundError(username)
    return index + 1


def get_date_row_values(sheet, cache):
    """
    Get the display text of the whole date row, one entry per column.
    Cached for CACHE_DURATION after the first read.
    """
    cached = cache.get(DATE_ROW_CACHE_KEY)
    if cached is not None:
        logger.debug("Date row cache hit")
        return json.loads(cached)

    logger.info("Date row cache miss, reading sheet")
    last_col = sheet.get_last_column()
    rows = sheet.get_display_values(DATE_ROW, 1, 1, last_col)
    dates = rows[0] if rows else []
    cache.put(DATE_ROW_CACHE_KEY, json.dumps(dates), CACHE_DURATION)
    return dates


def _search_next_practice(sheet, cache, today):
    """Returns (index into the date row, date text) of the first event from today on."""
    logger.info("Trying to fetch next practice date")
    day = today or date.today()
    dates = get_date_row_values(sheet, cache)
    for _ in range(MAX_EVENT_SEARCH_DISTANCE):
        date_text = get_date_text(day)
        index = _find(dates, date_text, HEADER_COLS)
        if index is not None:
            return index, date_text
        day += timedelta(days=1)
    raise NoUpcomingEventError(MAX_EVENT_SEARCH_DISTANCE)


def find_next_practice_col(sheet, cache, today=None):
    """
    Column of the next event, searching today and the following days.
    Raises NoUpcomingEventError if none within MAX_EVENT_SEARCH_DISTANCE days.
    """
    index, _ = _search_next_practice(sheet, cache, today)
    return index + 1


def find_next_practice_date(sheet, cache, today=None):
    """
    Date text (m/d/yyyy) of the next event, searching today and the following days.
    Raises NoUpcomingEventError if none within MAX_EVENT_SEARCH_DISTANCE days.
    """
    _, date_text = _search_next_practice(sheet, cache, today)
    return date_text


def get_date_col(locator, sheet, cache, today=None):
    """
    Resolve a DateLocator to a column.

    An invalid locator means "next practice". Otherwise the locator's date
    must be in the date row. Either way the result is that column moved
    right by the locator's offset.

    Returns:
        1-indexed column number

    Raises:
        DateNotFoundError: date not in the date row (suggests the next
            practice when there is one)
        NoUpcomingEventError: no explicit date and nothing coming up
    """
    if not locator.valid:
        return find_next_practice_col(sheet, cache, today) + locator.offset

    dates = get_date_row_values(sheet, cache)
    # blank date cells are separators, never events
    index = _find(dates, locator.date, HEADER_COLS) if locator.date else None
    if index is None:
        try:
            next_practice = find_next_practice_date(sheet, cache, today)
        except NoUpcomingEventError:
            next_practice = None
        raise DateNotFoundError(locator.date, next_practice)
    return index + locator.offset + 1


def get_event_info(sheet, cache, col):
    """
    Fetch the event info block for a column.
    Cached per column for CACHE_DURATION_SHORT.
    """
    cache_key = EVENT_INFO_CACHE_KEY_PREFIX + str(col)
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug(f"Event info cache hit for column {col}")
        return EventInfo.from_json(cached)

    logger.info(f"Event info cache miss for column {col}, reading sheet")
    num_rows = LAST_INFO_ROW - FIRST_INFO_ROW + 1
    values = [row[0] for row in sheet.get_display_values(FIRST_INFO_ROW, col, num_rows, 1)]
    background = sheet.get_background(FIRST_INFO_ROW, col, num_rows, 1)

    event_info = EventInfo(
        event_type=values[DESCRIPTION_ROW - FIRST_INFO_ROW],
        event_date=values[DATE_ROW - FIRST_INFO_ROW],
        event_time=values[TIME_ROW - FIRST_INFO_ROW],
        event_location=values[LOCATION_ROW - FIRST_INFO_ROW],
        count=parse_count(values[COUNT_ROW - FIRST_INFO_ROW]),
        include_time_loc=(background or "").lower() == WHITE_COLOR,
    )
    cache.put(cache_key, event_info.to_json(), CACHE_DURATION_SHORT)
    return event_info


def describe_event(sheet, cache, col, include_time_loc=True):
    """
    Describe the event in a column:
        [event type] on [event date] from [event time] at [event location]
    or, when include_time_loc is False or the event is highlighted,
        [event type] on [event date]
    """
    event_info = get_event_info(sheet, cache, col)
    # highlighted events never show time and location
    include_time_loc = include_time_loc and event_info.include_time_loc
    event_info = replace(event_info, event_type=fix_case(event_info.event_type))
    return format_description(event_info, include_time_loc)


def lookup_event(username, locator, sheet, cache, include_time_loc=True, today=None):
    """
    Full lookup for one query: user row, event column, event info and description.

    Returns:
        EventLookup
    """
    row = get_user_row(username, sheet, cache)
    col = get_date_col(locator, sheet, cache, today)
    info = get_event_info(sheet, cache, col)
    description = describe_event(sheet, cache, col, include_time_loc)
    return EventLookup(row=row, col=col, info=info, description=description)
