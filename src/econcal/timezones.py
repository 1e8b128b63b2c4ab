#!/usr/bin/env python3
"""
Source timezone detection and local-to-UTC time conversion

The calendar page renders every time in the viewer's selected zone. The
selected zone is read once per page from the timezone selector control and
then threaded explicitly through every conversion.
"""

import re
import logging
from datetime import datetime

from bs4 import BeautifulSoup

from .models import TimezoneDetection

logger = logging.getLogger(__name__)

MAX_OFFSET_HOURS = 14
MINUTES_PER_DAY = 24 * 60

TIMEZONE_CONTROL_PATTERN = re.compile(r'time[\s_-]?zone', re.IGNORECASE)
GMT_LABEL_PATTERN = re.compile(r'(?:GMT|UTC)\s*([+-])\s*(\d{1,2})(?::?(\d{2}))?', re.IGNORECASE)
BARE_GMT_PATTERN = re.compile(r'^\(?\s*(?:GMT|UTC)\s*\)?', re.IGNORECASE)
NUMERIC_OFFSET_PATTERN = re.compile(r'^[+-]?\d{1,2}(?:\.\d+)?$')
CLOCK_OFFSET_PATTERN = re.compile(r'^([+-])?(\d{1,2}):(\d{2})$')

TIME_12H_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::[0-5]\d)?\s*([ap])\.?m\.?$', re.IGNORECASE)
TIME_24H_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::[0-5]\d)?$')


def parse_offset_string(offset_str):
    """
    Convert a textual UTC offset into float hours.

    Accepts "5.5", "-3", "+05:30", "GMT+05:30", "(UTC-03:30) Newfoundland" and
    a bare "GMT"/"UTC". Returns None when the text carries no usable offset.
    """
    if offset_str is None:
        return None
    text = str(offset_str).strip()
    if not text:
        return None

    offset = None
    if NUMERIC_OFFSET_PATTERN.match(text):
        offset = float(text)
    else:
        clock = CLOCK_OFFSET_PATTERN.match(text)
        label = GMT_LABEL_PATTERN.search(text)
        if clock:
            sign = -1 if clock.group(1) == '-' else 1
            offset = sign * (int(clock.group(2)) + int(clock.group(3)) / 60.0)
        elif label:
            sign = 1 if label.group(1) == '+' else -1
            minutes = int(label.group(3)) if label.group(3) else 0
            offset = sign * (int(label.group(2)) + minutes / 60.0)
        elif BARE_GMT_PATTERN.match(text):
            offset = 0.0

    if offset is None or abs(offset) > MAX_OFFSET_HOURS:
        return None
    return offset


def _selected_option(select):
    for option in select.find_all('option'):
        if option.has_attr('selected'):
            return option
    return None


def _offset_from_selector(soup):
    """Return (offset, source) from a <select> timezone control, or (None, None)"""
    for select in soup.find_all('select'):
        control_name = " ".join(str(select.get(attr, '')) for attr in ('id', 'name', 'class'))
        if not TIMEZONE_CONTROL_PATTERN.search(control_name):
            continue

        option = _selected_option(select)
        if option is None:
            logger.debug(f"Timezone selector '{control_name.strip()}' has no selected option")
            continue

        offset = parse_offset_string(option.get('value'))
        if offset is None:
            offset = parse_offset_string(option.get_text(" ", strip=True))
        if offset is not None:
            return offset, f"selector:{select.get('id') or select.get('name') or 'select'}"

        logger.debug(f"Selected timezone option is not an offset: {option!r}")

    return None, None


def _offset_from_hidden_input(soup):
    """Fallback: <input type="hidden" name="timezone" value="5.5">"""
    for tz_input in soup.find_all('input', attrs={'name': TIMEZONE_CONTROL_PATTERN}):
        offset = parse_offset_string(tz_input.get('value'))
        if offset is not None:
            return offset, f"input:{tz_input.get('name')}"
    return None, None


def detect_offset(page_markup):
    """
    Detect the timezone offset the calendar page was rendered in.

    Args:
        page_markup: Raw HTML text or an already parsed BeautifulSoup document

    Returns:
        TimezoneDetection: offset in (possibly fractional) hours. When no
        selector or no selected value is found, the offset defaults to 0 (UTC)
        and `detected` is False.
    """
    soup = page_markup if isinstance(page_markup, BeautifulSoup) else BeautifulSoup(page_markup or '', 'html.parser')

    for method in (_offset_from_selector, _offset_from_hidden_input):
        offset, source = method(soup)
        if offset is not None:
            logger.info(f"Detected source timezone UTC{offset:+g} (via {source})")
            return TimezoneDetection(offset_hours=offset, detected=True, source=source)

    logger.warning("Could not detect the page timezone, assuming UTC")
    return TimezoneDetection(offset_hours=0.0, detected=False, source='default')


def parse_local_time(time_str):
    """
    Parse "1:00 PM", "1:00pm", "13:00" or "13:00:00" into (hour, minute); seconds are dropped.

    Returns None for anything that is not a valid wall-clock time
    ("All Day", "Tentative", "25:00", ...).
    """
    if not time_str:
        return None
    cleaned = " ".join(str(time_str).split())

    match = TIME_12H_PATTERN.match(cleaned)
    if match:
        try:
            parsed = datetime.strptime(f"{match.group(1)}:{match.group(2)}{match.group(3).lower()}m", "%I:%M%p")
        except ValueError:
            return None
        return parsed.hour, parsed.minute

    match = TIME_24H_PATTERN.match(cleaned)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour < 24 and minute < 60:
            return hour, minute

    return None


def to_utc(local_time_str, offset_hours):
    """
    Convert a local wall-clock time to UTC.

    Args:
        local_time_str: Time like "1:00 PM" or "13:00"
        offset_hours: Source zone offset from UTC in hours (5.5 for GMT+05:30)

    Returns:
        tuple: (utc_time, day_offset) where utc_time is 24-hour "H:MM" and
        day_offset is -1, 0 or +1 to apply to the row's date. None when the
        time string is malformed.

    Examples:
        >>> to_utc("0:30", -5)
        ('5:30', 0)
        >>> to_utc("10:30 PM", -5)
        ('3:30', 1)
        >>> to_utc("1:00 AM", 2)
        ('23:00', -1)
    """
    parsed = parse_local_time(local_time_str)
    if parsed is None:
        return None

    hour, minute = parsed
    total = hour * 60 + minute - int(round(offset_hours * 60))
    day_offset, minutes = divmod(total, MINUTES_PER_DAY)
    return f"{minutes // 60}:{minutes % 60:02d}", day_offset
