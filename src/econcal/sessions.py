#!/usr/bin/env python3
"""
Trading session windows in UTC

Session hours follow market-open wall-clock conventions, so their UTC
boundaries move by one hour when daylight-saving time starts or ends. DST is
computed from the actual transition rules, never from fixed months.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone

from .models import SessionWindow, ensure_utc

logger = logging.getLogger(__name__)

SESSION_NAMES = ('London', 'NY AM', 'NY PM', 'Asia')

# (start_hour, end_hour) in UTC: DST values first, standard-time values second
SESSION_HOURS = {
    'London': ((7, 12), (8, 13)),
    'NY AM': ((12, 17), (13, 18)),
    'NY PM': ((17, 21), (18, 22)),
    'Asia': ((22, 7), (23, 8)),
}

# Sessions whose start is anchored to the previous calendar day
OVERNIGHT_SESSIONS = ('Asia',)

LEGACY_SESSION_NAMES = {
    'london': 'London',
    'new-york': 'NY AM',
    'tokyo': 'Asia',
    'sydney': 'Asia',
}

LEGACY_SESSION_MAPPINGS = {
    'london': ('London',),
    'new-york': ('NY AM', 'NY PM'),
    'tokyo': ('Asia',),
    'sydney': ('Asia',),
}

END_OF_DAY = time(23, 59, 59)


def last_sunday(year, month):
    """Day-of-month of the last Sunday in the given month"""
    last_day = calendar.monthrange(year, month)[1]
    return last_day - (date(year, month, last_day).weekday() - calendar.SUNDAY) % 7


def nth_sunday(year, month, n):
    """Day-of-month of the n-th (1-based) Sunday in the given month"""
    first_sunday = 1 + (calendar.SUNDAY - date(year, month, 1).weekday()) % 7
    return first_sunday + (n - 1) * 7


def is_daylight_saving_time(day, region='EU'):
    """
    Check whether `day` falls inside daylight-saving time.

    EU/UK: last Sunday of March (inclusive) to last Sunday of October (exclusive).
    US: second Sunday of March (inclusive) to first Sunday of November (exclusive).
    """
    if isinstance(day, datetime):
        day = day.date()

    if region == 'EU':
        start = date(day.year, 3, last_sunday(day.year, 3))
        end = date(day.year, 10, last_sunday(day.year, 10))
    elif region == 'US':
        start = date(day.year, 3, nth_sunday(day.year, 3, 2))
        end = date(day.year, 11, nth_sunday(day.year, 11, 1))
    else:
        raise ValueError(f"Unknown DST region '{region}' (expected 'EU' or 'US')")

    return start <= day < end


def normalize_session_name(session):
    """Return the canonical session name, or None when the name is not recognized"""
    if not session:
        return None
    name = str(session).strip().lower()
    for canonical in SESSION_NAMES:
        if canonical.lower() == name:
            return canonical
    return LEGACY_SESSION_NAMES.get(name)


def session_mappings(session):
    """Canonical sessions covered by a (possibly legacy) session name"""
    legacy = LEGACY_SESSION_MAPPINGS.get(str(session or '').strip().lower())
    if legacy:
        return list(legacy)
    canonical = normalize_session_name(session)
    return [canonical] if canonical else []


def full_day_window(calendar_date):
    return SessionWindow(
        start=datetime.combine(calendar_date, time(0, 0), tzinfo=timezone.utc),
        end=datetime.combine(calendar_date, END_OF_DAY, tzinfo=timezone.utc),
    )


def session_window(session, calendar_date):
    """
    Compute the UTC window of a trading session on a calendar date.

    Args:
        session: Session name ("London", "NY AM", "NY PM", "Asia" or a legacy name)
        calendar_date: The trade's calendar day

    Returns:
        SessionWindow: closed [start, end] interval. Asia starts on the day
        before `calendar_date`. Unrecognized names get the full day.
    """
    if isinstance(calendar_date, datetime):
        calendar_date = calendar_date.date()

    canonical = normalize_session_name(session)
    if canonical is None:
        logger.warning(f"Unrecognized session '{session}', using the full day {calendar_date}")
        return full_day_window(calendar_date)

    dst_hours, standard_hours = SESSION_HOURS[canonical]
    start_hour, end_hour = dst_hours if is_daylight_saving_time(calendar_date, 'EU') else standard_hours

    start_date = calendar_date - timedelta(days=1) if canonical in OVERNIGHT_SESSIONS else calendar_date
    window = SessionWindow(
        start=datetime.combine(start_date, time(start_hour), tzinfo=timezone.utc),
        end=datetime.combine(calendar_date, time(end_hour), tzinfo=timezone.utc),
    )
    logger.debug(f"{canonical} window for {calendar_date}: {window.start.isoformat()} -> {window.end.isoformat()}")
    return window


def is_in_session(instant, session, calendar_date):
    """Check whether a UTC instant falls inside a session's window on a day"""
    return session_window(session, calendar_date).contains(ensure_utc(instant))


window = session_window
