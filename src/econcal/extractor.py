#!/usr/bin/env python3
"""
Economic Calendar Table Extractor
Recovers event records from the calendar page's table markup

The calendar rows carry no semantic field labels, so every field is recovered
by a small independent helper (position plus content shape). Helpers return
"" / None instead of raising; the row extractor decides whether the
recovered subset is enough to accept the row (currency + title + impact or
indicator data).
"""

import re
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from bs4 import BeautifulSoup

from . import event_names
from .config import DEFAULT_CURRENCIES
from .identity import make_id
from .models import Event, ExtractionResult
from .timezones import detect_offset, parse_local_time, to_utc

logger = logging.getLogger(__name__)

MIN_ROW_CELLS = 4
TITLE_CELL_INDEX = 4
MAX_STITCH_CELLS = 3
STITCH_CELL_MAX_LENGTH = 10
MAX_TITLE_LENGTH = 160
MAX_NUMERIC_LENGTH = 25

# Standard row layout: date/time, countdown, flag, currency, event, impact,
# previous, consensus, actual
INDICATOR_POSITIONS = {'previous': 6, 'forecast': 7, 'actual': 8}

# Cells are flagged with a marker attribute; the value is read from the value
# attribute when present, otherwise from the cell text.
INDICATOR_MARKERS = {
    'previous': {
        'markers': ('data-previous', 'previous-value'),
        'values': ('previous-value',),
        'classes': ('previousCell',),
    },
    'forecast': {
        'markers': ('data-concensus', 'concensus', 'data-consensus', 'consensus', 'data-forecast'),
        'values': ('concensus', 'consensus'),
        'classes': ('concensusCell', 'consensusCell', 'forecastCell'),
    },
    'actual': {
        'markers': ('data-actual',),
        'values': (),
        'classes': ('actualCell',),
    },
}

IMPACT_LEVELS = ('High', 'Medium', 'Low')
HINT_TOKEN_SPLIT = re.compile(r'[\W_]+')

MONTH_NUMBERS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12
}
MONTH_TOKEN = (
    r'(Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?'
    r'|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\b\.?'
)
MONTH_DAY_PATTERN = re.compile(rf'\b{MONTH_TOKEN}\s+(\d{{1,2}})\b(?![:.]\d)(?:,?\s+(\d{{4}})\b)?', re.IGNORECASE)
DAY_MONTH_PATTERN = re.compile(rf'(?<![\d:.])\b(\d{{1,2}})\s+{MONTH_TOKEN}(?:,?\s+(\d{{4}})\b)?', re.IGNORECASE)
NUMERIC_DMY_PATTERN = re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b')
NUMERIC_YMD_PATTERN = re.compile(r'\b(\d{4})-(\d{1,2})-(\d{1,2})\b')

TIME_TOKEN_PATTERN = re.compile(r'(?<![\d:])(\d{1,2}:\d{2})(?::[0-5]\d)?(\s*[ap]\.?m\.?)?(?![\d:])', re.IGNORECASE)
TIME_SHAPED_PATTERN = re.compile(r'^\d{1,2}:\d{2}(?::\d{2})?(?:\s*[ap]\.?m\.?)?$', re.IGNORECASE)

NUMERIC_VALUE_PATTERN = re.compile(
    r'^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+|\d*\.\d+|\d{1,3}(?:,\d{3})+\.\d+|\d+\.\d+)'
    r'(?:%|[KMBT]|bps?|bp)?$',
    re.IGNORECASE
)
DASHES = str.maketrans({'–': '-', '—': '-', '−': '-'})

FLAG_CLASS_PATTERN = re.compile(r'flag-icon-([a-z]{2,3})\b')
FLAG_CODE_ALIASES = {'emu': 'eu', 'em': 'eu'}


def cell_text(cell):
    """Whitespace-normalized text of a cell (nested elements joined by spaces)"""
    if cell is None:
        return ""
    return " ".join(cell.get_text(" ", strip=True).split())


def _class_string(element):
    classes = element.get('class') or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def is_numeric_value(value):
    """
    Classify indicator text.

    Accepts plain numbers, thousands-separated numbers, percentages,
    K/M/B/T-suffixed numbers and basis points ("0.3%", "-1,250K", "25bps").
    Rejects empty placeholders, words, and time-shaped strings ("13:30").
    """
    if not value or not isinstance(value, str):
        return False
    text = value.strip().translate(DASHES)
    if not text or len(text) > MAX_NUMERIC_LENGTH:
        return False
    if TIME_SHAPED_PATTERN.match(text):
        return False
    compact = re.sub(r'\s+', '', text)
    return bool(NUMERIC_VALUE_PATTERN.match(compact))


def clean_numeric_value(value):
    """Drop thousands separators and inner whitespace; keep sign, percent and suffix"""
    if not value:
        return ""
    text = value.strip().translate(DASHES)
    return re.sub(r'[,\s]+', '', text)


def infer_year(month, day, reference_date):
    """
    Pick the year for a yearless "Jun 17" token.

    Uses the reference date's year, shifted by one when the result would lie
    more than six months away (a January page showing late-December rows).
    """
    year = reference_date.year
    try:
        candidate = date(year, month, day)
    except ValueError:
        return None
    if candidate - reference_date > timedelta(days=183):
        year -= 1
    elif reference_date - candidate > timedelta(days=183):
        year += 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_token(text, reference_date):
    """
    Find a date in text: "2025-06-17", "17/06/2025", "Jun 17" or "17 Jun".

    Returns a date or None. Month-day forms take their year from the token
    when present, otherwise from `reference_date`.
    """
    if not text:
        return None

    match = NUMERIC_YMD_PATTERN.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    match = NUMERIC_DMY_PATTERN.search(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            return None

    for pattern, month_group, day_group in ((MONTH_DAY_PATTERN, 1, 2), (DAY_MONTH_PATTERN, 2, 1)):
        match = pattern.search(text)
        if not match:
            continue
        month = MONTH_NUMBERS[match.group(month_group)[:3].lower()]
        day = int(match.group(day_group))
        if match.group(3):
            try:
                return date(int(match.group(3)), month, day)
            except ValueError:
                return None
        return infer_year(month, day, reference_date)

    return None


def has_date_token(text):
    return bool(
        NUMERIC_YMD_PATTERN.search(text)
        or NUMERIC_DMY_PATTERN.search(text)
        or MONTH_DAY_PATTERN.search(text)
        or DAY_MONTH_PATTERN.search(text)
    )


@dataclass
class RawRow:
    """One candidate table row during a single extraction pass"""

    index: int
    cells: list
    texts: list

    @property
    def text(self):
        return " ".join(t for t in self.texts if t)


class CalendarTableExtractor:
    """Extracts canonical Event records from calendar table markup"""

    def __init__(self, currencies=DEFAULT_CURRENCIES, title_index=TITLE_CELL_INDEX, verbose=False):
        self.currencies = tuple(currencies)
        self.title_index = title_index
        self.verbose = verbose
        self.currency_regex = re.compile(r'\b(' + '|'.join(re.escape(c) for c in self.currencies) + r')\b')

    # ===== ROW SELECTION =====

    def iter_candidate_rows(self, soup):
        """Yield (row_index, RawRow) for every <tr> in the document"""
        for row_idx, row in enumerate(soup.find_all('tr')):
            cells = row.find_all('td', recursive=False) or row.find_all('td')
            yield row_idx, RawRow(index=row_idx, cells=cells, texts=[cell_text(c) for c in cells])

    def is_event_row(self, raw):
        """Noise filter: enough cells, a date token and a recognized currency"""
        if len(raw.cells) < MIN_ROW_CELLS:
            return False
        text = raw.text
        return has_date_token(text) and bool(self.currency_regex.search(text))

    # ===== FIELD HELPERS =====

    def extract_date_time(self, raw, reference_date):
        """Date and time tokens from the first cell, falling back to the other cells"""
        first = raw.texts[0] if raw.texts else ""

        event_date = parse_date_token(first, reference_date)
        if event_date is None:
            event_date = parse_date_token(raw.text, reference_date)

        time_str = ""
        match = TIME_TOKEN_PATTERN.search(first)
        if match:
            time_str = match.group(1) + (match.group(2) or "")
        else:
            for text in raw.texts[1:]:
                if TIME_SHAPED_PATTERN.match(text):
                    time_str = text
                    break

        return event_date, time_str

    def extract_currency(self, raw):
        """A cell that is exactly a currency code, else the first code found in any cell"""
        for text in raw.texts:
            if text in self.currencies:
                return text
        for text in raw.texts[1:]:
            match = self.currency_regex.search(text)
            if match:
                return match.group(1)
        return ""

    def extract_impact(self, raw):
        """Impact from a cell reading High/Medium/Low, else from impact markup"""
        for text in raw.texts:
            if text.capitalize() in IMPACT_LEVELS:
                return text.capitalize()

        for cell in raw.cells:
            if cell_text(cell).lower() == 'holiday':
                return ""
            for element in [cell] + cell.find_all(True):
                hints = " ".join([_class_string(element), str(element.get('title', ''))]).lower()
                if 'impact' not in hints:
                    continue
                # whole tokens only: "impact-yellow" must not read as Low
                tokens = set(HINT_TOKEN_SPLIT.split(hints))
                for level in IMPACT_LEVELS:
                    if level.lower() in tokens:
                        return level
        return ""

    def _is_structural(self, text):
        """Text that belongs to a non-title cell"""
        return (
            text in self.currencies
            or text.capitalize() in IMPACT_LEVELS
            or bool(TIME_SHAPED_PATTERN.match(text))
            or is_numeric_value(text)
        )

    def extract_title(self, raw):
        """
        Raw title from the designated description cell.

        A title cut at an unmatched "(" is re-joined with the short fragments
        in the following cells until a ")" appears.
        """
        if self.title_index >= len(raw.texts):
            return ""

        candidate = raw.texts[self.title_index]
        if len(candidate) <= 3 or self._is_structural(candidate):
            return ""

        if candidate.count('(') > candidate.count(')'):
            stop = min(len(raw.texts), self.title_index + 1 + MAX_STITCH_CELLS)
            for text in raw.texts[self.title_index + 1:stop]:
                if not text:
                    continue
                if len(text) >= STITCH_CELL_MAX_LENGTH or self._is_structural(text):
                    break
                candidate = f"{candidate} {text}"
                if ')' in text or len(candidate) >= MAX_TITLE_LENGTH:
                    break

        return candidate

    def _indicator_from_markup(self, raw, field):
        spec = INDICATOR_MARKERS[field]
        for cell in raw.cells:
            if not any(cell.get(attr) is not None for attr in spec['markers']):
                continue
            for attr in spec['values']:
                value = cell.get(attr)
                if value and is_numeric_value(value):
                    return clean_numeric_value(value), cell
            text = cell_text(cell)
            if is_numeric_value(text):
                return clean_numeric_value(text), cell

        for cell in raw.cells:
            classes = _class_string(cell)
            if any(name in classes for name in spec['classes']):
                text = cell_text(cell)
                if is_numeric_value(text):
                    return clean_numeric_value(text), cell

        return "", None

    def extract_indicators(self, raw):
        """
        actual / forecast / previous values.

        Returns (values_dict, actual_cell). Explicit markup attributes win;
        otherwise the standard layout's fixed positions are used.
        """
        values = {}
        actual_cell = None
        for field, position in INDICATOR_POSITIONS.items():
            value, cell = self._indicator_from_markup(raw, field)
            if not value and position < len(raw.texts) and is_numeric_value(raw.texts[position]):
                value, cell = clean_numeric_value(raw.texts[position]), raw.cells[position]
            values[field] = value
            if field == 'actual' and value:
                actual_cell = cell
        return values, actual_cell

    def determine_result_type(self, cell):
        """good / bad / neutral from the actual cell's colour classes or tooltip"""
        if cell is None:
            return ""

        classes = _class_string(cell)
        if 'background-transparent-red' in classes:
            return "bad"
        if 'background-transparent-green' in classes:
            return "good"

        tooltip = cell.find(attrs={'data-content': True})
        if tooltip is not None:
            content = tooltip.get('data-content', '').lower()
            if 'worse than expected' in content:
                return "bad"
            if 'better than expected' in content:
                return "good"
            if 'as expected' in content:
                return "neutral"

        for inner in cell.find_all(class_=re.compile('background-transparent')):
            inner_classes = _class_string(inner)
            if 'background-transparent-red' in inner_classes:
                return "bad"
            if 'background-transparent-green' in inner_classes:
                return "good"

        return ""

    def extract_country_flag(self, raw):
        """Country name from an <i title=...> flag and the flag-icon-xx code"""
        country = ""
        flag_code = ""
        for cell in raw.cells:
            if country and flag_code:
                break
            icon = cell.find('i', attrs={'title': True})
            if icon is not None:
                country = country or icon.get('title', '').strip()
                match = FLAG_CLASS_PATTERN.search(_class_string(icon))
                if match:
                    flag_code = match.group(1)
            if not flag_code:
                flagged = cell.find(class_=FLAG_CLASS_PATTERN)
                if flagged is not None:
                    flag_code = FLAG_CLASS_PATTERN.search(_class_string(flagged)).group(1)
        return country, FLAG_CODE_ALIASES.get(flag_code, flag_code)

    # ===== ROW ASSEMBLY =====

    def extract_row(self, raw, offset_hours, reference_date):
        """
        Build an Event from a candidate row.

        Returns (event, None) on success or (None, reason) when the row is skipped.
        """
        event_date, local_time = self.extract_date_time(raw, reference_date)
        if event_date is None:
            return None, "no date"

        converted = to_utc(local_time, offset_hours)
        if converted is None:
            return None, f"no valid time ({local_time or 'missing'})"
        utc_time, day_offset = converted
        hour, minute = parse_local_time(utc_time)
        utc_date = event_date + timedelta(days=day_offset)
        time_utc = datetime(utc_date.year, utc_date.month, utc_date.day, hour, minute, tzinfo=timezone.utc)

        currency = self.extract_currency(raw)
        if not currency:
            return None, "no currency"

        title = event_names.clean(self.extract_title(raw), self.currencies)
        if not event_names.is_usable(title):
            return None, "no usable title"

        impact = self.extract_impact(raw)
        indicators, actual_cell = self.extract_indicators(raw)
        if not impact and not any(indicators.values()):
            return None, "no impact and no indicator data"

        impact = impact or 'None'
        country, flag_code = self.extract_country_flag(raw)
        event = Event(
            id=make_id(currency, title, time_utc, impact),
            currency=currency,
            event=title,
            impact=impact,
            time_utc=time_utc,
            actual=indicators['actual'],
            forecast=indicators['forecast'],
            previous=indicators['previous'],
            actual_result_type=self.determine_result_type(actual_cell) if indicators['actual'] else "",
            country=country,
            flag_code=flag_code,
        )
        return event, None

    def extract_report(self, markup, reference_date=None):
        """
        Extract events and pass statistics from one calendar page.

        Args:
            markup: Raw page HTML
            reference_date: Date used to infer the year of "Jun 17" tokens
                (defaults to today, UTC)

        Returns:
            ExtractionResult: `no_data` is True when nothing was extracted.
        """
        result = ExtractionResult()
        reference_date = reference_date or datetime.now(timezone.utc).date()

        soup = BeautifulSoup(markup or "", 'html.parser')

        # One offset for the whole page
        result.timezone = detect_offset(soup)
        offset_hours = result.timezone.offset_hours

        events = {}
        for row_idx, raw in self.iter_candidate_rows(soup):
            result.rows_scanned += 1
            try:
                if not self.is_event_row(raw):
                    continue
                result.rows_matched += 1

                event, reason = self.extract_row(raw, offset_hours, reference_date)
                if event is None:
                    result.rows_skipped += 1
                    logger.debug(f"Skipping row {row_idx}: {reason} | {raw.text[:80]}")
                    continue

                events[event.id] = event
                if self.verbose:
                    logger.debug(
                        f"✓ {event.event[:40]:40} | {event.time_utc_iso} | {event.currency} | "
                        f"Impact={event.impact} | A={event.actual} F={event.forecast} P={event.previous}"
                    )

            except Exception as e:
                result.row_errors += 1
                result.rows_skipped += 1
                logger.error(f"Error parsing row {row_idx}: {e}")
                continue

        result.events = list(events.values())

        if result.no_data:
            logger.warning(f"No events extracted ({result.rows_scanned} rows scanned, {result.rows_matched} candidates)")
        else:
            logger.info(f"Extracted {result.summary()}")

        return result

    def extract(self, markup, reference_date=None):
        """Extract the list of events from one calendar page"""
        return self.extract_report(markup, reference_date).events


def extract(markup, reference_date=None):
    """Extract events using the default currency set and row layout"""
    return CalendarTableExtractor().extract(markup, reference_date)
