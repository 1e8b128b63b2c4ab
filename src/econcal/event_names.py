"""
Event title normalization.

The calendar's description cell does not cleanly separate the title from the
countdown widget, the currency badge and the impact label, so raw titles
arrive as e.g. "days EUR Inflation Rate MoM (Jun". `clean()` runs an ordered
list of rewrite steps over the raw text. Each step is a pure str -> str
function; new artifact patterns are handled by appending a step.
"""

import re
from functools import partial

from .config import DEFAULT_CURRENCIES

MIN_TITLE_LENGTH = 4
MAX_PASSES = 4

IMPACT_WORDS = r'(?:High|Medium|Low)'
EDGE_PUNCTUATION = ' \t-–—:;,|'

COUNTDOWN_PATTERNS = (
    re.compile(r'\b\d+\s*h\s*\d+\s*min\b', re.IGNORECASE),
    re.compile(r'\b\d+\s*min\b', re.IGNORECASE),
    re.compile(r'\b\d+\s*h\b', re.IGNORECASE),
)
LEADING_DAYS = re.compile(r'^(?:days\b\s*)+', re.IGNORECASE)
LEADING_IMPACT = re.compile(rf'^(?:{IMPACT_WORDS}\s+)+', re.IGNORECASE)
TRAILING_IMPACT = re.compile(rf'(?:\s+{IMPACT_WORDS})+$', re.IGNORECASE)
LEADING_MIN = re.compile(r'^(?:min\b\s*)+', re.IGNORECASE)


def _squash(text):
    return " ".join(text.split())


def currency_pattern(currencies=DEFAULT_CURRENCIES):
    return re.compile(r'\b(?:' + '|'.join(re.escape(c) for c in currencies) + r')\b')


_DEFAULT_CURRENCY_PATTERN = currency_pattern()


def strip_currency_codes(text, pattern=_DEFAULT_CURRENCY_PATTERN):
    """Currency badge text leaks into the title cell ("EUR Inflation Rate")."""
    return _squash(pattern.sub(' ', text))


def strip_countdown(text):
    """Time-remaining widget text: "4h 5min", "35 min", "2h", and a leading "days"."""
    for pattern in COUNTDOWN_PATTERNS:
        text = pattern.sub(' ', text)
    return LEADING_DAYS.sub('', _squash(text))


def strip_impact_words(text):
    """Impact label rendered next to the title instead of in its own cell."""
    text = LEADING_IMPACT.sub('', text)
    return TRAILING_IMPACT.sub('', text)


def strip_leading_min(text):
    """Cell misalignment leaves the countdown's "min" in front of the title."""
    return LEADING_MIN.sub('', text)


def balance_parentheses(text):
    """
    Repair parentheses split off by the cell layout.

    Unmatched ")" are dropped. An unmatched "(" followed by content gets its
    ")" appended ("CPI (Jun" -> "CPI (Jun)"); a dangling "(" with nothing
    after it is dropped together with the rest of the string.
    """
    chars = []
    open_positions = []
    for ch in text:
        if ch == '(':
            open_positions.append(len(chars))
        elif ch == ')':
            if not open_positions:
                continue
            open_positions.pop()
        chars.append(ch)

    result = "".join(chars)
    closers = 0
    for position in reversed(open_positions):
        if result[position + 1:].strip():
            closers += 1
        else:
            result = result[:position]
    return result.rstrip() + ')' * closers


def tidy(text):
    """Collapse whitespace, trim stray separators and capitalize."""
    text = _squash(text).strip(EDGE_PUNCTUATION)
    if text:
        text = text[0].upper() + text[1:]
    return text


def build_steps(currencies=None):
    """Ordered rewrite steps; `currencies` overrides the recognized currency set."""
    strip_currencies = strip_currency_codes
    if currencies:
        strip_currencies = partial(strip_currency_codes, pattern=currency_pattern(currencies))
    return (
        strip_currencies,
        strip_countdown,
        strip_impact_words,
        strip_leading_min,
        balance_parentheses,
        tidy,
    )


REWRITE_STEPS = build_steps()


def clean(raw_title, currencies=None):
    """
    Clean raw title text into a canonical event title.

    The step list is re-applied until the text stops changing (at most
    MAX_PASSES times) so that clean(clean(x)) == clean(x) even when one step
    exposes an artifact an earlier step handles.
    """
    if not raw_title:
        return ''

    steps = build_steps(currencies) if currencies else REWRITE_STEPS
    text = _squash(str(raw_title))
    for _ in range(MAX_PASSES):
        cleaned = text
        for step in steps:
            cleaned = step(cleaned)
        if cleaned == text:
            break
        text = cleaned
    return text


def is_usable(title):
    """Titles of three characters or fewer do not identify an event."""
    return bool(title) and len(title) >= MIN_TITLE_LENGTH
