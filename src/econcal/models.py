"""Data models shared by extraction, storage and trade correlation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

IMPACT_LEVELS = ('High', 'Medium', 'Low', 'None')
FLAG_URL_TEMPLATE = "https://flagcdn.com/{size}/{code}.png"


def ensure_utc(instant: datetime) -> datetime:
    """Return `instant` as an aware UTC datetime (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def parse_utc(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(text))


def flag_url(flag_code: str, size: str = 'w160') -> str:
    if not flag_code:
        return ''
    return FLAG_URL_TEMPLATE.format(size=size, code=flag_code.lower())


@dataclass(frozen=True)
class Event:
    """A single canonical economic-calendar entry."""

    id: str
    currency: str
    event: str
    impact: str
    time_utc: datetime
    actual: str = ''
    forecast: str = ''
    previous: str = ''
    actual_result_type: str = ''
    country: str = ''
    flag_code: str = ''

    def __post_init__(self):
        if not self.event or not self.event.strip():
            raise ValueError("Event title must not be empty")
        if not self.currency:
            raise ValueError(f"Event '{self.event}' has no currency")
        if not isinstance(self.time_utc, datetime):
            raise ValueError(f"Event '{self.event}' has no UTC timestamp")
        if self.impact not in IMPACT_LEVELS:
            raise ValueError(f"Unknown impact level '{self.impact}'")
        object.__setattr__(self, 'time_utc', ensure_utc(self.time_utc))

    @property
    def time_utc_iso(self) -> str:
        return self.time_utc.isoformat()

    @property
    def event_date(self) -> str:
        return self.time_utc.date().isoformat()

    @property
    def flag_url(self) -> str:
        return flag_url(self.flag_code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'currency': self.currency,
            'event': self.event,
            'impact': self.impact,
            'time_utc': self.time_utc_iso,
            'event_date': self.event_date,
            'actual': self.actual,
            'forecast': self.forecast,
            'previous': self.previous,
            'actual_result_type': self.actual_result_type,
            'country': self.country,
            'flag_code': self.flag_code,
            'flag_url': self.flag_url,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Event":
        """Build an Event from a storage row (None columns become empty strings)."""
        return cls(
            id=row['id'],
            currency=row['currency'],
            event=row['event'],
            impact=row.get('impact') or 'None',
            time_utc=parse_utc(row['time_utc']),
            actual=row.get('actual') or '',
            forecast=row.get('forecast') or '',
            previous=row.get('previous') or '',
            actual_result_type=row.get('actual_result_type') or '',
            country=row.get('country') or '',
            flag_code=row.get('flag_code') or '',
        )


@dataclass(frozen=True)
class TradeEconomicEvent:
    """Simplified copy of an Event attached to a trade record."""

    name: str
    flag_code: str
    impact: str
    currency: str
    time_utc: str

    @classmethod
    def from_event(cls, event: Event) -> "TradeEconomicEvent":
        return cls(
            name=event.event,
            flag_code=event.flag_code,
            impact=event.impact,
            currency=event.currency,
            time_utc=event.time_utc_iso,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            'name': self.name,
            'flag_code': self.flag_code,
            'impact': self.impact,
            'currency': self.currency,
            'time_utc': self.time_utc,
        }


@dataclass(frozen=True)
class SessionWindow:
    """Closed UTC interval [start, end]."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) <= self.end


@dataclass(frozen=True)
class TradeSessionContext:
    """A trade's calendar day and session label, as supplied by the trade store."""

    trade_id: str
    trade_date: date
    session: Optional[str] = None


@dataclass(frozen=True)
class TimezoneDetection:
    """Offset the source page was rendered in; `detected` is False when defaulted to UTC."""

    offset_hours: float
    detected: bool
    source: str = ''


@dataclass
class ExtractionResult:
    """Outcome of one extraction pass over a calendar page."""

    events: List[Event] = field(default_factory=list)
    timezone: Optional[TimezoneDetection] = None
    rows_scanned: int = 0
    rows_matched: int = 0
    rows_skipped: int = 0
    row_errors: int = 0

    @property
    def no_data(self) -> bool:
        return not self.events

    def summary(self) -> str:
        return (
            f"{len(self.events)} events from {self.rows_matched} candidate rows "
            f"({self.rows_scanned} scanned, {self.rows_skipped} skipped, {self.row_errors} errors)"
        )
