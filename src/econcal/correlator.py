#!/usr/bin/env python3
"""
Trade / economic event correlation

A trade's relevant news is every event whose UTC timestamp falls inside the
trade's session window. Correlation is a pure function of (trade date,
session, candidate pool): re-running a migration produces identical lists.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .models import Event, SessionWindow, TradeEconomicEvent, TradeSessionContext
from .sessions import full_day_window, session_window

logger = logging.getLogger(__name__)

CORRELATION_IMPACTS = ('High', 'Medium')

EventSource = Callable[[SessionWindow, Optional[Sequence[str]], Sequence[str]], Iterable[Event]]


def trade_window(trade_date, session=None) -> SessionWindow:
    """Session window for a trade; the whole UTC day when no session is recorded"""
    if not session:
        return full_day_window(trade_date)
    return session_window(session, trade_date)


def correlate(
    trade_date,
    session: Optional[str],
    candidate_events: Iterable[Event],
    impacts: Sequence[str] = CORRELATION_IMPACTS,
    currencies: Optional[Sequence[str]] = None,
) -> List[TradeEconomicEvent]:
    """
    Select the events that happened during a trade's session.

    Args:
        trade_date: Calendar day of the trade
        session: Session label, or None for the full day
        candidate_events: Pool of Event records (usually pre-filtered by storage)
        impacts: Impact levels that count as relevant
        currencies: Relevant currencies; None accepts every currency

    Returns:
        List of TradeEconomicEvent ordered by ascending time_utc (ties by event id)
    """
    window = trade_window(trade_date, session)

    matched = [
        event for event in candidate_events
        if window.contains(event.time_utc)
        and event.impact in impacts
        and (currencies is None or event.currency in currencies)
    ]
    matched.sort(key=lambda event: (event.time_utc, event.id))

    return [TradeEconomicEvent.from_event(event) for event in matched]


@dataclass
class CorrelationBatchResult:
    """Per-trade correlation output of one migration run"""

    results: Dict[str, List[TradeEconomicEvent]] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def total_events(self) -> int:
        return sum(len(events) for events in self.results.values())

    def summary(self) -> str:
        return (
            f"{len(self.results)} trades correlated ({self.total_events} events), "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed"
        )


def correlate_trades(
    trades: Iterable[TradeSessionContext],
    event_source: EventSource,
    impacts: Sequence[str] = CORRELATION_IMPACTS,
    currencies: Optional[Sequence[str]] = None,
    skip_without_session: bool = True,
) -> CorrelationBatchResult:
    """
    Correlate a batch of trades against an event store.

    `event_source(window, currencies, impacts)` supplies the candidate pool for
    each trade's window. A failure on one trade is logged and recorded in
    `failed`; the remaining trades are still processed.
    """
    batch = CorrelationBatchResult()

    for trade in trades:
        if not trade.session and skip_without_session:
            logger.debug(f"Trade {trade.trade_id}: no session, skipping")
            batch.skipped.append(trade.trade_id)
            continue

        try:
            window = trade_window(trade.trade_date, trade.session)
            candidates = event_source(window, currencies, impacts)
            events = correlate(trade.trade_date, trade.session, candidates, impacts, currencies)
            batch.results[trade.trade_id] = events
            logger.debug(f"Trade {trade.trade_id} ({trade.trade_date}, {trade.session}): {len(events)} events")

        except Exception as e:
            logger.error(f"Error correlating trade {trade.trade_id}: {e}")
            batch.failed.append(trade.trade_id)
            continue

    logger.info(f"Correlation complete: {batch.summary()}")
    return batch
