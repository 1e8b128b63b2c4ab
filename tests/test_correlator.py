#!/usr/bin/env python3
"""
Trade / event correlation tests

- Window filtering (inclusive bounds, full-day fallback, Asia overnight)
- Impact and currency relevance filters
- Deterministic ordering
- Batch correlation with per-trade failure isolation
"""

import unittest
import sys
import os
from unittest.mock import Mock
from datetime import date, datetime, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from econcal.correlator import CorrelationBatchResult, correlate, correlate_trades
from econcal.identity import make_id
from econcal.models import Event, SessionWindow, TradeEconomicEvent, TradeSessionContext

TRADE_DAY = date(2025, 6, 17)


def make_event(title, currency, impact, *when, flag_code=""):
    time_utc = datetime(*when, tzinfo=timezone.utc)
    return Event(
        id=make_id(currency, title, time_utc, impact),
        currency=currency,
        event=title,
        impact=impact,
        time_utc=time_utc,
        flag_code=flag_code,
    )


POOL = [
    make_event("Asia Overnight Data", "JPY", "High", 2025, 6, 16, 22, 30, flag_code="jp"),
    make_event("Early Release", "EUR", "High", 2025, 6, 17, 6, 59),
    make_event("London Open Data", "GBP", "High", 2025, 6, 17, 7, 0, flag_code="gb"),
    make_event("ZEW Economic Sentiment", "EUR", "Medium", 2025, 6, 17, 9, 30, flag_code="eu"),
    make_event("Minor Survey", "USD", "Low", 2025, 6, 17, 9, 30),
    make_event("Retail Sales m/m", "USD", "High", 2025, 6, 17, 12, 0, flag_code="us"),
    make_event("Late Release", "USD", "High", 2025, 6, 17, 12, 1),
    make_event("Next Day Data", "USD", "High", 2025, 6, 18, 0, 0),
]


class TestCorrelate(unittest.TestCase):
    """Single-trade correlation"""

    def test_london_session(self):
        events = correlate(TRADE_DAY, "London", POOL)

        self.assertEqual(
            [e.name for e in events],
            ["London Open Data", "ZEW Economic Sentiment", "Retail Sales m/m"]
        )

    def test_projection(self):
        events = correlate(TRADE_DAY, "London", POOL)

        self.assertIsInstance(events[0], TradeEconomicEvent)
        self.assertEqual(events[0].to_dict(), {
            'name': "London Open Data",
            'flag_code': "gb",
            'impact': "High",
            'currency': "GBP",
            'time_utc': "2025-06-17T07:00:00+00:00",
        })

    def test_deterministic_regardless_of_pool_order(self):
        first = correlate(TRADE_DAY, "London", POOL)
        second = correlate(TRADE_DAY, "London", list(reversed(POOL)))

        self.assertEqual(first, second)
        self.assertEqual(first, correlate(TRADE_DAY, "London", POOL))

    def test_simultaneous_events_ordered_by_id(self):
        a = make_event("Trade Balance", "EUR", "High", 2025, 6, 17, 9, 0)
        b = make_event("Current Account", "EUR", "High", 2025, 6, 17, 9, 0)
        events = correlate(TRADE_DAY, "London", [a, b])
        expected = [e.event for e in sorted([a, b], key=lambda e: e.id)]

        self.assertEqual([e.name for e in events], expected)

    def test_no_session_means_full_day(self):
        events = correlate(TRADE_DAY, None, POOL)

        self.assertEqual(
            [e.name for e in events],
            ["Early Release", "London Open Data", "ZEW Economic Sentiment", "Retail Sales m/m", "Late Release"]
        )

    def test_asia_includes_previous_evening(self):
        events = correlate(TRADE_DAY, "Asia", POOL)

        self.assertEqual([e.name for e in events], ["Asia Overnight Data", "Early Release", "London Open Data"])

    def test_unrecognized_session_falls_back_to_full_day(self):
        with self.assertLogs('econcal.sessions', level='WARNING'):
            events = correlate(TRADE_DAY, "Frankfurt", POOL)

        self.assertEqual(len(events), 5)

    def test_impact_filter(self):
        events = correlate(TRADE_DAY, "London", POOL, impacts=("High", "Medium", "Low"))
        self.assertIn("Minor Survey", [e.name for e in events])

        events = correlate(TRADE_DAY, "London", POOL, impacts=("High",))
        self.assertNotIn("ZEW Economic Sentiment", [e.name for e in events])

    def test_currency_filter(self):
        events = correlate(TRADE_DAY, "London", POOL, currencies=("USD", "EUR"))
        self.assertEqual([e.name for e in events], ["ZEW Economic Sentiment", "Retail Sales m/m"])

    def test_empty_pool(self):
        self.assertEqual(correlate(TRADE_DAY, "London", []), [])


class TestCorrelateTrades(unittest.TestCase):
    """Batch correlation over trade records"""

    def pool_source(self, window, currencies, impacts):
        return [event for event in POOL if window.contains(event.time_utc)]

    def test_batch(self):
        trades = [
            TradeSessionContext("t1", TRADE_DAY, "London"),
            TradeSessionContext("t2", TRADE_DAY, "NY AM"),
            TradeSessionContext("t3", TRADE_DAY, None),
        ]
        with self.assertLogs('econcal.correlator', level='INFO'):
            batch = correlate_trades(trades, self.pool_source)

        self.assertIsInstance(batch, CorrelationBatchResult)
        self.assertEqual(len(batch.results["t1"]), 3)
        self.assertEqual([e.name for e in batch.results["t2"]], ["Retail Sales m/m", "Late Release"])
        self.assertEqual(batch.skipped, ["t3"])
        self.assertEqual(batch.failed, [])
        self.assertEqual(batch.total_events, 5)

    def test_include_trades_without_session(self):
        trades = [TradeSessionContext("t3", TRADE_DAY, None)]
        batch = correlate_trades(trades, self.pool_source, skip_without_session=False)

        self.assertEqual(len(batch.results["t3"]), 5)
        self.assertEqual(batch.skipped, [])

    def test_source_receives_window_and_filters(self):
        source = Mock(return_value=[])
        trade = TradeSessionContext("t1", TRADE_DAY, "London")
        correlate_trades([trade], source, impacts=("High",), currencies=("USD",))

        source.assert_called_once_with(
            SessionWindow(
                start=datetime(2025, 6, 17, 7, tzinfo=timezone.utc),
                end=datetime(2025, 6, 17, 12, tzinfo=timezone.utc),
            ),
            ("USD",),
            ("High",),
        )

    def test_failure_is_isolated_per_trade(self):
        def flaky_source(window, currencies, impacts):
            if window.start.date() == date(2025, 6, 18):
                raise ConnectionError("store unavailable")
            return self.pool_source(window, currencies, impacts)

        trades = [
            TradeSessionContext("t1", date(2025, 6, 18), "London"),
            TradeSessionContext("t2", TRADE_DAY, "London"),
        ]
        with self.assertLogs('econcal.correlator', level='ERROR'):
            batch = correlate_trades(trades, flaky_source)

        self.assertEqual(batch.failed, ["t1"])
        self.assertEqual(len(batch.results["t2"]), 3)
        self.assertNotIn("t1", batch.results)

    def test_rerun_is_identical(self):
        trades = [TradeSessionContext("t1", TRADE_DAY, "London")]
        first = correlate_trades(trades, self.pool_source)
        second = correlate_trades(trades, self.pool_source)

        self.assertEqual(first.results, second.results)


if __name__ == '__main__':
    unittest.main(verbosity=2)
