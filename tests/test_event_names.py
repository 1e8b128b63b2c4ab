#!/usr/bin/env python3
"""
Event title normalization tests

Covers every rewrite step on its own, the composed pipeline on titles as
they leak out of the calendar markup, and idempotence over a corpus.
"""

import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from econcal import event_names
from econcal.config import DEFAULT_CURRENCIES

LEAKY_TITLES = [
    "days EUR Inflation Rate MoM (Jun",
    "4h 5min USD Non-Farm Employment Change High",
    "35 min GBP CPI y/y",
    "min Retail Sales m/m",
    "2h JPY BoJ Policy Rate",
    "High AUD Employment Change",
    "CAD Trade Balance Medium",
    "GDP q/q)",
    "Retail Sales (",
    "CHF SNB Chairman Jordan Speaks (",
    "NZD  GDT Price Index  ",
    "fed chair powell speaks",
    "USD Core PCE Price Index m/m (May",
    "EUR German ZEW Economic Sentiment (Jul) Low",
    "Flash Manufacturing PMI ((Jun",
    "- Unemployment Claims -",
]


class TestRewriteSteps(unittest.TestCase):
    """Each rewrite step in isolation"""

    def test_strip_currency_codes(self):
        self.assertEqual(event_names.strip_currency_codes("EUR Inflation Rate"), "Inflation Rate")
        self.assertEqual(event_names.strip_currency_codes("Inflation USD Rate"), "Inflation Rate")
        # Embedded in a longer word is not a currency token
        self.assertEqual(event_names.strip_currency_codes("EURO Summit"), "EURO Summit")

    def test_strip_countdown(self):
        self.assertEqual(event_names.strip_countdown("4h 5min CPI"), "CPI")
        self.assertEqual(event_names.strip_countdown("35 min CPI"), "CPI")
        self.assertEqual(event_names.strip_countdown("2h CPI"), "CPI")
        self.assertEqual(event_names.strip_countdown("days CPI"), "CPI")

    def test_strip_impact_words(self):
        self.assertEqual(event_names.strip_impact_words("High CPI"), "CPI")
        self.assertEqual(event_names.strip_impact_words("CPI Medium"), "CPI")
        self.assertEqual(event_names.strip_impact_words("Cash Flow"), "Cash Flow")

    def test_strip_leading_min(self):
        self.assertEqual(event_names.strip_leading_min("min Retail Sales"), "Retail Sales")
        self.assertEqual(event_names.strip_leading_min("Minutes of Meeting"), "Minutes of Meeting")

    def test_balance_parentheses(self):
        self.assertEqual(event_names.balance_parentheses("CPI (Jun"), "CPI (Jun)")
        self.assertEqual(event_names.balance_parentheses("CPI (Jun)"), "CPI (Jun)")
        self.assertEqual(event_names.balance_parentheses("GDP q/q)"), "GDP q/q")
        self.assertEqual(event_names.balance_parentheses("Retail Sales ("), "Retail Sales")
        self.assertEqual(event_names.balance_parentheses("PMI ((Jun"), "PMI ((Jun))")

    def test_tidy(self):
        self.assertEqual(event_names.tidy("  retail   sales - "), "Retail sales")


class TestClean(unittest.TestCase):
    """Composed normalization pipeline"""

    def test_leaked_countdown_currency_and_month(self):
        self.assertEqual(event_names.clean("days EUR Inflation Rate MoM (Jun"), "Inflation Rate MoM (Jun)")

    def test_leaked_impact_word(self):
        self.assertEqual(
            event_names.clean("4h 5min USD Non-Farm Employment Change High"),
            "Non-Farm Employment Change"
        )

    def test_minutes_countdown(self):
        self.assertEqual(event_names.clean("35 min GBP CPI y/y"), "CPI y/y")
        self.assertEqual(event_names.clean("min Retail Sales m/m"), "Retail Sales m/m")

    def test_capitalizes_first_letter(self):
        self.assertEqual(event_names.clean("fed chair powell speaks"), "Fed chair powell speaks")

    def test_custom_currency_set(self):
        self.assertEqual(event_names.clean("XAU Gold Reserves", currencies=("XAU",)), "Gold Reserves")
        self.assertEqual(event_names.clean("XAU Gold Reserves"), "XAU Gold Reserves")

    def test_empty_and_short_titles(self):
        self.assertEqual(event_names.clean(""), "")
        self.assertEqual(event_names.clean(None), "")
        self.assertEqual(event_names.clean("USD"), "")
        self.assertFalse(event_names.is_usable(event_names.clean("35 min USD")))
        self.assertFalse(event_names.is_usable("CPI"))
        self.assertTrue(event_names.is_usable("GDP q/q"))

    def test_idempotent(self):
        for raw in LEAKY_TITLES:
            with self.subTest(raw=raw):
                once = event_names.clean(raw)
                self.assertEqual(event_names.clean(once), once)

    def test_no_currency_tokens_or_unbalanced_parentheses_remain(self):
        for raw in LEAKY_TITLES:
            for code in DEFAULT_CURRENCIES:
                with self.subTest(raw=raw, code=code):
                    cleaned = event_names.clean(f"{code} {raw} {code}")
                    self.assertNotIn(code, cleaned.split())
                    self.assertEqual(cleaned.count('('), cleaned.count(')'))
                    self.assertEqual(cleaned, cleaned.strip())


if __name__ == '__main__':
    unittest.main(verbosity=2)
