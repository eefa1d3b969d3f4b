"""
pricing.py - Date-scoped price quotes

Collects the quotes of `price` statements:

    2021-10-28 price EUR 1.1 USD

and answers "what was one EUR worth in USD on a given date" with the most
recent quote at or before that date. Quotes are reference data; the
balancer never uses them (transactions convert through their own `@`
annotations).
"""

from __future__ import annotations
from bisect import bisect_right, insort
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple


class PriceHistory:
    """
    Price quotes per (currency, target currency) pair, kept in date order.

    Currencies are CurrencyStore indices. Several quotes on the same date
    are allowed; the one added last wins.

    Example:
        history = PriceHistory()
        history.add_price(eur, usd, date(2021, 10, 28), Decimal("1.1"))
        history.get_price(eur, usd, date(2021, 11, 1))   # Decimal("1.1")
        history.get_price(eur, usd, date(2021, 10, 27))  # None
    """

    def __init__(self):
        self.price_history: Dict[Tuple[int, int], List[Tuple[date, Decimal]]] = {}

    def __len__(self) -> int:
        return sum(len(history) for history in self.price_history.values())

    def add_price(self, currency: int, target: int, on: date, price: Decimal) -> None:
        """
        Record that one unit of `currency` was worth `price` units of `target` on `on`.
        """
        history = self.price_history.setdefault((currency, target), [])
        # insort is right-biased: same-date quotes stay in insertion order.
        insort(history, (on, price), key=lambda x: x[0])

    def get_price(self, currency: int, target: int, on: date) -> Optional[Decimal]:
        """
        Most recent quote at or before `on`, or None if there is none.

        A currency is always worth exactly 1 of itself.
        """
        if currency == target:
            return Decimal(1)

        history = self.price_history.get((currency, target))
        if not history:
            return None

        # Rightmost entry with date <= on
        idx = bisect_right(history, on, key=lambda x: x[0])
        if idx == 0:
            return None
        return history[idx - 1][1]

    def pairs(self) -> List[Tuple[int, int]]:
        return sorted(self.price_history)

    def get_all_dates(self, currency: Optional[int] = None, target: Optional[int] = None) -> List[date]:
        """
        Dates with at least one quote, optionally restricted to a currency
        and/or target currency.
        """
        dates = set()
        for (quoted, quoted_in), history in self.price_history.items():
            if currency is not None and quoted != currency:
                continue
            if target is not None and quoted_in != target:
                continue
            dates.update(d for d, _ in history)
        return sorted(dates)

    def clone(self) -> PriceHistory:
        cloned = PriceHistory()
        cloned.price_history = {pair: list(history) for pair, history in self.price_history.items()}
        return cloned

    def __repr__(self) -> str:
        return f"PriceHistory({len(self.price_history)} pairs, {len(self)} quotes)"
