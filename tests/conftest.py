"""
conftest.py - Shared pytest fixtures for roasted tests

Provides common fixtures used across unit, conformance and functional tests:
- Ledger source snippets (the lunch example, a multi-currency book)
- Parsed ledgers
- Bare registries (AccountStore, CurrencyStore)
- An in-memory file reader for include tests
"""

import pytest
from datetime import date
from pathlib import Path
from textwrap import dedent
from typing import Dict

from roasted import (
    Ledger, AccountStore, CurrencyStore, ParsedAccount,
    parse,
)


# =============================================================================
# SOURCE SNIPPETS
# =============================================================================

LUNCH_LEDGER = dedent('''\
    unit USD

    2021-10-25 open Assets:Bank:Jawir
    2021-10-25 open Expenses:Dining

    2021-10-28 * "Warung" "Lunch"
        Expenses:Dining        199 USD
        Assets:Bank:Jawir
''')


TRAVEL_LEDGER = dedent('''\
    option "title" "Travel"
    unit USD
    unit EUR

    2021-01-01 open Assets:Bank:Checking
    2021-01-01 open Assets:Cash:Wallet
    2021-01-01 open Expenses:Travel
    2021-01-01 open Equity:Opening

    2021-01-01 pad Assets:Bank:Checking Equity:Opening
    2021-01-02 balance Assets:Bank:Checking 1000 USD
    2021-01-02 price EUR 1.1 USD

    ; exchange at the airport
    2021-01-03 * "Airport" "Buy euros"
        Assets:Bank:Checking   -110 USD
        Assets:Cash:Wallet      100 EUR @ 1.1 USD

    2021-01-04 ! "Dinner"
        Expenses:Travel          45 EUR  ; tip included
        Assets:Cash:Wallet

    2021-01-05 custom "budget" "travel" "500"
''')


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def lunch_text() -> str:
    return LUNCH_LEDGER


@pytest.fixture
def lunch_ledger() -> Ledger:
    """The lunch example: one elided transaction in USD."""
    return parse(LUNCH_LEDGER)


@pytest.fixture
def travel_text() -> str:
    return TRAVEL_LEDGER


@pytest.fixture
def travel_ledger() -> Ledger:
    """Two currencies, pad, balance, price, custom and two transactions."""
    return parse(TRAVEL_LEDGER)


@pytest.fixture
def store() -> AccountStore:
    return AccountStore()


@pytest.fixture
def currencies() -> CurrencyStore:
    """USD=0, EUR=1, IDR=2."""
    currencies = CurrencyStore()
    for code in ("USD", "EUR", "IDR"):
        currencies.declare(code)
    return currencies


@pytest.fixture
def bank() -> ParsedAccount:
    return ParsedAccount.from_str("Assets:Bank:Jawir")


@pytest.fixture
def oct25() -> date:
    return date(2021, 10, 25)


class MemoryReader:
    """Serves include files from a dict and records every read."""

    def __init__(self, files: Dict[str, str]):
        self.files = {Path(name).resolve(): dedent(text) for name, text in files.items()}
        self.reads = []

    def __call__(self, path: Path) -> str:
        self.reads.append(path)
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(2, "No such file or directory", str(path)) from None


@pytest.fixture
def memory_reader():
    """Factory: memory_reader({"/books/main.ledger": "..."})."""
    return MemoryReader
