"""
Atomicity Conformance Tests

INVARIANT: parse() is all-or-nothing with respect to the ledger passed in.

    ∀ ledger L, text t:
        parse(t, L) succeeds ⟹ L is unchanged, the result holds L + t
        parse(t, L) fails    ⟹ L is unchanged

Partial application to the caller's ledger is impossible by construction.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from roasted import Ledger, LedgerError, parse

BASE = (
    'option "title" "Base"\n'
    "unit USD\n"
    "2021-10-25 open Assets:Bank:Jawir\n"
    "2021-10-25 open Expenses:Dining\n"
)

GOOD = [
    "unit EUR\n",
    "2021-10-26 open Assets:Cash\n",
    '2021-10-27 custom "note"\n',
    'option "title" "Changed"\n',
    "2021-10-28 price EUR 1.1 USD\n",
    '2021-10-28 * "Lunch"\n  Expenses:Dining 5 USD\n  Assets:Bank:Jawir\n',
    "2021-10-29 close Expenses:Dining\n",
]

BAD = [
    "2021-10-30 close Assets:Nowhere\n",
    "2021-10-30 balance Assets:Bank:Jawir 1 JPY\n",
    '2021-10-20 * "Early"\n  Expenses:Dining 5 USD\n  Assets:Bank:Jawir\n',
    '2021-10-30 * "Two"\n  Expenses:Dining 5 USD\n  Assets:Bank:Jawir\n  Assets:Cash\n',
    'include "does-not-exist.ledger"\n',
]


def snapshot(ledger: Ledger):
    return (
        list(ledger.currencies.codes),
        [str(a) for a in ledger.accounts.accounts()],
        list(ledger.accounts.segments),
        {d: book.copy() for d, book in ledger.bookings.items()},
        dict(ledger.options),
        len(ledger.prices),
    )


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(st.lists(st.sampled_from(GOOD), max_size=5), st.sampled_from(BAD))
    @settings(max_examples=50)
    def test_failed_parse_leaves_ledger_untouched(self, good, bad):
        """
        PROPERTY: However many statements applied before the failure, the
        ledger passed in is exactly as it was.
        """
        base = parse(BASE)
        before = snapshot(base)
        with pytest.raises(LedgerError):
            parse("".join(good) + bad, base, reader=_no_files)
        assert snapshot(base) == before

    @given(st.lists(st.sampled_from(GOOD[:3]), min_size=1, max_size=3))
    @settings(max_examples=20)
    def test_successful_parse_leaves_ledger_untouched(self, good):
        """
        PROPERTY: Success returns a new ledger; the argument is not modified.
        """
        base = parse(BASE)
        before = snapshot(base)
        result = parse("".join(good), base)
        assert result is not base
        assert snapshot(base) == before


def _no_files(path):
    raise FileNotFoundError(2, "No such file or directory", str(path))
