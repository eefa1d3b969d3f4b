#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Reading a Ledger Step by Step

A walk through the roasted parser. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Foundation - Units, accounts and their open windows
  4-5: Transactions - Elided amounts, price annotations
  6-7: Auditing - Balance diagnostics, errors with locations
  8:   Accumulation - Extending a ledger without touching the original

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from datetime import date
from textwrap import dedent
import sys

from roasted import (
    parse, Ledger, ParsedAccount, BalanceCheck, LedgerError,
)


QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def show_source(text: str):
    for line in text.rstrip().splitlines():
        print(f"    | {line}")
    print()


def show_transactions(ledger: Ledger):
    for day, txn in ledger.transactions():
        payee = f"{txn.payee} / " if txn.payee else ""
        print(f"  {day} {txn.state.value or '~'} {payee}{txn.title}")
        for exchange in txn.exchanges:
            marker = "  (inferred)" if exchange.elided else ""
            print(f"      {ledger.account_name(exchange.account):<32}"
                  f"{ledger.format_amount(exchange.amount):>24}{marker}")


# ============================================================================
# FOUNDATION (Steps 1-3)
# ============================================================================

SETUP = dedent('''\
    unit USD
    unit EUR

    2021-10-25 open Assets:Bank:Jawir
    2021-10-25 open Assets:Cash
    2021-10-25 open Expenses:Dining
    2021-10-25 open Liabilities:Bank:CreditCard
''')


def step_01_units() -> Ledger:
    step_header(1, "Units", "Currencies must be declared before any amount uses them.")
    show_source(SETUP)
    ledger = parse(SETUP, verbose=True)
    print(f"\n  Declared currencies: {ledger.currencies.codes}")
    return ledger


def step_02_accounts(ledger: Ledger):
    step_header(2, "Accounts", "Account paths share one segment table across all kinds.")
    for account in ledger.accounts.accounts():
        resolved = ledger.txn_account(account, date(2021, 10, 25))
        print(f"  {str(account):<32} -> {resolved.kind.value:<12} {resolved.indices}")
    print(f"\n  Segment table: {ledger.accounts.segments}")


def step_03_windows(ledger: Ledger) -> Ledger:
    step_header(3, "Open windows", "An account is only usable between its open and close dates.")
    text = "2021-11-30 close Assets:Cash\n2022-01-01 open Assets:Cash\n"
    show_source(text)
    ledger = parse(text, ledger)
    cash = ParsedAccount.from_str("Assets:Cash")
    for day in (date(2021, 10, 24), date(2021, 11, 15), date(2021, 12, 15), date(2022, 1, 2)):
        state = "open" if ledger.accounts.is_open(cash, day) else "closed"
        print(f"  Assets:Cash on {day}: {state}")
    return ledger


# ============================================================================
# TRANSACTIONS (Steps 4-5)
# ============================================================================

def step_04_elision(ledger: Ledger) -> Ledger:
    step_header(4, "Elided amounts", "One posting may omit its amount; it is inferred.")
    text = dedent('''\
        2021-10-28 * "Warung" "Lunch"
            Expenses:Dining        199 USD
            Assets:Bank:Jawir
    ''')
    show_source(text)
    ledger = parse(text, ledger)
    show_transactions(ledger)
    return ledger


def step_05_prices(ledger: Ledger) -> Ledger:
    step_header(5, "Price annotations", "`@` tells the balancer how to convert an amount.")
    text = dedent('''\
        2021-10-29 ! "Bistro" "Dinner in Paris"
            Liabilities:Bank:CreditCard  -55 USD
            Expenses:Dining               50 EUR @ 1.1 USD
    ''')
    show_source(text)
    ledger = parse(text, ledger)
    show_transactions(ledger)
    return ledger


# ============================================================================
# AUDITING (Steps 6-7)
# ============================================================================

def step_06_audit(ledger: Ledger) -> Ledger:
    step_header(6, "Balance audit", "Written-out transactions load as-is; errors() audits them.")
    text = dedent('''\
        2021-10-30 * "Typo"
            Expenses:Dining        100 USD
            Assets:Bank:Jawir      -10 USD
    ''')
    show_source(text)
    ledger = parse(text, ledger)
    for day, txn, issues in ledger.errors(BalanceCheck.WITH_SUM):
        for issue in issues:
            print(f"  {day} {txn.title}: {issue.kind.value} - {issue.message}")
    return ledger


def step_07_errors(ledger: Ledger):
    step_header(7, "Errors", "Failures name the statement and keep the ledger unchanged.")
    text = dedent('''\
        2021-10-20 * "Too early"
            Expenses:Dining        5 USD
            Assets:Bank:Jawir
    ''')
    show_source(text)
    try:
        parse(text, ledger, source="october.ledger")
    except LedgerError as e:
        print(f"  {type(e).__name__}: {e}")
        for note in getattr(e, "__notes__", []):
            print(f"    {note}")


# ============================================================================
# ACCUMULATION (Step 8)
# ============================================================================

def step_08_accumulate(ledger: Ledger):
    step_header(8, "Accumulation", "parse(text, ledger) returns a new ledger.")
    more = parse('2021-11-01 custom "budget" "dining" "300"\n', ledger)
    print(f"  original days: {len(ledger.dates())}, extended days: {len(more.dates())}")
    print(f"  custom entries on 2021-11-01: {more.get_at(date(2021, 11, 1)).custom}")


def main():
    ledger = step_01_units()
    wait_for_enter()
    step_02_accounts(ledger)
    wait_for_enter()
    ledger = step_03_windows(ledger)
    wait_for_enter()
    ledger = step_04_elision(ledger)
    wait_for_enter()
    ledger = step_05_prices(ledger)
    wait_for_enter()
    ledger = step_06_audit(ledger)
    wait_for_enter()
    step_07_errors(ledger)
    wait_for_enter()
    step_08_accumulate(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - Read roasted/grammar.py for the full syntax
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
