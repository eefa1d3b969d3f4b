"""
test_transactions.py - Unit tests for the transaction balancer

Tests:
- TxnHeader / ParsedTransaction construction from tokens
- balance_transaction: elision, position of the inferred leg, failures
- Transaction.errors: structural and zero-sum diagnostics
- Transaction sums and debit/credit totals
"""

import pytest
from decimal import Decimal

from roasted import (
    Rule, parse_rule,
    AccountKind, TransactionState, BalanceCheck, IssueKind,
    ParsedAccount, TxnAccount, Amount, Price, ParsedAmount,
    TxnHeader, ParsedPosting, ParsedTransaction, Exchange, Transaction,
    balance_transaction,
    ElisionError, TooManyElidedAmounts, ConversionError, PrecisionError,
)

USD, EUR = 0, 1

DINING = TxnAccount(AccountKind.EXPENSES, (0,))
BANK = TxnAccount(AccountKind.ASSETS, (1, 2))
CASH = TxnAccount(AccountKind.ASSETS, (3,))

HEADER = TxnHeader(TransactionState.SETTLED, "Warung", "Lunch")


def usd(nominal: str) -> Amount:
    return Amount(Decimal(nominal), USD)


class TestParsedForms:
    """Tests for headers and posting lists built from tokens."""

    def test_header_with_payee(self):
        token = parse_rule(Rule.TRANSACTION, '2021-10-28 * "Warung" "Lunch"\n  Assets:A\n')
        header = TxnHeader.parse(token.child(1))
        assert header == TxnHeader(TransactionState.SETTLED, "Warung", "Lunch")

    def test_header_title_only(self):
        token = parse_rule(Rule.TRANSACTION, '2021-10-28 # "Rent"\n  Assets:A\n')
        header = TxnHeader.parse(token.child(1))
        assert header.state is TransactionState.RECURRING
        assert header.payee is None
        assert header.title == "Rent"

    def test_posting_list(self):
        token = parse_rule(
            Rule.TRANSACTION,
            '2021-10-28 * "Lunch"\n  Expenses:Dining 199 USD\n  Assets:Bank:Jawir\n',
        )
        parsed = ParsedTransaction.parse(token.child(2))
        assert parsed.accounts == (
            ParsedAccount.from_str("Expenses:Dining"),
            ParsedAccount.from_str("Assets:Bank:Jawir"),
        )
        assert parsed.exchanges == (ParsedAmount(Decimal("199"), "USD"), None)
        assert parsed.postings[1] == ParsedPosting(ParsedAccount.from_str("Assets:Bank:Jawir"))

    def test_state_symbols(self):
        assert TransactionState.from_symbol("!") is TransactionState.UNSETTLED
        with pytest.raises(ValueError):
            TransactionState.from_symbol("")


class TestBalanceTransaction:
    """Tests for building transactions and inferring elided amounts."""

    def test_lunch_example(self):
        txn = balance_transaction(HEADER, [(DINING, usd("199")), (BANK, None)])
        assert txn.state is TransactionState.SETTLED
        assert txn.payee == "Warung"
        assert txn.title == "Lunch"
        assert txn.exchanges == (
            Exchange(DINING, usd("199")),
            Exchange(BANK, usd("-199"), elided=True),
        )
        assert txn.errors(BalanceCheck.WITH_SUM) == []

    def test_elided_leg_keeps_position(self):
        txn = balance_transaction(HEADER, [(BANK, None), (DINING, usd("10")), (CASH, usd("5"))])
        assert [e.account for e in txn.exchanges] == [BANK, DINING, CASH]
        assert txn.exchanges[0].elided
        assert txn.exchanges[0].amount == usd("-15")
        assert txn.elided_exchange is txn.exchanges[0]

    def test_elision_converts_to_first_currency(self):
        txn = balance_transaction(HEADER, [
            (BANK, usd("-110")),
            (CASH, Amount(Decimal("50"), EUR, (Price(Decimal("1.1"), USD),))),
            (DINING, None),
        ])
        inferred = txn.exchanges[2].amount
        assert inferred.currency == USD
        assert inferred.nominal == Decimal("55")
        assert txn.errors() == []

    def test_two_elided(self):
        with pytest.raises(TooManyElidedAmounts, match="only one account may have its amount elided"):
            balance_transaction(HEADER, [(DINING, usd("1")), (BANK, None), (CASH, None)])

    def test_only_leg_elided(self):
        with pytest.raises(ElisionError):
            balance_transaction(HEADER, [(BANK, None)])

    def test_elision_conversion_failure(self):
        with pytest.raises(ConversionError):
            balance_transaction(HEADER, [
                (DINING, usd("10")),
                (CASH, Amount(Decimal("5"), EUR)),
                (BANK, None),
            ])

    def test_explicit_transaction_stored_without_arithmetic(self):
        txn = balance_transaction(HEADER, [(DINING, usd("10")), (BANK, Amount(Decimal("-5"), EUR))])
        assert [e.elided for e in txn.exchanges] == [False, False]
        assert txn.exchanges[1].amount.currency == EUR


class TestBalanceDiagnostics:
    """Tests for Transaction.errors and is_balanced."""

    def test_single_exchange_is_unbalanced(self):
        txn = balance_transaction(HEADER, [(DINING, usd("0"))])
        issues = txn.errors(BalanceCheck.WITHOUT_SUM)
        assert [i.kind for i in issues] == [IssueKind.UNBALANCED]

    def test_not_zero_sum(self):
        txn = balance_transaction(HEADER, [(DINING, usd("10")), (BANK, usd("-9"))])
        assert txn.errors(BalanceCheck.WITHOUT_SUM) == []
        issues = txn.errors(BalanceCheck.WITH_SUM)
        assert [i.kind for i in issues] == [IssueKind.NOT_ZERO_SUM]
        assert "1" in issues[0].message
        assert not txn.is_balanced()
        assert txn.is_balanced(BalanceCheck.WITHOUT_SUM)

    def test_unconvertible_currency_reported_as_other(self):
        txn = balance_transaction(HEADER, [(DINING, usd("10")), (BANK, Amount(Decimal("-10"), EUR))])
        issues = txn.errors(BalanceCheck.WITH_SUM)
        assert [i.kind for i in issues] == [IssueKind.OTHER]

    def test_unbalanced_and_not_zero(self):
        txn = balance_transaction(HEADER, [(DINING, usd("10"))])
        kinds = [i.kind for i in txn.errors(BalanceCheck.WITH_SUM)]
        assert kinds == [IssueKind.UNBALANCED, IssueKind.NOT_ZERO_SUM]

    def test_empty_transaction(self):
        txn = Transaction(TransactionState.VIRTUAL, None, "nothing", ())
        assert txn.sum() is None
        assert [i.kind for i in txn.errors()] == [IssueKind.UNBALANCED]


class TestTotals:
    """Tests for sum, total_debited and total_credited."""

    def test_lunch_totals(self):
        txn = balance_transaction(HEADER, [(DINING, usd("199")), (BANK, None)])
        assert txn.total_debited() == 199
        assert txn.total_credited() == 199
        assert txn.sum().is_zero()

    def test_totals_in_anchor_currency(self):
        txn = balance_transaction(HEADER, [
            (BANK, usd("-110")),
            (CASH, Amount(Decimal("100"), EUR, (Price(Decimal("1.1"), USD),))),
        ])
        assert txn.anchor_currency == USD
        assert txn.total_debited() == Decimal("110")
        assert txn.total_credited() == Decimal("110")

    def test_elided_amount_keeps_every_digit(self):
        nominal = "12345678901234567890123456789.01"
        txn = balance_transaction(HEADER, [(DINING, usd(nominal)), (BANK, None)])
        assert txn.exchanges[1].amount == usd("-" + nominal)
        assert txn.total_credited() == Decimal(nominal)
        assert txn.is_balanced()

    def test_elision_beyond_precision_raises(self):
        with pytest.raises(PrecisionError):
            balance_transaction(HEADER, [(DINING, usd("1E+60")), (CASH, usd("1")), (BANK, None)])

    def test_sum_beyond_precision_reported_as_other(self):
        txn = Transaction(TransactionState.SETTLED, None, "Huge", (
            Exchange(DINING, usd("1E+60")),
            Exchange(BANK, usd("1")),
        ))
        issues = txn.errors(BalanceCheck.WITH_SUM)
        assert [i.kind for i in issues] == [IssueKind.OTHER]
        assert "significant digits" in issues[0].message

    def test_anchor_skips_elided_exchange(self):
        txn = balance_transaction(HEADER, [(BANK, None), (DINING, usd("3"))])
        assert txn.anchor_currency == USD
        assert txn.sum() == usd("0")
