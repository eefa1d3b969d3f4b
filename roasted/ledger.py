"""
ledger.py - The ledger: day-books plus account, currency and price registries

The Ledger applies statements one at a time:
- `unit` declares a currency
- `open`/`close` maintain account windows
- `pad`, `balance`, `price`, `custom` and transactions are resolved against
  the registries and filed in the day-book of their date

A statement that cannot be resolved (unknown account, undeclared currency,
account closed at that date, ...) raises immediately. Transactions are
balanced on entry when they elide an amount; whether every transaction sums
to zero is a separate audit, see Ledger.errors().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple

from .core import BalanceCheck, ConversionError
from .account import AccountStore, ParsedAccount, TxnAccount
from .amount import Amount, CurrencyStore, Price
from .pricing import PriceHistory
from .transaction import (
    Transaction, BalanceIssue, PadTransaction, BalanceAssertion, PriceDeclaration,
    balance_transaction,
)
from .statement import (
    Statement, CustomStatement, OpenStatement, CloseStatement, PadStatement,
    BalanceStatement, PriceStatement, TransactionStatement, UnitStatement,
)


@dataclass
class DayBook:
    """Everything filed under one date, each list in source order."""
    custom: List[Tuple[str, ...]] = field(default_factory=list)
    pads: List[PadTransaction] = field(default_factory=list)
    balance_assertions: List[BalanceAssertion] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    prices: List[PriceDeclaration] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.custom or self.pads or self.balance_assertions
                    or self.transactions or self.prices)

    def copy(self) -> DayBook:
        # Entries are immutable; copying the lists is enough.
        return DayBook(
            custom=list(self.custom),
            pads=list(self.pads),
            balance_assertions=list(self.balance_assertions),
            transactions=list(self.transactions),
            prices=list(self.prices),
        )


class Ledger:
    """
    In-memory ledger built from statements.

    Usually filled by roasted.parse(); statements can also be applied
    directly with process_statement().

    Example:
        ledger = Ledger()
        ledger.process_statement(UnitStatement("USD"))
        ledger.process_statement(OpenStatement(date(2021, 10, 25),
                                               ParsedAccount.from_str("Assets:Bank")))
        ledger.accounts.is_open(ParsedAccount.from_str("Assets:Bank"), date(2021, 11, 1))
        # True
    """

    def __init__(self, verbose: bool = False):
        """
        Create an empty ledger.

        Args:
            verbose: Print one line per registry change (default: False)
        """
        self.accounts = AccountStore()
        self.currencies = CurrencyStore()
        self.prices = PriceHistory()
        self.bookings: Dict[date, DayBook] = {}
        self.options: Dict[str, str] = {}
        self.verbose = verbose

    # ========================================================================
    # OPTIONS
    # ========================================================================

    def set_option(self, key: str, value: str) -> None:
        """Store an `option` value; a later value for the same key replaces it."""
        self.options[key] = value
        if self.verbose:
            print(f"⚙️  Option: {key} = {value}")

    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.options.get(key, default)

    # ========================================================================
    # STATEMENT PROCESSING (Mutating)
    # ========================================================================

    def process_statement(self, statement: Statement) -> None:
        """
        Apply one statement to the ledger.

        Raises:
            LedgerError: Whatever the registries or the balancer raise; the
                ledger may be partially updated by the failing statement, so
                callers needing atomicity work on a clone (as parse() does)
        """
        if isinstance(statement, UnitStatement):
            self._declare_unit(statement)
        elif isinstance(statement, OpenStatement):
            self._open_account(statement)
        elif isinstance(statement, CloseStatement):
            self._close_account(statement)
        elif isinstance(statement, CustomStatement):
            self._book(statement.date).custom.append(statement.args)
        elif isinstance(statement, PadStatement):
            self._pad(statement)
        elif isinstance(statement, BalanceStatement):
            self._balance(statement)
        elif isinstance(statement, PriceStatement):
            self._price(statement)
        elif isinstance(statement, TransactionStatement):
            self._transaction(statement)
        else:
            raise TypeError(f"not a statement: {statement!r}")

    def _book(self, at: date) -> DayBook:
        book = self.bookings.get(at)
        if book is None:
            book = self.bookings[at] = DayBook()
        return book

    def _declare_unit(self, statement: UnitStatement) -> None:
        index = self.currencies.declare(statement.code)
        if self.verbose:
            print(f"📝 Unit: {statement.code} (#{index})")

    def _open_account(self, statement: OpenStatement) -> None:
        self.accounts.open(statement.account, statement.date)
        if self.verbose:
            print(f"✓ Opened: {statement.account} at {statement.date.isoformat()}")

    def _close_account(self, statement: CloseStatement) -> None:
        self.accounts.close(statement.account, statement.date)
        if self.verbose:
            print(f"✓ Closed: {statement.account} at {statement.date.isoformat()}")

    def _pad(self, statement: PadStatement) -> None:
        target = self.accounts.resolve(statement.target, statement.date)
        source = self.accounts.resolve(statement.source, statement.date)
        self._book(statement.date).pads.append(PadTransaction(target, source))

    def _balance(self, statement: BalanceStatement) -> None:
        account = self.accounts.resolve(statement.account, statement.date)
        amount = self.currencies.resolve_amount(statement.amount)
        self._book(statement.date).balance_assertions.append(BalanceAssertion(account, amount))

    def _price(self, statement: PriceStatement) -> None:
        currency = self.currencies.lookup(statement.currency)
        quote = self.currencies.resolve_amount(statement.amount)
        self.prices.add_price(currency, quote.currency, statement.date, quote.nominal)
        declaration = PriceDeclaration(currency, Price(quote.nominal, quote.currency))
        self._book(statement.date).prices.append(declaration)

    def _transaction(self, statement: TransactionStatement) -> None:
        legs = []
        for posting in statement.transaction.postings:
            account = self.accounts.resolve(posting.account, statement.date)
            amount = None
            if posting.amount is not None:
                amount = self.currencies.resolve_amount(posting.amount)
            legs.append((account, amount))
        try:
            transaction = balance_transaction(statement.header, legs)
        except ConversionError as e:
            source = self.currencies.unresolve(e.source) or e.source
            target = self.currencies.unresolve(e.target) or e.target
            raise ConversionError(source, target) from e
        self._book(statement.date).transactions.append(transaction)

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_at(self, at: date) -> Optional[DayBook]:
        return self.bookings.get(at)

    def dates(self) -> List[date]:
        return sorted(self.bookings)

    def daybooks(self) -> Iterator[Tuple[date, DayBook]]:
        """Day-books in date order."""
        for at in self.dates():
            yield at, self.bookings[at]

    def transactions(self) -> Iterator[Tuple[date, Transaction]]:
        """Every transaction, by date and then source order."""
        for at, book in self.daybooks():
            for transaction in book.transactions:
                yield at, transaction

    def txn_account(self, account: ParsedAccount, at: date) -> TxnAccount:
        """Resolve an account as a statement at `at` would."""
        return self.accounts.resolve(account, at)

    def account_name(self, account: TxnAccount) -> str:
        return self.accounts.name(account)

    def format_amount(self, amount: Amount) -> str:
        return self.currencies.format(amount)

    def get_price(self, code: str, target: str, on: date) -> Optional[Decimal]:
        """
        Latest `price` quote for one unit of `code` in `target`, at or before `on`.

        Raises:
            UndeclaredCurrency: If either code was never declared
        """
        return self.prices.get_price(
            self.currencies.lookup(code), self.currencies.lookup(target), on
        )

    def errors(
        self, check: BalanceCheck = BalanceCheck.WITH_SUM
    ) -> List[Tuple[date, Transaction, List[BalanceIssue]]]:
        """
        Audit every transaction.

        Returns:
            (date, transaction, issues) for each transaction with at least
            one issue, in ledger order; empty when everything balances
        """
        found = []
        for at, transaction in self.transactions():
            issues = transaction.errors(check)
            if issues:
                found.append((at, transaction, issues))
        return found

    # ========================================================================
    # CLONING
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create an independent copy of this ledger.

        Registries, day-books and options are copied; entries themselves are
        immutable and shared.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.accounts = self.accounts.clone()
        cloned.currencies = self.currencies.clone()
        cloned.prices = self.prices.clone()
        cloned.bookings = {at: book.copy() for at, book in self.bookings.items()}
        cloned.options = dict(self.options)
        cloned.verbose = self.verbose
        return cloned

    def __repr__(self) -> str:
        count = sum(len(book.transactions) for book in self.bookings.values())
        return (f"Ledger({len(self.accounts)} accounts, {len(self.currencies)} currencies, "
                f"{len(self.bookings)} days, {count} transactions)")
