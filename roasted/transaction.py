"""
transaction.py - Transactions, postings and the balancer

A transaction moves value between accounts:

    2021-10-28 * "Warung" "Lunch"
        Expenses:Dining        199 USD
        Assets:Bank:Jawir

At most one posting may omit its amount; the balancer infers it so that the
transaction sums to zero. Whether a finished transaction actually balances is
reported by Transaction.errors() as a list of BalanceIssue values rather than
raised, so that a ledger can be loaded first and audited afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .core import (
    TransactionState, BalanceCheck, IssueKind,
    ConversionError, PrecisionError, ElisionError, TooManyElidedAmounts,
)
from .grammar import Rule, Token
from .account import ParsedAccount, TxnAccount
from .amount import Amount, ParsedAmount, Price


# ============================================================================
# PARSED FORMS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TxnHeader:
    """Flag, optional payee and title of a transaction line."""
    state: TransactionState
    payee: Optional[str]
    title: str

    @classmethod
    def parse(cls, token: Token) -> TxnHeader:
        state, *strings = token.children
        # One string is the title; two are payee then title.
        payee = strings[0].value if len(strings) == 2 else None
        return cls(TransactionState.from_symbol(state.text), payee, strings[-1].value)


@dataclass(frozen=True, slots=True)
class ParsedPosting:
    account: ParsedAccount
    amount: Optional[ParsedAmount] = None

    @classmethod
    def parse(cls, token: Token) -> ParsedPosting:
        account = ParsedAccount.parse(token.child(0))
        if len(token.children) == 1:
            return cls(account)
        return cls(account, ParsedAmount.parse(token.child(1)))


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """The posting list of a transaction, unresolved."""
    postings: Tuple[ParsedPosting, ...]

    def __post_init__(self):
        object.__setattr__(self, 'postings', tuple(self.postings))

    @property
    def accounts(self) -> Tuple[ParsedAccount, ...]:
        return tuple(posting.account for posting in self.postings)

    @property
    def exchanges(self) -> Tuple[Optional[ParsedAmount], ...]:
        return tuple(posting.amount for posting in self.postings)

    @classmethod
    def parse(cls, token: Token) -> ParsedTransaction:
        if token.rule is not Rule.TXN_LIST:
            raise ValueError(f"cannot build a posting list from a {token.rule.value} token")
        return cls(tuple(ParsedPosting.parse(posting) for posting in token))


# ============================================================================
# RESOLVED TRANSACTION
# ============================================================================

@dataclass(frozen=True, slots=True)
class Exchange:
    """
    One leg of a transaction.

    `elided` marks an amount inferred by the balancer instead of written.
    """
    account: TxnAccount
    amount: Amount
    elided: bool = False


@dataclass(frozen=True, slots=True)
class BalanceIssue:
    """A balance diagnostic produced by Transaction.errors()."""
    kind: IssueKind
    message: str


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A resolved transaction.

    The anchor currency is the currency of the first exchange whose amount
    was written out; sums are expressed in it.
    """
    state: TransactionState
    payee: Optional[str]
    title: str
    exchanges: Tuple[Exchange, ...]

    def __post_init__(self):
        object.__setattr__(self, 'exchanges', tuple(self.exchanges))

    @property
    def anchor_currency(self) -> Optional[int]:
        for exchange in self.exchanges:
            if not exchange.elided:
                return exchange.amount.currency
        return None

    @property
    def elided_exchange(self) -> Optional[Exchange]:
        for exchange in self.exchanges:
            if exchange.elided:
                return exchange
        return None

    def sum(self) -> Optional[Amount]:
        """
        Fold all exchange amounts into the anchor currency.

        Returns:
            The total, or None when there is no anchor currency

        Raises:
            ConversionError: If an amount cannot be converted to the anchor
        """
        anchor = self.anchor_currency
        if anchor is None:
            return None
        total = Amount.zero(anchor)
        for exchange in self.exchanges:
            total = total + exchange.amount
        return total

    def _total(self, debit: bool) -> Decimal:
        anchor = self.anchor_currency
        if anchor is None:
            return Decimal(0)
        total = Amount.zero(anchor)
        for exchange in self.exchanges:
            converted = exchange.amount.convert_to(anchor)
            if debit and converted.nominal > 0:
                total = total + converted
            elif not debit and converted.nominal < 0:
                total = total - converted
        return total.nominal

    def total_debited(self) -> Decimal:
        """Sum of the positive legs, in the anchor currency."""
        return self._total(debit=True)

    def total_credited(self) -> Decimal:
        """Sum of the negative legs negated, in the anchor currency."""
        return self._total(debit=False)

    def errors(self, check: BalanceCheck = BalanceCheck.WITH_SUM) -> List[BalanceIssue]:
        """
        Diagnose whether the transaction balances.

        Args:
            check: WITHOUT_SUM only checks that there are at least two
                exchanges; WITH_SUM also requires the amounts to cancel out

        Returns:
            The issues found; an empty list means balanced
        """
        issues = []
        if len(self.exchanges) <= 1:
            issues.append(BalanceIssue(
                IssueKind.UNBALANCED,
                f"transaction needs at least two exchanges, found {len(self.exchanges)}",
            ))
        if check is BalanceCheck.WITH_SUM:
            try:
                total = self.sum()
            except (ConversionError, PrecisionError) as e:
                issues.append(BalanceIssue(IssueKind.OTHER, str(e)))
            else:
                if total is not None and not total.is_zero():
                    issues.append(BalanceIssue(
                        IssueKind.NOT_ZERO_SUM,
                        f"exchanges sum to {total.nominal} instead of zero",
                    ))
        return issues

    def is_balanced(self, check: BalanceCheck = BalanceCheck.WITH_SUM) -> bool:
        return not self.errors(check)


def balance_transaction(
    header: TxnHeader,
    legs: Sequence[Tuple[TxnAccount, Optional[Amount]]],
) -> Transaction:
    """
    Build a Transaction from resolved legs, inferring an elided amount.

    With exactly one leg lacking an amount, the explicit amounts are summed
    in order into the currency of the first one, and the missing leg gets the
    negated total at its original position. Fully written transactions are
    taken as they are; use Transaction.errors() to check them.

    Raises:
        TooManyElidedAmounts: If more than one leg lacks an amount
        ElisionError: If the only leg lacks an amount
        ConversionError: If an explicit amount cannot be converted while summing
    """
    elided = [i for i, (_, amount) in enumerate(legs) if amount is None]
    if len(elided) > 1:
        raise TooManyElidedAmounts(len(elided))

    exchanges = [Exchange(account, amount) for account, amount in legs if amount is not None]
    if elided:
        if not exchanges:
            raise ElisionError("cannot infer the elided amount of a transaction with no written amount")
        anchor = exchanges[0].amount.currency
        total = Amount.zero(anchor)
        for exchange in exchanges:
            total = total + exchange.amount
        position = elided[0]
        inferred = Exchange(legs[position][0], Amount.zero(anchor) - total, elided=True)
        exchanges.insert(position, inferred)

    return Transaction(header.state, header.payee, header.title, tuple(exchanges))


# ============================================================================
# OTHER DAY-BOOK ENTRIES
# ============================================================================

@dataclass(frozen=True, slots=True)
class PadTransaction:
    """Intent to pad `target` from `source`; recorded, not expanded."""
    target: TxnAccount
    source: TxnAccount


@dataclass(frozen=True, slots=True)
class BalanceAssertion:
    """Assertion that `account` holds `amount` at the start of its date."""
    account: TxnAccount
    amount: Amount


@dataclass(frozen=True, slots=True)
class PriceDeclaration:
    """A `price` quote: one unit of `currency` was worth `price` on its date."""
    currency: int
    price: Price
