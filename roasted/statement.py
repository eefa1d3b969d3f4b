"""
statement.py - Typed statements built from the token tree

Each top-level directive (apart from `option` and `include`, which the
parser handles itself) becomes one immutable statement object. Statements
still hold names as written (ParsedAccount, currency codes); the ledger
resolves them against its registries when it processes them.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Sequence, Tuple, Union

from .core import DATE_FORMAT, ParseError
from .grammar import Rule, Token
from .account import ParsedAccount
from .amount import ParsedAmount
from .transaction import TxnHeader, ParsedTransaction


@dataclass(frozen=True, slots=True)
class CustomStatement:
    date: date
    args: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class OpenStatement:
    date: date
    account: ParsedAccount


@dataclass(frozen=True, slots=True)
class CloseStatement:
    date: date
    account: ParsedAccount


@dataclass(frozen=True, slots=True)
class PadStatement:
    date: date
    target: ParsedAccount
    source: ParsedAccount


@dataclass(frozen=True, slots=True)
class BalanceStatement:
    date: date
    account: ParsedAccount
    amount: ParsedAmount


@dataclass(frozen=True, slots=True)
class PriceStatement:
    """`<date> price EUR 1.1 USD`: one EUR was worth 1.1 USD on that date."""
    date: date
    currency: str
    amount: ParsedAmount


@dataclass(frozen=True, slots=True)
class TransactionStatement:
    date: date
    header: TxnHeader
    transaction: ParsedTransaction


@dataclass(frozen=True, slots=True)
class UnitStatement:
    code: str


Statement = Union[
    CustomStatement, OpenStatement, CloseStatement, PadStatement,
    BalanceStatement, PriceStatement, TransactionStatement, UnitStatement,
]


def parse_date(token: Token) -> date:
    """
    Raises:
        ParseError: If the text is shaped like a date but is not a calendar date
    """
    try:
        return datetime.strptime(token.text, DATE_FORMAT).date()
    except ValueError:
        raise ParseError(f"invalid date `{token.text}'", token.position) from None


def _custom(at: date, args: Sequence[Token]) -> CustomStatement:
    return CustomStatement(at, tuple(arg.value for arg in args))


def _open(at: date, args: Sequence[Token]) -> OpenStatement:
    return OpenStatement(at, ParsedAccount.parse(args[0]))


def _close(at: date, args: Sequence[Token]) -> CloseStatement:
    return CloseStatement(at, ParsedAccount.parse(args[0]))


def _pad(at: date, args: Sequence[Token]) -> PadStatement:
    target, source = args
    return PadStatement(at, ParsedAccount.parse(target), ParsedAccount.parse(source))


def _balance(at: date, args: Sequence[Token]) -> BalanceStatement:
    account, amount = args
    return BalanceStatement(at, ParsedAccount.parse(account), ParsedAmount.parse(amount))


def _price(at: date, args: Sequence[Token]) -> PriceStatement:
    currency, amount = args
    return PriceStatement(at, currency.text, ParsedAmount.parse(amount))


def _transaction(at: date, args: Sequence[Token]) -> TransactionStatement:
    header, postings = args
    return TransactionStatement(at, TxnHeader.parse(header), ParsedTransaction.parse(postings))


_BUILDERS: Dict[Rule, Callable[[date, Sequence[Token]], Statement]] = {
    Rule.CUSTOM: _custom,
    Rule.OPEN: _open,
    Rule.CLOSE: _close,
    Rule.PAD: _pad,
    Rule.BALANCE: _balance,
    Rule.PRICE: _price,
    Rule.TRANSACTION: _transaction,
}


def build_statement(token: Token) -> Statement:
    """
    Convert a UNIT token, a STATEMENT token or a bare dated statement token
    (OPEN, TRANSACTION, ...) into its typed statement.

    Raises:
        ParseError: On an invalid calendar date
        ValueError: If the token is not a statement
    """
    if token.rule is Rule.UNIT:
        return UnitStatement(token.child(0).text)
    if token.rule is Rule.STATEMENT:
        token = token.child(0)
    builder = _BUILDERS.get(token.rule)
    if builder is None:
        raise ValueError(f"a {token.rule.value} token is not a statement")
    return builder(parse_date(token.child(0)), token.children[1:])
