"""
Core enums, constants and exceptions for the roasted ledger parser.

This module provides the foundations shared by every other module:
1. Constants: textual conventions of the ledger format
2. Enums: account kinds, transaction states, balance checks
3. Exceptions: LedgerError and the domain-specific error types

Nothing in this module holds state; DECIMAL_CONTEXT is configured once
here and never modified.
"""

from __future__ import annotations
from datetime import date
from decimal import Context, ROUND_HALF_EVEN, DivisionByZero, Inexact, InvalidOperation, Overflow
from enum import Enum
from typing import NamedTuple, Optional


# ============================================================================
# CONSTANTS
# ============================================================================

# Dates are written as ISO calendar dates, e.g. 2021-10-28.
DATE_FORMAT = "%Y-%m-%d"

# Separates the account kind and its path segments: Assets:Bank:Jawir
ACCOUNT_SEPARATOR = ":"

# Starts a comment that runs to the end of the line.
COMMENT_CHAR = ";"

# Separates an amount from its price annotation: 10 EUR @ 1.1 USD
PRICE_MARKER = "@"

# Amount arithmetic runs in this context. Inexact is trapped: a sum or
# conversion that would need rounding raises PrecisionError instead.
DECIMAL_CONTEXT = Context(
    prec=50,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow, Inexact],
)


# ============================================================================
# SOURCE LOCATIONS
# ============================================================================

class Position(NamedTuple):
    """1-based line and column of a token in ledger source text."""
    line: int
    column: int


# ============================================================================
# ENUMS
# ============================================================================

class AccountKind(Enum):
    """
    The five top-level account kinds of double-entry bookkeeping.

    The enum value is the textual prefix used in ledger files.
    """
    ASSETS = "Assets"
    EXPENSES = "Expenses"
    LIABILITIES = "Liabilities"
    INCOME = "Income"
    EQUITY = "Equity"


class TransactionState(Enum):
    """
    Settlement state of a transaction, taken from its header flag.

    VIRTUAL has no symbol: it marks transactions inserted by the library
    itself and is never produced by the parser.
    """
    SETTLED = "*"
    UNSETTLED = "!"
    RECURRING = "#"
    VIRTUAL = ""

    @classmethod
    def from_symbol(cls, symbol: str) -> TransactionState:
        for state in (cls.SETTLED, cls.UNSETTLED, cls.RECURRING):
            if state.value == symbol:
                return state
        raise ValueError(f"invalid transaction state `{symbol}'")


class BalanceCheck(Enum):
    """
    Depth of the balance diagnostics run by Transaction.errors().

    WITH_SUM: structural check plus the zero-sum arithmetic fold.
    WITHOUT_SUM: structural check only (exchange count).
    """
    WITH_SUM = "with_sum"
    WITHOUT_SUM = "without_sum"


class IssueKind(Enum):
    """Classification of a balance diagnostic."""
    UNBALANCED = "unbalanced"       # fewer than two exchanges
    NOT_ZERO_SUM = "not_zero_sum"   # exchanges do not cancel out
    OTHER = "other"                 # e.g. a currency that cannot be converted


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class ParseError(LedgerError):
    """
    Raised when ledger text does not match the grammar.

    Attributes:
        position: (line, column) of the failure, both 1-based
        line_text: the source line the failure occurred on
        source: name of the file being parsed, if any
    """

    def __init__(
        self,
        message: str,
        position: Optional[Position] = None,
        line_text: str = "",
        source: Optional[str] = None,
    ):
        self.message = message
        self.position = position
        self.line_text = line_text
        self.source = source
        if position is None:
            super().__init__(message)
            return
        where = f"{source}, " if source else ""
        text = f"{message}\n{where}line {position.line}, column {position.column}"
        if line_text:
            text += f"\n{line_text}\n" + " " * (position.column - 1) + "^"
        super().__init__(text)


class AccountError(LedgerError):
    """Base class for account registry errors."""
    pass


class InvalidAccount(AccountError):
    """Raised when text is not a valid account name."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"input `{text}' is not a valid token for Account")


class AccountNotOpened(AccountError):
    """
    Raised when an account cannot be used at a date.

    The message always starts with "account `<path>' is not opened at <date>"
    and subclasses append the precise reason.
    """

    def __init__(self, account: object, at: date, reason: str = ""):
        self.account = account
        self.at = at
        message = f"account `{account}' is not opened at {at.isoformat()}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class UnknownSegment(AccountNotOpened):
    """Raised when an account path uses a segment no open statement introduced."""

    def __init__(self, account: object, at: date, segment: str):
        self.segment = segment
        super().__init__(account, at, f"unknown segment `{segment}'")


class UnresolvedAccount(AccountNotOpened):
    """Raised when every segment is known but the path itself was never opened."""

    def __init__(self, account: object, at: date):
        super().__init__(account, at, "no open record")


class AccountNotValidAtDate(AccountNotOpened):
    """Raised when the account exists but none of its open windows covers the date."""
    pass


class CloseWithoutOpen(AccountError):
    """Raised when closing an account that was never opened."""

    def __init__(self, account: object, at: date):
        self.account = account
        self.at = at
        super().__init__(
            f"cannot close account `{account}' at {at.isoformat()}: account was never opened"
        )


class DuplicateClose(AccountError):
    """Raised when closing an account whose last window is already closed."""

    def __init__(self, account: object, at: date, closed_at: date):
        self.account = account
        self.at = at
        self.closed_at = closed_at
        super().__init__(
            f"cannot close account `{account}' at {at.isoformat()}: "
            f"already closed at {closed_at.isoformat()}"
        )


class CurrencyError(LedgerError):
    """Base class for currency/unit errors."""
    pass


class UndeclaredCurrency(CurrencyError):
    """Raised when an amount references a unit no `unit` statement declared."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"currency `{code}' is not declared, add `unit {code}' first")


class ConversionError(CurrencyError):
    """
    Raised when two amounts in different currencies are added without a matching price.

    `source` and `target` are currency codes once known, indices otherwise.
    """

    def __init__(self, source: object, target: object):
        self.source = source
        self.target = target
        super().__init__(
            f"cannot convert {_currency_label(source)} into {_currency_label(target)}: "
            f"no `{PRICE_MARKER}' price annotation for it"
        )


def _currency_label(currency: object) -> str:
    return f"currency #{currency}" if isinstance(currency, int) else f"`{currency}'"


class PrecisionError(LedgerError):
    """Raised when amount arithmetic would need more than DECIMAL_CONTEXT.prec digits."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"{operation} needs more than {DECIMAL_CONTEXT.prec} significant digits"
        )


class ElisionError(LedgerError):
    """Raised when the elided amount of a transaction cannot be inferred."""
    pass


class TooManyElidedAmounts(ElisionError):
    """Raised when more than one exchange of a transaction omits its amount."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"only one account may have its amount elided, found {count}"
        )


class IncludeError(LedgerError):
    """Raised when an included file cannot be read."""

    def __init__(self, path: object, reason: str):
        self.path = path
        super().__init__(f"cannot include `{path}': {reason}")


class IncludeCycleError(IncludeError):
    """Raised when a file includes itself, directly or through other files."""

    def __init__(self, path: object, chain: tuple):
        self.chain = chain
        cycle = " -> ".join(str(p) for p in (*chain, path))
        super().__init__(path, f"include cycle {cycle}")
