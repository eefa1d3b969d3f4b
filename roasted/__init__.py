"""
roasted - Plain-text double-entry ledger parser

Parses ledger files into a validated in-memory Ledger: day-books per date,
an account registry with open/close lifetimes and a currency registry.

Usage:
    from textwrap import dedent
    from roasted import parse, BalanceCheck

    ledger = parse(dedent('''
    unit USD

    2021-10-25 open Assets:Bank:Jawir
    2021-10-25 open Expenses:Dining

    2021-10-28 * "Warung" "Lunch"
        Expenses:Dining        199 USD
        Assets:Bank:Jawir
    '''))

    for day, txn in ledger.transactions():
        print(day, txn.title, [ledger.format_amount(e.amount) for e in txn.exchanges])

    assert ledger.errors(BalanceCheck.WITH_SUM) == []
"""

# Core types
from .core import (
    DATE_FORMAT,
    ACCOUNT_SEPARATOR,
    COMMENT_CHAR,
    PRICE_MARKER,
    DECIMAL_CONTEXT,
    Position,
    AccountKind,
    TransactionState,
    BalanceCheck,
    IssueKind,
    LedgerError,
    ParseError,
    AccountError,
    InvalidAccount,
    AccountNotOpened,
    UnknownSegment,
    UnresolvedAccount,
    AccountNotValidAtDate,
    CloseWithoutOpen,
    DuplicateClose,
    CurrencyError,
    UndeclaredCurrency,
    ConversionError,
    PrecisionError,
    ElisionError,
    TooManyElidedAmounts,
    IncludeError,
    IncludeCycleError,
)

# Grammar
from .grammar import Rule, Token, parse_ledger, parse_rule

# Accounts
from .account import ParsedAccount, TxnAccount, AccountActivities, AccountStore

# Amounts and currencies
from .amount import ParsedPrice, ParsedAmount, Price, Amount, CurrencyStore

# Transactions
from .transaction import (
    TxnHeader,
    ParsedPosting,
    ParsedTransaction,
    Exchange,
    Transaction,
    BalanceIssue,
    PadTransaction,
    BalanceAssertion,
    PriceDeclaration,
    balance_transaction,
)

# Statements
from .statement import (
    Statement,
    CustomStatement,
    OpenStatement,
    CloseStatement,
    PadStatement,
    BalanceStatement,
    PriceStatement,
    TransactionStatement,
    UnitStatement,
    build_statement,
)

# Pricing
from .pricing import PriceHistory

# Ledger
from .ledger import DayBook, Ledger

# Entry points
from .parser import Reader, parse, parse_file


__all__ = [
    # Constants
    'DATE_FORMAT', 'ACCOUNT_SEPARATOR', 'COMMENT_CHAR', 'PRICE_MARKER', 'DECIMAL_CONTEXT',
    # Enums
    'Position', 'AccountKind', 'TransactionState', 'BalanceCheck', 'IssueKind',
    # Exceptions
    'LedgerError', 'ParseError',
    'AccountError', 'InvalidAccount', 'AccountNotOpened', 'UnknownSegment',
    'UnresolvedAccount', 'AccountNotValidAtDate', 'CloseWithoutOpen', 'DuplicateClose',
    'CurrencyError', 'UndeclaredCurrency', 'ConversionError',
    'PrecisionError', 'ElisionError', 'TooManyElidedAmounts',
    'IncludeError', 'IncludeCycleError',
    # Grammar
    'Rule', 'Token', 'parse_ledger', 'parse_rule',
    # Accounts
    'ParsedAccount', 'TxnAccount', 'AccountActivities', 'AccountStore',
    # Amounts
    'ParsedPrice', 'ParsedAmount', 'Price', 'Amount', 'CurrencyStore',
    # Transactions
    'TxnHeader', 'ParsedPosting', 'ParsedTransaction', 'Exchange', 'Transaction',
    'BalanceIssue', 'PadTransaction', 'BalanceAssertion', 'PriceDeclaration',
    'balance_transaction',
    # Statements
    'Statement', 'CustomStatement', 'OpenStatement', 'CloseStatement', 'PadStatement',
    'BalanceStatement', 'PriceStatement', 'TransactionStatement', 'UnitStatement',
    'build_statement',
    # Pricing
    'PriceHistory',
    # Ledger
    'DayBook', 'Ledger',
    # Entry points
    'Reader', 'parse', 'parse_file',
]

__version__ = '0.1.0'
