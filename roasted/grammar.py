"""
grammar.py - Tokenizer for the ledger text format

Turns ledger source text into a tree of typed tokens, one subtree per
top-level directive. The tree carries no meaning of its own: statement.py
converts statement tokens into typed statements, and the ledger resolves
them.

Top-level rules:
    option "<key>" "<value>"
    include "<path>"
    unit <CODE>
    <date> custom "<arg>" ...
    <date> open|close <Account>
    <date> pad <Account> <Account>
    <date> balance <Account> <nominal> <CODE>
    <date> price <CODE> <nominal> <CODE>
    <date> <*|!|#> ["<payee>"] "<title>"
        <Account> [<nominal> <CODE> [@ <nominal> <CODE>]]

Account segments may use letters and digits of any script (Assets:Café),
plus `_` and `-` after the first character.

Blank lines and lines starting with ';' are ignored, and a ';' comment may
end any line. Errors raise ParseError with the line and column of the
offending input.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Pattern, Tuple
from bisect import bisect_right
import re

from .core import AccountKind, ParseError, Position, COMMENT_CHAR, PRICE_MARKER


class Rule(Enum):
    """Grammar rules; every Token is tagged with the rule that produced it."""
    LEDGER = "ledger"
    OPTION = "option"
    INCLUDE = "include"
    UNIT = "unit"
    STATEMENT = "statement"
    CUSTOM = "custom_statement"
    OPEN = "open_statement"
    CLOSE = "close_statement"
    PAD = "pad_statement"
    BALANCE = "balance_statement"
    PRICE = "price_statement"
    TRANSACTION = "transaction"
    TXN_HEADER = "txn_header"
    TXN_STATE = "txn_state"
    TXN_LIST = "txn_list"
    POSTING = "posting"
    DATE = "date"
    STRING = "string"
    ACCOUNT = "account"
    AMOUNT = "amount"
    AMOUNT_WITH_PRICE = "amount_with_price"
    NOMINAL = "nominal"
    CURRENCY = "currency"


@dataclass(frozen=True, slots=True)
class Token:
    """
    A node of the parse tree.

    Attributes:
        rule: Grammar rule that matched
        text: Source text covered by the token (trailing whitespace stripped)
        position: Where the token starts in the source
        children: Sub-tokens in source order
    """
    rule: Rule
    text: str
    position: Position
    children: Tuple[Token, ...] = ()

    def __iter__(self) -> Iterator[Token]:
        return iter(self.children)

    def child(self, index: int = 0) -> Token:
        return self.children[index]

    @property
    def value(self) -> str:
        """Unquoted, unescaped content for STRING tokens; the raw text otherwise."""
        if self.rule is Rule.STRING:
            return _ESCAPE.sub(r"\1", self.text[1:-1])
        return self.text


# ============================================================================
# LEXICAL PATTERNS
# ============================================================================

# A token must be followed by whitespace, a comment or the end of the line.
_END = rf"(?=[ \t\n{COMMENT_CHAR}]|\Z)"

_KINDS = "|".join(kind.value for kind in AccountKind)

_WS = re.compile(r"[ \t]+")
_LINE_END = re.compile(rf"[ \t]*(?:{COMMENT_CHAR}[^\n]*)?(?:\n|\Z)")
_DATE = re.compile(rf"[0-9]{{4}}-[0-9]{{2}}-[0-9]{{2}}{_END}")
_STRING = re.compile(rf'"(?:[^"\\\x00-\x1f]|\\[^\x00-\x1f])*"{_END}')
_ESCAPE = re.compile(r"\\(.)")
_SEGMENT = r"[^\W_][\w-]*"
_ACCOUNT = re.compile(rf"(?:{_KINDS})(?::{_SEGMENT})+{_END}")
_NOMINAL = re.compile(rf"[-+]?[0-9]+(?:\.[0-9]+)?{_END}")
_CURRENCY = re.compile(rf"[A-Z][A-Z0-9_.'-]*{_END}")
_TXN_STATE = re.compile(rf"[*!#]{_END}")
_PRICE_MARKER = re.compile(rf"{re.escape(PRICE_MARKER)}{_END}")


def _keyword(word: str) -> Pattern[str]:
    return re.compile(rf"{word}(?=[ \t])")


_OPTION_KW = _keyword("option")
_INCLUDE_KW = _keyword("include")
_UNIT_KW = _keyword("unit")

_DATED_KEYWORDS: Dict[str, Rule] = {
    "custom": Rule.CUSTOM,
    "open": Rule.OPEN,
    "close": Rule.CLOSE,
    "pad": Rule.PAD,
    "balance": Rule.BALANCE,
    "price": Rule.PRICE,
}
_DATED_KW = re.compile(rf"({'|'.join(_DATED_KEYWORDS)})(?=[ \t])")


# ============================================================================
# SCANNER
# ============================================================================

class _Scanner:
    """Cursor over the source text with one method per grammar rule."""

    def __init__(self, text: str, source: Optional[str] = None):
        self.text = text.replace("\r\n", "\n")
        self.pos = 0
        self.source = source
        # Offset of the first character of every line, for position().
        self.line_starts = [0] + [m.end() for m in re.finditer("\n", self.text)]

    # -- location helpers ---------------------------------------------------

    def position(self, pos: Optional[int] = None) -> Position:
        pos = self.pos if pos is None else pos
        line = bisect_right(self.line_starts, pos)
        return Position(line, pos - self.line_starts[line - 1] + 1)

    def line_text(self, pos: int) -> str:
        line_start = self.line_starts[bisect_right(self.line_starts, pos) - 1]
        line_end = self.text.find("\n", pos)
        if line_end == -1:
            line_end = len(self.text)
        return self.text[line_start:line_end]

    def error(self, message: str, pos: Optional[int] = None) -> ParseError:
        pos = self.pos if pos is None else pos
        return ParseError(message, self.position(pos), self.line_text(pos), self.source)

    def eof(self) -> bool:
        return self.pos >= len(self.text)

    # -- primitive matching -------------------------------------------------

    def match(self, pattern: Pattern[str], rule: Rule) -> Optional[Token]:
        m = pattern.match(self.text, self.pos)
        if not m:
            return None
        token = Token(rule, m.group(0), self.position())
        self.pos = m.end()
        return token

    def expect(self, pattern: Pattern[str], rule: Rule, what: str) -> Token:
        token = self.match(pattern, rule)
        if token is None:
            raise self.error(f"expected {what}")
        return token

    def skip_ws(self) -> bool:
        m = _WS.match(self.text, self.pos)
        if not m:
            return False
        self.pos = m.end()
        return True

    def require_ws(self, what: str) -> None:
        if not self.skip_ws():
            raise self.error(f"expected whitespace before {what}")

    def at_line_end(self) -> bool:
        """True when only whitespace or a comment remains on the current line."""
        m = _LINE_END.match(self.text, self.pos)
        return m is not None

    def end_line(self) -> None:
        m = _LINE_END.match(self.text, self.pos)
        if not m:
            self.skip_ws()
            raise self.error("unexpected input, expected end of line")
        self.pos = m.end()

    def skip_blank_lines(self) -> None:
        while not self.eof():
            m = _LINE_END.match(self.text, self.pos)
            if not m or m.end() == self.pos:
                break
            self.pos = m.end()

    def node(self, rule: Rule, start: int, children: List[Token]) -> Token:
        text = self.text[start:self.pos].rstrip()
        return Token(rule, text, self.position(start), tuple(children))

    # -- rules --------------------------------------------------------------

    def date(self) -> Token:
        return self.expect(_DATE, Rule.DATE, "a date (YYYY-MM-DD)")

    def string(self) -> Token:
        return self.expect(_STRING, Rule.STRING, "a quoted string")

    def account(self) -> Token:
        return self.expect(_ACCOUNT, Rule.ACCOUNT, "an account (e.g. Assets:Bank:Checking)")

    def currency(self) -> Token:
        return self.expect(_CURRENCY, Rule.CURRENCY, "a currency code")

    def amount(self) -> Token:
        start = self.pos
        nominal = self.expect(_NOMINAL, Rule.NOMINAL, "a number")
        self.require_ws("the currency")
        currency = self.currency()
        return self.node(Rule.AMOUNT, start, [nominal, currency])

    def amount_with_price(self) -> Token:
        start = self.pos
        children = [self.amount()]
        mark = self.pos
        if self.skip_ws() and _PRICE_MARKER.match(self.text, self.pos):
            self.pos += len(PRICE_MARKER)
            self.require_ws("the price")
            children.append(self.amount())
        else:
            self.pos = mark
        return self.node(Rule.AMOUNT_WITH_PRICE, start, children)

    def option(self) -> Token:
        start = self.pos
        self.expect(_OPTION_KW, Rule.OPTION, "`option'")
        self.require_ws("the option key")
        key = self.string()
        self.require_ws("the option value")
        value = self.string()
        token = self.node(Rule.OPTION, start, [key, value])
        self.end_line()
        return token

    def include(self) -> Token:
        start = self.pos
        self.expect(_INCLUDE_KW, Rule.INCLUDE, "`include'")
        self.require_ws("the include path")
        path = self.string()
        token = self.node(Rule.INCLUDE, start, [path])
        self.end_line()
        return token

    def unit(self) -> Token:
        start = self.pos
        self.expect(_UNIT_KW, Rule.UNIT, "`unit'")
        self.require_ws("the currency code")
        code = self.currency()
        token = self.node(Rule.UNIT, start, [code])
        self.end_line()
        return token

    def statement(self, expected: Optional[Rule] = None) -> Token:
        inner = self.dated(expected)
        return Token(Rule.STATEMENT, inner.text, inner.position, (inner,))

    def dated(self, expected: Optional[Rule] = None) -> Token:
        start = self.pos
        children = [self.date()]
        self.require_ws("the statement keyword")

        kw = _DATED_KW.match(self.text, self.pos)
        if kw:
            rule = _DATED_KEYWORDS[kw.group(1)]
        elif _TXN_STATE.match(self.text, self.pos):
            rule = Rule.TRANSACTION
        else:
            raise self.error(
                "expected one of custom, open, close, pad, balance, price "
                "or a transaction flag (*, !, #)"
            )
        if expected is not None and rule is not expected:
            raise self.error(f"expected {expected.value}")

        if rule is Rule.TRANSACTION:
            return self.transaction(start, children)

        self.pos = kw.end()
        if rule is Rule.CUSTOM:
            self.require_ws("the custom arguments")
            children.append(self.string())
            while not self.at_line_end():
                self.require_ws("the next custom argument")
                children.append(self.string())
        elif rule in (Rule.OPEN, Rule.CLOSE):
            self.require_ws("the account")
            children.append(self.account())
        elif rule is Rule.PAD:
            self.require_ws("the target account")
            children.append(self.account())
            self.require_ws("the source account")
            children.append(self.account())
        elif rule is Rule.BALANCE:
            self.require_ws("the account")
            children.append(self.account())
            self.require_ws("the amount")
            children.append(self.amount())
        elif rule is Rule.PRICE:
            self.require_ws("the currency code")
            children.append(self.currency())
            self.require_ws("the price")
            children.append(self.amount())

        token = self.node(rule, start, children)
        self.end_line()
        return token

    def transaction(self, start: int, children: List[Token]) -> Token:
        header_start = self.pos
        header = [self.match(_TXN_STATE, Rule.TXN_STATE)]
        self.require_ws("the transaction title")
        header.append(self.string())
        if not self.at_line_end():
            self.require_ws("the transaction title")
            header.append(self.string())
        children.append(self.node(Rule.TXN_HEADER, header_start, header))
        self.end_line()

        list_start = self.pos
        postings = []
        while not self.eof():
            line = self.line_text(self.pos)
            stripped = line.strip()
            if not line[:1].isspace() or not stripped:
                break
            if stripped.startswith(COMMENT_CHAR):
                self.pos = min(self.pos + len(line) + 1, len(self.text))
                continue
            self.skip_ws()
            postings.append(self.posting())
        if not postings:
            raise self.error("expected at least one indented posting")
        children.append(Token(Rule.TXN_LIST, "", self.position(list_start), tuple(postings)))
        return self.node(Rule.TRANSACTION, start, children)

    def posting(self) -> Token:
        start = self.pos
        children = [self.account()]
        if not self.at_line_end():
            self.require_ws("the amount")
            children.append(self.amount_with_price())
        token = self.node(Rule.POSTING, start, children)
        self.end_line()
        return token

    def directive(self) -> Token:
        if self.text[self.pos].isspace():
            self.skip_ws()
            raise self.error("unexpected indentation outside of a transaction")
        if _OPTION_KW.match(self.text, self.pos):
            return self.option()
        if _INCLUDE_KW.match(self.text, self.pos):
            return self.include()
        if _UNIT_KW.match(self.text, self.pos):
            return self.unit()
        if _DATE.match(self.text, self.pos):
            return self.statement()
        raise self.error("expected a date, `option', `include' or `unit'")

    def ledger(self) -> List[Token]:
        tokens = []
        while True:
            self.skip_blank_lines()
            if self.eof():
                return tokens
            tokens.append(self.directive())

    def finish(self) -> None:
        self.skip_blank_lines()
        self.skip_ws()
        if not self.eof():
            raise self.error("unexpected trailing input")


# ============================================================================
# PUBLIC API
# ============================================================================

_RULES: Dict[Rule, Callable[[_Scanner], Token]] = {
    Rule.OPTION: _Scanner.option,
    Rule.INCLUDE: _Scanner.include,
    Rule.UNIT: _Scanner.unit,
    Rule.STATEMENT: _Scanner.statement,
    Rule.DATE: _Scanner.date,
    Rule.STRING: _Scanner.string,
    Rule.ACCOUNT: _Scanner.account,
    Rule.CURRENCY: _Scanner.currency,
    Rule.AMOUNT: _Scanner.amount,
    Rule.AMOUNT_WITH_PRICE: _Scanner.amount_with_price,
    Rule.POSTING: _Scanner.posting,
}

_DATED_RULES = (
    Rule.CUSTOM, Rule.OPEN, Rule.CLOSE, Rule.PAD,
    Rule.BALANCE, Rule.PRICE, Rule.TRANSACTION,
)


def parse_ledger(text: str, source: Optional[str] = None) -> List[Token]:
    """
    Tokenize a whole ledger file.

    Args:
        text: Ledger source text
        source: Name of the file the text came from, used in error messages

    Returns:
        Top-level tokens in source order, each tagged OPTION, INCLUDE, UNIT
        or STATEMENT.

    Raises:
        ParseError: At the first input that does not match the grammar
    """
    return _Scanner(text, source).ledger()


def parse_rule(rule: Rule, text: str, source: Optional[str] = None) -> Token:
    """
    Parse `text` as exactly one instance of `rule`.

    Surrounding whitespace and blank lines are allowed; anything else left
    over is a ParseError. Rule.LEDGER returns a single LEDGER token whose
    children are the top-level directives.

    Example:
        token = parse_rule(Rule.AMOUNT_WITH_PRICE, "1337 USD @ 1000 IDR")
        nominal, currency = token.child(0)
    """
    scanner = _Scanner(text, source)
    if rule is Rule.LEDGER:
        children = scanner.ledger()
        return Token(Rule.LEDGER, scanner.text.strip(), Position(1, 1), tuple(children))

    scanner.skip_blank_lines()
    scanner.skip_ws()
    if rule in _DATED_RULES:
        token = scanner.dated(rule)
    elif rule in _RULES:
        token = _RULES[rule](scanner)
    else:
        raise ValueError(f"rule {rule.name} cannot be parsed on its own")
    scanner.finish()
    return token
