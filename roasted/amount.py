"""
amount.py - Amounts, price annotations and the currency registry

An amount is a Decimal nominal in one currency, optionally followed by price
annotations: `10 EUR @ 1.1 USD` reads "10 EUR, where 1 EUR is worth 1.1 USD".
Price annotations are what make cross-currency arithmetic possible: adding an
amount in another currency converts it through the first annotation that
targets the receiving currency.

Currencies must be declared (`unit EUR`) before use. The CurrencyStore hands
out stable indices in declaration order; resolved amounts refer to currencies
by index only.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal, Inexact, InvalidOperation
from typing import Dict, List, Optional, Tuple, Union

from .core import (
    UndeclaredCurrency, ConversionError, PrecisionError, DECIMAL_CONTEXT, PRICE_MARKER,
)
from .grammar import Rule, Token


NumberLike = Union[Decimal, int, float, str]


def to_decimal(value: NumberLike) -> Decimal:
    """
    Convert a number to a finite Decimal.

    Floats go through str() so that 1.1 becomes Decimal("1.1").

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"`{value}' is not a number") from None
    if not result.is_finite():
        raise ValueError(f"nominal must be finite, got {value}")
    return result


def format_decimal(value: Decimal) -> str:
    """Plain (never scientific) notation, e.g. Decimal('1E+2') -> '100'."""
    return format(value, "f")


def _exact(operation: str, method, *operands: Decimal) -> Decimal:
    """Apply a DECIMAL_CONTEXT method, raising PrecisionError instead of rounding."""
    try:
        return method(*operands)
    except Inexact:
        raise PrecisionError(operation) from None


# ============================================================================
# PARSED (UNRESOLVED) AMOUNTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class ParsedPrice:
    """A price annotation as written: `@ <nominal> <CODE>`."""
    nominal: Decimal
    currency: str

    def __post_init__(self):
        object.__setattr__(self, 'nominal', to_decimal(self.nominal))

    def __str__(self) -> str:
        return f"{format_decimal(self.nominal)} {self.currency}"


@dataclass(frozen=True, slots=True)
class ParsedAmount:
    """
    An amount as written in ledger source, with currency codes as text.

    Attributes:
        nominal: Signed quantity
        currency: Currency code, e.g. "USD"
        prices: Price annotations in source order
    """
    nominal: Decimal
    currency: str
    prices: Tuple[ParsedPrice, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'nominal', to_decimal(self.nominal))
        object.__setattr__(self, 'prices', tuple(self.prices))

    def __str__(self) -> str:
        text = f"{format_decimal(self.nominal)} {self.currency}"
        for price in self.prices:
            text += f" {PRICE_MARKER} {price}"
        return text

    @classmethod
    def parse(cls, token: Token) -> ParsedAmount:
        """Build from an AMOUNT or AMOUNT_WITH_PRICE token."""
        if token.rule is Rule.AMOUNT_WITH_PRICE:
            amount = cls.parse(token.child(0))
            prices = tuple(ParsedPrice(*_nominal_and_code(t)) for t in token.children[1:])
            return replace(amount, prices=prices)
        if token.rule is not Rule.AMOUNT:
            raise ValueError(f"cannot build an amount from a {token.rule.value} token")
        return cls(*_nominal_and_code(token))


def _nominal_and_code(token: Token) -> Tuple[Decimal, str]:
    nominal, currency = token.children
    return Decimal(nominal.text), currency.text


# ============================================================================
# RESOLVED AMOUNTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Price:
    """One unit of the owning amount's currency is worth `nominal` of `currency`."""
    nominal: Decimal
    currency: int

    def __post_init__(self):
        object.__setattr__(self, 'nominal', to_decimal(self.nominal))


@dataclass(frozen=True, slots=True)
class Amount:
    """
    A resolved amount: nominal, currency index and price annotations.

    Arithmetic:
        a + b   same currency: nominals add. Different currency: b is converted
                through its first price targeting a's currency; the result keeps
                a's currency and prices.
        a - b   a + (-b)
        -a      sign flipped, currency and prices kept

    Raises ConversionError when b has no price for a's currency, and
    PrecisionError when a result would have to be rounded.
    """
    nominal: Decimal
    currency: int
    prices: Tuple[Price, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'nominal', to_decimal(self.nominal))
        object.__setattr__(self, 'prices', tuple(self.prices))

    @classmethod
    def zero(cls, currency: int) -> Amount:
        return cls(Decimal(0), currency)

    def is_zero(self) -> bool:
        return self.nominal == 0

    def convert_to(self, currency: int) -> Amount:
        """
        Express this amount in another currency using its price annotations.

        Returns:
            A new amount in `currency`, without price annotations (or self when
            the currency already matches)

        Raises:
            ConversionError: If no annotation targets `currency`
            PrecisionError: If the converted nominal cannot be held exactly
        """
        if currency == self.currency:
            return self
        for price in self.prices:
            if price.currency == currency:
                nominal = _exact("conversion", DECIMAL_CONTEXT.multiply, self.nominal, price.nominal)
                return Amount(nominal, currency)
        raise ConversionError(self.currency, currency)

    def __add__(self, other: Amount) -> Amount:
        if not isinstance(other, Amount):
            return NotImplemented
        converted = other.convert_to(self.currency)
        return replace(self, nominal=_exact(
            "addition", DECIMAL_CONTEXT.add, self.nominal, converted.nominal,
        ))

    def __neg__(self) -> Amount:
        return replace(self, nominal=_exact("negation", DECIMAL_CONTEXT.minus, self.nominal))

    def __sub__(self, other: Amount) -> Amount:
        if not isinstance(other, Amount):
            return NotImplemented
        return self + (-other)


# ============================================================================
# CURRENCY STORE
# ============================================================================

class CurrencyStore:
    """
    Registry of declared currency codes.

    Indices are assigned in declaration order and never change. Declaring a
    code twice returns the existing index.
    """

    def __init__(self):
        self.codes: List[str] = []
        self._ids: Dict[str, int] = {}

    def __contains__(self, code: str) -> bool:
        return code in self._ids

    def __len__(self) -> int:
        return len(self.codes)

    def declare(self, code: str) -> int:
        if not code:
            raise ValueError("currency code must not be empty")
        index = self._ids.get(code)
        if index is None:
            index = len(self.codes)
            self.codes.append(code)
            self._ids[code] = index
        return index

    def lookup(self, code: str) -> int:
        """
        Raises:
            UndeclaredCurrency: If `code` was never declared
        """
        try:
            return self._ids[code]
        except KeyError:
            raise UndeclaredCurrency(code) from None

    def unresolve(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.codes):
            return self.codes[index]
        return None

    def resolve_amount(self, parsed: ParsedAmount) -> Amount:
        """Resolve the amount's currency and every price currency to indices."""
        prices = tuple(Price(p.nominal, self.lookup(p.currency)) for p in parsed.prices)
        return Amount(parsed.nominal, self.lookup(parsed.currency), prices)

    def format(self, amount: Amount) -> str:
        """Render a resolved amount back to source form, e.g. `10 EUR @ 1.1 USD`."""
        text = f"{format_decimal(amount.nominal)} {self._code(amount.currency)}"
        for price in amount.prices:
            text += f" {PRICE_MARKER} {format_decimal(price.nominal)} {self._code(price.currency)}"
        return text

    def _code(self, index: int) -> str:
        code = self.unresolve(index)
        return code if code is not None else f"#{index}"

    def clone(self) -> CurrencyStore:
        cloned = CurrencyStore()
        cloned.codes = list(self.codes)
        cloned._ids = dict(self._ids)
        return cloned

    def __repr__(self) -> str:
        return f"CurrencyStore({', '.join(self.codes)})"
