"""
Kubernetes resource quantities.

The metrics API reports usage as quantity strings such as "250m" (CPU),
"1532Ki" (memory) or "12e6". This module parses them into exact decimal
amounts and exposes the integer scalings the store persists.

Grammar (from the Kubernetes API machinery):
    <quantity>        ::= <signedNumber><suffix>
    <suffix>          ::= <binarySI> | <decimalExponent> | <decimalSI>
    <binarySI>        ::= Ki | Mi | Gi | Ti | Pi | Ei
    <decimalSI>       ::= n | u | m | "" | k | M | G | T | P | E
    <decimalExponent> ::= "e" <signedNumber> | "E" <signedNumber>
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic_core import core_schema

from metrics_scraper.errors import InvalidArgumentError

_BINARY_SUFFIXES = {
    "Ki": Decimal(2) ** 10,
    "Mi": Decimal(2) ** 20,
    "Gi": Decimal(2) ** 30,
    "Ti": Decimal(2) ** 40,
    "Pi": Decimal(2) ** 50,
    "Ei": Decimal(2) ** 60,
}

_DECIMAL_SUFFIXES = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
}

# The exponent alternative comes first so "1E3" is not read as exa.
_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+\.?\d*|\.\d+))"
    r"(?P<suffix>[eE][+-]?\d+|Ki|Mi|Gi|Ti|Pi|Ei|[numkMGTPE])?$"
)


class Quantity:
    """
    An exact, immutable resource quantity.

    Example:
        >>> Quantity.parse("250m").milli_value()
        250
        >>> Quantity.parse("1Ki").milli_value()
        1024000
    """

    __slots__ = ("_amount", "_text")

    def __init__(self, amount: Decimal, text: str | None = None) -> None:
        self._amount = amount
        self._text = text if text is not None else str(amount)

    @classmethod
    def parse(cls, value: str | int | float | Decimal | Quantity) -> Quantity:
        """
        Parse a quantity from its string form or a plain number.

        Args:
            value: Quantity string, number, or an existing Quantity.

        Returns:
            The parsed Quantity.

        Raises:
            InvalidArgumentError: If the value is not a valid quantity.
        """
        if isinstance(value, Quantity):
            return value
        if isinstance(value, bool):
            raise InvalidArgumentError(
                "Quantity must be a string or number",
                details={"value": value},
            )
        if isinstance(value, int | Decimal):
            return cls(Decimal(value))
        if isinstance(value, float):
            if not math.isfinite(value):
                raise InvalidArgumentError(
                    "Quantity must be finite",
                    details={"value": value},
                )
            return cls(Decimal(str(value)))
        if not isinstance(value, str):
            raise InvalidArgumentError(
                "Quantity must be a string or number",
                details={"type": type(value).__name__},
            )

        text = value.strip()
        match = _QUANTITY_RE.match(text)
        if match is None:
            raise InvalidArgumentError(
                f"Invalid quantity: {value!r}",
                details={"value": value},
            )

        try:
            number = Decimal(match.group("number"))
        except InvalidOperation as e:
            raise InvalidArgumentError(
                f"Invalid quantity: {value!r}",
                details={"value": value},
            ) from e

        suffix = match.group("suffix") or ""
        if suffix in _BINARY_SUFFIXES:
            amount = number * _BINARY_SUFFIXES[suffix]
        elif suffix in _DECIMAL_SUFFIXES:
            amount = number * _DECIMAL_SUFFIXES[suffix]
        else:
            amount = number.scaleb(int(suffix[1:]))

        return cls(amount, text)

    @classmethod
    def zero(cls) -> Quantity:
        """Return a zero quantity."""
        return cls(Decimal(0), "0")

    @property
    def amount(self) -> Decimal:
        """The exact decimal amount in base units."""
        return self._amount

    def milli_value(self) -> int:
        """
        Return the amount in thousandths of a unit, rounded up.

        Rounding up matches how the Kubernetes API machinery scales
        quantities, so "1n" CPU reports as 1 millicore.
        """
        return math.ceil(self._amount * 1000)

    @classmethod
    def _validate(cls, value: Any) -> Quantity:
        try:
            return cls.parse(value)
        except InvalidArgumentError as e:
            raise ValueError(e.message) from e

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: Any
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._amount == other._amount

    def __hash__(self) -> int:
        return hash(self._amount)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Quantity({self._text!r})"
