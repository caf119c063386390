"""
Amount - fixed-point, denomination-tagged token quantity.

Conceptual Background:
---------------------
Every node replaying the same block must reach bit-identical balances, so
amounts never touch binary floating point. An Amount stores an integer
count of base units; the human-facing value is ``units / 10**AMOUNT_DECIMALS``.

    Amount.of("token", "10.5")  ->  Amount(denom="token", units=10_500_000)

Decimal is used only at the ingress/display boundary (parsing, printing,
percentage comparisons); all arithmetic on balances is integer arithmetic.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Tuple, Union

from auctioneer.utils.validation import validate_denom, validate_integer


# =============================================================================
# Constants
# =============================================================================

AMOUNT_DECIMALS = 6
UNIT_SCALE = 10**AMOUNT_DECIMALS

# Enough digits for exact products of any two valid quantities
DECIMAL_PRECISION = 100

_AMOUNT_STRING = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([a-z][a-z0-9/:._-]{2,127})\s*$")


def to_units(value: Union[str, int, Decimal]) -> int:
    """
    Convert a human-readable value into base units.

    Raises:
        ValueError: if the value is negative, malformed, or carries more
            precision than AMOUNT_DECIMALS.
    """
    try:
        dec = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount value: {value!r}") from None

    if not dec.is_finite():
        raise ValueError(f"Invalid amount value: {value!r}")
    if dec < 0:
        raise ValueError(f"Amount cannot be negative: {value}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        scaled = dec * UNIT_SCALE
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value} exceeds {AMOUNT_DECIMALS} decimal places")
    return int(scaled)


# =============================================================================
# Amount
# =============================================================================


@dataclass(frozen=True, order=False)
class Amount:
    """
    Non-negative token quantity in a single denomination.

    Attributes:
        denom: Denomination tag (e.g. "usdx")
        units: Integer count of base units (10**-AMOUNT_DECIMALS each)
    """
    denom: str
    units: int

    def __post_init__(self) -> None:
        valid, err = self.validate()
        if not valid:
            raise ValueError(err)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def of(cls, denom: str, value: Union[str, int, Decimal]) -> "Amount":
        """Build from a human-readable value, e.g. ``Amount.of("usdx", "10.5")``."""
        return cls(denom, to_units(value))

    @classmethod
    def zero(cls, denom: str) -> "Amount":
        return cls(denom, 0)

    @classmethod
    def parse(cls, text: str) -> "Amount":
        """Parse the compact string form, e.g. ``"10.5token"``."""
        match = _AMOUNT_STRING.match(text)
        if not match:
            raise ValueError(f"Invalid amount string: {text!r}")
        value, denom = match.groups()
        return cls.of(denom, value)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> Tuple[bool, str]:
        valid, err = validate_denom(self.denom)
        if not valid:
            return False, err
        return validate_integer(self.units, f"{self.denom} amount")

    # =========================================================================
    # Arithmetic
    # =========================================================================

    def _check_denom(self, other: "Amount") -> None:
        if not isinstance(other, Amount):
            raise TypeError(f"Expected Amount, got {type(other).__name__}")
        if other.denom != self.denom:
            raise ValueError(f"Denomination mismatch: {self.denom} vs {other.denom}")

    def __add__(self, other: "Amount") -> "Amount":
        self._check_denom(other)
        return Amount(self.denom, self.units + other.units)

    def __sub__(self, other: "Amount") -> "Amount":
        self._check_denom(other)
        if other.units > self.units:
            raise ValueError(f"Negative result: {self} - {other}")
        return Amount(self.denom, self.units - other.units)

    def __lt__(self, other: "Amount") -> bool:
        self._check_denom(other)
        return self.units < other.units

    def __le__(self, other: "Amount") -> bool:
        self._check_denom(other)
        return self.units <= other.units

    def __gt__(self, other: "Amount") -> bool:
        self._check_denom(other)
        return self.units > other.units

    def __ge__(self, other: "Amount") -> bool:
        self._check_denom(other)
        return self.units >= other.units

    def is_zero(self) -> bool:
        return self.units == 0

    def with_units(self, units: int) -> "Amount":
        return Amount(self.denom, units)

    # =========================================================================
    # Display
    # =========================================================================

    def to_decimal(self) -> Decimal:
        """Human-readable value (display and serialization only)."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            value = Decimal(self.units).scaleb(-AMOUNT_DECIMALS).normalize()
            # normalize() turns 100 into 1E+2
            if value == value.to_integral_value():
                return value.quantize(Decimal(1))
            return value

    def __str__(self) -> str:
        return f"{self.to_decimal()}{self.denom}"


__all__ = [
    "Amount",
    "AMOUNT_DECIMALS",
    "UNIT_SCALE",
    "to_units",
]
