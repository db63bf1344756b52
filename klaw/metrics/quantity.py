"""Kubernetes resource quantities: parsing capacity strings and formatting totals."""

from __future__ import annotations

import re
from decimal import ROUND_CEILING, Decimal, InvalidOperation

_KI = 1024
_MI = _KI * 1024
_GI = _MI * 1024

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

_RE_QUANTITY = re.compile(r"^([+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?)([a-zA-Z]*)$")


def parse_quantity(value: str | int | float) -> Decimal:
    """Parse a Kubernetes quantity (``"4"``, ``"3500m"``, ``"16Gi"``, ``"1e3"``).

    Raises ValueError for anything that is not a valid quantity.
    """
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = value.strip()
    match = _RE_QUANTITY.match(text)
    if not match:
        raise ValueError(f"invalid quantity: {value!r}")
    number, suffix = match.groups()
    if suffix in _BINARY_SUFFIXES:
        multiplier = _BINARY_SUFFIXES[suffix]
    elif suffix in _DECIMAL_SUFFIXES:
        multiplier = _DECIMAL_SUFFIXES[suffix]
    else:
        raise ValueError(f"invalid quantity suffix: {value!r}")
    try:
        return Decimal(number) * multiplier
    except InvalidOperation as exc:
        raise ValueError(f"invalid quantity: {value!r}") from exc


def cpu_milli(value: str | int | float | None) -> int:
    """CPU quantity in milli-units, rounded up like Kubernetes MilliValue()."""
    if value in (None, ""):
        return 0
    milli = parse_quantity(value) * 1000  # type: ignore[arg-type]
    return int(milli.to_integral_value(rounding=ROUND_CEILING))


def memory_bytes(value: str | int | float | None) -> int:
    """Memory quantity in bytes, rounded up like Kubernetes Value()."""
    if value in (None, ""):
        return 0
    return int(parse_quantity(value).to_integral_value(rounding=ROUND_CEILING))  # type: ignore[arg-type]


def format_cpu(milli: int) -> str:
    """``1000 -> "1.0"``, ``2500 -> "2.5"``, ``250 -> "250m"``."""
    if milli >= 1000:
        return f"{milli / 1000:.1f}"
    return f"{milli}m"


def format_memory(value: int) -> str:
    """Binary units with two decimals: ``1 << 30 -> "1.00Gi"``, ``1023 -> "1023B"``."""
    if value >= _GI:
        return f"{value / _GI:.2f}Gi"
    if value >= _MI:
        return f"{value / _MI:.2f}Mi"
    if value >= _KI:
        return f"{value / _KI:.2f}Ki"
    return f"{value}B"
