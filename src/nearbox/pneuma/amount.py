"""
Amount codec - decimal token strings to integer base units.

NEAR amounts travel as decimal strings of yoctoNEAR (10^-24 NEAR).
Conversion only ever happens at the client boundary; nothing here
touches floating point.
"""

from __future__ import annotations

import re

from ..errors import AmountError

DECIMALS = 24
ONE_NEAR = 10**DECIMALS

_AMOUNT_RE = re.compile(r"^(\d*)(?:\.(\d*))?$")


def to_base_units(amount: str | int) -> str:
    """
    Convert a decimal amount string into base units.

    Fractional digits beyond 24 are truncated, never rounded.

    Args:
        amount: Decimal string such as "1.5" or "3" (ints are accepted too)

    Returns:
        Integer base units as a decimal string

    Raises:
        AmountError: If the input is not a non-negative decimal number
    """
    text = str(amount).strip()
    match = _AMOUNT_RE.match(text)
    if not text or match is None or text == ".":
        raise AmountError(f"Invalid amount: {amount!r}")

    whole_part, frac_part = match.group(1), match.group(2) or ""
    whole = int(whole_part or "0") * ONE_NEAR
    fractional = int(frac_part.ljust(DECIMALS, "0")[:DECIMALS])
    return str(whole + fractional)


def from_base_units(value: str | int) -> str:
    """Convert base units back to whole tokens (floor division)."""
    try:
        units = int(str(value))
    except ValueError as exc:
        raise AmountError(f"Invalid base-unit amount: {value!r}") from exc
    if units < 0:
        raise AmountError(f"Invalid base-unit amount: {value!r}")
    return str(units // ONE_NEAR)


# Gas is expressed in plain integer units; 1 TGas = 10^12 gas.
TGAS = 10**12
DEFAULT_FUNCTION_CALL_GAS = 30 * TGAS
MAX_GAS = 300 * TGAS
