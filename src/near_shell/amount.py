"""Conversion between human NEAR amounts and yoctoNEAR integers.

1 NEAR = 10**24 yoctoNEAR. Amounts are handled as decimal strings and
Python ints throughout; floats are never involved.
"""

from __future__ import annotations

import re

from near_shell.exceptions import InvalidUsageError

NEAR_NOMINATION_EXP = 24
NEAR_NOMINATION = 10**NEAR_NOMINATION_EXP

_AMOUNT_RE = re.compile(r"^\d*(\.\d*)?$")


def parse_near_amount(amount: str) -> int:
    """Convert ``"1.5"`` NEAR into ``1500000000000000000000000`` yoctoNEAR.

    Commas and surrounding whitespace are ignored.

    Raises:
        InvalidUsageError: If *amount* is not a plain decimal number or has
            more than 24 fractional digits.
    """
    cleaned = amount.replace(",", "").strip()
    if not cleaned or cleaned == "." or not _AMOUNT_RE.match(cleaned):
        raise InvalidUsageError(f"Cannot parse '{amount}' as NEAR amount")
    whole, _, frac = cleaned.partition(".")
    if len(frac) > NEAR_NOMINATION_EXP:
        raise InvalidUsageError(
            f"Cannot parse '{amount}' as NEAR amount: more than "
            f"{NEAR_NOMINATION_EXP} fractional digits"
        )
    return int((whole or "0") + frac.ljust(NEAR_NOMINATION_EXP, "0"))


def format_near_amount(balance: int | str, frac_digits: int = 5) -> str:
    """Render a yoctoNEAR balance as NEAR, e.g. ``"1,234.5"``.

    The value is rounded half-up to *frac_digits* fractional digits, the
    whole part gets thousands separators, and trailing zeros (and a bare
    trailing dot) are dropped.
    """
    value = int(balance)
    if value < 0:
        raise InvalidUsageError(f"Negative balance: {balance}")
    if frac_digits < NEAR_NOMINATION_EXP:
        rounding_exp = NEAR_NOMINATION_EXP - frac_digits - 1
        if rounding_exp >= 0:
            value += 5 * 10**rounding_exp

    whole, frac = divmod(value, NEAR_NOMINATION)
    frac_str = str(frac).rjust(NEAR_NOMINATION_EXP, "0")[:frac_digits]
    return f"{whole:,}.{frac_str}".rstrip("0").rstrip(".")
