"""Parse Kubernetes-style capacity quantities into byte counts.

Accepted forms follow the resource quantity grammar:
    - plain numbers: "1500", "1.5"
    - binary suffixes: "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"
    - decimal suffixes: "n", "u", "m", "k", "M", "G", "T", "P", "E"
    - exponents: "1e3", "2E6"

Fractional byte counts round up, matching how a requested capacity is
interpreted by the volume provisioner.
"""

import math
import re
from decimal import Decimal, InvalidOperation

from .exceptions import InvalidQuantityError

BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

DECIMAL_SUFFIXES = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal(10**3),
    "M": Decimal(10**6),
    "G": Decimal(10**9),
    "T": Decimal(10**12),
    "P": Decimal(10**15),
    "E": Decimal(10**18),
}

_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+\.?\d*|\.\d+))"
    r"(?:(?P<exponent>[eE][+-]?\d+)|(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|[numkMGTPE])?)$"
)


def parse_quantity(value) -> int:
    """Convert a capacity quantity to a whole number of bytes.

    Args:
        value: Quantity string (e.g., "1Gi", "500M", "1500") or an int

    Returns:
        Size in bytes, rounded up to the next whole byte

    Raises:
        InvalidQuantityError: If the value is blank, negative or malformed
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise InvalidQuantityError(str(value))
        return value
    text = str(value or "").strip()
    match = _QUANTITY_RE.match(text)
    if not match:
        raise InvalidQuantityError(text)
    try:
        number = Decimal(match.group("number"))
    except InvalidOperation as error:
        raise InvalidQuantityError(text) from error
    if number < 0:
        raise InvalidQuantityError(text)
    exponent = match.group("exponent")
    suffix = match.group("suffix") or ""
    if exponent:
        scaled = number.scaleb(int(exponent[1:]))
    elif suffix in BINARY_SUFFIXES:
        scaled = number * BINARY_SUFFIXES[suffix]
    else:
        scaled = number * DECIMAL_SUFFIXES[suffix]
    return int(math.ceil(scaled))


def is_blank_quantity(value) -> bool:
    """Return True when no capacity was requested."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
