"""
The CPU-bound workload behind `/api/{n}`.

The sum is accumulated one term at a time, so a request ties up its worker
for O(n) time.
"""
import re

from clusterweb import settings

_COUNT_PATTERN = re.compile(r"([+-]?)0*([0-9]+)")
_ASCII_WHITESPACE = " \t\n\r\f\v"


class InvalidCountError(ValueError):
    """Raised when a count parameter is not a decimal integer."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid count '{raw}'")
        self.raw = raw


def parse_count(raw: str) -> int:
    """
    Parses the `n` path segment as a decimal integer.

    Only ASCII digits and surrounding ASCII whitespace are accepted. A value
    with more digits than `settings.MAX_COUNT` is returned as one past the
    limit (with its sign) rather than converted, so huge inputs still clamp.

    :param raw: The raw path segment.
    :return: The parsed integer, possibly negative.
    :raises InvalidCountError: If the segment is not an optionally signed run of digits.
    """
    match = _COUNT_PATTERN.fullmatch(raw.strip(_ASCII_WHITESPACE))
    if not match:
        raise InvalidCountError(raw)
    sign, digits = match.groups()
    if len(digits) > len(str(settings.MAX_COUNT)):
        n = settings.MAX_COUNT + 1
    else:
        n = int(digits)
    return -n if sign == "-" else n


def clamp_count(n: int, limit: int = settings.MAX_COUNT) -> int:
    """Caps `n` at `limit` to bound the worst-case request latency."""
    return limit if n > limit else n


def accumulate(n: int) -> int:
    """Sums 0 + 1 + ... + n by direct accumulation. Negative `n` gives 0."""
    count = 0
    for i in range(n + 1):
        count += i
    return count
