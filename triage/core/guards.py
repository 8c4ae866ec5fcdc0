import logging
from typing import TypeVar, Union

logger = logging.getLogger(__name__)

Number = TypeVar("Number", int, float)


class InvariantViolation(RuntimeError):
    """A session or verdict value left its documented range"""


def enforce_range(value: Number, low: Union[int, float], high: Union[int, float],
                  name: str, strict: bool, caller_id: str = "") -> Number:
    """
    Check that a value lies within [low, high].

    In strict mode a breach raises InvariantViolation. Otherwise the value is
    clamped, the breach is logged and processing continues.
    """
    if low <= value <= high:
        return value

    message = f"{name}={value} outside [{low}, {high}] (caller={caller_id or '?'})"
    if strict:
        raise InvariantViolation(message)

    logger.error("⚠️ Invariant breach: %s, clamping", message)
    return type(value)(min(max(value, low), high))
