"""Field parsers shared by both RPC front-ends.

Each parser takes the raw text a caller typed (form input or request value)
and either returns the typed value or raises :class:`ValidationError`.
"""

from __future__ import annotations

import re
import uuid

from staffbot.rpc.errors import ValidationError

MAX_TEXT_CHARS = 4000

# Counts and hour totals are stored as signed 32-bit integers.
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1
_TOO_LARGE = "number too large to fit in target type"
_TOO_SMALL = "number too small to fit in target type"

_SNOWFLAKE_RE = re.compile(r"^\d{15,20}$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")

_TRUE_TOKENS = frozenset({"true", "t", "y"})
_FALSE_TOKENS = frozenset({"false", "f", "n"})

HOURS_PER_UNIT: dict[str, int] = {
    "years": 365 * 24,
    "year": 365 * 24,
    "y": 365 * 24,
    "months": 30 * 24,
    "month": 30 * 24,
    "mo": 30 * 24,
    "m": 30 * 24,
    "weeks": 7 * 24,
    "week": 7 * 24,
    "w": 7 * 24,
    "days": 24,
    "day": 24,
    "d": 24,
    "hours": 1,
    "hour": 1,
    "hrs": 1,
    "hr": 1,
    "h": 1,
}


def parse_bool(field: str, value: str) -> bool:
    token = value.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ValidationError(field, "Invalid boolean")


def parse_int(field: str, value: str) -> int:
    compact = value.strip()
    if not _INTEGER_RE.match(compact):
        raise ValidationError(field, f"invalid digit found in string: {value!r}")
    number = int(compact)
    if number > INT_MAX:
        raise ValidationError(field, _TOO_LARGE)
    if number < INT_MIN:
        raise ValidationError(field, _TOO_SMALL)
    return number


def parse_hours(field: str, value: str) -> int:
    """Parse ``"<integer> <unit>"`` into a whole number of hours."""
    parts = value.strip().split(" ")
    if len(parts) != 2:
        raise ValidationError(
            field,
            "Invalid time format. Format must be WITH A SPACE BETWEEN THE NUMBER AND THE UNIT",
        )

    amount_raw, unit = parts
    amount = parse_int(field, amount_raw)
    if amount <= 0:
        raise ValidationError(field, "Time period must be positive")

    per_unit = HOURS_PER_UNIT.get(unit.lower())
    if per_unit is None:
        raise ValidationError(
            field,
            "Invalid time format. Unit must be years, months, weeks, days or hours",
        )
    hours = amount * per_unit
    if hours > INT_MAX:
        raise ValidationError(field, _TOO_LARGE)
    return hours


def parse_snowflake(field: str, value: str) -> str:
    compact = value.strip()
    if not _SNOWFLAKE_RE.match(compact):
        raise ValidationError(field, "must be a Discord ID (15-20 digits)")
    return compact


def parse_team_id(field: str, value: str) -> str:
    compact = value.strip()
    try:
        return str(uuid.UUID(compact))
    except ValueError as e:
        raise ValidationError(field, "must be a team UUID") from e


def parse_text(field: str, value: str, *, max_chars: int = MAX_TEXT_CHARS) -> str:
    compact = value.strip()
    if not compact:
        raise ValidationError(field, "must not be empty")
    if len(compact) > max_chars:
        raise ValidationError(field, f"must be at most {max_chars} characters")
    return compact
