import pytest

from staffbot.rpc.errors import ValidationError
from staffbot.rpc.parsers import (
    parse_bool,
    parse_hours,
    parse_int,
    parse_snowflake,
    parse_team_id,
    parse_text,
)


@pytest.mark.parametrize(
    ("raw", "hours"),
    [
        ("1 day", 24),
        ("2 weeks", 336),
        ("1 year", 8760),
        ("3 months", 2160),
        ("5 hours", 5),
        ("2 Days", 48),
        ("1 mo", 720),
    ],
)
def test_parse_hours_units(raw: str, hours: int) -> None:
    assert parse_hours("time_period", raw) == hours


@pytest.mark.parametrize("raw", ["5", "5 fortnights", "", "two weeks", "1  day", "0 days", "-1 day", "1 day extra"])
def test_parse_hours_rejects_malformed(raw: str) -> None:
    with pytest.raises(ValidationError) as exc:
        parse_hours("time_period", raw)
    assert exc.value.field == "time_period"


@pytest.mark.parametrize(("raw", "expected"), [("true", True), ("T", True), ("y", True), ("false", False), ("f", False), ("N", False)])
def test_parse_bool_accepts_tokens(raw: str, expected: bool) -> None:
    assert parse_bool("force", raw) is expected


@pytest.mark.parametrize("raw", ["maybe", "yes", "no", "1", "0", ""])
def test_parse_bool_rejects_everything_else(raw: str) -> None:
    with pytest.raises(ValidationError) as exc:
        parse_bool("kick", raw)
    assert str(exc.value) == "Error parsing `kick`: Invalid boolean"


def test_parse_int_signed_and_invalid() -> None:
    assert parse_int("count", " 42 ") == 42
    assert parse_int("count", "-3") == -3
    with pytest.raises(ValidationError):
        parse_int("count", "4.2")
    with pytest.raises(ValidationError):
        parse_int("count", "ten")


def test_parse_snowflake_digits_only() -> None:
    assert parse_snowflake("bot_id", " 815553000470478850 ") == "815553000470478850"
    for raw in ("1234", "abc815553000470478850", "<@815553000470478850>"):
        with pytest.raises(ValidationError):
            parse_snowflake("bot_id", raw)


def test_parse_team_id_normalizes_uuid() -> None:
    assert parse_team_id("team_id", "9A1D6F1C-1F7E-4A40-9A5E-1B0C3D2E4F50") == "9a1d6f1c-1f7e-4a40-9a5e-1b0c3d2e4f50"
    with pytest.raises(ValidationError):
        parse_team_id("team_id", "not-a-team")


def test_parse_text_trims_and_bounds() -> None:
    assert parse_text("reason", "  spam bot  ") == "spam bot"
    with pytest.raises(ValidationError):
        parse_text("reason", "   ")
    with pytest.raises(ValidationError):
        parse_text("new_name", "x" * 101, max_chars=100)


def test_parse_int_rejects_values_outside_32_bits() -> None:
    assert parse_int("count", "2147483647") == 2**31 - 1
    assert parse_int("count", "-2147483648") == -(2**31)
    with pytest.raises(ValidationError) as exc:
        parse_int("count", "99999999999999999999")
    assert exc.value.reason == "number too large to fit in target type"
    with pytest.raises(ValidationError) as exc:
        parse_int("count", "-2147483649")
    assert exc.value.reason == "number too small to fit in target type"


@pytest.mark.parametrize("raw", ["300000 years", "2147483648 hours", "99999999999 days"])
def test_parse_hours_rejects_totals_outside_32_bits(raw: str) -> None:
    with pytest.raises(ValidationError) as exc:
        parse_hours("time_period", raw)
    assert exc.value.reason == "number too large to fit in target type"


def test_parse_hours_accepts_largest_total() -> None:
    assert parse_hours("time_period", "2147483647 hours") == 2**31 - 1
