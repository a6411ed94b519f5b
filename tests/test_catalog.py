import dataclasses

import pytest

from staffbot.rpc.actions import (
    DEFAULT_SPECS,
    ActionCatalog,
    BotForceRemove,
    BotPremiumAdd,
    RPCMethod,
)
from staffbot.rpc.engine import HANDLERS
from staffbot.rpc.errors import UnknownAction, ValidationError

from .conftest import BOT_ID


def test_catalog_covers_every_method_once() -> None:
    names = [spec.name for spec in DEFAULT_SPECS]
    assert len(names) == len(set(names)) == 18
    assert set(names) == {m.value for m in RPCMethod}


@pytest.mark.parametrize("spec", DEFAULT_SPECS, ids=lambda s: s.name)
def test_schema_field_count_matches_variant(spec) -> None:
    variant_fields = {f.name for f in dataclasses.fields(spec.action_type)}
    schema_targets = {f.target for f in spec.fields}
    assert len(spec.fields) == len(variant_fields)
    assert schema_targets == variant_fields
    assert spec.action_type.method is spec.method


def test_every_method_has_a_handler() -> None:
    assert set(HANDLERS) == set(RPCMethod)


def test_get_unknown_name() -> None:
    catalog = ActionCatalog()
    with pytest.raises(UnknownAction) as exc:
        catalog.get("BotExplode")
    assert str(exc.value) == "Unknown RPC method: BotExplode"
    assert catalog.get(" BotClaim ").method is RPCMethod.BOT_CLAIM


def test_suggest_filters_case_insensitive_in_catalog_order() -> None:
    catalog = ActionCatalog()
    assert catalog.suggest("") == list(catalog.names())
    assert catalog.suggest("premium") == ["BotPremiumAdd", "BotPremiumRemove"]
    assert catalog.suggest("team") == [
        "BotTransferOwnershipTeam",
        "TeamNameEdit",
    ]
    assert catalog.suggest("zzz") == []


def test_build_premium_derives_hours() -> None:
    action = ActionCatalog().build(
        "BotPremiumAdd",
        {"bot_id": BOT_ID, "reason": "Paid via patreon", "time_period": "2 weeks"},
    )
    assert action == BotPremiumAdd(bot_id=BOT_ID, reason="Paid via patreon", time_period_hours=336)
    assert action.name == "BotPremiumAdd"
    assert action.target == BOT_ID


def test_build_rejects_maybe_for_kick() -> None:
    with pytest.raises(ValidationError) as exc:
        ActionCatalog().build("BotForceRemove", {"bot_id": BOT_ID, "reason": "abuse", "kick": "maybe"})
    assert exc.value.field == "kick"


def test_build_reports_first_failing_field_in_schema_order() -> None:
    with pytest.raises(ValidationError) as exc:
        ActionCatalog().build("BotForceRemove", {"bot_id": "nope", "reason": "", "kick": "maybe"})
    assert exc.value.field == "bot_id"


def test_build_missing_field() -> None:
    with pytest.raises(ValidationError) as exc:
        ActionCatalog().build("BotForceRemove", {"bot_id": BOT_ID, "reason": "abuse"})
    assert exc.value.field == "kick"
    assert "missing value" in str(exc.value)


def test_build_full_force_remove() -> None:
    action = ActionCatalog().build("BotForceRemove", {"bot_id": BOT_ID, "reason": "abuse", "kick": "T"})
    assert isinstance(action, BotForceRemove)
    assert action.kick is True
    assert action.to_log_data() == {"bot_id": BOT_ID, "reason": "abuse", "kick": True}
