import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from staffbot.rpc.actions import ActionSpec, BotDeny
from staffbot.rpc.errors import ConsistencyFault, Unauthorized, ValidationError
from staffbot.rpc.interactive import FlowState, InteractiveFlow, _FlowRun

from .conftest import BOT_ID, STAFF_ID, USER_ID


@dataclass
class FakeSubmission:
    values: Mapping[str, str]
    replies: list[str] = field(default_factory=list)

    async def reply(self, text: str) -> None:
        self.replies.append(text)


class FakeSurface:
    """Scripted surface: ``confirm``/``values`` of None never answer."""

    def __init__(self, *, confirm: bool | None = True, values: Mapping[str, str] | None = None) -> None:
        self.confirm = confirm
        self.values = values
        self.replies: list[str] = []
        self.prompted: list[str] = []
        self.forms: list[str] = []
        self.cleared = False
        self.submission: FakeSubmission | None = None

    async def reply(self, text: str) -> None:
        self.replies.append(text)

    async def ask_confirm(self, spec: ActionSpec) -> bool:
        self.prompted.append(spec.name)
        if self.confirm is None:
            await asyncio.Event().wait()
        return bool(self.confirm)

    async def clear_prompt(self) -> None:
        self.cleared = True

    async def ask_fields(self, spec: ActionSpec) -> FakeSubmission | None:
        self.forms.append(spec.name)
        if self.values is None:
            await asyncio.Event().wait()
        self.submission = FakeSubmission(values=self.values)
        return self.submission


@pytest.fixture
def flow(store, catalog, guard, engine, telemetry) -> InteractiveFlow:
    return InteractiveFlow(
        store=store,
        catalog=catalog,
        guard=guard,
        engine=engine,
        timeout_s=0.05,
        telemetry=telemetry,
    )


@pytest.mark.asyncio
async def test_approve_end_to_end(store, flow, telemetry) -> None:
    with store.transaction() as tx:
        tx.execute("UPDATE bots SET claimed_by = ? WHERE bot_id = ?", (STAFF_ID, BOT_ID))
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "Meets every requirement"})

    result = await flow.run("BotApprove", STAFF_ID, surface)

    assert result.state is FlowState.COMPLETED
    assert result.outcome is not None and result.outcome.text == "`Test Bot` approved"
    assert surface.cleared
    assert surface.submission.replies == [
        "Successfully performed the operation required: `BotApprove`\n**`Test Bot` approved**"
    ]
    assert store.get_bot(BOT_ID)["type"] == "approved"
    assert telemetry.get_counter("rpc_flows_total", (("state", "completed"),)) == 1


@pytest.mark.asyncio
async def test_non_staff_is_stopped_before_prompt(store, flow) -> None:
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "x", "kick": "T"})

    result = await flow.run("BotForceRemove", USER_ID, surface)

    assert result.state is FlowState.FAILED
    assert isinstance(result.error, Unauthorized)
    assert surface.prompted == []
    assert len(surface.replies) == 1
    assert surface.replies[0].startswith("Whoa there, do you have permission to do this?: ")
    assert store.get_bot(BOT_ID) is not None


@pytest.mark.asyncio
async def test_unknown_method_fails_with_one_message(flow) -> None:
    surface = FakeSurface()
    result = await flow.run("BotExplode", STAFF_ID, surface)
    assert result.state is FlowState.FAILED
    assert surface.replies == ["Error performing `BotExplode`: **Unknown RPC method: BotExplode**"]
    assert surface.prompted == []


@pytest.mark.asyncio
async def test_confirm_timeout_cancels_silently(store, flow, catalog, monkeypatch: pytest.MonkeyPatch) -> None:
    built: list[str] = []
    monkeypatch.setattr(catalog, "build", lambda name, raw: built.append(name))
    surface = FakeSurface(confirm=None, values={"bot_id": BOT_ID, "reason": "x"})

    result = await flow.run("BotApprove", STAFF_ID, surface)

    assert result.state is FlowState.CANCELLED
    assert surface.cleared
    assert surface.replies == []
    assert surface.forms == []
    assert built == []


@pytest.mark.asyncio
async def test_cancel_button(flow) -> None:
    surface = FakeSurface(confirm=False)
    result = await flow.run("BotVoteResetAll", STAFF_ID, surface)
    assert result.state is FlowState.CANCELLED
    assert surface.cleared
    assert surface.forms == []
    assert surface.replies == []


@pytest.mark.asyncio
async def test_form_timeout_cancels_without_building(store, flow) -> None:
    surface = FakeSurface(values=None)
    result = await flow.run("BotVoteResetAll", STAFF_ID, surface)
    assert result.state is FlowState.CANCELLED
    assert surface.forms == ["BotVoteResetAll"]
    assert surface.replies == []
    assert store.get_bot(BOT_ID)["votes"] == 12
    assert store.recent_actions() == []


@pytest.mark.asyncio
async def test_kick_maybe_is_a_parse_error(store, flow) -> None:
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "malware", "kick": "maybe"})

    result = await flow.run("BotForceRemove", STAFF_ID, surface)

    assert result.state is FlowState.FAILED
    assert isinstance(result.error, ValidationError)
    assert surface.submission.replies == ["**Error parsing `kick`: Invalid boolean**"]
    assert store.get_bot(BOT_ID) is not None


@pytest.mark.asyncio
async def test_consistency_fault_aborts_without_mutation(store, flow, catalog, monkeypatch) -> None:
    with store.transaction() as tx:
        tx.execute("UPDATE bots SET claimed_by = ? WHERE bot_id = ?", (STAFF_ID, BOT_ID))
    monkeypatch.setattr(catalog, "build", lambda name, raw: BotDeny(bot_id=BOT_ID, reason="wrong"))
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "ok"})

    result = await flow.run("BotApprove", STAFF_ID, surface)

    assert result.state is FlowState.FAILED
    assert isinstance(result.error, ConsistencyFault)
    assert surface.submission.replies == [
        "Error performing `BotApprove`: **Internal error: method (BotDeny) != variant (BotApprove)**"
    ]
    assert store.get_bot(BOT_ID)["type"] == "pending"
    assert store.recent_actions() == []


@pytest.mark.asyncio
async def test_engine_rejection_is_reported_on_the_form(store, flow) -> None:
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "great bot"})
    result = await flow.run("BotCertifyAdd", STAFF_ID, surface)
    assert result.state is FlowState.FAILED
    assert len(surface.submission.replies) == 1
    assert surface.submission.replies[0].startswith("Error performing `BotCertifyAdd`: **")


def test_illegal_transition_is_a_programming_error() -> None:
    run = _FlowRun(method="BotClaim")
    with pytest.raises(RuntimeError):
        run.advance(FlowState.VALIDATED)
    run.advance(FlowState.AWAITING_CONFIRMATION)
    run.cancel()
    assert run.state.terminal
    with pytest.raises(RuntimeError):
        run.advance(FlowState.AWAITING_FIELDS)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "values", "field_key"),
    [
        ("BotVoteCountSet", {"bot_id": BOT_ID, "reason": "restore", "count": "99999999999999999999"}, "count"),
        ("BotPremiumAdd", {"bot_id": BOT_ID, "reason": "lifetime", "time_period": "300000 years"}, "time_period"),
    ],
)
async def test_oversized_numbers_get_one_parse_error(store, flow, method: str, values, field_key: str) -> None:
    surface = FakeSurface(values=values)

    result = await flow.run(method, STAFF_ID, surface)

    assert result.state is FlowState.FAILED
    assert isinstance(result.error, ValidationError)
    assert surface.submission.replies == [
        f"**Error parsing `{field_key}`: number too large to fit in target type**"
    ]
    assert store.recent_actions() == []


@pytest.mark.asyncio
async def test_premium_past_year_9999_is_reported_on_the_form(store, flow) -> None:
    surface = FakeSurface(values={"bot_id": BOT_ID, "reason": "lifetime", "time_period": "9999 years"})

    result = await flow.run("BotPremiumAdd", STAFF_ID, surface)

    assert result.state is FlowState.FAILED
    assert len(surface.submission.replies) == 1
    assert surface.submission.replies[0].startswith("Error performing `BotPremiumAdd`: **Premium for bot")
