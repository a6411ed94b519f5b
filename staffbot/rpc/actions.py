"""Closed catalog of staff RPC actions and their field schemas."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from staffbot.rpc.errors import UnknownAction, ValidationError
from staffbot.rpc.parsers import (
    MAX_TEXT_CHARS,
    parse_bool,
    parse_hours,
    parse_int,
    parse_snowflake,
    parse_team_id,
    parse_text,
)


class RPCMethod(str, Enum):
    """Stable, user-facing action names."""

    BOT_CLAIM = "BotClaim"
    BOT_UNCLAIM = "BotUnclaim"
    BOT_APPROVE = "BotApprove"
    BOT_DENY = "BotDeny"
    BOT_VOTE_RESET = "BotVoteReset"
    BOT_VOTE_RESET_ALL = "BotVoteResetAll"
    BOT_UNVERIFY = "BotUnverify"
    BOT_PREMIUM_ADD = "BotPremiumAdd"
    BOT_PREMIUM_REMOVE = "BotPremiumRemove"
    BOT_VOTE_BAN_ADD = "BotVoteBanAdd"
    BOT_VOTE_BAN_REMOVE = "BotVoteBanRemove"
    BOT_FORCE_REMOVE = "BotForceRemove"
    BOT_CERTIFY_ADD = "BotCertifyAdd"
    BOT_CERTIFY_REMOVE = "BotCertifyRemove"
    BOT_VOTE_COUNT_SET = "BotVoteCountSet"
    BOT_TRANSFER_OWNERSHIP_USER = "BotTransferOwnershipUser"
    BOT_TRANSFER_OWNERSHIP_TEAM = "BotTransferOwnershipTeam"
    TEAM_NAME_EDIT = "TeamNameEdit"

    def __str__(self) -> str:
        return self.value


class FieldKind(Enum):
    """Semantic type of one action field."""

    ID = "id"
    TEAM_ID = "team_id"
    TEXT = "text"
    BOOL = "bool"
    INT = "int"
    DURATION = "duration"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One input field: how it is asked for and how it is parsed."""

    key: str
    label: str
    kind: FieldKind
    attr: str = ""
    paragraph: bool = False
    placeholder: str | None = None
    max_chars: int = MAX_TEXT_CHARS

    @property
    def target(self) -> str:
        """Attribute name on the action variant."""
        return self.attr or self.key

    def parse(self, raw: str) -> Any:
        match self.kind:
            case FieldKind.ID:
                return parse_snowflake(self.key, raw)
            case FieldKind.TEAM_ID:
                return parse_team_id(self.key, raw)
            case FieldKind.TEXT:
                return parse_text(self.key, raw, max_chars=self.max_chars)
            case FieldKind.BOOL:
                return parse_bool(self.key, raw)
            case FieldKind.INT:
                return parse_int(self.key, raw)
            case FieldKind.DURATION:
                return parse_hours(self.key, raw)


class _RPCAction:
    __slots__ = ()

    method: ClassVar[RPCMethod]

    @property
    def name(self) -> str:
        return self.method.value

    @property
    def target(self) -> str | None:
        """Bot or team id the action applies to, if any."""
        return getattr(self, "bot_id", None) or getattr(self, "team_id", None)

    @property
    def audit_reason(self) -> str:
        return str(getattr(self, "reason", "") or "")

    def to_log_data(self) -> dict[str, Any]:
        return dataclasses.asdict(self)  # type: ignore[call-overload]


@dataclass(frozen=True, slots=True, kw_only=True)
class BotClaim(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_CLAIM
    bot_id: str
    force: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class BotUnclaim(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_UNCLAIM
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotApprove(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_APPROVE
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotDeny(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_DENY
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotVoteReset(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_VOTE_RESET
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotVoteResetAll(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_VOTE_RESET_ALL
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotUnverify(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_UNVERIFY
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotPremiumAdd(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_PREMIUM_ADD
    bot_id: str
    reason: str
    time_period_hours: int


@dataclass(frozen=True, slots=True, kw_only=True)
class BotPremiumRemove(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_PREMIUM_REMOVE
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotVoteBanAdd(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_VOTE_BAN_ADD
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotVoteBanRemove(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_VOTE_BAN_REMOVE
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotForceRemove(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_FORCE_REMOVE
    bot_id: str
    reason: str
    kick: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class BotCertifyAdd(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_CERTIFY_ADD
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotCertifyRemove(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_CERTIFY_REMOVE
    bot_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotVoteCountSet(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_VOTE_COUNT_SET
    bot_id: str
    reason: str
    count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class BotTransferOwnershipUser(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_TRANSFER_OWNERSHIP_USER
    bot_id: str
    reason: str
    new_owner: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BotTransferOwnershipTeam(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.BOT_TRANSFER_OWNERSHIP_TEAM
    bot_id: str
    reason: str
    new_team: str


@dataclass(frozen=True, slots=True, kw_only=True)
class TeamNameEdit(_RPCAction):
    method: ClassVar[RPCMethod] = RPCMethod.TEAM_NAME_EDIT
    team_id: str
    new_name: str
    reason: str


type Action = (
    BotClaim
    | BotUnclaim
    | BotApprove
    | BotDeny
    | BotVoteReset
    | BotVoteResetAll
    | BotUnverify
    | BotPremiumAdd
    | BotPremiumRemove
    | BotVoteBanAdd
    | BotVoteBanRemove
    | BotForceRemove
    | BotCertifyAdd
    | BotCertifyRemove
    | BotVoteCountSet
    | BotTransferOwnershipUser
    | BotTransferOwnershipTeam
    | TeamNameEdit
)


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """Static metadata for one catalog entry."""

    method: RPCMethod
    title: str
    fields: tuple[FieldSpec, ...]
    action_type: type[_RPCAction]

    @property
    def name(self) -> str:
        return self.method.value


_BOT_ID = FieldSpec("bot_id", "Bot ID", FieldKind.ID)
_REASON = FieldSpec("reason", "Reason", FieldKind.TEXT, paragraph=True)
_REASON_PROOF = FieldSpec(
    "reason",
    "Reason",
    FieldKind.TEXT,
    paragraph=True,
    placeholder="You must give proof",
)


def _bot_reason(method: RPCMethod, title: str, action_type: type[_RPCAction]) -> ActionSpec:
    return ActionSpec(method, title, (_BOT_ID, _REASON), action_type)


DEFAULT_SPECS: tuple[ActionSpec, ...] = (
    ActionSpec(
        RPCMethod.BOT_CLAIM,
        "Claim Bot",
        (_BOT_ID, FieldSpec("force", "Force Claim [Y/N]", FieldKind.BOOL)),
        BotClaim,
    ),
    _bot_reason(RPCMethod.BOT_UNCLAIM, "Unclaim Bot", BotUnclaim),
    _bot_reason(RPCMethod.BOT_APPROVE, "Approve Bot", BotApprove),
    _bot_reason(RPCMethod.BOT_DENY, "Deny Bot", BotDeny),
    _bot_reason(RPCMethod.BOT_VOTE_RESET, "Vote Reset Bot", BotVoteReset),
    ActionSpec(RPCMethod.BOT_VOTE_RESET_ALL, "Vote Reset All Bots", (_REASON,), BotVoteResetAll),
    ActionSpec(RPCMethod.BOT_UNVERIFY, "Unverify Bot", (_BOT_ID, _REASON_PROOF), BotUnverify),
    ActionSpec(
        RPCMethod.BOT_PREMIUM_ADD,
        "Add Bot To Premium",
        (
            _BOT_ID,
            _REASON_PROOF,
            FieldSpec(
                "time_period",
                "Time Period",
                FieldKind.DURATION,
                attr="time_period_hours",
                placeholder="Format: INTEGER UNIT, e.g. 1 day, 2 weeks, 3 months, 4 years",
            ),
        ),
        BotPremiumAdd,
    ),
    ActionSpec(
        RPCMethod.BOT_PREMIUM_REMOVE,
        "Remove Bot From Premium",
        (_BOT_ID, _REASON_PROOF),
        BotPremiumRemove,
    ),
    _bot_reason(RPCMethod.BOT_VOTE_BAN_ADD, "Vote Ban Bot", BotVoteBanAdd),
    _bot_reason(RPCMethod.BOT_VOTE_BAN_REMOVE, "Vote Ban Remove Bot", BotVoteBanRemove),
    ActionSpec(
        RPCMethod.BOT_FORCE_REMOVE,
        "Force Remove Bot",
        (_BOT_ID, _REASON, FieldSpec("kick", "Kick?", FieldKind.BOOL, placeholder="T/F")),
        BotForceRemove,
    ),
    _bot_reason(RPCMethod.BOT_CERTIFY_ADD, "Certify Bot (not recommended)", BotCertifyAdd),
    _bot_reason(RPCMethod.BOT_CERTIFY_REMOVE, "Uncertify Bot", BotCertifyRemove),
    ActionSpec(
        RPCMethod.BOT_VOTE_COUNT_SET,
        "Set Bot Vote Count",
        (_BOT_ID, _REASON, FieldSpec("count", "Count", FieldKind.INT)),
        BotVoteCountSet,
    ),
    ActionSpec(
        RPCMethod.BOT_TRANSFER_OWNERSHIP_USER,
        "Transfer Bot Ownership",
        (_BOT_ID, _REASON, FieldSpec("new_owner", "New Owner ID", FieldKind.ID)),
        BotTransferOwnershipUser,
    ),
    ActionSpec(
        RPCMethod.BOT_TRANSFER_OWNERSHIP_TEAM,
        "Transfer Bot Ownership to Team",
        (_BOT_ID, _REASON, FieldSpec("new_team", "New Team ID", FieldKind.TEAM_ID)),
        BotTransferOwnershipTeam,
    ),
    ActionSpec(
        RPCMethod.TEAM_NAME_EDIT,
        "Team Name Edit",
        (
            FieldSpec("team_id", "Team ID", FieldKind.TEAM_ID),
            FieldSpec("new_name", "New Team Name", FieldKind.TEXT, max_chars=100),
            _REASON,
        ),
        TeamNameEdit,
    ),
)


class ActionCatalog:
    """Name -> schema lookup and action construction for the closed action set."""

    MAX_SUGGESTIONS = 25

    def __init__(self, specs: Iterable[ActionSpec] = DEFAULT_SPECS) -> None:
        self._specs: dict[str, ActionSpec] = {spec.name: spec for spec in specs}

    def get(self, name: str) -> ActionSpec:
        spec = self._specs.get((name or "").strip())
        if spec is None:
            raise UnknownAction(name)
        return spec

    def names(self) -> tuple[str, ...]:
        return tuple(self._specs)

    def specs(self) -> tuple[ActionSpec, ...]:
        return tuple(self._specs.values())

    def suggest(self, partial: str) -> list[str]:
        """Autocomplete choices for a partially typed action name."""
        needle = (partial or "").strip().lower()
        matches = [name for name in self._specs if not needle or needle in name.lower()]
        return matches[: self.MAX_SUGGESTIONS]

    def build(self, name: str, raw: Mapping[str, str]) -> Action:
        """Parse ``raw`` field text in schema order into a fully populated action.

        Stops at the first field that fails to parse.
        """
        spec = self.get(name)
        values: dict[str, Any] = {}
        for field in spec.fields:
            value = raw.get(field.key)
            if value is None:
                raise ValidationError(field.key, "missing value")
            values[field.target] = field.parse(str(value))
        return spec.action_type(**values)  # type: ignore[return-value]
