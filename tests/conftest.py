from __future__ import annotations

from pathlib import Path

import pytest

from staffbot.rpc.actions import ActionCatalog
from staffbot.rpc.contracts import AuditNotice
from staffbot.rpc.engine import RPCEngine
from staffbot.rpc.guard import StaffGuard
from staffbot.storage.store import ListingStore
from staffbot.telemetry.inmemory import InMemoryTelemetry

STAFF_ID = "510065483693817867"
OTHER_STAFF_ID = "563808552288780322"
USER_ID = "728871946456137770"
BOT_ID = "815553000470478850"
OTHER_BOT_ID = "1019662370278228028"
TEAM_ID = "9a1d6f1c-1f7e-4a40-9a5e-1b0c3d2e4f50"


class FakePlatform:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.notices: list[AuditNotice] = []
        self.kicks: list[tuple[str, str]] = []

    async def send_audit(self, notice: AuditNotice) -> None:
        if self.fail:
            raise RuntimeError("mod log unreachable")
        self.notices.append(notice)

    async def kick_bot(self, bot_id: str, reason: str) -> None:
        if self.fail:
            raise RuntimeError("missing permissions")
        self.kicks.append((bot_id, reason))


@pytest.fixture(autouse=True)
def staffbot_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("STAFFBOT_HOME", str(home))
    return home


@pytest.fixture
def store(tmp_path: Path) -> ListingStore:
    store = ListingStore(tmp_path / "listing.db")
    store.upsert_user(STAFF_ID, staff=True)
    store.upsert_user(OTHER_STAFF_ID, staff=True)
    store.upsert_user(USER_ID)
    store.add_team(TEAM_ID, "Infinity Devs")
    store.add_bot(BOT_ID, name="Test Bot", owner=USER_ID, votes=12)
    store.add_bot(OTHER_BOT_ID, name="Other Bot", owner=USER_ID, bot_type="approved", votes=7)
    return store


@pytest.fixture
def telemetry() -> InMemoryTelemetry:
    return InMemoryTelemetry()


@pytest.fixture
def catalog() -> ActionCatalog:
    return ActionCatalog()


@pytest.fixture
def guard(store: ListingStore) -> StaffGuard:
    return StaffGuard(store)


@pytest.fixture
def engine(telemetry: InMemoryTelemetry) -> RPCEngine:
    return RPCEngine(telemetry=telemetry)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()
