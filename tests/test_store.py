import pytest

from staffbot.storage.store import ListingStore

from .conftest import BOT_ID, OTHER_BOT_ID, STAFF_ID, USER_ID


def test_repair_stale_claims(store: ListingStore) -> None:
    with store.transaction() as tx:
        tx.execute("UPDATE bots SET claimed_by = 'None' WHERE bot_id = ?", (BOT_ID,))
        tx.execute("UPDATE bots SET claimed_by = ? WHERE bot_id = ?", (STAFF_ID, OTHER_BOT_ID))

    assert store.repair_stale_claims() == 1
    assert store.get_bot(BOT_ID)["claimed_by"] is None
    assert store.get_bot(OTHER_BOT_ID)["claimed_by"] == STAFF_ID
    assert store.repair_stale_claims() == 0


def test_transaction_rolls_back_on_error(store: ListingStore) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.execute("UPDATE bots SET votes = 0")
            raise RuntimeError("abort")
    assert store.get_bot(BOT_ID)["votes"] == 12


def test_add_vote_counts(store: ListingStore) -> None:
    store.add_vote(BOT_ID, USER_ID)
    assert store.vote_rows(BOT_ID) == 1
    assert store.get_bot(BOT_ID)["votes"] == 13


def test_add_bot_rejects_unknown_type(store: ListingStore) -> None:
    with pytest.raises(ValueError):
        store.add_bot("123456789012345678", name="x", bot_type="banned")


def test_recent_actions_limit(store: ListingStore) -> None:
    for i in range(3):
        with store.transaction() as tx:
            store.log_action(tx, method="BotClaim", user_id=STAFF_ID, data={"n": i})
    entries = store.recent_actions(2)
    assert [e["data"]["n"] for e in entries] == [2, 1]
    assert store.recent_actions(0) == []
