import json
from pathlib import Path

import pytest

from staffbot.config.loader import convert_keys, convert_to_camel, load_config, save_config
from staffbot.config.schema import Config


def test_defaults() -> None:
    config = Config()
    assert config.rpc.interaction_timeout_seconds == 120
    assert config.api.host == "127.0.0.1"
    assert config.discord.enabled is False


def test_save_writes_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    config = Config()
    config.rpc.extra_staff_ids = ["510065483693817867"]
    config.channels.mod_logs = 911907978926493716
    save_config(config, path)

    raw = json.loads(path.read_text())
    assert raw["rpc"]["interactionTimeoutSeconds"] == 120
    assert raw["rpc"]["extraStaffIds"] == ["510065483693817867"]
    assert raw["channels"]["modLogs"] == 911907978926493716
    assert path.stat().st_mode & 0o777 == 0o600

    loaded = load_config(path)
    assert loaded.rpc.extra_staff_ids == ["510065483693817867"]
    assert loaded.channels.mod_logs == 911907978926493716


def test_numeric_staff_ids_become_strings(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"rpc": {"extraStaffIds": [510065483693817867, " "]}}))
    assert load_config(path).rpc.extra_staff_ids == ["510065483693817867"]


def test_invalid_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(path).rpc.interaction_timeout_seconds == 120
    path.write_text(json.dumps({"rpc": {"interactionTimeoutSeconds": 0}}))
    assert load_config(path).rpc.interaction_timeout_seconds == 120


def test_env_overrides_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STAFFBOT_RPC__INTERACTION_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("STAFFBOT_API__PORT", "9000")
    config = load_config(tmp_path / "missing.json")
    assert config.rpc.interaction_timeout_seconds == 30
    assert config.api.port == 9000


def test_database_path_defaults_under_home(staffbot_home: Path) -> None:
    assert Config().database.resolved_path == staffbot_home / "data" / "listing.db"
    config = Config()
    config.database.path = str(staffbot_home / "custom.db")
    assert config.database.resolved_path == staffbot_home / "custom.db"


def test_key_conversion() -> None:
    assert convert_keys({"modLogs": 1, "rpc": [{"extraStaffIds": []}]}) == {
        "mod_logs": 1,
        "rpc": [{"extra_staff_ids": []}],
    }
    assert convert_to_camel({"role_sync_interval_seconds": 600}) == {"roleSyncIntervalSeconds": 600}


def test_saved_config_only_carries_read_ids(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"roles": {"staff": 1, "botRole": 2, "bugHunters": 3}, "channels": {"system": 4}}))
    config = load_config(path)
    assert config.roles.bug_hunters == 3

    save_config(config, path)
    raw = json.loads(path.read_text())
    assert raw["roles"] == {"bugHunters": 3}
    assert raw["channels"] == {"modLogs": 0}
