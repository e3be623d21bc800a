import logging

import pytest

from core.backup import borg
from core.backup.borg import NoPathsSpecified
from runner.config_store import TargetConfig

logger = logging.getLogger("tests.borg")


class _Recorder:
    def __init__(self):
        self.calls = []
        self.statuses = []

    def __call__(self, command, logger, env=None, cwd=None):
        self.calls.append((command, env))
        return self.statuses.pop(0) if self.statuses else 0


def _config(**overrides):
    values = {"name": "home", "repo": "ssh://nas/./borg", "passphrase": "pw", "paths": ["/home", "/etc"]}
    values.update(overrides)
    return TargetConfig(**values)


@pytest.fixture(autouse=True)
def borg_bin(monkeypatch):
    monkeypatch.setattr(borg, "BORG_BIN", "borg")


@pytest.fixture
def commands(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(borg, "run_command", recorder)
    return recorder


def test_create_command():
    config = _config(archive_prefix="home-", compression="lz4", excludes=["*.tmp", "/home/*/.cache"])

    cmd = borg.build_create_command(config)

    assert cmd[:2] == ["borg", "create"]
    assert cmd[cmd.index("--compression") + 1] == "lz4"
    assert "--exclude-caches" in cmd
    assert [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "--exclude"] == ["*.tmp", "/home/*/.cache"]
    assert cmd[-3:] == ["::home-{now}", "/home", "/etc"]


def test_create_without_paths_never_runs_borg(commands):
    with pytest.raises(NoPathsSpecified) as excinfo:
        borg.create(_config(paths=[]), logger)

    assert excinfo.value.exit_code == 20
    assert commands.calls == []


def test_prune_is_scoped_to_prefix():
    config = _config(archive_prefix="{hostname}-home_", keep_last=1, keep_daily=2, keep_weekly=3, keep_monthly=4, keep_yearly=5)

    cmd = borg.build_prune_command(config)

    assert cmd[:2] == ["borg", "prune"]
    assert cmd[cmd.index("--glob-archives") + 1] == "{hostname}-home_*"
    assert cmd[cmd.index("--keep-last") + 1] == "1"
    assert cmd[cmd.index("--keep-daily") + 1] == "2"
    assert cmd[cmd.index("--keep-weekly") + 1] == "3"
    assert cmd[cmd.index("--keep-monthly") + 1] == "4"
    assert cmd[cmd.index("--keep-yearly") + 1] == "5"


def test_check_is_scoped_to_prefix():
    cmd = borg.build_check_command(_config(archive_prefix="web-"))

    assert cmd == ["borg", "check", "--show-rc", "--glob-archives", "web-*"]


@pytest.mark.parametrize("operation", [borg.create, borg.prune, borg.check])
def test_operation_passes_secrets_through_env(commands, operation):
    assert operation(_config(), logger) == 0

    (command, env), = commands.calls
    assert env == {"BORG_REPO": "ssh://nas/./borg", "BORG_PASSPHRASE": "pw"}
    assert "pw" not in command


def test_operation_returns_engine_status(commands, caplog):
    commands.statuses.append(2)

    with caplog.at_level(logging.ERROR, logger="tests.borg"):
        assert borg.check(_config(), logger) == 2

    assert "code 2" in caplog.text
