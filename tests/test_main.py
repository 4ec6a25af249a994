import asyncio
import io
from types import SimpleNamespace

import pytest

from hss_lock import config, gate, main as lock_main
from hss_lock.auth import AuthStatus

from conftest import RecordingStorage


def scripted_prompt(answers):
    remaining = list(answers)

    def prompt(message):
        assert message == config.PASSWORD_PROMPT
        return remaining.pop(0)

    return prompt


def test_prompts_until_unlocked():
    storage = RecordingStorage()
    out = io.StringIO()
    app = lock_main.LockScreenApp("right", storage, prompt=scripted_prompt(["", "wrong", "right"]), out=out)

    assert asyncio.run(app.run()) == 0

    lines = out.getvalue().splitlines()
    assert lines == [
        "Checking authentication...",
        config.MSG_EMPTY_PASSWORD,
        config.MSG_INCORRECT_PASSWORD,
        "Unlocked.",
    ]
    assert config.AUTH_TIMESTAMP_KEY in storage.data
    assert app.session.is_closed


def test_remembered_unlock_skips_prompt():
    storage = RecordingStorage()
    first = lock_main.LockScreenApp("right", storage, prompt=scripted_prompt(["right"]), out=io.StringIO())
    asyncio.run(first.run())

    out = io.StringIO()
    second = lock_main.LockScreenApp("right", storage, prompt=scripted_prompt([]), out=out)
    asyncio.run(second.run())
    assert out.getvalue().splitlines() == ["Checking authentication...", "Unlocked."]


def test_logout():
    storage = RecordingStorage({config.AUTH_TIMESTAMP_KEY: "2025-06-01T12:00:00+00:00"})
    out = io.StringIO()
    app = lock_main.LockScreenApp("right", storage, out=out)

    assert asyncio.run(app.run(logout=True)) == 0
    assert "Logged out." in out.getvalue()
    assert config.AUTH_TIMESTAMP_KEY not in storage.data
    assert app.session.state.status == AuthStatus.UNAUTHENTICATED


@pytest.fixture()
def inactive_gate(monkeypatch):
    monkeypatch.delenv(config.PLATFORM_ENV_VAR, raising=False)
    monkeypatch.delenv(config.DEBUG_ENV_VAR, raising=False)
    monkeypatch.setattr(gate, "sys", SimpleNamespace(flags=SimpleNamespace(dev_mode=False)))


def test_main_exits_when_gate_inactive(inactive_gate, capsys):
    assert lock_main.main([]) == 0
    assert "inactive" in capsys.readouterr().out


def test_main_requires_password(inactive_gate, monkeypatch, capsys):
    monkeypatch.delenv(config.PASSWORD_ENV_VAR, raising=False)
    assert lock_main.main(["--force"]) == config.EXIT_MISSING_PASSWORD
    assert config.PASSWORD_ENV_VAR in capsys.readouterr().err


def test_main_logout_with_store_path(inactive_gate, monkeypatch, tmp_path, capsys):
    monkeypatch.setenv(config.PASSWORD_ENV_VAR, "right")
    store = tmp_path / "store.enc"
    assert lock_main.main(["--force", "--logout", "--store", str(store)]) == 0
    assert "Logged out." in capsys.readouterr().out
    assert not store.exists()


def test_main_interrupted_prompt(monkeypatch, tmp_path):
    monkeypatch.setenv(config.PLATFORM_ENV_VAR, "web")
    monkeypatch.setenv(config.DEBUG_ENV_VAR, "1")
    monkeypatch.setenv(config.PASSWORD_ENV_VAR, "right")

    def interrupted(message):
        raise EOFError

    monkeypatch.setattr(lock_main.getpass, "getpass", interrupted)
    assert lock_main.main(["--store", str(tmp_path / "store.enc")]) == config.EXIT_INTERRUPTED


def test_interrupt_at_prompt_closes_session():
    def interrupted(message):
        raise KeyboardInterrupt

    app = lock_main.LockScreenApp("right", RecordingStorage(), prompt=interrupted, out=io.StringIO())
    with pytest.raises(KeyboardInterrupt):
        asyncio.run(app.run())
    assert app.session.is_closed


def test_main_ctrl_c_exits_with_130(monkeypatch, tmp_path):
    monkeypatch.setenv(config.PLATFORM_ENV_VAR, "web")
    monkeypatch.setenv(config.DEBUG_ENV_VAR, "1")
    monkeypatch.setenv(config.PASSWORD_ENV_VAR, "right")

    def interrupted(message):
        raise KeyboardInterrupt

    monkeypatch.setattr(lock_main.getpass, "getpass", interrupted)
    assert lock_main.main(["--store", str(tmp_path / "store.enc")]) == config.EXIT_INTERRUPTED


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc:
        lock_main.main(["--version"])
    assert exc.value.code == 0
    assert config.APP_VERSION in capsys.readouterr().out
