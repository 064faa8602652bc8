from unittest.mock import MagicMock

import pytest

from jobdb_relay import session as session_module
from jobdb_relay.session import LAUNCH_ARGS, SessionManager
from jobdb_relay.sites import get_site


@pytest.fixture
def playwright(monkeypatch):
    fake = MagicMock(name="playwright")
    fake.chromium.launch_persistent_context.side_effect = lambda **kwargs: MagicMock(name="context")
    starter = MagicMock(name="sync_playwright")
    starter.return_value.start.return_value = fake
    monkeypatch.setattr(session_module, "sync_playwright", starter)
    return fake


def test_context_is_launched_lazily_and_reused(config, playwright):
    manager = SessionManager(config)

    first = manager.acquire_context()
    second = manager.acquire_context()

    assert first is second
    assert playwright.chromium.launch_persistent_context.call_count == 1
    kwargs = playwright.chromium.launch_persistent_context.call_args.kwargs
    assert kwargs["user_data_dir"] == str(config.get_user_data_dir())
    assert kwargs["args"] == LAUNCH_ARGS
    assert kwargs["ignore_default_args"] == ["--enable-automation"]
    assert config.get_user_data_dir().is_dir()


def test_dead_context_is_replaced(config, playwright):
    manager = SessionManager(config)
    first = manager.acquire_context()
    first.cookies.side_effect = RuntimeError("Target closed")

    second = manager.acquire_context()

    assert second is not first
    assert playwright.chromium.launch_persistent_context.call_count == 2


def test_close_event_forgets_the_context(config, playwright):
    manager = SessionManager(config)
    context = manager.acquire_context()
    on_close = context.on.call_args.args[1]

    on_close(context)

    assert manager.context is None


def test_headless_flag_defaults_to_config(make_config, playwright):
    manager = SessionManager(make_config({"browser": {"headless": False}}))

    manager.acquire_context()
    manager.close()
    manager.acquire_context(headless=True)

    calls = playwright.chromium.launch_persistent_context.call_args_list
    assert [c.kwargs["headless"] for c in calls] == [False, True]


def test_missing_executable_is_ignored(make_config, playwright, tmp_path):
    manager = SessionManager(make_config({"browser": {"executable_path": str(tmp_path / "no-chrome")}}))

    manager.acquire_context()

    assert playwright.chromium.launch_persistent_context.call_args.kwargs["executable_path"] is None


def test_open_site_navigates_to_entry_page(config, playwright):
    manager = SessionManager(config)

    page = manager.open_site(get_site("jobins"))

    page.goto.assert_called_once_with("https://jobins.jp/agent/")


def test_close_is_idempotent(config, playwright):
    manager = SessionManager(config)
    context = manager.acquire_context()

    manager.close()
    manager.close()

    context.close.assert_called_once()
    playwright.stop.assert_called_once()
    assert manager.context is None
