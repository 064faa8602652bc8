"""
Shared fixtures: a temp YAML config and page/context doubles.
"""

from unittest.mock import MagicMock

import pytest
import yaml

from jobdb_relay.config_loader import ConfigLoader

# Fast waits so nothing in the suite sleeps for real
BASE_SETTINGS = {
    "browser": {"headless": True},
    "crawl": {
        "max_details_per_source": 20,
        "results_settle_ms": 0,
        "detail_settle_ms": 0,
    },
    "captcha": {"max_polls": 3, "poll_interval": 0.01},
    "metrics": {"enabled": False},
}


def _merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@pytest.fixture
def make_config(tmp_path):
    """Factory: write settings (merged over BASE_SETTINGS) and load them."""

    def _make(overrides=None, base=BASE_SETTINGS):
        data = _merge(base, overrides or {})
        data.setdefault("browser", {})["user_data_dir"] = str(tmp_path / "profile")
        data.setdefault("logging", {})["log_file"] = str(tmp_path / "logs" / "run_{timestamp}.log")
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return ConfigLoader(str(path))

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def page():
    """A Playwright page double; evaluate() finds nothing unless a test says otherwise."""
    fake = MagicMock(name="page")
    fake.evaluate.return_value = None
    fake.url = "about:blank"
    return fake


@pytest.fixture
def events():
    """Collects emitted stream events; call it as the emit sink."""

    class Recorder(list):
        def __call__(self, event):
            self.append(event)

        def messages(self, level=None):
            return [
                e.message for e in self
                if getattr(e, "type", None) == "log" and (level is None or e.level == level)
            ]

        def of_type(self, kind):
            return [e for e in self if e.type == kind]

    return Recorder()
