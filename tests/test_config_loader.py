import pytest

from jobdb_relay.config_loader import ConfigLoader, ConfigValidationError, load_config


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    config = ConfigLoader(str(path))

    assert config.get_max_details_per_source() == 20
    assert config.get_captcha_max_polls() == 60
    assert config.get_captcha_poll_interval() == 1.0
    assert config.get_api_port() == 3001
    assert config.is_headless() is False
    assert config.get_sources() == []


def test_second_values_are_returned_in_milliseconds(make_config):
    config = make_config({"browser": {"navigation_timeout": 12}, "export": {"download_timeout": 45}})

    assert config.get_navigation_timeout() == 12000
    assert config.get_search_navigation_timeout() == 60000
    assert config.get_download_timeout() == 45000
    assert config.get_results_timeout() == 15000


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader(str(tmp_path / "nope.yaml"))


@pytest.mark.parametrize("overrides", [
    {"captcha": {"poll_interval": 0}},
    {"crawl": {"max_details_per_source": -1}},
    {"browser": {"launch_timeout": -5}},
    {"api": {"port": 70000}},
])
def test_invalid_values_raise(make_config, overrides):
    with pytest.raises(ConfigValidationError):
        make_config(overrides)


def test_search_criteria_drops_sources_and_nulls(make_config):
    config = make_config({"search": {
        "query": "python", "location": "東京", "min_salary": None,
        "sources": ["jobins", "careerbank"],
    }})

    assert config.get_search_criteria() == {"query": "python", "location": "東京"}
    assert config.get_sources() == ["jobins", "careerbank"]


def test_credentials_fall_back_to_environment(make_config, monkeypatch):
    monkeypatch.setenv("JOBDB_JOBINS_USER", "agent@example.com")
    monkeypatch.setenv("JOBDB_JOBINS_PASSWORD", "secret")
    monkeypatch.delenv("JOBDB_JOBMIRU_USER", raising=False)
    monkeypatch.delenv("JOBDB_JOBMIRU_PASSWORD", raising=False)
    config = make_config({"credentials": {"careerbank": {"user": "cb", "password": "pw"}}})

    assert config.get_credentials("jobins") == {"user": "agent@example.com", "password": "secret"}
    assert config.get_credentials("careerbank") == {"user": "cb", "password": "pw"}
    assert config.get_credentials("jobmiru") is None


def test_load_config_honours_env_override(config, monkeypatch):
    monkeypatch.setenv("JOBDB_RELAY_CONFIG", str(config.config_path))

    assert load_config().config_path == config.config_path


def test_log_file_template_is_rendered(config):
    log_file = config.get_log_file()

    assert "{timestamp}" not in str(log_file)
    assert log_file.name.startswith("run_")
