import pytest
import structlog
import structlog.testing

from lib.config.features_loader import CONFIG_ENV_VAR, load_features_config, resolve_config_path
from lib.config.yaml_loader import load_yaml
from lib.telemetry.logger import configure_logging


def test_load_features_config(tmp_path):
    path = tmp_path / "features.yaml"
    path.write_text(
        "app:\n  name: Demo\n  prefix: /demo/\n  port: 9000\nlogging:\n  level: debug\n  json: true\n",
        encoding="utf-8",
    )
    config = load_features_config(str(path))
    assert config.app_name == "Demo"
    assert config.prefix == "demo"
    assert config.port == 9000
    assert config.log_level == "DEBUG"
    assert config.log_json is True
    assert config.raw["app"]["name"] == "Demo"


def test_missing_file_gives_defaults(tmp_path):
    config = load_features_config(str(tmp_path / "absent.yaml"))
    assert config.raw == {}
    assert config.prefix == "features"
    assert config.host == "127.0.0.1"
    assert config.log_level == "INFO"


def test_environment_override(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("app:\n  prefix: from-env\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert resolve_config_path() == str(path)
    assert load_features_config().prefix == "from-env"
    assert resolve_config_path("explicit.yaml") == "explicit.yaml"


def test_load_yaml_requires_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml(path)
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert load_yaml(empty) == {}


def test_repository_config_is_loadable():
    config = load_features_config("config/features.yaml")
    assert config.prefix == "features"
    assert config.raw["deferred"]["connection"] == {"host": "localhost", "port": 5432}


def test_logging_configuration():
    configure_logging("INFO", json=True)
    assert structlog.is_configured()
    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
    configure_logging("WARNING", json=False)
    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


def test_component_events_are_logged():
    from apps.deferred_demo import DeferredValuesDemo

    demo = DeferredValuesDemo(config={"deferred": {"delay_ms": {"config": 0}}})
    with structlog.testing.capture_logs() as events:
        demo.get_lazy_config()
        demo.get_lazy_config()
    initialising = [e for e in events if e["event"] == "deferred.initializing"]
    assert initialising == [{"event": "deferred.initializing", "cell": "lazy_config", "log_level": "info"}]
