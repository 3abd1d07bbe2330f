import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .yaml_loader import load_yaml


DEFAULT_CONFIG_PATH = "config/features.yaml"
CONFIG_ENV_VAR = "FEATURES_CONFIG"


@dataclass
class FeaturesConfig:
    """Typed view over ``features.yaml``.

    Only the sections read by the HTTP layer are broken out.  The demo
    components receive the raw mapping and pick their own section, so new
    keys can be added to the file without touching this class.
    """

    raw: Dict[str, Any]
    app: Dict[str, Any]
    logging: Dict[str, Any]

    @property
    def app_name(self) -> str:
        return str(self.app.get("name", "Python Features Demo"))

    @property
    def prefix(self) -> str:
        return str(self.app.get("prefix", "features")).strip("/")

    @property
    def host(self) -> str:
        return str(self.app.get("host", "127.0.0.1"))

    @property
    def port(self) -> int:
        return int(self.app.get("port", 8080))

    @property
    def log_level(self) -> str:
        return str(self.logging.get("level", "INFO")).upper()

    @property
    def log_json(self) -> bool:
        return bool(self.logging.get("json", False))


def resolve_config_path(path: str | None = None) -> str:
    """Return ``path`` or the ``FEATURES_CONFIG`` override or the default."""

    return path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH


def load_features_config(path: str | None = None) -> FeaturesConfig:
    """Load ``features.yaml`` and return a :class:`FeaturesConfig`.

    Parameters
    ----------
    path:
        File system path to the YAML configuration file.  When omitted the
        ``FEATURES_CONFIG`` environment variable is consulted before falling
        back to ``config/features.yaml``.  A missing file yields the
        built-in defaults.
    """

    resolved = resolve_config_path(path)
    raw = load_yaml(resolved) if Path(resolved).exists() else {}
    return FeaturesConfig(
        raw=raw,
        app=raw.get("app", {}) or {},
        logging=raw.get("logging", {}) or {},
    )
