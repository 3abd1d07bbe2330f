import copy

import pytest
from fastapi.testclient import TestClient

from apps.features_api.main import create_app
from lib.config.features_loader import FeaturesConfig


FAST_CONFIG = {
    "app": {"name": "Python Features Demo", "prefix": "features"},
    "logging": {"level": "WARNING", "json": False},
    "context": {"anonymous_user": "usuario-anonimo"},
    "concurrency": {
        "timeout_seconds": 1.0,
        "delays_ms": {
            "profile": 1,
            "orders": 2,
            "preferences": 1,
            "database": 40,
            "cache": 0,
            "api": 60,
            "slow_op1": 1,
            "slow_op2": 2,
            "count": 0,
            "sum": 0,
            "average": 0,
            "max": 0,
        },
    },
    "deferred": {
        "delay_ms": {"config": 0, "expensive": 0, "race": 20},
        "connection": {"host": "localhost", "port": 5432},
    },
}


def _features_config(raw):
    return FeaturesConfig(raw=raw, app=raw["app"], logging=raw["logging"])


@pytest.fixture
def fast_config():
    return copy.deepcopy(FAST_CONFIG)


@pytest.fixture
def client(fast_config):
    app = create_app(_features_config(fast_config), configure_logs=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def slow_client(fast_config):
    """Client whose slow operations always miss their deadline."""
    fast_config["concurrency"]["timeout_seconds"] = 0.05
    fast_config["concurrency"]["delays_ms"].update({"slow_op1": 500, "slow_op2": 500})
    app = create_app(_features_config(fast_config), configure_logs=False)
    with TestClient(app) as test_client:
        yield test_client
