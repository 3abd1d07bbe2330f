"""Pydantic models returned by the feature demo endpoints."""
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _FrozenModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Summary(_FrozenModel):
    """Independently fetched metrics for one category."""

    count: int
    sum: float
    average: float
    max: int


class DatabaseConnection(_FrozenModel):
    host: str
    port: int


class ExpensiveResult(_FrozenModel):
    data: str
    value: int


class ThreadSafetyReport(_FrozenModel):
    """Values observed by two threads racing on one deferred cell."""

    thread1: str
    thread2: str
    initializations: int


class DefaultContext(_FrozenModel):
    has_context: bool
    user_id: str


class FeatureIndex(_FrozenModel):
    message: str
    features: List[str] = Field(default_factory=list)
    endpoints: Dict[str, str] = Field(default_factory=dict)


class HealthStatus(_FrozenModel):
    status: str = "UP"
    python_version: str
    application: str
    timestamp: str
