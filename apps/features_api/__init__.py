"""Feature demo façade.

:class:`FeatureDemos` bundles one instance of every demo component so the
HTTP layer in :mod:`apps.features_api.main` has a single object to hand to
its routes.  All components are built from the same configuration mapping.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from typing import Any, Dict

from apps.classifier import ValueClassifier
from apps.concurrency_demo import StructuredConcurrencyDemo
from apps.context_demo import ContextPropagationDemo
from apps.deferred_demo import DeferredValuesDemo
from apps.module_imports import ModuleImportDemo
from lib.contracts.responses import FeatureIndex, HealthStatus
from lib.utils.helpers import _utcnow_iso


FEATURES = [
    "Structural Pattern Matching",
    "Context Variables",
    "Task Groups",
    "Deferred Values",
    "Package Re-exports",
]

SECTIONS = ["classify", "context", "concurrency-demo", "deferred", "module-imports"]


@dataclass
class FeatureDemos:
    config: Dict[str, Any] = field(default_factory=dict)
    classifier: ValueClassifier = field(init=False)
    context: ContextPropagationDemo = field(init=False)
    concurrency: StructuredConcurrencyDemo = field(init=False)
    deferred: DeferredValuesDemo = field(init=False)
    module_imports: ModuleImportDemo = field(init=False)

    def __post_init__(self) -> None:
        self.classifier = ValueClassifier()
        self.context = ContextPropagationDemo(config=self.config)
        self.concurrency = StructuredConcurrencyDemo(config=self.config)
        self.deferred = DeferredValuesDemo(config=self.config)
        self.module_imports = ModuleImportDemo()


def feature_index(base_path: str, message: str = "Python Features Demo API") -> FeatureIndex:
    return FeatureIndex(
        message=message,
        features=list(FEATURES),
        endpoints={section: f"{base_path}/{section}" for section in SECTIONS},
    )


def health_status(application: str) -> HealthStatus:
    return HealthStatus(
        status="UP",
        python_version=platform.python_version(),
        application=application,
        timestamp=_utcnow_iso(),
    )


__all__ = ["FEATURES", "FeatureDemos", "feature_index", "health_status"]
