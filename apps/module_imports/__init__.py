"""Package re-export service.

Python has no module-level import declaration; a package decides what
``from package import *`` brings in through ``__all__``.  The texts returned
here describe that, and :meth:`ModuleImportDemo.describe` reads the real
``__all__`` of the library modules used by this service.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from typing import List, Tuple


DEFAULT_MODULES: Tuple[str, ...] = (
    "lib.contracts.scalars",
    "lib.context.scoped",
    "lib.concurrency.deferred",
)

_INTRO = """\
Las re-exportaciones de paquetes simplifican:

1. Importar la API pública de un paquete en una sola línea
2. Reducir imports repetitivos
3. Ocultar la estructura interna de módulos
4. Dejar claro qué nombres forman parte del contrato

Ventajas:
- Código más limpio
- `from paquete import *` solo trae lo listado en __all__
- Facilita mover código entre módulos internos sin romper llamadores

Limitaciones:
- Los nombres con guion bajo no se exportan
- Un __all__ desactualizado oculta nombres o expone de más
- Los imports con asterisco dificultan saber de dónde viene cada nombre
"""

_EXAMPLE = """\
# paquete/__init__.py
from .api import Client, connect
from .model import Order, Customer
from .util import retry

__all__ = ["Client", "connect", "Order", "Customer", "retry"]

# En otro módulo:
from paquete import *

# Ahora tiene acceso a:
# - Client, connect      (paquete.api)
# - Order, Customer      (paquete.model)
# - retry                (paquete.util)
"""


def exported_names(module_name: str) -> List[str]:
    """Names ``from <module_name> import *`` would bind."""

    module = importlib.import_module(module_name)
    names = getattr(module, "__all__", None)
    if names is None:
        names = [name for name in vars(module) if not name.startswith("_")]
    return sorted(names)


@dataclass
class ModuleImportDemo:
    modules: Tuple[str, ...] = field(default=DEFAULT_MODULES)

    def describe(self) -> str:
        lines = [_INTRO, "Exportaciones de este servicio:"]
        for module_name in self.modules:
            lines.append(f"- {module_name}: {', '.join(exported_names(module_name))}")
        return "\n".join(lines) + "\n"

    def example(self) -> str:
        return _EXAMPLE


__all__ = ["ModuleImportDemo", "exported_names"]
