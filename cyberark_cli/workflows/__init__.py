"""Built-in workflows and the explicit registry builder.

Importing a workflow module registers nothing; ``build_registry`` calls each
module's ``register`` in order and freezes the result.
"""

from __future__ import annotations

from typing import Callable, Iterable

from ..registry import WorkflowRegistry
from . import list_accounts, request, verify

Registrar = Callable[[WorkflowRegistry], None]

DEFAULT_REGISTRARS: tuple[Registrar, ...] = (
    verify.register,
    list_accounts.register,
    request.register,
)


def build_registry(registrars: Iterable[Registrar] = DEFAULT_REGISTRARS) -> WorkflowRegistry:
    registry = WorkflowRegistry()
    for registrar in registrars:
        registrar(registry)
    return registry.freeze()


__all__ = ["DEFAULT_REGISTRARS", "Registrar", "build_registry"]
