from __future__ import annotations

from typing import Iterator, Protocol, Sequence, runtime_checkable

from .cli_shared import UsageError
from .config import Config


class WorkflowNotFoundError(UsageError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown workflow '{name}'")
        self.name = name


@runtime_checkable
class Workflow(Protocol):
    """A named unit of CLI logic bound to one subcommand."""

    def execute(self, config: Config, args: Sequence[str]) -> None:
        """Run with the loaded config and the arguments after the subcommand."""

    def help(self) -> str:
        """One-line summary shown in the global usage."""


class WorkflowRegistry:
    """Subcommand name -> workflow, in registration order.

    Registration is single-threaded and finishes before dispatch; ``freeze``
    marks that point and makes the registry read-only.
    """

    def __init__(self) -> None:
        self._workflows: dict[str, Workflow] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "WorkflowRegistry":
        self._frozen = True
        return self

    def register(self, name: str, workflow: Workflow) -> None:
        if self._frozen:
            raise RuntimeError(f"workflow registry is frozen; cannot register {name!r}")
        key = str(name or "").strip()
        if not key:
            raise TypeError("workflow name must be a non-empty string")
        if not isinstance(workflow, Workflow):
            raise TypeError(
                f"workflow {key!r} must provide execute(config, args) and help()"
            )
        # Last registration wins.
        self._workflows[key] = workflow

    def get(self, name: str) -> Workflow | None:
        return self._workflows.get(name)

    def lookup(self, name: str) -> Workflow:
        workflow = self._workflows.get(name)
        if workflow is None:
            raise WorkflowNotFoundError(name)
        return workflow

    def names(self) -> list[str]:
        return list(self._workflows)

    def items(self) -> list[tuple[str, Workflow]]:
        return list(self._workflows.items())

    def __contains__(self, name: object) -> bool:
        return name in self._workflows

    def __len__(self) -> int:
        return len(self._workflows)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._workflows))
