"""
Ansilite Module Base

Base class for task modules and the registry that dispatches task types
to them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ansilite.connections.base import Connection
from ansilite.engine.errors import ModuleError, UnknownModuleError
from ansilite.engine.playbook import DEFAULT_TASK_TYPE, Task
from ansilite.engine.templating import render


@dataclass
class ModuleResult:
    """Result of a successful module execution."""

    changed: bool = True
    rc: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    msg: str = ""


class Module(ABC):
    """
    Base class for all modules.

    A module is a stateless executor for one task type. The same instance
    serves every host concurrently, so it must not keep per-call state,
    and it must not mutate the task or the variables it is given.
    """

    # Module name (used for registration)
    name: str = ""

    # Task fields that must be present and non-empty
    required_fields: List[str] = []

    def check_fields(self, session: Connection, task: Task) -> None:
        """
        Validate module fields.

        Raises:
            ModuleError: If a required field is missing
        """
        for required in self.required_fields:
            if task.get(required) in (None, ''):
                raise ModuleError(
                    self.name,
                    session.host.id,
                    f"Missing required field: {required}",
                )

    def render_field(
        self,
        task: Task,
        key: str,
        variables: Mapping[str, Any],
        default: str = "",
    ) -> str:
        """Get a task field rendered through the template engine."""
        value = task.get(key)
        if value is None:
            return default
        return render(str(value), variables)

    @abstractmethod
    async def execute(
        self,
        session: Connection,
        task: Task,
        variables: Mapping[str, Any],
    ) -> ModuleResult:
        """
        Execute the module for one task on one host.

        Returns:
            ModuleResult describing what happened

        Raises:
            ModuleError: If the task failed
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ModuleRegistry:
    """
    Maps task types to modules.

    The set of modules is fixed when the registry is built. Adding a module
    means building a new registry with ``extend``; dispatch never changes.
    """

    def __init__(self, modules: Optional[List[Module]] = None):
        registered: Dict[str, Module] = {}
        for module in modules or []:
            if not module.name:
                raise ValueError(f"Module {module!r} has no name")
            if module.name in registered:
                raise ValueError(f"Module already registered: {module.name}")
            registered[module.name] = module
        self._modules: Mapping[str, Module] = MappingProxyType(registered)

    def resolve(self, task_type: str) -> Module:
        """
        Get the module for a task type; an empty type means ``script``.

        Raises:
            UnknownModuleError: If no module is registered for the type
        """
        name = task_type or DEFAULT_TASK_TYPE
        module = self._modules.get(name)
        if module is None:
            raise UnknownModuleError(name, self.names())
        return module

    def get(self, name: str) -> Optional[Module]:
        """Get a module by name."""
        return self._modules.get(name)

    def names(self) -> List[str]:
        """List all registered module names."""
        return list(self._modules.keys())

    def extend(self, *modules: Module) -> "ModuleRegistry":
        """Return a new registry with ``modules`` added."""
        return ModuleRegistry(list(self._modules.values()) + list(modules))

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)


def default_registry() -> ModuleRegistry:
    """Build a registry holding the built-in modules."""
    from ansilite.modules.builtin_script import ScriptModule
    from ansilite.modules.builtin_upload import UploadModule

    return ModuleRegistry([ScriptModule(), UploadModule()])
