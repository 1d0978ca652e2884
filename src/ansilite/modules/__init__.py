"""
Ansilite Modules

Built-in task modules and the registry that dispatches to them.
"""

from ansilite.modules.base import Module, ModuleRegistry, ModuleResult, default_registry

__all__ = [
    'Module',
    'ModuleRegistry',
    'ModuleResult',
    'default_registry',
]
