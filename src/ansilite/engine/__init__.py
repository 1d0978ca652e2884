"""
Ansilite Engine Module

Playbook model, results, errors and templating. The host runner,
scheduler and runner live in their own modules and are imported from
there.
"""

from ansilite.engine.errors import (
    AnsiliteError,
    ParseError,
    ConfigurationError,
    UnknownModuleError,
    ConnectionError,
    TransferError,
    ModuleError,
    MissingArtifactError,
    PlaybookFailedError,
)
from ansilite.engine.playbook import PlaybookParser, Playbook, Settings, HostConfig, Task
from ansilite.engine.results import (
    TaskResult,
    TaskStatus,
    HostOutcome,
    HostStatus,
    PlaybookOutcome,
)
from ansilite.engine.templating import TemplateEngine, render

__all__ = [
    'PlaybookParser',
    'Playbook',
    'Settings',
    'HostConfig',
    'Task',
    'TemplateEngine',
    'render',
    'TaskResult',
    'TaskStatus',
    'HostOutcome',
    'HostStatus',
    'PlaybookOutcome',
    'AnsiliteError',
    'ParseError',
    'ConfigurationError',
    'UnknownModuleError',
    'ConnectionError',
    'TransferError',
    'ModuleError',
    'MissingArtifactError',
    'PlaybookFailedError',
]
