"""
Ansilite Playbook Parser

Parses a YAML playbook into immutable Playbook, HostConfig and Task objects.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from ansilite.engine.errors import ParseError


DEFAULT_PLAYBOOK = "playbook.yaml"

# Task type used when a task does not name one
DEFAULT_TASK_TYPE = "script"

DEFAULT_SSH_PORT = 22

# Task keys consumed by the engine; everything else belongs to the module
TASK_KEYWORDS = {'name', 'type', 'ignore_errors'}

HOST_KEYS = {'name', 'address', 'user', 'password', 'key_path'}

# YAML 1.1 reads these as octal ints; file modes must keep their digits
_OCTAL_LITERAL = re.compile(r'^0[0-7_]+$')


class PlaybookLoader(yaml.SafeLoader):
    """SafeLoader that keeps leading-zero octal scalars such as ``0644`` as strings."""


def _construct_int(loader: PlaybookLoader, node: yaml.ScalarNode) -> Any:
    value = loader.construct_scalar(node)
    if _OCTAL_LITERAL.match(value):
        return value
    return loader.construct_yaml_int(node)


PlaybookLoader.add_constructor('tag:yaml.org,2002:int', _construct_int)


@dataclass(frozen=True)
class Settings:
    """Execution policy for one playbook run."""

    fail_fast: bool = False
    connect_timeout: int = 10


@dataclass(frozen=True)
class HostConfig:
    """One remote target and the credentials used to reach it."""

    address: str
    user: str = ""
    name: Optional[str] = None
    password: str = ""
    key_path: str = ""

    @property
    def id(self) -> str:
        """Display identity: the explicit name, else the address."""
        return self.name or self.address

    @property
    def has_credentials(self) -> bool:
        return bool(self.password or self.key_path)

    @property
    def hostname(self) -> str:
        return split_address(self.address)[0]

    @property
    def port(self) -> int:
        return split_address(self.address)[1]

    def __repr__(self) -> str:
        # Never leak the password into logs
        return f"HostConfig(id={self.id!r}, address={self.address!r}, user={self.user!r})"


@dataclass(frozen=True)
class Task:
    """A single task; module-specific keys live in ``fields``."""

    name: str
    type: str = ""
    ignore_errors: bool = False
    fields: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def module(self) -> str:
        """Module identifier, with the empty type mapped to the default."""
        return self.type or DEFAULT_TASK_TYPE

    def get(self, key: str, default: Any = None) -> Any:
        """Get a module-specific field."""
        return self.fields.get(key, default)

    def __repr__(self) -> str:
        return f"Task(name={self.name!r}, type={self.module!r})"


@dataclass(frozen=True)
class Playbook:
    """One playbook: settings, shared vars, hosts and the ordered task list."""

    settings: Settings = field(default_factory=Settings)
    vars: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    hosts: Tuple[HostConfig, ...] = ()
    tasks: Tuple[Task, ...] = ()

    def with_extra_vars(self, extra_vars: Optional[Mapping[str, Any]]) -> "Playbook":
        """Return a copy whose vars are overlaid with ``extra_vars``."""
        if not extra_vars:
            return self
        merged = dict(self.vars)
        merged.update(extra_vars)
        return replace(self, vars=MappingProxyType(merged))

    def __repr__(self) -> str:
        return f"Playbook(hosts={len(self.hosts)}, tasks={len(self.tasks)})"


def split_address(address: str) -> Tuple[str, int]:
    """
    Split ``host``, ``host:port`` or ``[v6]:port`` into host and port.

    A bare IPv6 address (more than one colon, no brackets) keeps the
    default port.
    """
    address = address.strip()
    if address.startswith('['):
        host, _, rest = address[1:].partition(']')
        port = rest[1:] if rest.startswith(':') else ''
    elif address.count(':') == 1:
        host, _, port = address.partition(':')
    else:
        host, port = address, ''

    if not port:
        return host, DEFAULT_SSH_PORT
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"Invalid port in address: {address}")


class PlaybookParser:
    """
    Parse a YAML playbook into a Playbook.

    Structural problems raise ParseError. Missing credentials are not a
    parse error: they fail the affected host when it connects.
    """

    def __init__(self, playbook_path: Union[str, Path]):
        self.playbook_path = Path(playbook_path)

    def parse(self) -> Playbook:
        """
        Parse the playbook file.

        Returns:
            Playbook object

        Raises:
            ParseError: If the file is missing or malformed
        """
        if not self.playbook_path.exists():
            raise ParseError(
                f"Playbook not found: {self.playbook_path}",
                file_path=str(self.playbook_path)
            )

        try:
            content = self.playbook_path.read_text(encoding='utf-8')
        except OSError as e:
            raise ParseError(
                f"Cannot read playbook: {e}",
                file_path=str(self.playbook_path)
            )

        try:
            data = yaml.load(content, Loader=PlaybookLoader)
        except yaml.YAMLError as e:
            raise ParseError(
                f"YAML syntax error: {e}",
                file_path=str(self.playbook_path)
            )

        return self.parse_data(data)

    def parse_data(self, data: Any) -> Playbook:
        """Build a Playbook from already-loaded YAML data."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            self._error(f"Playbook must be a mapping, got {type(data).__name__}")

        variables = data.get('vars') or {}
        if not isinstance(variables, dict):
            self._error("'vars' must be a mapping")

        return Playbook(
            settings=self._parse_settings(data.get('settings')),
            vars=MappingProxyType(dict(variables)),
            hosts=tuple(self._parse_hosts(data.get('hosts'))),
            tasks=tuple(self._parse_tasks(data.get('tasks'))),
        )

    def _parse_settings(self, data: Any) -> Settings:
        if data is None:
            return Settings()
        if not isinstance(data, dict):
            self._error("'settings' must be a mapping")

        fail_fast = self._parse_bool(data.get('fail_fast', False), 'settings.fail_fast')

        timeout = data.get('connect_timeout', Settings.connect_timeout)
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            self._error("'settings.connect_timeout' must be a positive integer")

        return Settings(fail_fast=fail_fast, connect_timeout=timeout)

    def _parse_hosts(self, data: Any) -> List[HostConfig]:
        if data is None:
            return []
        if not isinstance(data, list):
            self._error("'hosts' must be a list")

        hosts = []
        for idx, item in enumerate(data):
            where = f"hosts[{idx}]"
            if not isinstance(item, dict):
                self._error(f"{where} must be a mapping")

            address = item.get('address')
            if not address or not isinstance(address, str):
                self._error(f"{where} requires an 'address'")
            try:
                split_address(address)
            except ValueError as e:
                self._error(f"{where}: {e}")

            values: Dict[str, Any] = {}
            for key in HOST_KEYS - {'address'}:
                value = item.get(key)
                if value is not None:
                    values[key] = str(value)

            hosts.append(HostConfig(address=address, **values))
        return hosts

    def _parse_tasks(self, data: Any) -> List[Task]:
        if data is None:
            return []
        if not isinstance(data, list):
            self._error("'tasks' must be a list")

        tasks = []
        for idx, item in enumerate(data):
            where = f"tasks[{idx}]"
            if not isinstance(item, dict):
                self._error(f"{where} must be a mapping")

            task_type = item.get('type') or ''
            if not isinstance(task_type, str):
                self._error(f"{where}.type must be a string")

            name = item.get('name')
            if name is None:
                name = f"{task_type or DEFAULT_TASK_TYPE} #{idx + 1}"

            fields = {k: v for k, v in item.items() if k not in TASK_KEYWORDS}

            tasks.append(Task(
                name=str(name),
                type=task_type,
                ignore_errors=self._parse_bool(
                    item.get('ignore_errors', False), f"{where}.ignore_errors"
                ),
                fields=MappingProxyType(fields),
            ))
        return tasks

    def _parse_bool(self, value: Any, where: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('true', 'yes', 'on', 'false', 'no', 'off'):
            return value.lower() in ('true', 'yes', 'on')
        self._error(f"'{where}' must be a boolean")

    def _error(self, message: str) -> None:
        raise ParseError(message, file_path=str(self.playbook_path))


def load_playbook(path: Union[str, Path]) -> Playbook:
    """Convenience function to parse a playbook file."""
    return PlaybookParser(path).parse()
