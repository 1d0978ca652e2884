"""
Shared fixtures for unit tests: an in-memory connection and helpers to
build playbooks without touching the network.
"""

import asyncio
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple, Union

import pytest

from ansilite.connections.base import Connection, RunResult
from ansilite.engine.display import Display
from ansilite.engine.errors import TransferError
from ansilite.engine.playbook import HostConfig, Playbook, Settings, Task


class MockConnection(Connection):
    """Connection that records what modules do with it."""

    def __init__(
        self,
        host: HostConfig,
        fail_commands: Optional[List[str]] = None,
        fail_transfers: bool = False,
        delay: float = 0,
    ):
        super().__init__(host)
        self.connected = False
        self.close_count = 0
        self.commands_run: List[str] = []
        self.files_put: List[Tuple[str, str]] = []
        self.chmods: List[Tuple[str, int]] = []
        self.fail_commands = fail_commands or []
        self.fail_transfers = fail_transfers
        self.delay = delay

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.close_count += 1
        self.connected = False

    async def run(self, command: str) -> RunResult:
        self.commands_run.append(command)
        if self.delay:
            await asyncio.sleep(self.delay)
        if any(marker in command for marker in self.fail_commands):
            return RunResult(rc=1, stdout="", stderr="boom")
        return RunResult(rc=0, stdout="ok", stderr="")

    async def put(self, local_path: Union[str, Path], remote_path: str) -> None:
        if self.fail_transfers:
            raise TransferError(self.host.id, remote_path, "permission denied")
        self.files_put.append((str(local_path), remote_path))

    async def chmod(self, remote_path: str, mode: int) -> None:
        if self.fail_transfers:
            raise TransferError(self.host.id, remote_path, "permission denied")
        self.chmods.append((remote_path, mode))


@pytest.fixture
def mock_connection():
    """A single connected MockConnection for module tests."""
    conn = MockConnection(HostConfig(address="10.0.0.1", user="deploy", password="pw", name="web1"))
    conn.connected = True
    return conn


@pytest.fixture
def connection_factory():
    """
    Build an async connection factory plus the dict of connections it made.

    Keyword arguments are looked up per host id:
        fail_commands: {host_id: [substring, ...]}
        connect_errors: {host_id: exception}
        delays: {host_id: seconds per command}
    """
    def make(
        fail_commands: Optional[Dict[str, List[str]]] = None,
        connect_errors: Optional[Dict[str, Exception]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        connections: Dict[str, MockConnection] = {}

        async def factory(host: HostConfig) -> Connection:
            if connect_errors and host.id in connect_errors:
                raise connect_errors[host.id]
            conn = MockConnection(
                host,
                fail_commands=(fail_commands or {}).get(host.id),
                delay=(delays or {}).get(host.id, 0),
            )
            await conn.connect()
            connections[host.id] = conn
            return conn

        return factory, connections

    return make


def make_host(name: str, **kwargs) -> HostConfig:
    kwargs.setdefault("address", f"{name}.example.com:22")
    kwargs.setdefault("user", "deploy")
    kwargs.setdefault("password", "secret")
    return HostConfig(name=name, **kwargs)


def make_task(name: str, type: str = "", ignore_errors: bool = False, **fields) -> Task:
    return Task(name=name, type=type, ignore_errors=ignore_errors, fields=MappingProxyType(fields))


@pytest.fixture
def playbook_factory():
    """Build a Playbook from host names and tasks."""
    def make(
        hosts: List[str],
        tasks: List[Task],
        fail_fast: bool = False,
        variables: Optional[dict] = None,
    ) -> Playbook:
        return Playbook(
            settings=Settings(fail_fast=fail_fast),
            vars=MappingProxyType(dict(variables or {})),
            hosts=tuple(make_host(h) for h in hosts),
            tasks=tuple(tasks),
        )

    return make


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def quiet_display():
    """Display that prints nothing to stdout (JSON mode)."""
    return Display(json_output=True)
