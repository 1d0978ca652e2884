"""
Ansilite Connection Base Class

Abstract session contract used by task modules, and the factory that
opens one session per host.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Coroutine, Union

from ansilite.engine.playbook import HostConfig


ConnectionFactory = Callable[[HostConfig], Coroutine[Any, Any, "Connection"]]


@dataclass
class RunResult:
    """Result of running a command on a remote host."""

    rc: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.rc == 0


class Connection(ABC):
    """
    Abstract base class for connections.

    A connection is owned by exactly one host runner and is never shared
    across hosts.
    """

    def __init__(self, host: HostConfig):
        self.host = host

    @abstractmethod
    async def connect(self) -> None:
        """Establish the connection."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass

    @abstractmethod
    async def run(self, command: str) -> RunResult:
        """
        Run a command on the remote host.

        Args:
            command: Command line passed verbatim to the remote shell

        Returns:
            RunResult with rc, stdout, stderr
        """
        pass

    @abstractmethod
    async def put(self, local_path: Union[str, Path], remote_path: str) -> None:
        """
        Upload a file, creating or overwriting the destination.

        Raises:
            TransferError: If the transfer fails
        """
        pass

    @abstractmethod
    async def chmod(self, remote_path: str, mode: int) -> None:
        """
        Set permission bits on a remote path.

        Raises:
            TransferError: If the change fails
        """
        pass

    @property
    def connection_type(self) -> str:
        """Return the connection type name."""
        return self.__class__.__name__.replace('Connection', '').lower()


def create_connection_factory(connect_timeout: int = 10) -> ConnectionFactory:
    """
    Create a connection factory function.

    Returns a coroutine function that opens and connects an SSH session
    for a host.
    """
    async def factory(host: HostConfig) -> Connection:
        from ansilite.connections.ssh_asyncssh import SSHConnection
        conn = SSHConnection(host, connect_timeout=connect_timeout)
        await conn.connect()
        return conn

    return factory
