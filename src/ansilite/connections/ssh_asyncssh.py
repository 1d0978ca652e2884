"""
Ansilite SSH Connection (asyncssh)

SSH connection using asyncssh for async operations, with a lazily opened
SFTP sub-channel for file transfers.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, Union

import asyncssh

from ansilite.connections.base import Connection, RunResult
from ansilite.engine.errors import ConfigurationError, ConnectionError, TransferError
from ansilite.engine.playbook import HostConfig


class SSHConnection(Connection):
    """
    SSH connection using asyncssh.

    Supports:
    - Password authentication
    - Private key authentication (key_path)
    - Custom ports via ``host:port`` addresses

    Host keys are not verified.
    """

    def __init__(self, host: HostConfig, connect_timeout: int = 10):
        super().__init__(host)
        self.connect_timeout = connect_timeout
        self._conn: Optional[asyncssh.SSHClientConnection] = None
        self._sftp: Optional[asyncssh.SFTPClient] = None

    async def connect(self) -> None:
        """Establish SSH connection."""
        if not self.host.has_credentials:
            raise ConfigurationError(
                f"No credentials for host {self.host.id}",
                "set either 'password' or 'key_path'",
            )

        connect_kwargs = {
            'host': self.host.hostname,
            'port': self.host.port,
            'username': self.host.user or os.getenv('USER', 'root'),
            'known_hosts': None,
            'agent_path': None,
            'connect_timeout': self.connect_timeout,
            'client_keys': (),
        }

        if self.host.key_path:
            connect_kwargs['client_keys'] = [self._load_key()]

        if self.host.password:
            connect_kwargs['password'] = self.host.password

        try:
            self._conn = await asyncssh.connect(**connect_kwargs)
        except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
            raise ConnectionError(
                host=self.host.id,
                message=str(e) or e.__class__.__name__,
                connection_type=self.connection_type
            )

    def _load_key(self) -> asyncssh.SSHKey:
        """Read the host's private key file."""
        key_path = os.path.expanduser(self.host.key_path)
        try:
            return asyncssh.read_private_key(key_path)
        except OSError as e:
            raise ConnectionError(
                host=self.host.id,
                message=f"cannot read private key {key_path}: {e.strerror or e}",
                connection_type=self.connection_type
            )
        except (asyncssh.KeyImportError, ValueError) as e:
            raise ConnectionError(
                host=self.host.id,
                message=f"cannot parse private key {key_path}: {e}",
                connection_type=self.connection_type
            )

    async def close(self) -> None:
        """Close SSH connection."""
        if self._sftp:
            self._sftp.exit()
            self._sftp = None

        if self._conn:
            conn, self._conn = self._conn, None
            conn.close()
            await conn.wait_closed()

    async def run(self, command: str) -> RunResult:
        """
        Run a command over SSH.

        Args:
            command: Command to execute

        Returns:
            RunResult with rc, stdout, stderr
        """
        if not self._conn:
            return RunResult(rc=1, stdout="", stderr="Not connected")

        try:
            result = await self._conn.run(command, check=False)
        except (OSError, asyncssh.Error) as e:
            return RunResult(rc=1, stdout="", stderr=str(e))

        # exit_status is None when the remote process died from a signal
        rc = result.exit_status if result.exit_status is not None else -1
        return RunResult(
            rc=rc,
            stdout=_as_text(result.stdout),
            stderr=_as_text(result.stderr),
        )

    async def _get_sftp(self) -> asyncssh.SFTPClient:
        """Get or create SFTP client."""
        if not self._conn:
            raise TransferError(self.host.id, "", "Not connected")
        if self._sftp is None:
            try:
                self._sftp = await self._conn.start_sftp_client()
            except (OSError, asyncssh.Error) as e:
                raise TransferError(self.host.id, "", f"cannot start SFTP: {e}")
        return self._sftp

    async def put(self, local_path: Union[str, Path], remote_path: str) -> None:
        """
        Upload a file via SFTP.

        Args:
            local_path: Local file path
            remote_path: Remote destination path
        """
        sftp = await self._get_sftp()
        try:
            await sftp.put(str(local_path), remote_path)
        except (OSError, asyncssh.Error) as e:
            raise TransferError(self.host.id, remote_path, str(e))

    async def chmod(self, remote_path: str, mode: int) -> None:
        """Set permission bits via SFTP."""
        sftp = await self._get_sftp()
        try:
            await sftp.chmod(remote_path, mode)
        except (OSError, asyncssh.Error) as e:
            raise TransferError(self.host.id, remote_path, f"chmod {oct(mode)}: {e}")


def _as_text(value: Union[str, bytes, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value
