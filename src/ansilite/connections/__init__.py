"""
Ansilite Connections Module

Remote session plugins. SSH (asyncssh) is the only transport.
"""

from ansilite.connections.base import (
    Connection,
    ConnectionFactory,
    RunResult,
    create_connection_factory,
)

__all__ = [
    'Connection',
    'ConnectionFactory',
    'RunResult',
    'create_connection_factory',
]
