# Copyright (c) 2024 Ansilite Contributors
# MIT License

"""
Ansilite: a minimal remote-execution playbook runner.

Runs an ordered list of tasks on every host of a YAML playbook over SSH.

Features:
    - Hosts run concurrently, each host's tasks run strictly in order
    - Per-task ignore_errors and per-playbook fail_fast policies
    - Pluggable task modules (script, upload) dispatched through a registry
    - SSH and SFTP via asyncssh, Jinja2 templating of task fields

This package exposes the main CLI entry point and release metadata.
"""

from __future__ import annotations

from ansilite.release import __version__, __author__, __codename__

__all__ = [
    "__version__",
    "__author__",
    "__codename__",
]
