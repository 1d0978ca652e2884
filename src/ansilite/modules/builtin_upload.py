"""
Ansilite upload module

Copy a file from the control node to a remote host.
"""

from pathlib import Path
from typing import Any, Mapping, Optional

from ansilite.connections.base import Connection
from ansilite.engine.errors import MissingArtifactError, ModuleError, TransferError
from ansilite.engine.playbook import Task
from ansilite.modules.base import Module, ModuleResult


def parse_mode(mode: str) -> Optional[int]:
    """Parse an octal permission string such as ``0644``; None if invalid."""
    try:
        value = int(mode, 8)
    except ValueError:
        return None
    if value < 0 or value > 0o7777:
        return None
    return value


class UploadModule(Module):
    """
    Transfer ``src`` to ``dest`` byte for byte, then apply ``mode`` if one
    is given.

    The source is checked before the remote side is touched, so a missing
    local file never leaves an empty destination behind. A mode string
    that is not valid octal is skipped and reported in the result message.
    """

    name = "upload"
    required_fields = ["src", "dest"]

    async def execute(
        self,
        session: Connection,
        task: Task,
        variables: Mapping[str, Any],
    ) -> ModuleResult:
        """Upload the file."""
        self.check_fields(session, task)
        src = self.render_field(task, "src", variables)
        dest = self.render_field(task, "dest", variables)
        mode = self.render_field(task, "mode", variables).strip()

        src_path = Path(src).expanduser()
        if not src_path.is_file():
            raise MissingArtifactError(self.name, session.host.id, src)
        try:
            # Open once so unreadable files fail here too
            with src_path.open('rb'):
                pass
        except OSError as e:
            raise MissingArtifactError(self.name, session.host.id, src, e.strerror or str(e))

        try:
            await session.put(src_path, dest)
        except TransferError as e:
            raise ModuleError(self.name, session.host.id, str(e))

        msg = f"Uploaded {src} -> {dest}"
        if mode:
            mode_bits = parse_mode(mode)
            if mode_bits is None:
                msg += f" (invalid mode {mode!r} ignored)"
            else:
                try:
                    await session.chmod(dest, mode_bits)
                except TransferError as e:
                    raise ModuleError(self.name, session.host.id, str(e))
                msg += f" mode={mode}"

        return ModuleResult(msg=msg)
