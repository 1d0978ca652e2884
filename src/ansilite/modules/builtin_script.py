"""
Ansilite script module

Run an inline shell script on a remote node.
"""

import shlex
from typing import Any, Mapping

from ansilite.connections.base import Connection
from ansilite.engine.errors import ModuleError
from ansilite.engine.playbook import Task
from ansilite.modules.base import Module, ModuleResult


class ScriptModule(Module):
    """
    Render the task's ``script`` and run it as a single ``bash -e``
    invocation, so the first failing command fails the task.
    """

    name = "script"
    required_fields = ["script"]

    @staticmethod
    def build_command(script: str) -> str:
        """Wrap a script body for strict remote execution."""
        return f"bash -e -c {shlex.quote(script)}"

    async def execute(
        self,
        session: Connection,
        task: Task,
        variables: Mapping[str, Any],
    ) -> ModuleResult:
        """Run the script."""
        self.check_fields(session, task)
        script = self.render_field(task, "script", variables)

        result = await session.run(self.build_command(script))

        if not result.success:
            raise ModuleError(
                self.name,
                session.host.id,
                f"script exited with rc={result.rc}",
                rc=result.rc,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return ModuleResult(
            rc=result.rc,
            stdout=result.stdout,
            stderr=result.stderr,
            msg="Script executed",
        )
