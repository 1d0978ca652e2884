"""
Ansilite Host Runner

Runs a playbook's task list on one host, in order, over one session.
"""

import asyncio
from typing import Optional

from ansilite.connections.base import Connection, ConnectionFactory
from ansilite.engine.display import Display
from ansilite.engine.errors import AnsiliteError, ConfigurationError, ConnectionError
from ansilite.engine.playbook import HostConfig, Playbook, Task
from ansilite.engine.results import HostOutcome, TaskResult, TaskStatus
from ansilite.engine.templating import render
from ansilite.modules.base import ModuleRegistry


class HostRunner:
    """
    Execute every task of a playbook against a single host.

    Connecting -> Running(task) -> Succeeded | Failed | Aborted

    - A connection failure fails the host before any task runs.
    - The cancellation event is checked before each task, never during
      one; once set, the host stops with an aborted outcome.
    - An unknown task type fails the host, even with ignore_errors.
    - A failing task with ignore_errors is recorded and skipped past;
      any other failing task fails the host.
    - The session is closed on every exit path.

    One HostRunner serves all hosts of a playbook run; per-host state lives
    in the HostOutcome built by ``run``.
    """

    def __init__(
        self,
        playbook: Playbook,
        registry: ModuleRegistry,
        connection_factory: ConnectionFactory,
        display: Optional[Display] = None,
    ):
        self.playbook = playbook
        self.registry = registry
        self.connection_factory = connection_factory
        self.display = display or Display()

    async def run(self, host: HostConfig, cancelled: asyncio.Event) -> HostOutcome:
        """
        Run the task list on ``host``.

        Args:
            host: Host to run on
            cancelled: Playbook-wide cancellation signal

        Returns:
            HostOutcome for the host (never raises for task or connection
            failures)
        """
        outcome = HostOutcome(host=host.id)

        try:
            session = await self.connection_factory(host)
        except AnsiliteError as e:
            outcome.fail(e)
            self.display.host_finished(outcome)
            return outcome
        except Exception as e:
            outcome.fail(ConnectionError(host.id, str(e) or e.__class__.__name__))
            self.display.host_finished(outcome)
            return outcome

        self.display.host_connected(host.id)

        try:
            await self._run_tasks(host, session, cancelled, outcome)
        finally:
            try:
                await session.close()
            except Exception as e:
                self.display.warning(f"Failed to close connection to {host.id}: {e}")

        self.display.host_finished(outcome)
        return outcome

    async def _run_tasks(
        self,
        host: HostConfig,
        session: Connection,
        cancelled: asyncio.Event,
        outcome: HostOutcome,
    ) -> None:
        variables = self.playbook.vars

        for task in self.playbook.tasks:
            if cancelled.is_set():
                outcome.abort("aborted: another host failed and fail_fast is set")
                return

            task_name = render(task.name, variables)

            try:
                module = self.registry.resolve(task.type)
            except ConfigurationError as e:
                self._record(outcome, TaskResult(
                    host=host.id,
                    task_name=task_name,
                    status=TaskStatus.FAILED,
                    msg=str(e),
                ))
                outcome.fail(e, task_name)
                return

            try:
                result = await module.execute(session, task, variables)
            except Exception as e:
                if not self._handle_failure(host, task, task_name, e, outcome):
                    return
                continue

            self._record(outcome, TaskResult(
                host=host.id,
                task_name=task_name,
                status=TaskStatus.OK,
                rc=result.rc,
                stdout=result.stdout,
                stderr=result.stderr,
                msg=result.msg,
            ))

    def _handle_failure(
        self,
        host: HostConfig,
        task: Task,
        task_name: str,
        error: Exception,
        outcome: HostOutcome,
    ) -> bool:
        """Record a failed task; return True if the host should continue."""
        status = TaskStatus.IGNORED if task.ignore_errors else TaskStatus.FAILED
        self._record(outcome, TaskResult(
            host=host.id,
            task_name=task_name,
            status=status,
            rc=getattr(error, 'rc', None),
            stdout=getattr(error, 'stdout', None) or "",
            stderr=getattr(error, 'stderr', None) or "",
            msg=str(error),
        ))

        if task.ignore_errors:
            return True

        outcome.fail(error, task_name)
        return False

    def _record(self, outcome: HostOutcome, result: TaskResult) -> None:
        outcome.add_result(result)
        self.display.task_result(result)
