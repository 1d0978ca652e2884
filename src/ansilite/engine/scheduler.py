"""
Ansilite Scheduler

Runs one playbook: a host runner per host, all concurrently, with an
optional fail-fast cancellation shared by the whole run.
"""

import asyncio
from typing import Optional

from ansilite.connections.base import ConnectionFactory
from ansilite.engine.display import Display
from ansilite.engine.host_runner import HostRunner
from ansilite.engine.playbook import HostConfig, Playbook
from ansilite.engine.results import HostOutcome, PlaybookOutcome
from ansilite.engine.templating import FOREIGN_MARKER, left_unrendered
from ansilite.modules.base import ModuleRegistry


class Scheduler:
    """
    Async scheduler for playbook execution.

    Every host gets its own asyncio task and all of them start together.
    Hosts are unbounded by default; ``forks`` caps how many run at once.
    Each host's tasks run in order (see HostRunner); hosts finish in any
    order.

    With ``settings.fail_fast`` the first failed host sets a cancellation
    event that the other hosts check before starting their next task.
    Every host still reports an outcome, and the playbook fails iff any
    host failed.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        connection_factory: ConnectionFactory,
        display: Optional[Display] = None,
        forks: Optional[int] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            registry: Modules that task types dispatch to
            connection_factory: Async callable to open sessions: (host) -> Connection
            display: Progress output
            forks: Maximum number of hosts running at once (None = no limit)
        """
        if forks is not None and forks < 1:
            raise ValueError("forks must be at least 1")
        self.registry = registry
        self.connection_factory = connection_factory
        self.display = display or Display()
        self.forks = forks

    async def run_playbook(self, playbook: Playbook, playbook_path: str = "") -> PlaybookOutcome:
        """
        Run a playbook on all of its hosts.

        Args:
            playbook: Parsed playbook
            playbook_path: Path to playbook (for result reporting)

        Returns:
            PlaybookOutcome with one HostOutcome per host
        """
        result = PlaybookOutcome(playbook_path=playbook_path)
        if not playbook.hosts:
            self.display.warning(f"No hosts in playbook {playbook_path}".rstrip())
            return result

        self._warn_unrendered(playbook)

        runner = HostRunner(
            playbook,
            self.registry,
            self.connection_factory,
            self.display,
        )
        cancelled = asyncio.Event()
        semaphore = asyncio.Semaphore(self.forks) if self.forks else None
        fail_fast = playbook.settings.fail_fast

        async def run_host(host: HostConfig) -> HostOutcome:
            try:
                if semaphore is not None:
                    async with semaphore:
                        outcome = await runner.run(host, cancelled)
                else:
                    outcome = await runner.run(host, cancelled)
            except Exception as e:
                outcome = HostOutcome(host=host.id).fail(e)
                self.display.host_finished(outcome)

            if outcome.failed and fail_fast and not cancelled.is_set():
                # Event.set is idempotent; the check only keeps the warning single
                cancelled.set()
                self.display.warning(
                    f"Host {host.id} failed with fail_fast set; stopping remaining hosts"
                )
            return outcome

        outcomes = await asyncio.gather(*[run_host(host) for host in playbook.hosts])

        for outcome in outcomes:
            result.add_outcome(outcome)
        result.cancelled = cancelled.is_set()

        return result

    def _warn_unrendered(self, playbook: Playbook) -> None:
        """Warn once per task field that uses ``{{.field}}`` syntax."""
        for task in playbook.tasks:
            values = [("name", task.name)] + list(task.fields.items())
            for key, value in values:
                if left_unrendered(value, playbook.vars):
                    self.display.warning(
                        f"Task '{task.name}' field '{key}' contains '{FOREIGN_MARKER}' "
                        f"and was not rendered; use '{{{{ var }}}}' syntax"
                    )
