"""
Ansilite Playbook Runner

High-level runner that executes playbook files one after another and
stops at the first one that fails.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ansilite.connections.base import ConnectionFactory, create_connection_factory
from ansilite.engine.display import Display
from ansilite.engine.errors import AnsiliteError, ExitCode, PlaybookFailedError
from ansilite.engine.playbook import PlaybookParser
from ansilite.engine.results import PlaybookOutcome
from ansilite.engine.scheduler import Scheduler
from ansilite.modules.base import ModuleRegistry, default_registry


class PlaybookRunner:
    """
    High-level playbook runner.

    Coordinates:
    - Playbook parsing
    - Connection factory and module registry selection
    - Sequential execution of playbook files
    - Output formatting and exit codes
    """

    def __init__(
        self,
        playbook_paths: List[Union[str, Path]],
        forks: Optional[int] = None,
        verbosity: int = 0,
        extra_vars: Optional[Dict[str, Any]] = None,
        json_output: bool = False,
        registry: Optional[ModuleRegistry] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        display: Optional[Display] = None,
    ):
        self.playbook_paths = [str(p) for p in playbook_paths]
        self.forks = forks
        self.verbosity = verbosity
        self.extra_vars = extra_vars or {}
        self.json_output = json_output
        self.registry = registry or default_registry()
        # None means one SSH factory per playbook, using its connect_timeout
        self.connection_factory = connection_factory
        self.display = display or Display(verbosity=verbosity, json_output=json_output)

        self.outcomes: List[PlaybookOutcome] = []
        self.current_path: Optional[str] = None

    def run(self) -> int:
        """
        Run playbooks synchronously.

        Returns:
            Exit code (0=success, 2=host failures, 3=parse error)
        """
        try:
            asyncio.run(self.run_async())
            code = ExitCode.SUCCESS
        except AnsiliteError as e:
            self.display.error(f"Error running playbook '{self.current_path}': {e}")
            code = e.exit_code
        except KeyboardInterrupt:
            self.display.error("\nInterrupted")
            code = ExitCode.KEYBOARD_INTERRUPT

        if self.json_output:
            self._print_json(code)
        elif code == ExitCode.SUCCESS:
            self.display.header("\nAll playbooks completed successfully")

        return int(code)

    async def run_async(self) -> List[PlaybookOutcome]:
        """
        Run each playbook in order, stopping at the first failure.

        Raises:
            ParseError: If a playbook cannot be loaded
            PlaybookFailedError: If any host of a playbook failed
        """
        for path in self.playbook_paths:
            await self.run_playbook(path)
        return self.outcomes

    async def run_playbook(self, path: Union[str, Path]) -> PlaybookOutcome:
        """
        Load and run one playbook file.

        Returns:
            PlaybookOutcome of a successful run

        Raises:
            ParseError: If the playbook cannot be loaded
            PlaybookFailedError: If any host failed
        """
        self.current_path = str(path)
        self.display.playbook_start(self.current_path)

        playbook = PlaybookParser(path).parse().with_extra_vars(self.extra_vars)

        connection_factory = self.connection_factory or create_connection_factory(
            connect_timeout=playbook.settings.connect_timeout,
        )
        scheduler = Scheduler(
            self.registry,
            connection_factory,
            display=self.display,
            forks=self.forks,
        )

        outcome = await scheduler.run_playbook(playbook, self.current_path)
        self.outcomes.append(outcome)
        self.display.recap(outcome)

        if outcome.failed:
            raise PlaybookFailedError(self.current_path, outcome)
        return outcome

    def _print_json(self, exit_code: int) -> None:
        """Print all playbook outcomes as one JSON document."""
        print(json.dumps({
            "success": exit_code == ExitCode.SUCCESS,
            "exit_code": int(exit_code),
            "failed_playbook": self.current_path if exit_code != ExitCode.SUCCESS else None,
            "playbooks": [o.to_dict() for o in self.outcomes],
        }, indent=2))
