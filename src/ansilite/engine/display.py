"""
Ansilite Display

Console output for playbook progress. All human-readable output is
suppressed in JSON mode; errors still go to stderr.
"""

import sys
from typing import Optional, TextIO

from ansilite.engine.results import HostOutcome, HostStatus, PlaybookOutcome, TaskResult, TaskStatus


COLORS = {
    'ok': '\033[32m',         # Green
    'succeeded': '\033[32m',
    'connected': '\033[36m',  # Cyan
    'ignored': '\033[33m',    # Yellow
    'failed': '\033[31m',     # Red
    'aborted': '\033[35m',    # Magenta
}
RESET = '\033[0m'


class Display:
    """Print progress lines for playbooks, hosts, and tasks."""

    def __init__(
        self,
        verbosity: int = 0,
        json_output: bool = False,
        stream: Optional[TextIO] = None,
        err_stream: Optional[TextIO] = None,
    ):
        self.verbosity = verbosity
        self.json_output = json_output
        self._stream = stream
        self._err_stream = err_stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys sees the output
        return self._stream or sys.stdout

    @property
    def err_stream(self) -> TextIO:
        return self._err_stream or sys.stderr

    def _print(self, msg: str) -> None:
        if not self.json_output:
            print(msg, file=self.stream)

    def header(self, msg: str) -> None:
        """Print a header message."""
        self._print(msg)

    def playbook_start(self, path: str) -> None:
        """Print playbook banner."""
        self._print(f"\nPLAYBOOK [{path}] " + "*" * 50)

    def host_connected(self, host: str) -> None:
        self._print(f"{COLORS['connected']}connected: [{host}]{RESET}")

    def task_result(self, result: TaskResult) -> None:
        """Print result of one task on one host."""
        status = result.status.value
        color = COLORS.get(status, '')
        line = f"{color}{status}: [{result.host}]{RESET} {result.task_name}"

        show_msg = result.status != TaskStatus.OK or self.verbosity > 0
        if result.msg and show_msg:
            line += f" => {result.msg}"
        if result.status == TaskStatus.IGNORED:
            line += " ...ignoring"
        self._print(line)

        if self.verbosity >= 2 and result.stdout:
            self._print(f"  stdout: {result.stdout[:200]}")
        if self.verbosity >= 1 and result.stderr:
            self._print(f"  stderr: {result.stderr[:200]}")

    def host_finished(self, outcome: HostOutcome) -> None:
        """Print a host's terminal state when it did not succeed."""
        if outcome.status == HostStatus.SUCCEEDED:
            return
        status = outcome.status.value
        color = COLORS.get(status, '')
        self._print(f"{color}{status}: [{outcome.host}]{RESET} => {outcome.describe()}")

    def warning(self, msg: str) -> None:
        """Print a warning message."""
        if not self.json_output:
            print(f"\033[33m[WARNING]: {msg}{RESET}", file=self.err_stream)

    def error(self, msg: str) -> None:
        """Print an error message (stderr, even in JSON mode)."""
        print(f"\033[31m{msg}{RESET}", file=self.err_stream)

    def recap(self, outcome: PlaybookOutcome) -> None:
        """Print final recap for a playbook."""
        if self.json_output:
            return

        self._print("\nRECAP " + "*" * 60)

        for host in sorted(outcome.host_outcomes, key=lambda o: o.host):
            status = host.status.value
            color = COLORS.get(status, '')
            parts = [f"{color}{status}{RESET}", f"ok={host.count(TaskStatus.OK)}"]
            if host.count(TaskStatus.FAILED):
                parts.append(f"\033[31mfailed={host.count(TaskStatus.FAILED)}{RESET}")
            if host.count(TaskStatus.IGNORED):
                parts.append(f"\033[33mignored={host.count(TaskStatus.IGNORED)}{RESET}")
            self._print(f"{host.host:40} : " + "  ".join(parts))
