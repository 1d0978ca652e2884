"""
Ansilite Result Classes

Data structures for task, host, and playbook execution results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


class TaskStatus(Enum):
    """Status of a task execution."""
    OK = "ok"
    FAILED = "failed"
    IGNORED = "ignored"


class HostStatus(Enum):
    """Final state of a host's run."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class TaskResult:
    """Result of executing a single task on a single host."""

    host: str
    task_name: str
    status: TaskStatus
    rc: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    msg: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: Dict[str, Any] = {
            "host": self.host,
            "task": self.task_name,
            "status": self.status.value,
        }
        if self.rc is not None:
            result["rc"] = self.rc
        if self.stdout:
            result["stdout"] = self.stdout
        if self.stderr:
            result["stderr"] = self.stderr
        if self.msg:
            result["msg"] = self.msg
        return result

    @property
    def failed(self) -> bool:
        return self.status == TaskStatus.FAILED


@dataclass
class HostOutcome:
    """Result of running the whole task list on one host."""

    host: str
    status: HostStatus = HostStatus.SUCCEEDED
    task_results: List[TaskResult] = field(default_factory=list)
    # Rendered name of the task that failed the host
    failed_task: Optional[str] = None
    error: Optional[BaseException] = None
    msg: str = ""

    def add_result(self, result: TaskResult) -> None:
        """Record an attempted task."""
        self.task_results.append(result)

    def fail(
        self,
        error: BaseException,
        task_name: Optional[str] = None,
    ) -> "HostOutcome":
        """Mark the host failed by ``error`` (at ``task_name`` if any)."""
        self.status = HostStatus.FAILED
        self.error = error
        self.failed_task = task_name
        self.msg = str(error)
        return self

    def abort(self, msg: str = "aborted") -> "HostOutcome":
        """Mark the host aborted by cancellation."""
        self.status = HostStatus.ABORTED
        self.msg = msg
        return self

    @property
    def failed(self) -> bool:
        """Aborted hosts count as failed."""
        return self.status != HostStatus.SUCCEEDED

    @property
    def aborted(self) -> bool:
        return self.status == HostStatus.ABORTED

    @property
    def attempted_tasks(self) -> List[str]:
        return [r.task_name for r in self.task_results]

    def count(self, status: TaskStatus) -> int:
        return sum(1 for r in self.task_results if r.status == status)

    def describe(self) -> str:
        """One-line human description of the outcome."""
        if self.status == HostStatus.SUCCEEDED:
            return "ok"
        if self.aborted:
            return self.msg or "aborted"
        if self.failed_task:
            return f"task '{self.failed_task}' failed: {self.msg}"
        return self.msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: Dict[str, Any] = {
            "host": self.host,
            "status": self.status.value,
            "tasks": [r.to_dict() for r in self.task_results],
        }
        if self.failed_task:
            result["failed_task"] = self.failed_task
        if self.msg:
            result["msg"] = self.msg
        return result


@dataclass
class PlaybookOutcome:
    """Result of executing one playbook across all hosts."""

    playbook_path: str
    host_outcomes: List[HostOutcome] = field(default_factory=list)
    # True once fail_fast cancelled the remaining hosts
    cancelled: bool = False

    def add_outcome(self, outcome: HostOutcome) -> None:
        self.host_outcomes.append(outcome)

    def get(self, host: str) -> Optional[HostOutcome]:
        """Get the outcome for a host id."""
        for outcome in self.host_outcomes:
            if outcome.host == host:
                return outcome
        return None

    @property
    def failures(self) -> List[HostOutcome]:
        return [o for o in self.host_outcomes if o.failed]

    @property
    def failed(self) -> bool:
        """Failed iff any host failed, whatever the fail_fast setting."""
        return any(o.failed for o in self.host_outcomes)

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "playbook": self.playbook_path,
            "success": self.success,
            "cancelled": self.cancelled,
            "hosts": [o.to_dict() for o in self.host_outcomes],
            "stats": {
                o.host: {
                    "status": o.status.value,
                    "ok": o.count(TaskStatus.OK),
                    "failed": o.count(TaskStatus.FAILED),
                    "ignored": o.count(TaskStatus.IGNORED),
                }
                for o in self.host_outcomes
            },
        }
