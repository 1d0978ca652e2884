"""
Tests for running a task list on a single host.
"""

import asyncio
from typing import List

import pytest

from ansilite.engine.errors import ConfigurationError, ConnectionError, MissingArtifactError, UnknownModuleError
from ansilite.engine.host_runner import HostRunner
from ansilite.engine.results import HostStatus, TaskStatus
from ansilite.modules.base import Module, ModuleResult, default_registry


class RecordingModule(Module):
    """Records the rendered task names it runs; can cancel the run."""

    name = "record"

    def __init__(self, cancel_event: asyncio.Event = None, cancel_on: str = None):
        self.calls: List[str] = []
        self.cancel_event = cancel_event
        self.cancel_on = cancel_on

    async def execute(self, session, task, variables):
        self.calls.append(task.name)
        if self.cancel_event is not None and task.name == self.cancel_on:
            # Cancellation arrives while this task is still running
            self.cancel_event.set()
            await asyncio.sleep(0)
        return ModuleResult(msg="recorded")


class ExplodingModule(Module):
    """Raises something that is not a ModuleError."""

    name = "explode"

    async def execute(self, session, task, variables):
        raise RuntimeError("unexpected")


@pytest.fixture
def runner_factory(quiet_display):
    def make(playbook, factory, registry=None):
        return HostRunner(playbook, registry or default_registry(), factory, quiet_display)
    return make


class TestHostRunnerSuccess:
    """Test hosts whose tasks all succeed."""

    @pytest.mark.asyncio
    async def test_all_tasks_run_in_order(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        tasks = [task_factory(f"Task {i}", script=f"echo {i}") for i in range(1, 4)]
        playbook = playbook_factory(["web1"], tasks)
        factory, connections = connection_factory()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.SUCCEEDED
        assert not outcome.failed
        assert outcome.attempted_tasks == ["Task 1", "Task 2", "Task 3"]
        assert [r.status for r in outcome.task_results] == [TaskStatus.OK] * 3
        assert connections["web1"].commands_run == [
            "bash -e -c 'echo 1'", "bash -e -c 'echo 2'", "bash -e -c 'echo 3'",
        ]

    @pytest.mark.asyncio
    async def test_task_names_are_rendered(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(
            ["web1"], [task_factory("Deploy {{ app }}", script="true")], variables={"app": "shop"},
        )
        factory, _ = connection_factory()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.attempted_tasks == ["Deploy shop"]

    @pytest.mark.asyncio
    async def test_session_closed_after_success(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        factory, connections = connection_factory()

        await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_no_tasks_succeeds(self, playbook_factory, connection_factory, runner_factory):
        playbook = playbook_factory(["web1"], [])
        factory, connections = connection_factory()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.SUCCEEDED
        assert connections["web1"].close_count == 1


class TestHostRunnerFailures:
    """Test task and connection failures."""

    @pytest.mark.asyncio
    async def test_failure_stops_remaining_tasks(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        tasks = [
            task_factory("first", script="true"),
            task_factory("second", script="exit 1"),
            task_factory("third", script="true"),
        ]
        playbook = playbook_factory(["web1"], tasks)
        factory, connections = connection_factory(fail_commands={"web1": ["exit 1"]})

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.FAILED
        assert outcome.failed_task == "second"
        assert outcome.attempted_tasks == ["first", "second"]
        assert outcome.task_results[-1].status == TaskStatus.FAILED
        assert outcome.task_results[-1].stderr == "boom"
        assert len(connections["web1"].commands_run) == 2
        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_ignored_failure_keeps_host_succeeded(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        tasks = [
            task_factory("may fail", script="exit 1", ignore_errors=True),
            task_factory("after", script="true"),
        ]
        playbook = playbook_factory(["web1"], tasks)
        factory, _ = connection_factory(fail_commands={"web1": ["exit 1"]})

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.SUCCEEDED
        assert outcome.attempted_tasks == ["may fail", "after"]
        assert outcome.task_results[0].status == TaskStatus.IGNORED
        assert outcome.task_results[1].status == TaskStatus.OK
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_unknown_type_fails_even_when_ignored(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        tasks = [
            task_factory("bad", type="shell", ignore_errors=True, script="true"),
            task_factory("never", script="true"),
        ]
        playbook = playbook_factory(["web1"], tasks)
        factory, connections = connection_factory()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.FAILED
        assert isinstance(outcome.error, UnknownModuleError)
        assert outcome.attempted_tasks == ["bad"]
        assert connections["web1"].commands_run == []
        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_connection_failure_runs_no_tasks(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        error = ConnectionError("web1", "Connection refused", connection_type="ssh")
        factory, connections = connection_factory(connect_errors={"web1": error})

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.FAILED
        assert outcome.error is error
        assert outcome.failed_task is None
        assert outcome.task_results == []
        assert "web1" not in connections

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_host(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        error = ConfigurationError("No credentials for host web1")
        factory, _ = connection_factory(connect_errors={"web1": error})

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.failed
        assert "No credentials" in outcome.msg

    @pytest.mark.asyncio
    async def test_unexpected_connect_exception_becomes_connection_error(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        factory, _ = connection_factory(connect_errors={"web1": OSError("no route to host")})

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert isinstance(outcome.error, ConnectionError)
        assert "no route to host" in outcome.msg

    @pytest.mark.asyncio
    async def test_upload_missing_artifact_fails_host(
        self, playbook_factory, task_factory, connection_factory, runner_factory, tmp_path,
    ):
        task = task_factory(
            "push", type="upload", src=str(tmp_path / "local.txt"), dest="/remote.txt", mode="0644",
        )
        playbook = playbook_factory(["web1"], [task])
        factory, connections = connection_factory()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.FAILED
        assert isinstance(outcome.error, MissingArtifactError)
        assert connections["web1"].files_put == []

    @pytest.mark.asyncio
    async def test_unexpected_module_exception_is_task_failure(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", type="explode")])
        factory, connections = connection_factory()
        registry = default_registry().extend(ExplodingModule())

        outcome = await runner_factory(playbook, factory, registry).run(
            playbook.hosts[0], asyncio.Event(),
        )

        assert outcome.status == HostStatus.FAILED
        assert outcome.failed_task == "t"
        assert "unexpected" in outcome.msg
        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_close_failure_does_not_change_outcome(
        self, playbook_factory, task_factory, connection_factory, quiet_display,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        factory, connections = connection_factory()

        async def broken_close_factory(host):
            conn = await factory(host)

            async def close():
                raise OSError("socket already gone")
            conn.close = close
            return conn

        runner = HostRunner(playbook, default_registry(), broken_close_factory, quiet_display)
        outcome = await runner.run(playbook.hosts[0], asyncio.Event())

        assert outcome.status == HostStatus.SUCCEEDED


class TestHostRunnerCancellation:
    """Test the cancellation check at task boundaries."""

    @pytest.mark.asyncio
    async def test_cancelled_before_first_task(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        playbook = playbook_factory(["web1"], [task_factory("t", script="true")])
        factory, connections = connection_factory()
        cancelled = asyncio.Event()
        cancelled.set()

        outcome = await runner_factory(playbook, factory).run(playbook.hosts[0], cancelled)

        assert outcome.status == HostStatus.ABORTED
        assert outcome.failed
        assert outcome.error is None
        assert outcome.task_results == []
        assert "aborted" in outcome.msg
        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_in_flight_task_finishes_next_is_skipped(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        cancelled = asyncio.Event()
        module = RecordingModule(cancel_event=cancelled, cancel_on="two")
        registry = default_registry().extend(module)
        tasks = [task_factory(name, type="record") for name in ("one", "two", "three")]
        playbook = playbook_factory(["web1"], tasks)
        factory, connections = connection_factory()

        outcome = await runner_factory(playbook, factory, registry).run(playbook.hosts[0], cancelled)

        assert module.calls == ["one", "two"]
        assert outcome.attempted_tasks == ["one", "two"]
        assert all(r.status == TaskStatus.OK for r in outcome.task_results)
        assert outcome.status == HostStatus.ABORTED
        assert connections["web1"].close_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_after_last_task_has_no_effect(
        self, playbook_factory, task_factory, connection_factory, runner_factory,
    ):
        cancelled = asyncio.Event()
        module = RecordingModule(cancel_event=cancelled, cancel_on="last")
        registry = default_registry().extend(module)
        playbook = playbook_factory(["web1"], [task_factory("last", type="record")])
        factory, _ = connection_factory()

        outcome = await runner_factory(playbook, factory, registry).run(playbook.hosts[0], cancelled)

        assert outcome.status == HostStatus.SUCCEEDED
