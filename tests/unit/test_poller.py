"""Tests for waiting on a workflow run."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from trigger_workflow_action.client import GitHubClient
from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.errors import (
    FatalAPIError,
    RunFailedError,
    TransientAPIError,
)
from trigger_workflow_action.models.run import RunConclusion, RunStatus, RunSummary
from trigger_workflow_action.notifier import DownstreamNotifier
from trigger_workflow_action.outputs import OutputWriter
from trigger_workflow_action.poller import CompletionPoller, PollPhase, phase_for
from trigger_workflow_action.testing.clock import FakeClock
from trigger_workflow_action.testing.factories import (
    ActionConfigFactory,
    RunSummaryFactory,
    completed_run,
)
from trigger_workflow_action.testing.payloads import workflow_run


def in_progress() -> RunSummary:
    return RunSummaryFactory.build(id=123, status=RunStatus.IN_PROGRESS)


def read_outputs(path: Path) -> list[str]:
    return path.read_text().splitlines()


@pytest.fixture
def client_mock() -> Mock:
    """Create mock API client."""
    return Mock(spec=GitHubClient)


def make_poller(
    client: Mock,
    config: ActionConfig,
    clock: FakeClock,
    notifier: DownstreamNotifier | None = None,
) -> CompletionPoller:
    return CompletionPoller(
        client=client,
        config=config,
        outputs=OutputWriter(path=config.output_path),
        notifier=notifier,
        sleep=clock.sleep,
        clock=clock.monotonic,
    )


async def test_polls_until_success(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock, output_path: Path
) -> None:
    """Emits one progress record per poll and returns on success."""
    client_mock.get_workflow_run.side_effect = [
        in_progress(),
        in_progress(),
        completed_run(RunConclusion.SUCCESS),
    ]
    poller = make_poller(client_mock, config, fake_clock)

    state = await poller.wait_for_completion("123")

    assert state.phase is PollPhase.COMPLETED_SUCCESS
    assert state.attempts == 3
    assert read_outputs(output_path) == [
        "conclusion=null",
        "conclusion=null",
        "conclusion=success",
    ]
    client_mock.get_workflow_run.assert_called_with("123")


async def test_waits_first_then_every_interval(
    client_mock: Mock, output_path: Path, fake_clock: FakeClock
) -> None:
    """Sleeps for the first wait, then the interval before each poll."""
    config = ActionConfigFactory.build(
        first_wait_minutes=2, wait_interval=5, output_path=output_path
    )
    client_mock.get_workflow_run.side_effect = [
        in_progress(),
        completed_run(RunConclusion.SUCCESS),
    ]
    poller = make_poller(client_mock, config, fake_clock)

    await poller.wait_for_completion("123")

    assert fake_clock.sleeps == [120, 5, 5]


async def test_propagates_failure(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock, output_path: Path
) -> None:
    """Raises RunFailedError on failure when propagate_failure is set."""
    client_mock.get_workflow_run.return_value = completed_run(RunConclusion.FAILURE)
    poller = make_poller(client_mock, config, fake_clock)

    with pytest.raises(RunFailedError, match="concluded with failure") as exc_info:
        await poller.wait_for_completion("123")

    assert exc_info.value.run_id == "123"
    assert exc_info.value.conclusion == "failure"
    assert read_outputs(output_path) == ["conclusion=failure"]


async def test_reports_failure_without_propagating(
    client_mock: Mock, output_path: Path, fake_clock: FakeClock
) -> None:
    """Returns normally on failure when propagate_failure is off."""
    config = ActionConfigFactory.build(propagate_failure=False, output_path=output_path)
    client_mock.get_workflow_run.return_value = completed_run(RunConclusion.FAILURE)
    poller = make_poller(client_mock, config, fake_clock)

    state = await poller.wait_for_completion("123")

    assert state.phase is PollPhase.COMPLETED_FAILURE
    assert state.conclusion is RunConclusion.FAILURE
    assert read_outputs(output_path) == ["conclusion=failure"]


@pytest.mark.parametrize(
    "conclusion",
    [RunConclusion.CANCELLED, RunConclusion.SKIPPED, RunConclusion.NEUTRAL],
)
async def test_other_conclusions_are_not_success(
    client_mock: Mock,
    config: ActionConfig,
    fake_clock: FakeClock,
    conclusion: RunConclusion,
) -> None:
    """Any conclusion other than success fails the step."""
    client_mock.get_workflow_run.return_value = completed_run(conclusion)
    poller = make_poller(client_mock, config, fake_clock)

    with pytest.raises(RunFailedError):
        await poller.wait_for_completion("123")


async def test_skips_tick_on_transient_error(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock, output_path: Path
) -> None:
    """A transient error neither fails nor records progress."""
    client_mock.get_workflow_run.side_effect = [
        TransientAPIError("runs/123", 502, '{"message": "Server Error"}'),
        completed_run(RunConclusion.SUCCESS),
    ]
    poller = make_poller(client_mock, config, fake_clock)

    state = await poller.wait_for_completion("123")

    assert state.phase is PollPhase.COMPLETED_SUCCESS
    assert state.attempts == 1
    assert read_outputs(output_path) == ["conclusion=success"]


async def test_fatal_error_propagates(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock, output_path: Path
) -> None:
    """Fatal API errors stop the loop."""
    client_mock.get_workflow_run.side_effect = FatalAPIError(
        "runs/123", 401, '{"message": "Bad credentials"}'
    )
    poller = make_poller(client_mock, config, fake_clock)

    with pytest.raises(FatalAPIError):
        await poller.wait_for_completion("123")

    assert read_outputs(output_path) == []


async def test_completed_without_conclusion_keeps_polling(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock
) -> None:
    """Completed status alone is not terminal until a conclusion is set."""
    client_mock.get_workflow_run.side_effect = [
        RunSummaryFactory.build(id=123, status=RunStatus.COMPLETED, conclusion=None),
        completed_run(RunConclusion.SUCCESS),
    ]
    poller = make_poller(client_mock, config, fake_clock)

    state = await poller.wait_for_completion("123")

    assert state.attempts == 2


async def test_notifies_downstream_before_polling(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock
) -> None:
    """Posts the run link once when a notifier is configured."""
    notifier = Mock(spec=DownstreamNotifier)
    client_mock.get_workflow_run.return_value = completed_run(RunConclusion.SUCCESS)
    poller = make_poller(client_mock, config, fake_clock, notifier=notifier)

    await poller.wait_for_completion("123")

    notifier.notify.assert_called_once_with(
        "https://github.com/test-owner/test-repo/actions/runs/123"
    )


@pytest.mark.parametrize(
    ("status", "conclusion", "expected"),
    [
        (RunStatus.QUEUED, None, PollPhase.POLLING),
        (RunStatus.IN_PROGRESS, None, PollPhase.POLLING),
        (RunStatus.COMPLETED, None, PollPhase.POLLING),
        (RunStatus.COMPLETED, RunConclusion.SUCCESS, PollPhase.COMPLETED_SUCCESS),
        (RunStatus.COMPLETED, RunConclusion.FAILURE, PollPhase.COMPLETED_FAILURE),
        (RunStatus.COMPLETED, RunConclusion.TIMED_OUT, PollPhase.COMPLETED_FAILURE),
        (RunStatus.COMPLETED, RunConclusion.CANCELLED, PollPhase.COMPLETED_OTHER),
        (RunStatus.COMPLETED, RunConclusion.STALE, PollPhase.COMPLETED_OTHER),
    ],
)
def test_phase_for(
    status: RunStatus, conclusion: RunConclusion | None, expected: PollPhase
) -> None:
    """Maps status and conclusion to a poll phase."""
    run = RunSummaryFactory.build(status=status, conclusion=conclusion)

    assert phase_for(run) is expected


async def test_unknown_status_keeps_polling(
    client_mock: Mock, config: ActionConfig, fake_clock: FakeClock
) -> None:
    """A status value added by GitHub later does not stop the wait."""
    client_mock.get_workflow_run.side_effect = [
        RunSummary.model_validate(workflow_run(run_id=123, status="paused")),
        completed_run(RunConclusion.SUCCESS),
    ]
    poller = make_poller(client_mock, config, fake_clock)

    state = await poller.wait_for_completion("123")

    assert state.phase is PollPhase.COMPLETED_SUCCESS
    assert state.attempts == 2


async def test_logs_link_of_finished_run(
    client_mock: Mock,
    config: ActionConfig,
    fake_clock: FakeClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Reports the run page GitHub returned once the run is done."""
    caplog.set_level("INFO")
    client_mock.get_workflow_run.return_value = RunSummary.model_validate(
        workflow_run(run_id=123, html_url="https://github.test/runs/123")
    )
    poller = make_poller(client_mock, config, fake_clock)

    await poller.wait_for_completion("123")

    assert "finished after 1 poll(s) in 10s: https://github.test/runs/123" in (
        caplog.text
    )
