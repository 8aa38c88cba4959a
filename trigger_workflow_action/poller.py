"""Wait for a workflow run to finish and report its conclusion."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from trigger_workflow_action.client import GitHubClient
from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.errors import RunFailedError, TransientAPIError
from trigger_workflow_action.models.run import (
    FAILED_CONCLUSIONS,
    RunConclusion,
    RunStatus,
    RunSummary,
)
from trigger_workflow_action.notifier import DownstreamNotifier
from trigger_workflow_action.outputs import OutputWriter

log = logging.getLogger(__name__)


class PollPhase(StrEnum):
    """Where a polling loop stands."""

    NOT_STARTED = "not_started"
    POLLING = "polling"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_FAILURE = "completed_failure"
    COMPLETED_OTHER = "completed_other"


TERMINAL_PHASES: frozenset[PollPhase] = frozenset(
    [
        PollPhase.COMPLETED_SUCCESS,
        PollPhase.COMPLETED_FAILURE,
        PollPhase.COMPLETED_OTHER,
    ]
)


def phase_for(run: RunSummary) -> PollPhase:
    """Map a fetched run to the phase the loop should be in."""
    if not run.is_terminal:
        return PollPhase.POLLING
    if run.succeeded:
        return PollPhase.COMPLETED_SUCCESS
    if run.conclusion in FAILED_CONCLUSIONS:
        return PollPhase.COMPLETED_FAILURE
    return PollPhase.COMPLETED_OTHER


@dataclass(kw_only=True)
class PollState:
    """Mutable state of one polling loop."""

    run_id: str
    started_at: float
    phase: PollPhase = PollPhase.NOT_STARTED
    status: RunStatus | str | None = None
    conclusion: RunConclusion | str | None = None
    attempts: int = 0
    last_run: RunSummary | None = field(default=None, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def record(self, run: RunSummary) -> None:
        self.attempts += 1
        self.status = run.status
        self.conclusion = run.conclusion
        self.phase = phase_for(run)
        self.last_run = run


@dataclass(frozen=True, kw_only=True)
class CompletionPoller:
    """Block until a run completes, then succeed or fail with it.

    There is no overall timeout: the loop ends when the run ends, or when the
    calling job is cancelled.
    """

    client: GitHubClient
    config: ActionConfig
    outputs: OutputWriter
    notifier: DownstreamNotifier | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    async def wait_for_completion(self, run_id: str) -> PollState:
        """Poll the run until it reaches a terminal state.

        Every successful poll appends the current conclusion to the step
        outputs so the calling workflow can follow progress.

        Returns:
            Final poll state; its phase says how the run ended

        Raises:
            RunFailedError: If the run did not succeed and propagate_failure is set
            FatalAPIError: If the API rejects a request

        """
        run_url = self.config.run_url(run_id)
        log.info("Waiting for workflow to finish:")
        log.info("The workflow id is [%s].", run_id)
        log.info("The workflow logs can be found at %s", run_url)

        state = PollState(run_id=run_id, started_at=self.clock())

        await self.sleep(self.config.first_wait_seconds)

        if self.notifier is not None:
            await self.notifier.notify(run_url)

        state.phase = PollPhase.POLLING
        while not state.is_terminal:
            await self.sleep(self.config.wait_interval)

            try:
                run = await self.client.get_workflow_run(run_id)
            except TransientAPIError:
                continue

            state.record(run)
            log.debug(
                "Run %s: status=%s conclusion=%s", run_id, run.status, run.conclusion
            )
            self.outputs.write(conclusion=state.conclusion)

        log.info(
            "Run %s finished after %d poll(s) in %.0fs: %s",
            run_id,
            state.attempts,
            self.clock() - state.started_at,
            (state.last_run and state.last_run.html_url) or run_url,
        )

        if state.phase is PollPhase.COMPLETED_SUCCESS:
            log.info("Yes, success")
            return state

        log.info("Conclusion is not success, it's [%s].", state.conclusion)
        if self.config.propagate_failure:
            log.info("Propagating failure to upstream job")
            raise RunFailedError(run_id, state.conclusion)

        return state
