"""Run the trigger and wait phases of the action in order."""

import logging
from dataclasses import dataclass

from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.correlator import RunCorrelator
from trigger_workflow_action.outputs import OutputWriter
from trigger_workflow_action.poller import CompletionPoller, PollState

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class WorkflowOrchestrator:
    """Trigger a workflow, then wait for the run it created."""

    config: ActionConfig
    correlator: RunCorrelator
    poller: CompletionPoller
    outputs: OutputWriter

    async def run(self) -> PollState | None:
        """Run the enabled phases.

        Returns:
            The final poll state, or None when there was nothing to wait for

        """
        run_id: str | None = None

        if self.config.trigger_workflow:
            run_id = await self.correlator.trigger()
            self.outputs.write(
                workflow_id=run_id, workflow_url=self.config.run_url(run_id)
            )
        else:
            log.info("Skipping triggering the workflow.")

        if not self.config.wait_workflow:
            log.info("Skipping waiting for workflow.")
            return None

        if run_id is None:
            log.info("No workflow run to wait for.")
            return None

        log.info("Waiting for workflow to complete 🕖 ...")
        return await self.poller.wait_for_completion(run_id)
