"""Dispatch a workflow and find the run the dispatch created."""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import JsonValue

from trigger_workflow_action.client import GitHubClient
from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.errors import CorrelationTimeoutError, TransientAPIError
from trigger_workflow_action.models.run import DispatchRequest, RunCandidate

log = logging.getLogger(__name__)

DISPATCH_EVENT = "workflow_dispatch"
RUNS_PAGE_SIZE = 10

RUN_ID_PATTERN = re.compile(r"[0-9]+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_run_id(value: JsonValue) -> bool:
    """Check that a run id from the API is a non-negative integer."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, str):
        return RUN_ID_PATTERN.fullmatch(value) is not None
    return False


def select_candidate(
    runs: Sequence[RunCandidate], start_time: datetime
) -> RunCandidate | None:
    """Return the first run created at or after start_time.

    Runs are listed newest first, so this is the most recent matching run.
    Naive timestamps are taken to be UTC.
    """
    for run in runs:
        if run.created_at is None:
            continue
        created_at = run.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if created_at >= start_time:
            return run
    return None


@dataclass(frozen=True, kw_only=True)
class RunCorrelator:
    """Trigger a workflow_dispatch and identify the resulting run.

    The dispatch API returns no run id, so the run is found by listing recent
    dispatch runs and taking the newest one created after the dispatch. Two
    dispatches of the same workflow within one polling window can be confused;
    nothing in the API lets us tell them apart.
    """

    client: GitHubClient
    config: ActionConfig
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic
    now: Callable[[], datetime] = utc_now

    async def trigger(self) -> str:
        """Dispatch the workflow and return the id of the created run.

        Raises:
            CorrelationTimeoutError: If no matching run shows up within
                trigger_timeout seconds
            FatalAPIError: If the API rejects a request

        """
        start_time = self.now().replace(microsecond=0)
        deadline = self.clock() + self.config.trigger_timeout

        request = DispatchRequest(
            ref=self.config.ref, inputs=self.config.client_payload
        )
        log.info(
            "Triggering workflow: workflows/%s/dispatches %s",
            self.config.workflow_file_name,
            request.model_dump_json(),
        )

        try:
            await self.client.dispatch_workflow(self.config.workflow_file_name, request)
        except TransientAPIError as e:
            # The dispatch may still have gone through; dispatching again could
            # start a second run, so look for the first one instead.
            log.warning("Dispatch returned a server error, looking for run: %s", e)

        while True:
            await self.sleep(self.config.wait_interval)

            if (run_id := await self.find_run_id(start_time)) is not None:
                log.info("Found workflow run %s", run_id)
                return run_id

            if self.clock() >= deadline:
                raise CorrelationTimeoutError(
                    f"No {DISPATCH_EVENT} run of {self.config.workflow_file_name} "
                    f"created at or after {start_time.isoformat()} appeared within "
                    f"{self.config.trigger_timeout:g} seconds"
                )

    async def find_run_id(self, start_time: datetime) -> str | None:
        """Look for the dispatched run once; None means not found yet."""
        try:
            listing = await self.client.list_workflow_runs(
                self.config.workflow_file_name,
                event=DISPATCH_EVENT,
                actor=self.config.github_user,
                per_page=RUNS_PAGE_SIZE,
            )
        except TransientAPIError:
            return None
        except ValueError as e:
            # Listing that does not validate
            log.warning("Ignoring malformed run listing: %s", e)
            return None

        candidate = select_candidate(listing.workflow_runs, start_time)
        if candidate is None:
            log.info("Waiting for workflow run to appear...")
            return None

        if not is_valid_run_id(candidate.id):
            log.warning("Ignoring run with malformed id: %r", candidate.id)
            return None

        return str(candidate.id)
