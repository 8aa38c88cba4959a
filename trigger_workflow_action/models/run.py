"""Models for GitHub Actions workflow runs and dispatch requests."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Annotated

from pydantic import Field, JsonValue

from trigger_workflow_action.models.base import Model


class RunStatus(StrEnum):
    """Lifecycle status of a workflow run."""

    REQUESTED = "requested"
    QUEUED = "queued"
    PENDING = "pending"
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RunConclusion(StrEnum):
    """Outcome of a completed workflow run."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"


FAILED_CONCLUSIONS: frozenset[RunConclusion] = frozenset(
    [RunConclusion.FAILURE, RunConclusion.TIMED_OUT, RunConclusion.STARTUP_FAILURE]
)


class DispatchRequest(Model):
    """Body of a workflow_dispatch request."""

    ref: str
    inputs: Mapping[str, JsonValue] = Field(default_factory=dict)


class RunSummary(Model):
    """A workflow run as returned by the get-a-workflow-run API.

    Status and conclusion values GitHub adds later are kept as plain strings;
    an unknown status is never completed, so such a run keeps being polled.
    """

    id: int = Field(..., ge=0)
    status: Annotated[RunStatus | str, Field(union_mode="left_to_right")]
    conclusion: (
        Annotated[RunConclusion | str, Field(union_mode="left_to_right")] | None
    ) = None
    created_at: datetime
    html_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the run has completed and reported a conclusion."""
        return self.status == RunStatus.COMPLETED and self.conclusion is not None

    @property
    def succeeded(self) -> bool:
        return self.is_terminal and self.conclusion is RunConclusion.SUCCESS


class RunCandidate(Model):
    """Entry of a run listing, kept loose so bad ids can be rejected later."""

    id: JsonValue = None
    created_at: datetime | None = None


class RunListing(Model):
    """Response from the list-workflow-runs API."""

    workflow_runs: Sequence[RunCandidate] = Field(default_factory=list)
