"""Client for the GitHub Actions REST API of the target repository."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import ValidationError

from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.errors import FatalAPIError, TransientAPIError
from trigger_workflow_action.models.run import DispatchRequest, RunListing, RunSummary

log = logging.getLogger(__name__)

# GitHub answers with {"message": "Server Error"} on failures that go away on retry
TRANSIENT_ERROR_MARKER = '"Server Error"'


@dataclass(frozen=True, kw_only=True)
class GitHubClient:
    """Authenticated calls below /repos/{owner}/{repo}/actions/.

    The client never retries. Callers decide what to do with a
    TransientAPIError; anything else is raised as FatalAPIError.
    """

    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: ActionConfig
    ) -> AsyncGenerator["GitHubClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.github_token.get_secret_value()}",
            "Accept": "application/vnd.github.v3+json",
            "Content-Type": "application/json",
        }
        api_root = config.api_url.rstrip("/")
        base_url = f"{api_root}/repos/{config.owner}/{config.repo}/actions/"
        async with aiohttp.ClientSession(
            base_url=base_url,
            headers=headers,
        ) as session:
            yield cls(session=session)

    async def call(
        self,
        path: str,
        method: str = "GET",
        body: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            path: Path relative to the repository's actions API root
            method: HTTP method
            body: JSON body to send, if any
            params: Query string parameters

        Returns:
            Decoded JSON, or None when the response body is empty

        Raises:
            TransientAPIError: If the response carries GitHub's server error marker
            FatalAPIError: On any other HTTP or transport failure, or a body
                that is not JSON

        """
        try:
            async with self.session.request(
                method, path, json=body, params=params
            ) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error("api failed: path=%s error=%r", path, e)
            raise FatalAPIError(path, None, repr(e)) from e

        if status >= 400:
            log.error("api failed:\npath: %s\nresponse: %s", path, text)
            if TRANSIENT_ERROR_MARKER in text:
                log.warning("Server error - trying again")
                raise TransientAPIError(path, status, text)
            raise FatalAPIError(path, status, text)

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            log.error("api returned invalid JSON:\npath: %s\nresponse: %s", path, text)
            raise FatalAPIError(path, status, text) from e

    async def dispatch_workflow(self, workflow: str, request: DispatchRequest) -> None:
        """Create a workflow_dispatch event. GitHub replies 204 with no body."""
        await self.call(
            f"workflows/{workflow}/dispatches",
            method="POST",
            body=request.model_dump(mode="json"),
        )

    async def list_workflow_runs(
        self,
        workflow: str,
        *,
        event: str = "workflow_dispatch",
        actor: str | None = None,
        per_page: int = 10,
    ) -> RunListing:
        """List the most recent runs of a workflow, newest first."""
        params = {"event": event, "per_page": str(per_page)}
        if actor:
            params["actor"] = actor

        data = await self.call(f"workflows/{workflow}/runs", params=params)
        return RunListing.model_validate(data)

    async def get_workflow_run(self, run_id: str) -> RunSummary:
        """Get a single workflow run by id."""
        path = f"runs/{run_id}"
        data = await self.call(path)
        try:
            return RunSummary.model_validate(data)
        except ValidationError as e:
            raise FatalAPIError(path, None, json.dumps(data)) from e
