"""Action inputs loaded from the environment."""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import Field, JsonValue, SecretStr, ValidationError

from trigger_workflow_action.errors import ConfigurationError
from trigger_workflow_action.models.base import Model

USAGE = """
You can use this Github Action with:
- uses: convictional/trigger-workflow-and-wait
  with:
    owner: keithconvictional
    repo: myrepo
    github_token: ${{ secrets.GITHUB_PERSONAL_ACCESS_TOKEN }}
    workflow_file_name: main.yaml
"""

ENV_TO_FIELD: Mapping[str, str] = {
    "INPUT_OWNER": "owner",
    "INPUT_REPO": "repo",
    "INPUT_GITHUB_TOKEN": "github_token",
    "INPUT_WORKFLOW_FILE_NAME": "workflow_file_name",
    "INPUT_WAIT_INTERVAL": "wait_interval",
    "INPUT_FIRST_WAIT_MINUTES": "first_wait_minutes",
    "INPUT_PROPAGATE_FAILURE": "propagate_failure",
    "INPUT_TRIGGER_WORKFLOW": "trigger_workflow",
    "INPUT_WAIT_WORKFLOW": "wait_workflow",
    "INPUT_TRIGGER_TIMEOUT": "trigger_timeout",
    "INPUT_REF": "ref",
    "INPUT_GITHUB_USER": "github_user",
    "INPUT_COMMENT_DOWNSTREAM_URL": "comment_downstream_url",
    "INPUT_COMMENT_GITHUB_TOKEN": "comment_github_token",
    "INPUT_SENTRY_PROJECT": "sentry_project",
    "API_URL": "api_url",
    "SERVER_URL": "server_url",
    "GITHUB_OUTPUT": "output_path",
}

# Checked in this order, before any other validation.
REQUIRED_INPUTS: Mapping[str, str] = {
    "INPUT_OWNER": "Owner is a required argument.",
    "INPUT_REPO": "Repo is a required argument.",
    "INPUT_GITHUB_TOKEN": (
        "Github token is required. You can head over settings and under "
        "developer, you can create a personal access tokens. The token "
        "requires repo access."
    ),
    "INPUT_WORKFLOW_FILE_NAME": "Workflow File Name is required",
}


class ActionConfig(Model):
    """Validated, immutable inputs of one action invocation."""

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    workflow_file_name: str = Field(..., min_length=1)
    github_token: SecretStr
    wait_interval: float = Field(default=10, ge=0)
    first_wait_minutes: float = Field(default=0, ge=0)
    propagate_failure: bool = True
    trigger_workflow: bool = True
    wait_workflow: bool = True
    trigger_timeout: float = Field(default=120, ge=0)
    ref: str = "main"
    client_payload: Mapping[str, JsonValue] = Field(default_factory=dict)
    github_user: str | None = None
    comment_downstream_url: str | None = None
    comment_github_token: SecretStr | None = None
    sentry_project: str | None = None
    api_url: str = "https://api.github.com"
    server_url: str = "https://github.com"
    output_path: Path | None = None

    @property
    def first_wait_seconds(self) -> float:
        return self.first_wait_minutes * 60

    def run_url(self, run_id: str) -> str:
        """Browser URL of a workflow run in the target repository."""
        return (
            f"{self.server_url.rstrip('/')}/{self.owner}/{self.repo}"
            f"/actions/runs/{run_id}"
        )


def parse_client_payload(
    raw: str, sentry_project: str | None = None
) -> dict[str, Any]:
    """Parse the workflow inputs JSON and merge in the sentry project tag."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"client_payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigurationError("client_payload must be a JSON object")

    if sentry_project:
        payload = {**payload, "sentry_project": sentry_project}
    return payload


def load_config(environ: Mapping[str, str]) -> ActionConfig:
    """Build the action configuration from environment variables.

    Empty variables are treated as unset so the defaults apply, which is how
    GitHub passes inputs that were not provided.

    Raises:
        ConfigurationError: If a required input is missing or a value is invalid

    """
    values: dict[str, Any] = {
        field: environ[name].strip()
        for name, field in ENV_TO_FIELD.items()
        if environ.get(name, "").strip()
    }

    for name, message in REQUIRED_INPUTS.items():
        if ENV_TO_FIELD[name] not in values:
            raise ConfigurationError(message)

    if raw_payload := environ.get("INPUT_CLIENT_PAYLOAD", "").strip():
        values["client_payload"] = parse_client_payload(
            raw_payload, values.get("sentry_project")
        )

    try:
        return ActionConfig.model_validate(values)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid action inputs: {details}") from e
