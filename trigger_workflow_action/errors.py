"""Errors raised while triggering and waiting for a workflow run."""


class ActionError(Exception):
    """Base class for errors that end the action with a failure."""


class ConfigurationError(ActionError):
    """Raised when action inputs are missing or invalid."""


class FatalAPIError(ActionError):
    """Raised when the GitHub API fails in a way retrying cannot fix."""

    def __init__(self, path: str, status: int | None, response: str) -> None:
        super().__init__(f"API call failed: path={path} status={status}")
        self.path = path
        self.status = status
        self.response = response


class TransientAPIError(ActionError):
    """Raised when the GitHub API reports a server error worth retrying."""

    def __init__(self, path: str, status: int, response: str) -> None:
        super().__init__(f"Server error on {path} ({status})")
        self.path = path
        self.status = status
        self.response = response


class CorrelationTimeoutError(ActionError):
    """Raised when the dispatched run cannot be found in time."""


class RunFailedError(ActionError):
    """Raised when the run did not succeed and failure is propagated."""

    def __init__(self, run_id: str, conclusion: str | None) -> None:
        super().__init__(f"Workflow run {run_id} concluded with {conclusion}")
        self.run_id = run_id
        self.conclusion = conclusion
