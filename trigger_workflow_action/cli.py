"""CLI entry point for the trigger-workflow-and-wait action."""

import argparse
import asyncio
import logging
import os
import sys
import time
from collections.abc import Awaitable, Callable

from trigger_workflow_action.client import GitHubClient
from trigger_workflow_action.config import USAGE, ActionConfig, load_config
from trigger_workflow_action.correlator import RunCorrelator
from trigger_workflow_action.errors import (
    ConfigurationError,
    CorrelationTimeoutError,
    FatalAPIError,
    RunFailedError,
)
from trigger_workflow_action.notifier import DownstreamNotifier
from trigger_workflow_action.orchestrator import WorkflowOrchestrator
from trigger_workflow_action.outputs import OutputWriter
from trigger_workflow_action.poller import CompletionPoller

log = logging.getLogger("trigger_workflow_action")


def build_notifier(config: ActionConfig) -> DownstreamNotifier | None:
    """Create the downstream notifier if a comment URL was given."""
    if not config.comment_downstream_url:
        return None
    return DownstreamNotifier(
        url=config.comment_downstream_url, token=config.comment_github_token
    )


async def run(
    config: ActionConfig,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Trigger and wait for the configured workflow and return exit code."""
    outputs = OutputWriter(path=config.output_path)

    try:
        async with GitHubClient.from_config(config) as client:
            orchestrator = WorkflowOrchestrator(
                config=config,
                correlator=RunCorrelator(
                    client=client, config=config, sleep=sleep, clock=clock
                ),
                poller=CompletionPoller(
                    client=client,
                    config=config,
                    outputs=outputs,
                    notifier=build_notifier(config),
                    sleep=sleep,
                    clock=clock,
                ),
                outputs=outputs,
            )
            await orchestrator.run()
    except FatalAPIError as e:
        log.error("%s\nresponse: %s", e, e.response)
        return 1
    except CorrelationTimeoutError as e:
        log.error("Could not find the triggered workflow run: %s", e)
        return 1
    except RunFailedError as e:
        log.error("%s", e)
        return 1

    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description=(
            "Trigger a GitHub Actions workflow and wait for it to finish. "
            "Inputs are read from INPUT_* environment variables."
        )
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(os.environ)
    except ConfigurationError as e:
        log.error("Error: %s", e)
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    exit_code = asyncio.run(run(config))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
