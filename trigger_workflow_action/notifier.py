"""Comment on an upstream issue or pull request once the run has started."""

import asyncio
import logging
from dataclasses import dataclass, field

import aiohttp
from pydantic import SecretStr

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class DownstreamNotifier:
    """Posts a link to the downstream run to a comments URL.

    A failed comment is logged and otherwise ignored; it never fails the action.
    """

    url: str
    token: SecretStr | None = field(default=None, repr=False)

    async def notify(self, run_url: str) -> None:
        """Post the run link; failures are only logged."""
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token is not None:
            headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"
        payload = {"body": f"Running downstream job at {run_url}"}

        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.post(self.url, json=payload) as response:
                    if response.status >= 400:
                        text = await response.text()
                        log.warning(
                            "failed to comment to %s: %s %s",
                            self.url,
                            response.status,
                            text,
                        )
                        return
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("failed to comment to %s: %r", self.url, e)
            return

        log.info("Commented downstream run link to %s", self.url)
