"""Step outputs consumed by later steps of the calling workflow."""

import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class OutputWriter:
    """Append key=value lines to the GITHUB_OUTPUT file.

    Without a file the lines go to stdout, which keeps local runs readable.
    """

    path: Path | None = None

    def write(self, **values: object) -> None:
        lines = "".join(
            f"{key}={format_value(value)}\n" for key, value in values.items()
        )
        if self.path is None:
            print(lines, end="")
            return

        with self.path.open("a", encoding="utf-8") as f:
            f.write(lines)
        log.debug("Wrote outputs %s to %s", ", ".join(values), self.path)


def format_value(value: object) -> str:
    """Render a value the way the calling workflow expects to read it."""
    if value is None:
        return "null"
    return str(value)
