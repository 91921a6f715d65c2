"""
Text-reduction collaborators.

A reducer takes generated source and hands a smaller version to a
completion callback. The contract the orchestrator checks afterwards:
the version marker survives and the line count does not grow.

  StripReducer     built in; drops comments, blank lines and indentation
  ExternalReducer  pipes the source through a configured command
                   (e.g. ``uglifyjs -c -m``) via subprocess
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Any, Callable, Protocol

from lodash_builder.config import REDUCER_TIMEOUT_SECONDS, Settings

logger = logging.getLogger(__name__)


class ReducerError(RuntimeError):
    """The reducer could not produce output."""


class Reducer(Protocol):
    name: str

    def reduce(
        self,
        source: str,
        options: dict[str, Any],
        on_complete: Callable[[str], None],
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# Built-in reducer
# ---------------------------------------------------------------------------

class StripReducer:
    """Removes comments (except ``/*!`` banners), blank lines and indentation.

    Works line by line, so it never joins lines and never increases the
    line count.
    """

    name = "strip"

    def reduce(
        self,
        source: str,
        options: dict[str, Any],
        on_complete: Callable[[str], None],
    ) -> None:
        on_complete(strip_source(source))


def strip_source(source: str) -> str:
    kept: list[str] = []
    in_comment = False
    in_banner = False

    for line in source.split("\n"):
        stripped = line.strip()

        if in_banner:
            kept.append(stripped)
            if "*/" in stripped:
                in_banner = False
            continue

        if in_comment:
            if "*/" not in stripped:
                continue
            in_comment = False
            stripped = stripped.split("*/", 1)[1].strip()

        if not stripped or stripped.startswith("//"):
            continue

        if stripped.startswith("/*!"):
            kept.append(stripped)
            in_banner = "*/" not in stripped[3:]
            continue

        if stripped.startswith("/*"):
            rest = stripped[2:]
            if "*/" not in rest:
                in_comment = True
                continue
            stripped = rest.split("*/", 1)[1].strip()
            if not stripped:
                continue

        kept.append(stripped)

    reduced = "\n".join(kept)
    if source.endswith("\n"):
        reduced += "\n"
    return reduced


# ---------------------------------------------------------------------------
# External command
# ---------------------------------------------------------------------------

class ExternalReducer:
    """Runs an external minifier that reads stdin and writes stdout."""

    name = "external"

    def __init__(self, command: str, timeout: int = REDUCER_TIMEOUT_SECONDS) -> None:
        try:
            self.command = shlex.split(command)
        except ValueError as e:
            raise ValueError(f"Cannot parse minifier command {command!r}: {e}") from e
        self.timeout = timeout
        if not self.command:
            raise ValueError("External minifier command is empty")

    def reduce(
        self,
        source: str,
        options: dict[str, Any],
        on_complete: Callable[[str], None],
    ) -> None:
        logger.info("Running external minifier: %s", " ".join(self.command))
        try:
            result = subprocess.run(
                self.command,
                input=source,
                capture_output=True,
                encoding="utf-8",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ReducerError(f"Minifier timed out after {self.timeout}s") from e
        except OSError as e:
            raise ReducerError(f"Minifier could not be started: {e}") from e
        except UnicodeError as e:
            raise ReducerError(f"Minifier output is not valid UTF-8: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()
            raise ReducerError(
                f"Minifier exited with code {result.returncode}"
                + (f": {detail[-1]}" if detail else "")
            )
        on_complete(result.stdout)


def reducer_from_settings(settings: Settings) -> Reducer:
    if settings.minifier_command:
        return ExternalReducer(settings.minifier_command)
    return StripReducer()


def contract_violations(source: str, reduced: str, marker: str) -> list[str]:
    """Check a reduction against its contract. Returns human-readable problems."""
    problems: list[str] = []
    if marker in source and marker not in reduced:
        problems.append(f"version marker '{marker}' was not preserved")
    if reduced.count("\n") > source.count("\n"):
        problems.append(
            f"line count grew from {source.count(chr(10))} to {reduced.count(chr(10))}"
        )
    return problems
