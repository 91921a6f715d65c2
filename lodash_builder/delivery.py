"""
Delivery — writes finished source to a file or to stdout.

File delivery creates missing parent directories and writes UTF-8.
Write failures surface as DeliveryError; the in-memory source is never
touched, so the orchestrator can still hand it to the callback.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

from lodash_builder.config import DEFAULT_MIN_OUTPUT, DEFAULT_OUTPUT
from lodash_builder.models import BuildConfig

logger = logging.getLogger(__name__)


class DeliveryError(OSError):
    """Writing the build output failed."""


def destination_for(config: BuildConfig) -> str | None:
    """Return the output path for ``config``, or None for stdout delivery."""
    if config.stdout:
        return None
    if config.output_path:
        return config.output_path
    return DEFAULT_MIN_OUTPUT if config.minify else DEFAULT_OUTPUT


def write_file(source: str, path: str) -> Path:
    """Write ``source`` to ``path``, creating parent directories.

    Raises:
        DeliveryError: If the directory or file cannot be written.
    """
    target = Path(path)
    try:
        if target.parent != Path("."):
            target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(source)
    except OSError as e:
        raise DeliveryError(f"Cannot write {path}: {e}") from e
    logger.info("Wrote %d bytes to %s", len(source.encode("utf-8")), target)
    return target


def write_stdout(source: str, stream: TextIO | None = None) -> None:
    stream = stream if stream is not None else sys.stdout
    stream.write(source)
    stream.flush()
