"""
Shared configuration for the Lo-Dash builder.

Defines the vocabulary of the command language, output defaults, reducer
settings, and the environment-derived settings read at call time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


FRAGMENTS_DIR = Path(__file__).resolve().parent / "fragments"
MANIFEST_FILE = "manifest.json"

# Closed category set, in documentation order.
CATEGORIES = ("Arrays", "Chaining", "Collections", "Functions", "Objects", "Utilities")

# Mode tags. The tuple order is the default variant precedence
# (highest first); "default" is always the last resort.
DEFAULT_VARIANT = "default"
VARIANT_PRECEDENCE = ("csp", "legacy", "mobile", "underscore", "strict")
MODES = frozenset(VARIANT_PRECEDENCE)

# Bare keywords that select a named bundle.
BUNDLES = ("backbone", "underscore")

# Private helper that every non-empty build starts from.
CORE_HELPER = "lodash"

# Export formats, in the order they appear in the exposure chain.
EXPORT_FORMATS = ("amd", "commonjs", "node", "global")
EXPORT_NONE = "none"
DEFAULT_EXPORTS = EXPORT_FORMATS

OUTPUT_MARKER = "%output%"

DEFAULT_OUTPUT = "lodash.custom.js"
DEFAULT_MIN_OUTPUT = "lodash.custom.min.js"

# Seconds an external minifier may run before the build falls back to
# the unreduced source.
REDUCER_TIMEOUT_SECONDS = 120

# Environment variables.
MINIFIER_ENV = "LODASH_BUILDER_MINIFIER"
LOG_LEVEL_ENV = "LODASH_BUILDER_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    """Environment-derived settings, resolved once per invocation."""
    minifier_command: str | None
    log_level: str


def load_settings() -> Settings:
    minifier = os.environ.get(MINIFIER_ENV, "").strip()
    level = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    return Settings(
        minifier_command=minifier or None,
        log_level=level or DEFAULT_LOG_LEVEL,
    )
