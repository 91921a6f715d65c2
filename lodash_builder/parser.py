"""
Command Parser — turns a build command's tokens into a BuildConfig.

Grammar:
  selection   include=a,b  exclude=a  plus=a  minus=a  category=c1,c2
  bundles     backbone  underscore
  modes       csp  legacy  mobile  strict  underscore
  exports     exports=amd,commonjs,global,node,none
  wrapping    iife=<template containing %output% once>
  output      -o/--output <path>  -c/--stdout  -s/--silent  -m/--minify
  validation  --strict-names

The parser consults the registry only to normalize category names; name
validation happens in the resolver.
"""

from __future__ import annotations

import logging
from typing import Sequence

from lodash_builder.config import (
    BUNDLES,
    DEFAULT_EXPORTS,
    EXPORT_FORMATS,
    EXPORT_NONE,
    MODES,
    OUTPUT_MARKER,
)
from lodash_builder.models import BuildConfig, WrapperTemplate
from lodash_builder.registry import Registry, default_registry

logger = logging.getLogger(__name__)

_LIST_KEYS = ("include", "exclude", "plus", "minus", "category")
_DIRECTIVE_KEYS = _LIST_KEYS + ("exports", "iife")


class ConfigurationError(ValueError):
    """A malformed or unrecognized build command token."""

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class UnknownNameError(ConfigurationError):
    """Raised under --strict-names when a selection names nothing known."""

    def __init__(self, names: Sequence[str]) -> None:
        super().__init__(
            "Unknown function or category name(s): " + ", ".join(names),
            token=names[0] if names else None,
        )
        self.names = tuple(names)


def parse_command(tokens: Sequence[str], registry: Registry | None = None) -> BuildConfig:
    """Parse an ordered token list into a BuildConfig.

    Raises:
        ConfigurationError: Naming the first offending token.
    """
    if registry is None:
        registry = default_registry()

    lists: dict[str, list[str]] = {key: [] for key in _LIST_KEYS}
    include_seen = False
    bundles: list[str] = []
    modes: set[str] = set()
    exports: list[str] | None = None
    wrapper: WrapperTemplate | None = None
    output_path: str | None = None
    stdout = silent = minify = strict_names = False
    banner_tokens: list[str] = []

    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1

        # -------------------------------------------------------------------
        # Output and behaviour flags
        # -------------------------------------------------------------------
        if token in ("-o", "--output"):
            if index >= len(tokens) or not tokens[index] or tokens[index].startswith("-"):
                raise ConfigurationError(f"'{token}' requires a file path", token)
            output_path = tokens[index]
            index += 1
            continue
        if token.startswith("--output="):
            output_path = token.partition("=")[2]
            if not output_path:
                raise ConfigurationError(f"'{token}' requires a file path", token)
            continue
        if token in ("-c", "--stdout"):
            stdout = True
            continue
        if token in ("-s", "--silent"):
            silent = True
            continue
        if token in ("-m", "--minify"):
            minify = True
            continue
        if token == "--strict-names":
            strict_names = True
            continue
        if token.startswith("-"):
            raise ConfigurationError(f"Unknown option '{token}'", token)

        # -------------------------------------------------------------------
        # key=value directives
        # -------------------------------------------------------------------
        if "=" in token:
            key, _, value = token.partition("=")
            if key not in _DIRECTIVE_KEYS:
                raise ConfigurationError(f"Unknown directive '{key}=' in '{token}'", token)
            banner_tokens.append(f'{key}="{value}"')

            if key == "iife":
                wrapper = _parse_wrapper(value, token)
                continue

            values = _split(value)
            if key == "exports":
                exports = (exports or []) + _parse_exports(values)
            elif key == "category":
                for v in values:
                    lists["category"].append(registry.normalize_category(v) or v)
            else:
                if key == "include":
                    include_seen = True
                lists[key].extend(values)
            continue

        # -------------------------------------------------------------------
        # Bare keywords
        # -------------------------------------------------------------------
        if token in _DIRECTIVE_KEYS:
            raise ConfigurationError(f"Directive '{token}' requires '=value'", token)
        if token not in BUNDLES and token not in MODES:
            raise ConfigurationError(f"Unrecognized token '{token}'", token)
        if token in BUNDLES and token not in bundles:
            bundles.append(token)
        if token in MODES:
            modes.add(token)
        banner_tokens.append(token)

    if exports is None:
        export_formats: tuple[str, ...] = DEFAULT_EXPORTS
    else:
        export_formats = tuple(f for f in EXPORT_FORMATS if f in exports)

    config = BuildConfig(
        include=tuple(lists["include"]) if include_seen else None,
        bundles=tuple(bundles),
        categories=tuple(lists["category"]),
        plus=tuple(lists["plus"]),
        minus=tuple(lists["minus"]),
        exclude=tuple(lists["exclude"]),
        modes=frozenset(modes),
        exports=export_formats,
        wrapper=wrapper,
        output_path=output_path,
        stdout=stdout,
        silent=silent,
        minify=minify,
        strict_names=strict_names,
        tokens=tuple(banner_tokens),
    )
    logger.debug("Parsed %s", config.to_dict())
    return config


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_exports(values: list[str]) -> list[str]:
    """Keep recognized export formats; anything else (and 'none') adds nothing."""
    formats: list[str] = []
    for value in values:
        value = value.lower()
        if value in EXPORT_FORMATS:
            formats.append(value)
        elif value != EXPORT_NONE:
            logger.debug("Ignoring unknown export format '%s'", value)
    return formats


def _parse_wrapper(value: str, token: str) -> WrapperTemplate:
    count = value.count(OUTPUT_MARKER)
    if count != 1:
        raise ConfigurationError(
            f"iife template must contain exactly one '{OUTPUT_MARKER}' marker "
            f"(found {count})",
            token,
        )
    return WrapperTemplate(value)
