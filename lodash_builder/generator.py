"""
Code Generator — renders a ResolvedSet into one self-contained module.

Layout of a non-empty build:

  /*! banner (library, version, build command, license) */
  ;(function(window, undefined) {
    'use strict';                       (strict mode only)
    export detection variables
    helper fragments                    (registry order)
    public fragments                    (registry order)
    lodash.<name> = <name>;             (plus one line per alias)
    tail fragments
    lodash.VERSION = '<version>';
    export snippet
  }(this));

A custom wrapper template replaces the IIFE lines, detection variables
and export snippet; the banner is kept.

Variant selection walks the entry's precedence (or the global one) and
takes the first variant whose mode is active, falling back to "default".
An entry with no usable variant is omitted together with every emitted
entry that depends on it; each omission is recorded as a fault.
"""

from __future__ import annotations

import logging
from collections import deque

from lodash_builder.config import (
    CORE_HELPER,
    DEFAULT_VARIANT,
    EXPORT_FORMATS,
    VARIANT_PRECEDENCE,
)
from lodash_builder.models import BuildConfig, FunctionEntry, ResolvedSet
from lodash_builder.registry import Registry, default_registry

logger = logging.getLogger(__name__)

INDENT = "  "

AMD_CONDITION = "typeof define == 'function' && typeof define.amd == 'object' && define.amd"


class GenerationFault(RuntimeError):
    """A fragment could not be emitted, or the output contract was violated."""


def select_variant(entry: FunctionEntry, modes: frozenset[str] | set[str]) -> str | None:
    """Return the source fragment for the active modes, or None if absent."""
    for tag in entry.precedence or VARIANT_PRECEDENCE:
        if tag in modes and tag in entry.variants:
            return entry.variants[tag]
    return entry.variants.get(DEFAULT_VARIANT)


def generate(
    resolved: ResolvedSet,
    config: BuildConfig,
    registry: Registry | None = None,
    faults: list[str] | None = None,
) -> str:
    """Render ``resolved`` under ``config``.

    An empty resolved set renders as "". Omitted entries are appended to
    ``faults`` when given.

    Raises:
        GenerationFault: If the core constructor itself cannot be emitted.
    """
    if registry is None:
        registry = default_registry()
    if faults is None:
        faults = []
    if not resolved.names:
        return ""

    if CORE_HELPER not in registry:
        raise GenerationFault(f"Registry has no core helper '{CORE_HELPER}'")

    modes = config.modes
    helpers = registry.ordered((CORE_HELPER,) + registry.helpers_for(resolved.names))
    emitted = registry.ordered(helpers + resolved.names)

    sources: dict[str, str] = {}
    missing: list[str] = []
    for name in emitted:
        entry = registry.lookup(name)
        source = select_variant(entry, modes) if entry is not None else None
        if source is None:
            missing.append(name)
        else:
            sources[name] = source

    omitted = _omit(missing, emitted, registry, faults)
    if CORE_HELPER in omitted:
        raise GenerationFault(f"Core helper '{CORE_HELPER}' has no usable fragment")

    helpers = tuple(n for n in helpers if n not in omitted)
    functions = tuple(n for n in resolved.names if n not in omitted)

    # -----------------------------------------------------------------------
    # Body
    # -----------------------------------------------------------------------
    blocks: list[str] = []
    if "strict" in modes:
        blocks.append("'use strict';")
    if config.wrapper is None:
        detection = _detection_vars(config.exports)
        if detection:
            blocks.append(detection)

    blocks.extend(sources[name] for name in helpers)
    blocks.extend(sources[name] for name in functions)

    assignments: list[str] = []
    for name in functions:
        entry = registry.lookup(name)
        if not entry.static:
            continue
        assignments.append(f"lodash.{name} = {name};")
        assignments.extend(f"lodash.{alias} = {name};" for alias in entry.aliases)
    if assignments:
        blocks.append("// add functions to `lodash`\n" + "\n".join(assignments))

    blocks.extend(registry.lookup(name).tail for name in functions if registry.lookup(name).tail)
    blocks.append(
        "/**\n"
        " * The semantic version number.\n"
        " *\n"
        " * @static\n"
        " * @memberOf _\n"
        " * @type String\n"
        " */\n"
        f"lodash.VERSION = '{registry.version}';"
    )

    if config.wrapper is None:
        snippet = _export_snippet(config.exports)
        if snippet:
            blocks.append(snippet)

    body = "\n\n".join(_indent(block) for block in blocks)

    banner = _banner(registry, config)
    if config.wrapper is not None:
        source = f"{banner}\n{config.wrapper.render(body)}\n"
    else:
        source = f"{banner}\n;(function(window, undefined) {{\n{body}\n}}(this));\n"

    logger.info(
        "Generated %d function(s), %d helper(s), %d omitted",
        len(functions), len(helpers), len(omitted),
    )
    return source


# ---------------------------------------------------------------------------
# Omission
# ---------------------------------------------------------------------------

def _omit(
    missing: list[str],
    emitted: tuple[str, ...],
    registry: Registry,
    faults: list[str],
) -> set[str]:
    """Mark ``missing`` and all their emitted dependents as omitted.

    Uses BFS over the reverse dependency graph restricted to ``emitted``.
    """
    if not missing:
        return set()

    emitted_set = set(emitted)
    dependents: dict[str, set[str]] = {name: set() for name in emitted}
    for name in emitted:
        entry = registry.lookup(name)
        if entry is None:
            continue
        for dep in entry.dependencies:
            if dep in emitted_set:
                dependents[dep].add(name)

    omitted: set[str] = set()
    for root in missing:
        if root in omitted:
            continue
        omitted.add(root)
        faults.append(f"'{root}' has no fragment for the active modes; omitted")
        logger.warning("Omitting '%s': no fragment for the active modes", root)

        queue = deque(dependents.get(root, set()))
        while queue:
            name = queue.popleft()
            if name in omitted:
                continue
            omitted.add(name)
            faults.append(f"'{name}' omitted: dependency omitted: {root}")
            logger.warning("Omitting '%s': dependency '%s' omitted", name, root)
            queue.extend(d for d in dependents.get(name, set()) if d not in omitted)
    return omitted


# ---------------------------------------------------------------------------
# Text pieces
# ---------------------------------------------------------------------------

def _indent(block: str) -> str:
    return "\n".join(INDENT + line if line.strip() else "" for line in block.split("\n"))


def _banner(registry: Registry, config: BuildConfig) -> str:
    command = " ".join(("lodash",) + config.tokens).replace("*/", "*\\/")
    lines = [
        "/*!",
        f" * {registry.library} {registry.version} (Custom Build)",
        f" * Build: `{command}`",
    ]
    if registry.license:
        lines.append(f" * {registry.license}")
    lines.append(" */")
    return "\n".join(lines)


def _detection_vars(exports: tuple[str, ...]) -> str:
    lines: list[str] = []
    if "commonjs" in exports or "node" in exports:
        lines += [
            "/** Detect free variable `exports` */",
            "var freeExports = typeof exports == 'object' && exports;",
        ]
    if "node" in exports:
        lines += [
            "",
            "/** Detect free variable `module` */",
            "var freeModule = typeof module == 'object' && module &&",
            "  module.exports == freeExports && module;",
        ]
    if "global" in exports:
        lines += [
            "",
            "/** Detect free variable `global` and use it as `window` */",
            "var freeGlobal = typeof global == 'object' && global;",
            "if (freeGlobal.global === freeGlobal) {",
            "  window = freeGlobal;",
            "}",
        ]
    return "\n".join(lines).strip("\n")


def _export_snippet(exports: tuple[str, ...]) -> str:
    """Build the exposure chain for the requested formats.

    Formats combine into one ``if / else if / else`` chain in the order
    amd, commonjs/node, global.
    """
    formats = [f for f in EXPORT_FORMATS if f in exports]
    if not formats:
        return ""

    branches: list[tuple[str, list[str]]] = []
    if "amd" in formats:
        body = []
        if "global" in formats:
            body += [
                "// Expose Lo-Dash to the global object even when an AMD loader is present",
                "window._ = lodash;",
                "",
            ]
        body += [
            "// define as an anonymous module so, through path mapping, it can be",
            "// referenced as the \"underscore\" module",
            "define(function() {",
            "  return lodash;",
            "});",
        ]
        branches.append((AMD_CONDITION, body))

    if "commonjs" in formats and "node" in formats:
        branches.append(("freeExports", [
            "// in Node.js or RingoJS v0.8.0+",
            "if (freeModule) {",
            "  (freeModule.exports = lodash)._ = lodash;",
            "}",
            "// in Narwhal or RingoJS v0.7.0-",
            "else {",
            "  freeExports._ = lodash;",
            "}",
        ]))
    elif "commonjs" in formats:
        branches.append(("freeExports", ["freeExports._ = lodash;"]))
    elif "node" in formats:
        branches.append(("freeModule", ["(freeModule.exports = lodash)._ = lodash;"]))

    fallback = ["// in a browser or Rhino", "window._ = lodash;"] if "global" in formats else None

    if not branches:
        return "\n".join(fallback or [])

    lines: list[str] = ["// expose Lo-Dash"]
    for i, (condition, body) in enumerate(branches):
        keyword = "if" if i == 0 else "else if"
        lines.append(f"{keyword} ({condition}) {{")
        lines.extend(_indent("\n".join(body)).split("\n"))
        lines.append("}")
    if fallback:
        lines.append("else {")
        lines.extend(_indent("\n".join(fallback)).split("\n"))
        lines.append("}")
    return "\n".join(lines)
