"""
Selection Resolver — applies the inclusion/exclusion algebra to a BuildConfig.

Steps, in fixed order, each over canonical names after alias and category
expansion:
  1. base set: the include list (else one bundle) plus any categories,
     or the full registry when none is present
  2. add ``plus``
  3. subtract ``minus`` and ``exclude``
  4. drop names the registry does not know (deduplicating)
  5. close over public dependencies (breadth-first, to a fixed point)

Resolution is a pure function of (config, registry). Unknown names are
dropped and logged; under ``strict_names`` they raise UnknownNameError.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from lodash_builder.models import BuildConfig, ResolvedSet
from lodash_builder.parser import UnknownNameError
from lodash_builder.registry import Registry, default_registry

logger = logging.getLogger(__name__)


def resolve(config: BuildConfig, registry: Registry | None = None) -> ResolvedSet:
    """Resolve a BuildConfig into a dependency-closed ResolvedSet."""
    if registry is None:
        registry = default_registry()

    dropped: list[str] = []

    # -----------------------------------------------------------------------
    # 1. Base set
    # -----------------------------------------------------------------------
    if not config.has_source:
        base = set(registry.all_names())
    else:
        base = set()
        # An explicit include list replaces any bundle; backbone wins over
        # underscore.
        if config.include is not None:
            base |= expand(config.include, registry, dropped)
        elif "backbone" in config.bundles:
            base |= expand(registry.bundle("backbone"), registry, dropped)
        elif "underscore" in config.bundles:
            base |= expand(registry.bundle("underscore"), registry, dropped)
        if config.categories:
            base |= expand(config.categories, registry, dropped, any_case=True)

    # -----------------------------------------------------------------------
    # 2-3. Modifiers
    # -----------------------------------------------------------------------
    base |= expand(config.plus, registry, dropped)
    base -= expand(config.minus, registry, dropped)
    base -= expand(config.exclude, registry, dropped)

    # -----------------------------------------------------------------------
    # 4. Unknown names
    # -----------------------------------------------------------------------
    dropped = list(dict.fromkeys(dropped))
    if dropped:
        if config.strict_names:
            raise UnknownNameError(dropped)
        for name in dropped:
            logger.debug("Dropping unknown name '%s'", name)

    requested = base & registry.all_names()

    # -----------------------------------------------------------------------
    # 5. Dependency closure
    # -----------------------------------------------------------------------
    closed = close(requested, registry)

    resolved = ResolvedSet(
        names=registry.ordered(closed),
        requested=registry.ordered(requested),
        dropped=tuple(dropped),
    )
    logger.info(
        "Resolved %d function(s) (%d requested, %d dropped)",
        len(resolved.names), len(resolved.requested), len(resolved.dropped),
    )
    return resolved


def expand(
    values: Iterable[str],
    registry: Registry,
    dropped: list[str] | None = None,
    *,
    any_case: bool = False,
) -> set[str]:
    """Expand categories and aliases into canonical public names.

    A value names a category when it equals a category name exactly (or,
    with ``any_case``, case-insensitively). Unknown values are appended to
    ``dropped`` when given.
    """
    names: set[str] = set()
    for value in values:
        category = registry.normalize_category(value) if any_case else None
        if category is None and value in registry.categories:
            category = value
        if category is not None:
            names.update(registry.by_category(category))
            continue
        canonical = registry.resolve_alias(value)
        if canonical is None:
            if dropped is not None:
                dropped.append(value)
            continue
        names.add(canonical)
    return names


def close(names: Iterable[str], registry: Registry) -> set[str]:
    """Breadth-first closure over public dependencies.

    Helper dependencies are left to the generator.
    """
    public = registry.all_names()
    closed: set[str] = set()
    queue: deque[str] = deque(names)
    while queue:
        name = queue.popleft()
        if name in closed:
            continue
        closed.add(name)
        entry = registry.lookup(name)
        if entry is None:
            continue
        for dep in entry.dependencies:
            if dep in public and dep not in closed:
                queue.append(dep)
    return closed
