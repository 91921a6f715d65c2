"""
Function Registry — static metadata for every library function and helper.

Loads ``fragments/manifest.json`` (names, categories, aliases, dependencies,
bundles, version) and the JavaScript fragment files it lists, then builds an
immutable Registry shared by the parser, resolver and generator.

Fragment file format:
  ``//@ <name>``          starts the default variant of ``name``
  ``//@ <name> <mode>``   starts the ``mode`` variant of ``name``
  ``//@tail <name>``      starts the tail fragment of ``name``
A section runs until the next ``//@`` line.
"""

from __future__ import annotations

import functools
import heapq
import json
import logging
import re
from collections import defaultdict, deque
from pathlib import Path
from typing import Any, Iterable

from lodash_builder.config import (
    CATEGORIES,
    DEFAULT_VARIANT,
    FRAGMENTS_DIR,
    MANIFEST_FILE,
    MODES,
)
from lodash_builder.models import FunctionEntry

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^//@(?P<tail>tail)?\s+(?P<name>\w+)(?:\s+(?P<mode>\w+))?\s*$")


class Registry:
    """Read-only lookup tables over a validated set of FunctionEntry objects.

    All tables are built once in the constructor. ``order`` is a stable
    topological order of every entry (dependencies first, ties broken by
    declaration order); generation emits fragments in this order.
    """

    def __init__(
        self,
        entries: Iterable[FunctionEntry],
        *,
        version: str,
        bundles: dict[str, Iterable[str]] | None = None,
        library: str = "Lo-Dash",
        license: str = "",
    ) -> None:
        self.version = version
        self.library = library
        self.license = license

        self._entries: dict[str, FunctionEntry] = {}
        errors: list[str] = []
        for entry in entries:
            if entry.name in self._entries:
                errors.append(f"Duplicate entry '{entry.name}'")
            self._entries[entry.name] = entry

        self._aliases: dict[str, str] = {}
        self._by_category: dict[str, list[str]] = {c: [] for c in CATEGORIES}
        for entry in self._entries.values():
            if entry.is_helper:
                continue
            if entry.category not in self._by_category:
                errors.append(f"'{entry.name}' has unknown category '{entry.category}'")
                continue
            self._by_category[entry.category].append(entry.name)
            for alias in entry.aliases:
                if alias in self._entries:
                    errors.append(f"Alias '{alias}' of '{entry.name}' shadows an entry")
                elif alias in self._aliases:
                    errors.append(
                        f"Alias '{alias}' maps to both '{self._aliases[alias]}' "
                        f"and '{entry.name}'"
                    )
                else:
                    self._aliases[alias] = entry.name

        errors.extend(self._check_entries())

        self._bundles: dict[str, tuple[str, ...]] = {}
        for bundle, members in (bundles or {}).items():
            members = tuple(members)
            for name in members:
                entry = self._entries.get(name)
                if entry is None or entry.is_helper:
                    errors.append(f"Bundle '{bundle}' lists unknown function '{name}'")
            self._bundles[bundle] = members

        if errors:
            raise ValueError(
                "Registry validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )

        self.order: tuple[str, ...] = tuple(_topological_sort(
            {name: e.dependencies for name, e in self._entries.items()},
            list(self._entries),
        ))
        self._position = {name: i for i, name in enumerate(self.order)}
        for category, names in self._by_category.items():
            names.sort(key=self._position.__getitem__)

        self._public = frozenset(n for n, e in self._entries.items() if not e.is_helper)

    def _check_entries(self) -> list[str]:
        errors: list[str] = []
        for entry in self._entries.values():
            for tag in entry.variants:
                if tag != DEFAULT_VARIANT and tag not in MODES:
                    errors.append(f"'{entry.name}' has unknown variant '{tag}'")
            for tag in entry.precedence:
                if tag not in MODES:
                    errors.append(f"'{entry.name}' lists unknown mode '{tag}' in precedence")
            for dep in entry.dependencies:
                target = self._entries.get(dep)
                if target is None:
                    errors.append(f"'{entry.name}' depends on unknown '{dep}'")
                elif entry.is_helper and not target.is_helper:
                    errors.append(f"Helper '{entry.name}' depends on public function '{dep}'")
        return errors

    # -- lookups -------------------------------------------------------------

    def lookup(self, name: str) -> FunctionEntry | None:
        """Return the entry for a canonical function or helper name, else None."""
        return self._entries.get(name)

    def resolve_alias(self, name: str) -> str | None:
        """Map an alias or canonical public name to its canonical name."""
        if name in self._public:
            return name
        return self._aliases.get(name)

    @property
    def categories(self) -> tuple[str, ...]:
        return CATEGORIES

    def by_category(self, category: str) -> tuple[str, ...]:
        return tuple(self._by_category.get(category, ()))

    def normalize_category(self, value: str) -> str | None:
        """Case-insensitive match against the closed category set."""
        lowered = value.lower()
        for category in CATEGORIES:
            if category.lower() == lowered:
                return category
        return None

    def all_names(self) -> frozenset[str]:
        """Every public canonical name."""
        return self._public

    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)

    def bundle(self, name: str) -> tuple[str, ...]:
        return self._bundles.get(name, ())

    @property
    def bundle_names(self) -> tuple[str, ...]:
        return tuple(self._bundles)

    # -- ordering and closure ------------------------------------------------

    def ordered(self, names: Iterable[str]) -> tuple[str, ...]:
        """Deduplicate ``names`` and sort them into registry order."""
        return tuple(sorted(set(names), key=self._position.__getitem__))

    def helpers_for(self, names: Iterable[str]) -> tuple[str, ...]:
        """Return the helper closure needed by ``names``, in registry order.

        Follows dependencies through public names as well, so the caller
        may pass a selection that is not yet dependency-closed.
        """
        seen: set[str] = set()
        queue: deque[str] = deque(names)
        helpers: set[str] = set()
        while queue:
            name = queue.popleft()
            if name in seen:
                continue
            seen.add(name)
            entry = self._entries.get(name)
            if entry is None:
                continue
            if entry.is_helper:
                helpers.add(name)
            queue.extend(d for d in entry.dependencies if d not in seen)
        return self.ordered(helpers)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_registry(fragments_dir: Path = FRAGMENTS_DIR) -> Registry:
    """Parse a fragments directory into a Registry.

    Raises:
        FileNotFoundError: If the manifest or a listed fragment file is missing.
        ValueError: If the manifest and fragments disagree or validation fails.
    """
    manifest_path = fragments_dir / MANIFEST_FILE
    if not manifest_path.exists():
        raise FileNotFoundError(f"Manifest not found: {manifest_path}")

    with open(manifest_path, "r", encoding="utf-8") as f:
        manifest: dict[str, Any] = json.load(f)

    sections: dict[str, dict[str, str]] = {}
    tails: dict[str, str] = {}
    for filename in manifest["fragment_files"]:
        path = fragments_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Fragment file not found: {path}")
        _parse_fragments(path.read_text(encoding="utf-8"), path.name, sections, tails)

    errors: list[str] = []
    entries: list[FunctionEntry] = []
    declared: set[str] = set()

    for raw in manifest.get("helpers", []):
        entries.append(_build_entry(raw, sections, tails))
        declared.add(raw["name"])
    for raw in manifest.get("functions", []):
        if "category" not in raw:
            errors.append(f"Function '{raw['name']}' has no category")
        entries.append(_build_entry(raw, sections, tails))
        declared.add(raw["name"])

    for entry in entries:
        if not entry.has_default:
            errors.append(f"'{entry.name}' has no default fragment")
    for name in sorted((set(sections) | set(tails)) - declared):
        errors.append(f"Fragment '{name}' is not declared in the manifest")

    if errors:
        raise ValueError(
            "Registry validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    registry = Registry(
        entries,
        version=manifest["version"],
        bundles=manifest.get("bundles", {}),
        library=manifest.get("library", "Lo-Dash"),
        license=manifest.get("license", ""),
    )
    logger.debug(
        "Loaded registry %s: %d functions, %d helpers",
        registry.version, len(registry.all_names()),
        len(registry) - len(registry.all_names()),
    )
    return registry


@functools.lru_cache(maxsize=None)
def default_registry() -> Registry:
    """The packaged registry, loaded once per process."""
    return load_registry(FRAGMENTS_DIR)


def _build_entry(
    raw: dict[str, Any],
    sections: dict[str, dict[str, str]],
    tails: dict[str, str],
) -> FunctionEntry:
    name = raw["name"]
    return FunctionEntry(
        name=name,
        category=raw.get("category", ""),
        aliases=tuple(raw.get("aliases", [])),
        dependencies=tuple(raw.get("dependencies", [])),
        variants=dict(sections.get(name, {})),
        tail=tails.get(name, ""),
        static=raw.get("static", True),
        precedence=tuple(raw.get("precedence", [])),
    )


def _parse_fragments(
    text: str,
    filename: str,
    sections: dict[str, dict[str, str]],
    tails: dict[str, str],
) -> None:
    """Split one fragment file into its sections, adding them in place."""
    current: tuple[str, str | None] | None = None   # (name, mode or None for tail)
    lines: list[str] = []

    def flush() -> None:
        if current is None:
            if any(line.strip() for line in lines):
                raise ValueError(f"{filename}: text before the first section marker")
            return
        name, mode = current
        body = "\n".join(lines).strip("\n").rstrip()
        if mode is None:
            if name in tails:
                raise ValueError(f"{filename}: duplicate tail for '{name}'")
            tails[name] = body
            return
        variants = sections.setdefault(name, {})
        if mode in variants:
            raise ValueError(f"{filename}: duplicate '{mode}' fragment for '{name}'")
        variants[mode] = body

    for line in text.splitlines():
        match = _SECTION_RE.match(line)
        if match is None:
            lines.append(line)
            continue
        flush()
        lines = []
        if match.group("tail"):
            current = (match.group("name"), None)
        else:
            current = (match.group("name"), match.group("mode") or DEFAULT_VARIANT)
    flush()


def _topological_sort(dag: dict[str, tuple[str, ...]], declared: list[str]) -> list[str]:
    """Kahn's algorithm, preferring declaration order among ready nodes.

    Raises ValueError if the graph has a cycle.
    """
    position = {name: i for i, name in enumerate(declared)}
    in_degree = {name: 0 for name in declared}
    dependents: dict[str, list[str]] = defaultdict(list)
    for name, deps in dag.items():
        for dep in set(deps):
            if dep in in_degree:
                in_degree[name] += 1
                dependents[dep].append(name)

    ready = [(position[n], n) for n in declared if in_degree[n] == 0]
    heapq.heapify(ready)

    result: list[str] = []
    while ready:
        _, node = heapq.heappop(ready)
        result.append(node)
        for dependent in dependents[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, (position[dependent], dependent))

    if len(result) != len(declared):
        cyclic = sorted(n for n in declared if in_degree[n] > 0)
        raise ValueError(f"Dependency cycle among: {', '.join(cyclic)}")
    return result
