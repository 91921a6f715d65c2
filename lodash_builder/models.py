"""
Data models for the Lo-Dash builder pipeline.

Defines the structured types that flow through a build:
  Command Parser → Selection Resolver → Code Generator → Orchestrator

Registry and configuration models are frozen dataclasses with JSON
round-tripping via to_dict() / from_dict(). No model contains business
logic beyond trivial accessors; they are pure data carriers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from lodash_builder.config import DEFAULT_EXPORTS, DEFAULT_VARIANT, OUTPUT_MARKER


# ---------------------------------------------------------------------------
# Registry models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FunctionEntry:
    """One library function or private helper.

    Public functions carry a category; helpers have an empty category and
    are never selectable by name. ``variants`` maps a mode tag (or
    "default") to the source fragment emitted for that mode.
    """
    name: str
    category: str = ""                    # "" for private helpers
    aliases: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()    # public names and/or helper names
    variants: dict[str, str] = field(default_factory=dict)
    tail: str = ""                        # emitted after the static assignments
    static: bool = True                   # False: prototype-only (e.g. `value`)
    precedence: tuple[str, ...] = ()      # overrides the global variant order

    @property
    def is_helper(self) -> bool:
        return not self.category

    @property
    def has_default(self) -> bool:
        return DEFAULT_VARIANT in self.variants

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "dependencies": list(self.dependencies),
            "variants": dict(self.variants),
        }
        if self.category:
            d["category"] = self.category
        if self.aliases:
            d["aliases"] = list(self.aliases)
        if self.tail:
            d["tail"] = self.tail
        if not self.static:
            d["static"] = False
        if self.precedence:
            d["precedence"] = list(self.precedence)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FunctionEntry:
        return cls(
            name=data["name"],
            category=data.get("category", ""),
            aliases=tuple(data.get("aliases", [])),
            dependencies=tuple(data.get("dependencies", [])),
            variants=dict(data.get("variants", {})),
            tail=data.get("tail", ""),
            static=data.get("static", True),
            precedence=tuple(data.get("precedence", [])),
        )


# ---------------------------------------------------------------------------
# Configuration models (produced by the Command Parser)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WrapperTemplate:
    """A custom wrapping template with exactly one output marker.

    Construction does not validate; the parser rejects templates whose
    marker count is not exactly one before building one of these.
    """
    text: str

    def render(self, body: str) -> str:
        before, _, after = self.text.partition(OUTPUT_MARKER)
        return f"{before}\n{body}\n{after}"


@dataclass(frozen=True)
class BuildConfig:
    """Structured form of one build command. Immutable once parsed.

    ``include`` is None when no ``include=`` directive was given and an
    empty tuple for ``include=`` with no value. ``exports`` is the ordered
    set of export formats; an empty tuple means no exposure at all.
    """
    include: tuple[str, ...] | None = None
    bundles: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    plus: tuple[str, ...] = ()
    minus: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    modes: frozenset[str] = frozenset()
    exports: tuple[str, ...] = DEFAULT_EXPORTS
    wrapper: WrapperTemplate | None = None
    output_path: str | None = None
    stdout: bool = False
    silent: bool = False
    minify: bool = False
    strict_names: bool = False
    tokens: tuple[str, ...] = ()          # selection/mode tokens, for the banner

    @property
    def has_source(self) -> bool:
        """True when any base-set source (include, bundle, category) is present."""
        return self.include is not None or bool(self.bundles) or bool(self.categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "include": None if self.include is None else list(self.include),
            "bundles": list(self.bundles),
            "categories": list(self.categories),
            "plus": list(self.plus),
            "minus": list(self.minus),
            "exclude": list(self.exclude),
            "modes": sorted(self.modes),
            "exports": list(self.exports),
            "wrapper": None if self.wrapper is None else self.wrapper.text,
            "output_path": self.output_path,
            "stdout": self.stdout,
            "silent": self.silent,
            "minify": self.minify,
            "strict_names": self.strict_names,
            "tokens": list(self.tokens),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildConfig:
        include = data.get("include")
        wrapper = data.get("wrapper")
        return cls(
            include=None if include is None else tuple(include),
            bundles=tuple(data.get("bundles", [])),
            categories=tuple(data.get("categories", [])),
            plus=tuple(data.get("plus", [])),
            minus=tuple(data.get("minus", [])),
            exclude=tuple(data.get("exclude", [])),
            modes=frozenset(data.get("modes", [])),
            exports=tuple(data.get("exports", DEFAULT_EXPORTS)),
            wrapper=None if wrapper is None else WrapperTemplate(wrapper),
            output_path=data.get("output_path"),
            stdout=data.get("stdout", False),
            silent=data.get("silent", False),
            minify=data.get("minify", False),
            strict_names=data.get("strict_names", False),
            tokens=tuple(data.get("tokens", [])),
        )


# ---------------------------------------------------------------------------
# Result models (produced during a build)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedSet:
    """The closed, deduplicated set of public names to emit.

    ``names`` is in registry order and includes the dependency closure;
    ``requested`` is the selection before closure; ``dropped`` lists
    requested names that the registry does not know.
    """
    names: tuple[str, ...] = ()
    requested: tuple[str, ...] = ()
    dropped: tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def to_dict(self) -> dict[str, Any]:
        return {
            "names": list(self.names),
            "requested": list(self.requested),
            "dropped": list(self.dropped),
        }


@dataclass(frozen=True)
class Diagnostic:
    """One problem reported by a build. ``kind`` is the exception class name."""
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


@dataclass
class BuildResult:
    """Outcome of one build.

    Mutable because the orchestrator fills it in phase by phase.
    ``destination`` is the file path for file delivery and None for
    stdout delivery or a build that never reached delivery.
    """
    source: str = ""
    destination: str | None = None
    stdout: bool = False
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def has(self, kind: str) -> bool:
        return any(d.kind == kind for d in self.diagnostics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "destination": self.destination,
            "stdout": self.stdout,
            "length": len(self.source),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
