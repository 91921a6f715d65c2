"""Tests for the selection resolver: set algebra, expansion and closure."""

import pytest

from lodash_builder.models import BuildConfig
from lodash_builder.parser import UnknownNameError, parse_command
from lodash_builder.resolver import close, expand, resolve


def _resolve(registry, *tokens):
    return resolve(parse_command(list(tokens), registry), registry)


def _closure(registry, names):
    return set(close(names, registry))


class TestBaseSet:
    """Tests for base-set composition."""

    def test_no_source_is_full_registry(self, registry):
        assert set(_resolve(registry).names) == registry.all_names()

    def test_empty_include(self, registry):
        assert _resolve(registry, "include=").names == ()

    def test_backbone(self, registry):
        resolved = _resolve(registry, "backbone")
        assert set(resolved.requested) == set(registry.bundle("backbone"))

    def test_underscore_bundle(self, registry):
        resolved = _resolve(registry, "underscore")
        assert set(resolved.requested) == set(registry.bundle("underscore"))
        assert "partial" not in resolved

    def test_include_overrides_underscore_bundle(self, registry):
        resolved = _resolve(registry, "underscore", "include=partial")
        assert set(resolved.names) == _closure(registry, ["partial"])

    def test_backbone_overrides_underscore_bundle(self, registry):
        resolved = _resolve(registry, "underscore", "backbone")
        assert set(resolved.requested) == set(registry.bundle("backbone"))

    def test_include_overrides_backbone_bundle(self, registry):
        resolved = _resolve(registry, "backbone", "include=once")
        assert resolved.requested == ("once",)

    def test_category_alone(self, registry):
        """A category source selects exactly that category."""
        resolved = _resolve(registry, "category=utilities")
        assert resolved.requested == registry.by_category("Utilities")
        assert "template" in resolved and "escape" in resolved

    def test_bundle_and_category_union(self, registry):
        resolved = _resolve(registry, "backbone", "category=utilities")
        expected = set(registry.bundle("backbone")) | set(registry.by_category("Utilities"))
        assert set(resolved.requested) == expected

    def test_multiple_categories(self, registry):
        resolved = _resolve(registry, "category=collections,functions")
        expected = set(registry.by_category("Collections")) | set(registry.by_category("Functions"))
        assert set(resolved.requested) == expected


class TestAlgebra:
    """Tests for plus/minus/exclude and expansion."""

    def test_include_each_filter_map(self, registry):
        resolved = _resolve(registry, "include=each,filter,map")
        assert set(resolved.requested) == {"forEach", "filter", "map"}
        assert set(resolved.names) == _closure(registry, ["forEach", "filter", "map"])

    def test_declaration_order_does_not_matter(self, registry):
        a = _resolve(registry, "include=map,each,filter")
        b = _resolve(registry, "include=filter,map,each")
        assert a == b

    def test_category_minus_plus(self, registry):
        resolved = _resolve(registry, "category=functions", "minus=throttle", "plus=pick,uniq")
        assert "throttle" not in resolved
        assert "pick" in resolved and "uniq" in resolved
        assert "debounce" in resolved

    def test_minus_removes_bundle_members(self, registry):
        resolved = _resolve(registry, "backbone", "legacy", "category=utilities", "minus=first,last")
        assert "first" not in resolved and "last" not in resolved
        assert "template" in resolved

    def test_underscore_legacy_minus(self, registry):
        resolved = _resolve(registry, "underscore", "legacy", "category=utilities", "minus=first,last")
        assert "first" not in resolved and "last" not in resolved

    def test_plus_then_minus(self, registry):
        resolved = _resolve(registry, "underscore", "include=debounce,throttle", "plus=after", "minus=throttle")
        assert set(resolved.names) == {"debounce", "after"}

    def test_exclude(self, registry):
        resolved = _resolve(registry, "exclude=union,uniq,zip")
        assert set(resolved.names) == registry.all_names() - {"union", "uniq", "zip"}

    def test_exact_category_name_in_plus(self, registry):
        resolved = _resolve(registry, "include=once", "plus=bind,Chaining")
        assert {"once", "bind", "mixin", "chain", "tap", "value"} <= set(resolved.names)

    def test_lowercase_category_in_include_is_a_function_name(self, registry):
        # `functions` is an Objects function, not the Functions category
        resolved = _resolve(registry, "include=functions")
        assert "functions" in resolved
        assert "throttle" not in resolved

    def test_exclude_category(self, registry):
        resolved = _resolve(registry, "exclude=Chaining")
        assert not set(resolved.names) & set(registry.by_category("Chaining"))

    def test_alias_and_canonical_collapse(self, registry):
        resolved = _resolve(registry, "include=each,forEach")
        assert resolved.requested == ("forEach",)

    def test_minus_by_alias(self, registry):
        resolved = _resolve(registry, "category=arrays", "minus=head,tail")
        assert "first" not in resolved and "rest" not in resolved


class TestProperties:
    """Tests for the resolver's general guarantees."""

    @pytest.mark.parametrize("tokens", [
        [],
        ["backbone"],
        ["underscore"],
        ["category=chaining"],
        ["include=template"],
        ["include=once", "plus=bind,Chaining"],
        ["underscore", "mobile", "strict", "category=functions", "plus=pick,uniq"],
    ])
    def test_closure(self, registry, tokens):
        resolved = _resolve(registry, *tokens)
        public = registry.all_names()
        for name in resolved:
            assert name in public
            for dep in registry.lookup(name).dependencies:
                if dep in public:
                    assert dep in resolved, (name, dep)

    def test_no_duplicates_and_registry_order(self, registry):
        resolved = _resolve(registry, "include=map,each,map,collect")
        assert len(set(resolved.names)) == len(resolved.names)
        assert resolved.names == registry.ordered(resolved.names)

    def test_idempotent(self, registry):
        config = parse_command(["backbone", "category=utilities", "minus=first"], registry)
        assert resolve(config, registry) == resolve(config, registry)

    def test_alias_equivalence(self, registry):
        for alias, canonical in registry.aliases().items():
            assert _resolve(registry, f"include={alias}") == _resolve(registry, f"include={canonical}")

    def test_closure_pulls_public_dependencies(self, registry):
        resolved = _resolve(registry, "include=template")
        assert "escape" in resolved
        assert resolved.requested == ("template",)

    def test_chain_pulls_mixin(self, registry):
        assert "mixin" in _resolve(registry, "include=chain")


class TestUnknownNames:
    """Tests for permissive and strict handling of unknown names."""

    def test_unknown_names_are_dropped(self, registry):
        resolved = _resolve(registry, "include=map,mapp", "plus=Strings")
        assert resolved.names == registry.ordered(_closure(registry, ["map"]))
        assert resolved.dropped == ("mapp", "Strings")

    def test_unknown_category_is_dropped(self, registry):
        resolved = _resolve(registry, "category=strings")
        assert resolved.names == ()
        assert resolved.dropped == ("strings",)

    def test_strict_names_raises(self, registry):
        config = parse_command(["include=map,mapp", "--strict-names"], registry)
        with pytest.raises(UnknownNameError) as excinfo:
            resolve(config, registry)
        assert excinfo.value.names == ("mapp",)

    def test_helpers_are_not_selectable(self, registry):
        resolved = _resolve(registry, "include=baseEach")
        assert resolved.names == ()
        assert resolved.dropped == ("baseEach",)


class TestExpand:
    """Tests for expand() directly."""

    def test_expand_alias_and_category(self, registry):
        names = expand(["collect", "Chaining"], registry)
        assert names == {"map", "mixin", "chain", "tap", "value"}

    def test_expand_any_case(self, registry):
        assert expand(["chaining"], registry, any_case=True) == set(registry.by_category("Chaining"))
        dropped = []
        assert expand(["chaining"], registry, dropped) == set()
        assert dropped == ["chaining"]

    def test_expand_custom_registry(self, tiny_registry):
        assert expand(["first_a", "Utilities"], tiny_registry) == {"alpha", "gamma", "delta"}

    def test_resolve_custom_registry(self, tiny_registry):
        resolved = resolve(BuildConfig(include=("beta",)), tiny_registry)
        assert resolved.names == ("alpha", "beta")
