"""Tests for the command parser."""

import pytest

from lodash_builder.config import DEFAULT_EXPORTS
from lodash_builder.parser import ConfigurationError, parse_command


class TestSelection:
    """Tests for selection directives and keywords."""

    def test_empty_command(self, registry):
        config = parse_command([], registry)
        assert config.include is None
        assert not config.has_source
        assert config.exports == DEFAULT_EXPORTS

    def test_include_list(self, registry):
        config = parse_command(["include=each, filter,map"], registry)
        assert config.include == ("each", "filter", "map")

    def test_empty_include_is_present(self, registry):
        config = parse_command(["include="], registry)
        assert config.include == ()
        assert config.has_source

    def test_repeated_directives_accumulate(self, registry):
        config = parse_command(["plus=a", "plus=b,c", "minus=d", "exclude=e"], registry)
        assert config.plus == ("a", "b", "c")
        assert config.minus == ("d",)
        assert config.exclude == ("e",)

    def test_category_case_insensitive(self, registry):
        config = parse_command(["category=arrays,FUNCTIONS,Objects"], registry)
        assert config.categories == ("Arrays", "Functions", "Objects")

    def test_unknown_category_kept_raw(self, registry):
        config = parse_command(["category=strings"], registry)
        assert config.categories == ("strings",)

    def test_bundles_and_modes(self, registry):
        config = parse_command(["underscore", "backbone", "legacy", "csp", "mobile", "strict"], registry)
        assert config.bundles == ("underscore", "backbone")
        assert config.modes == {"underscore", "legacy", "csp", "mobile", "strict"}


class TestExports:
    """Tests for exports= handling."""

    @pytest.mark.parametrize("value, expected", [
        ("amd", ("amd",)),
        ("commonjs", ("commonjs",)),
        ("global", ("global",)),
        ("node", ("node",)),
        ("none", ()),
        ("", ()),
        ("bogus", ()),
        ("global,amd", ("amd", "global")),
        ("AMD,none,node", ("amd", "node")),
    ])
    def test_exports_values(self, registry, value, expected):
        assert parse_command([f"exports={value}"], registry).exports == expected


class TestWrapper:
    """Tests for iife= templates."""

    def test_template_with_marker(self, registry):
        template = "!function(window){%output%;return lodash}(this)"
        config = parse_command([f"iife={template}"], registry)
        assert config.wrapper.text == template

    def test_template_may_contain_commas_and_equals(self, registry):
        template = "var x=1,y=2;(function(window,undefined){%output%}(this))"
        assert parse_command([f"iife={template}"], registry).wrapper.text == template

    @pytest.mark.parametrize("template", ["(function(){})()", "%output%%output%"])
    def test_marker_count_must_be_one(self, registry, template):
        with pytest.raises(ConfigurationError, match="exactly one"):
            parse_command([f"iife={template}"], registry)


class TestOutputOptions:
    """Tests for -o, -c, -s, -m and --strict-names."""

    @pytest.mark.parametrize("tokens", [["-o", "a.js"], ["--output", "a.js"], ["--output=a.js"]])
    def test_output_path(self, registry, tokens):
        assert parse_command(["-s"] + tokens, registry).output_path == "a.js"

    @pytest.mark.parametrize("tokens", [["-o"], ["--output"], ["-o", "-s"], ["--output="]])
    def test_output_without_path(self, registry, tokens):
        with pytest.raises(ConfigurationError, match="requires a file path"):
            parse_command(tokens, registry)

    def test_flags(self, registry):
        config = parse_command(["-c", "-s", "-m", "--strict-names"], registry)
        assert config.stdout and config.silent and config.minify and config.strict_names

    def test_long_flags(self, registry):
        config = parse_command(["--stdout", "--silent", "--minify"], registry)
        assert config.stdout and config.silent and config.minify


class TestErrors:
    """Tests for malformed commands."""

    @pytest.mark.parametrize("token", ["include", "category", "exports", "iife"])
    def test_directive_without_value(self, registry, token):
        with pytest.raises(ConfigurationError, match="requires '=value'") as excinfo:
            parse_command([token], registry)
        assert excinfo.value.token == token

    def test_unknown_directive(self, registry):
        with pytest.raises(ConfigurationError, match="Unknown directive 'only='"):
            parse_command(["only=map"], registry)

    def test_unknown_keyword(self, registry):
        with pytest.raises(ConfigurationError, match="Unrecognized token 'turbo'"):
            parse_command(["turbo"], registry)

    def test_unknown_option(self, registry):
        with pytest.raises(ConfigurationError, match="Unknown option '-x'"):
            parse_command(["-x"], registry)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestBannerTokens:
    """Tests for the tokens kept for the build banner."""

    def test_output_flags_are_not_kept(self, registry):
        config = parse_command(["-s", "strict", "include=each", "-o", "x.js"], registry)
        assert config.tokens == ("strict", 'include="each"')
