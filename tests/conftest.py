"""Shared fixtures for lodash_builder tests."""

import json
import shutil
import subprocess

import pytest

from lodash_builder.generator import generate
from lodash_builder.models import FunctionEntry
from lodash_builder.parser import parse_command
from lodash_builder.registry import Registry, default_registry
from lodash_builder.resolver import resolve


NODE = shutil.which("node")


@pytest.fixture(scope="session")
def registry():
    """The packaged registry."""
    return default_registry()


@pytest.fixture
def build_source(registry):
    """Parse, resolve and generate in one call; returns the source text."""
    def _build(*tokens):
        config = parse_command(list(tokens), registry)
        return generate(resolve(config, registry), config, registry)
    return _build


@pytest.fixture
def tiny_registry():
    """A small hand-built registry with variant gaps and a precedence override."""
    entries = [
        FunctionEntry(
            name="lodash",
            variants={"default": "function lodash(value) {\n  this.__wrapped__ = value;\n}"},
        ),
        FunctionEntry(name="base", variants={"default": "var base = 1;"}),
        FunctionEntry(
            name="alpha",
            category="Arrays",
            aliases=("first_a",),
            dependencies=("base",),
            variants={
                "default": "function alpha() { return 'alpha'; }",
                "mobile": "function alpha() { return 'alpha-mobile'; }",
                "legacy": "function alpha() { return 'alpha-legacy'; }",
            },
        ),
        FunctionEntry(
            name="beta",
            category="Arrays",
            dependencies=("alpha",),
            variants={"default": "function beta() { return alpha(); }"},
        ),
        FunctionEntry(
            name="gamma",
            category="Utilities",
            variants={"csp": "function gamma() { return 'gamma-csp'; }"},
        ),
        FunctionEntry(
            name="delta",
            category="Utilities",
            dependencies=("gamma",),
            variants={"default": "function delta() { return gamma(); }"},
        ),
        FunctionEntry(
            name="eps",
            category="Objects",
            precedence=("strict", "legacy"),
            variants={
                "default": "function eps() { return 'eps'; }",
                "strict": "function eps() { return 'eps-strict'; }",
                "legacy": "function eps() { return 'eps-legacy'; }",
            },
            tail="eps.tagged = true;",
        ),
    ]
    return Registry(entries, version="9.9.9", bundles={"backbone": ["beta"]})


@pytest.fixture
def node():
    """Run a node script that prints JSON; skips when node is unavailable."""
    if NODE is None:
        pytest.skip("node is not installed")

    def _run(script):
        proc = subprocess.run(
            [NODE, "-e", script],
            capture_output=True,
            text=True,
            timeout=60,
        )
        assert proc.returncode == 0, proc.stderr
        return json.loads(proc.stdout.strip().splitlines()[-1])
    return _run
