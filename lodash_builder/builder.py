"""
Build Orchestrator — the single public entry point for custom builds.

Sequences parse → resolve → generate → (optional) reduce → deliver and
signals completion through one callback per build:

  file delivery     on_complete(source, path)
  stdout delivery   on_complete(source)
  parse failure     on_complete("")

Nothing below this module converts exceptions into diagnostics; this is
the boundary where they become Diagnostic records on the BuildResult
(and stderr lines unless the build is silent).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, Iterable, Sequence, TextIO

from lodash_builder.config import load_settings
from lodash_builder.delivery import DeliveryError, destination_for, write_file, write_stdout
from lodash_builder.generator import GenerationFault, generate
from lodash_builder.minify import Reducer, ReducerError, contract_violations, reducer_from_settings
from lodash_builder.models import BuildConfig, BuildResult, Diagnostic
from lodash_builder.parser import ConfigurationError, parse_command
from lodash_builder.registry import Registry, default_registry
from lodash_builder.resolver import resolve

logger = logging.getLogger(__name__)

Callback = Callable[..., None]


def build(
    tokens: Sequence[str],
    on_complete: Callback | None = None,
    *,
    registry: Registry | None = None,
    reducer: Reducer | None = None,
    stream: TextIO | None = None,
) -> BuildResult:
    """Run one build described by ``tokens``.

    Args:
        tokens: Command tokens, e.g. ``["-s", "include=each", "strict"]``.
        on_complete: Invoked exactly once; see the module docstring.
        registry: Registry to build from. Defaults to the packaged one.
        reducer: Text-reduction collaborator for ``-m``. Defaults to the
            one selected by the environment.
        stream: Destination for stdout delivery. Defaults to sys.stdout.

    Returns:
        BuildResult with the source, destination and any diagnostics.
    """
    tokens = list(tokens)
    result = BuildResult()
    silent = "-s" in tokens or "--silent" in tokens

    # ------------------------------------------------------------------
    # 1. Parse and resolve
    # ------------------------------------------------------------------
    try:
        if registry is None:
            registry = default_registry()
        config = parse_command(tokens, registry)
        resolved = resolve(config, registry)
    except (ConfigurationError, ValueError, FileNotFoundError) as e:
        _record(result, type(e).__name__, str(e), silent)
        _complete(on_complete, "")
        return result

    result.stdout = config.stdout

    # ------------------------------------------------------------------
    # 2. Generate
    # ------------------------------------------------------------------
    faults: list[str] = []
    try:
        source = generate(resolved, config, registry, faults)
    except GenerationFault as e:
        faults.append(str(e))
        source = ""
    for fault in faults:
        _record(result, GenerationFault.__name__, fault, config.silent)

    # ------------------------------------------------------------------
    # 3. Reduce
    # ------------------------------------------------------------------
    if config.minify and source:
        source = _reduce(source, config, registry, reducer, result)

    result.source = source

    # ------------------------------------------------------------------
    # 4. Deliver
    # ------------------------------------------------------------------
    if config.stdout:
        try:
            write_stdout(source, stream)
        except OSError as e:
            _record(result, DeliveryError.__name__, f"Cannot write to stdout: {e}", config.silent)
        _complete(on_complete, source)
        return result

    path = destination_for(config)
    result.destination = path
    try:
        write_file(source, path)
    except DeliveryError as e:
        _record(result, DeliveryError.__name__, str(e), config.silent)
    else:
        if not config.silent:
            print(f"Saved {path} ({len(resolved)} functions)")
    _complete(on_complete, source, path)
    return result


def build_many(
    commands: Iterable[Sequence[str]],
    on_complete: Callback | None = None,
    *,
    registry: Registry | None = None,
    reducer: Reducer | None = None,
) -> list[BuildResult]:
    """Run independent builds concurrently, one worker thread each.

    Builds share only the read-only registry. Results are returned in
    command order; ``on_complete`` may be called from any worker thread.
    """
    if registry is None:
        registry = default_registry()
    return asyncio.run(_build_all(list(commands), on_complete, registry, reducer))


async def _build_all(
    commands: list[Sequence[str]],
    on_complete: Callback | None,
    registry: Registry,
    reducer: Reducer | None,
) -> list[BuildResult]:
    tasks = [
        asyncio.to_thread(build, tokens, on_complete, registry=registry, reducer=reducer)
        for tokens in commands
    ]
    return list(await asyncio.gather(*tasks))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _reduce(
    source: str,
    config: BuildConfig,
    registry: Registry,
    reducer: Reducer | None,
    result: BuildResult,
) -> str:
    """Hand ``source`` to the reducer and check its contract.

    On any failure, including a reducer that cannot be configured or that
    raises, the unreduced source is returned and a GenerationFault
    diagnostic is recorded.
    """
    reduced: list[str] = []
    options = {"silent": config.silent, "working_name": destination_for(config) or "stdout"}
    name = reducer.name if reducer is not None else "configured"
    try:
        if reducer is None:
            reducer = reducer_from_settings(load_settings())
            name = reducer.name
        reducer.reduce(source, options, reduced.append)
    except ReducerError as e:
        problems = [str(e)]
    except Exception as e:
        problems = [f"{type(e).__name__}: {e}"]
    else:
        if len(reduced) != 1:
            problems = [f"reducer completed {len(reduced)} times"]
        else:
            problems = contract_violations(source, reduced[0], registry.version)

    if problems:
        _record(
            result, GenerationFault.__name__,
            f"{name} reducer output rejected: " + "; ".join(problems),
            config.silent,
        )
        return source

    logger.info(
        "Reduced %d -> %d bytes with %s reducer",
        len(source), len(reduced[0]), name,
    )
    return reduced[0]


def _record(result: BuildResult, kind: str, message: str, silent: bool) -> None:
    result.diagnostics.append(Diagnostic(kind=kind, message=message))
    logger.warning("%s: %s", kind, message)
    if not silent:
        print(f"{kind}: {message}", file=sys.stderr)


def _complete(on_complete: Callback | None, *args: str) -> None:
    if on_complete is not None:
        on_complete(*args)
