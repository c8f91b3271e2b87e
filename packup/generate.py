"""Asset generation for Packup.

This module runs one build of an entrypoint (generate_assets) and the
watch-and-rebuild loop used by the development server (watch_and_generate).

A build parses the entrypoint, discovers the assets it references, produces
their artifacts (concurrently, handed out in discovery order) and finally
serializes the rewritten page. Nothing is cached between builds: every cycle
starts again from the files on disk.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from . import watcher
from .artifacts import Artifact, GenerationParams
from .assets import Asset
from .document import EntryDocument
from .logger import ConsoleLogger
from .protocols import Logger
from .tools import Toolchain

DEFAULT_LIVERELOAD_PORT = 35729
LIVERELOAD_SCRIPT_PATH = "/livereload.js"
FALLBACK_NAME = "404"
DEBOUNCE_SECONDS = 0.1

WaitForChange = Callable[[Sequence[str], threading.Event | None], str | None]


@dataclass(frozen=True)
class GenerateOptions:
    """Options for asset generation.

    Attributes:
        public_url: URL prefix written into rewritten references.
        watch_paths: Compute the files to watch (``packup serve``).
        on_build: Hook called once the last artifact has been produced.
        insert_livereload_script: Append the live reload script to ``<body>``.
        livereload_port: Port the live reload script is loaded from.
        main_as_404: Also emit the page under the name ``404``.
        max_workers: Thread pool size for producing assets (None picks a default).
    """

    public_url: str = "."
    watch_paths: bool = False
    on_build: Callable[[], None] | None = None
    insert_livereload_script: bool = False
    livereload_port: int = DEFAULT_LIVERELOAD_PORT
    main_as_404: bool = False
    max_workers: int | None = None


def livereload_url(port: int) -> str:
    return f"http://localhost:{port}{LIVERELOAD_SCRIPT_PATH}"


def generate_assets(
    path: str | Path,
    options: GenerateOptions,
    *,
    toolchain: Toolchain | None = None,
    logger: Logger | None = None,
) -> tuple[Iterator[Artifact], list[str]]:
    """Generate the artifacts of the entrypoint at ``path``.

    The entrypoint is parsed and its assets discovered before this returns;
    artifacts are produced lazily as the returned iterator is consumed. The
    page itself is always the last artifact (followed by its ``404`` copy when
    ``main_as_404`` is set).

    Args:
        path: HTML entrypoint.
        options: Generation options.
        toolchain: Bundler, stylesheet compiler and dependency query.
        logger: Logger for progress and warnings.

    Returns:
        Tuple of (artifact iterator, watch paths). The watch paths always start
        with the entrypoint; asset dependencies are only added when
        ``options.watch_paths`` is set.

    Raises:
        BuildError: If the entrypoint is invalid or a watch path query fails.
            Failures while producing artifacts are raised from the iterator.
    """
    started = time.perf_counter()
    logger = logger or ConsoleLogger()
    toolchain = toolchain or Toolchain.default(Path.cwd())

    document = EntryDocument.create(path, logger)
    params = GenerationParams(
        page_name=document.page_name,
        base=document.base,
        path_prefix=options.public_url or ".",
    )
    assets = list(document.extract_referenced_assets(toolchain, logger))

    if options.insert_livereload_script:
        document.insert_script_tag(livereload_url(options.livereload_port))

    watch_paths = document.watch_paths()
    if options.watch_paths:
        for asset in assets:
            watch_paths.extend(asset.watch_paths(document.base))

    artifacts = _produce_artifacts(
        path, document, assets, params, options, logger, started
    )
    return artifacts, watch_paths


def _produce_artifacts(
    path: str | Path,
    document: EntryDocument,
    assets: list[Asset],
    params: GenerationParams,
    options: GenerateOptions,
    logger: Logger,
    started: float,
) -> Iterator[Artifact]:
    with ThreadPoolExecutor(
        max_workers=options.max_workers, thread_name_prefix="packup-asset"
    ) as pool:
        futures: list[Future[list[Artifact]]] = [
            pool.submit(asset.produce, params) for asset in assets
        ]
        try:
            for future in futures:
                yield from future.result()
        finally:
            for future in futures:
                future.cancel()

    # Every asset has rewritten its node by now.
    page = document.produce(params)
    yield from page
    if options.main_as_404:
        yield page[0].renamed(FALLBACK_NAME)

    elapsed = int((time.perf_counter() - started) * 1000)
    logger.log(f"{path} bundled in {elapsed}ms")

    if options.on_build is not None:
        options.on_build()
        logger.debug("onBuild")


def watch_and_generate(
    path: str | Path,
    options: GenerateOptions,
    *,
    toolchain: Toolchain | None = None,
    logger: Logger | None = None,
    wait_for_change: WaitForChange | None = None,
    stop_event: threading.Event | None = None,
    debounce: float = DEBOUNCE_SECONDS,
) -> Iterator[Artifact]:
    """Build the entrypoint, then rebuild whenever a file it was built from changes.

    Watch paths and the live reload script are always enabled. The set of
    watched files is recomputed after every build, so files that stop being
    referenced are no longer watched.

    Closing the iterator stops the in-flight build; setting ``stop_event``
    ends the loop at the next wait. Build errors propagate to the caller.

    Args:
        path: HTML entrypoint.
        options: Generation options.
        toolchain: Bundler, stylesheet compiler and dependency query.
        logger: Logger for progress and warnings.
        wait_for_change: Blocks until one of the given paths changes and
            returns it (None when stopped). Defaults to a watchdog observer.
        stop_event: Event that ends the loop.
        debounce: Seconds to wait after a change before rebuilding.

    Yields:
        Artifacts of every build, in production order.
    """
    options = replace(options, watch_paths=True, insert_livereload_script=True)
    logger = logger or ConsoleLogger()
    wait = wait_for_change or watcher.wait_for_change

    while stop_event is None or not stop_event.is_set():
        artifacts, watch_paths = generate_assets(
            path, options, toolchain=toolchain, logger=logger
        )
        yield from artifacts

        changed = wait(watch_paths, stop_event)
        if changed is None:
            return
        logger.log(f"Changed: {changed}")
        logger.log("Rebuilding")
        time.sleep(debounce)
