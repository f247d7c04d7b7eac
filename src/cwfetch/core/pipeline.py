"""
Retrieval pipeline for the `get` command.

Orchestrates a single run:
1. Option validation (before any remote call)
2. Client creation and reader selection (get-log-events or filter-log-events)
3. Sink selection (prefixed or bare output)
4. Background execution of the runner through the execution bridge
"""

from typing import Any, Callable, Optional, TextIO

import structlog

from ..config import Settings
from ..models.request import GetOptions
from .bridge import ExecutionBridge
from .reader import create_reader, validate_options
from .runner import OneShotRunner
from .sink import create_sink
from .stream import PageStream

logger = structlog.get_logger(__name__)


def run_get(
    client_factory: Callable[[], Any],
    options: GetOptions,
    settings: Settings,
    out: Optional[TextIO] = None,
) -> OneShotRunner:
    """
    Fetch and print the events selected by `options`.

    Configuration errors are raised before the client is created, so no
    remote call (STS included) happens for an unusable set of options. Any
    retrieval error stops the run and is re-raised here; output already
    written is left in place.

    Returns:
        The runner, whose stats describe what was written
    """
    validate_options(options)

    logger.info("Creating reader", group=options.group_name)
    reader = create_reader(client_factory(), options)

    logger.info("Creating sink", use_prefix=options.use_prefix)
    sink = create_sink(options, settings, out)

    # TODO: add a watch runner that keeps polling after the stream is exhausted
    logger.info("Creating runner")
    runner = OneShotRunner()

    bridge = ExecutionBridge()
    bridge.run(lambda: runner.run(PageStream(reader), sink))

    return runner
