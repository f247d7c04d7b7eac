"""
Runner that drains a page stream into a sink.
"""

from dataclasses import dataclass

import structlog

from .sink import Sink
from .stream import PageStream

logger = structlog.get_logger(__name__)


@dataclass
class RunStats:
    """Counters for a completed run."""
    pages: int = 0
    events: int = 0


class OneShotRunner:
    """
    Single bounded pass over the available events.

    Pages are written in order, one at a time; the next page is only
    requested after the previous one has been written. The first retrieval
    error propagates unchanged.
    """

    def __init__(self) -> None:
        self.stats = RunStats()

    async def run(self, stream: PageStream, sink: Sink) -> None:
        logger.info("Iterating log event pages")
        try:
            async for page in stream:
                sink.write(page.events)
                self.stats.pages += 1
                self.stats.events += len(page.events)
        finally:
            sink.close()

        logger.info("Log event pages exhausted", pages=self.stats.pages, events=self.stats.events)
