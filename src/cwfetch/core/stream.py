"""
Pagination stream over a backend reader.

Turns the token-based CloudWatch Logs API into a lazy, one-shot async
sequence of pages.

State machine:
- Initial: no request issued yet; the next request carries no token
- Active(token): the last page returned `token`; a missing token stops
- Exhausted: terminal, never left again

Termination rule: the backend signals "no new data" by echoing the token it
was sent, so a returned token equal to the one just sent exhausts the
stream after that page is yielded.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import structlog

from ..models.log_event import Page
from .reader import BackendReader

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Initial:
    """No request issued yet."""


@dataclass(frozen=True)
class Active:
    """A page has been returned carrying `token`."""
    token: Optional[str]


@dataclass(frozen=True)
class Exhausted:
    """No further requests will be issued."""


PaginationState = Union[Initial, Active, Exhausted]


def pending_request(state: PaginationState) -> Tuple[bool, Optional[str]]:
    """Return whether another request is due and the token to send with it."""
    if isinstance(state, Initial):
        return True, None
    if isinstance(state, Active):
        return state.token is not None, state.token
    return False, None


def advance(sent_token: Optional[str], page: Page) -> PaginationState:
    """
    Compute the state after a successful fetch.

    Args:
        sent_token: Token sent with the request that produced `page`
            (None for the first request)
        page: The page just returned
    """
    next_token = page.continuation_token
    if next_token is None:
        return Exhausted()
    # An empty token on the first page counts as an echo of "no token"
    if next_token == (sent_token if sent_token is not None else ""):
        return Exhausted()
    return Active(next_token)


class PageStream:
    """
    Lazy async iterator of pages from a single reader.

    Pages are requested only when the consumer asks for the next one. A
    fetch failure exhausts the stream and is raised to the consumer. The
    stream cannot be restarted; a new run needs a new stream and reader.
    """

    def __init__(self, reader: BackendReader) -> None:
        self.reader = reader
        self.state: PaginationState = Initial()
        self.requests_issued = 0

    def __aiter__(self) -> "PageStream":
        return self

    async def __anext__(self) -> Page:
        due, token = pending_request(self.state)
        if not due:
            if not isinstance(self.state, Exhausted):
                logger.debug("Pagination finished", requests=self.requests_issued)
                self.state = Exhausted()
            raise StopAsyncIteration

        self.requests_issued += 1
        try:
            page = await self.reader.fetch_page(token)
        except Exception:
            self.state = Exhausted()
            raise

        self.state = advance(token, page)
        logger.debug(
            "Fetched page",
            sent_token=token,
            next_token=page.continuation_token,
            events=len(page.events),
            exhausted=isinstance(self.state, Exhausted),
        )
        return page
