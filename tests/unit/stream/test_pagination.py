"""
Tests for the pagination state machine and page stream.
"""

from datetime import datetime

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from conftest import FakeLogsClient, make_record
from cwfetch.core.exceptions import BackendRejectedError, TransportError
from cwfetch.core.reader import FilteredReader, SequentialReader
from cwfetch.core.stream import Active, Exhausted, Initial, PageStream, advance, pending_request
from cwfetch.models.log_event import Page
from cwfetch.models.request import PageRequest


def sequential_stream(responses) -> tuple:
    client = FakeLogsClient(get_responses=responses)
    reader = SequentialReader(client, PageRequest(group_name="g"), stream_name="s")
    return client, PageStream(reader)


async def collect(stream: PageStream) -> list:
    return [page async for page in stream]


class TestStateMachine:
    """Test the pure transition functions."""

    def test_initial_requests_without_token(self) -> None:
        assert pending_request(Initial()) == (True, None)

    def test_active_requests_with_token(self) -> None:
        assert pending_request(Active("t1")) == (True, "t1")

    def test_active_without_token_stops(self) -> None:
        assert pending_request(Active(None)) == (False, None)

    def test_exhausted_never_requests(self) -> None:
        assert pending_request(Exhausted()) == (False, None)

    def test_new_token_continues(self) -> None:
        assert advance(None, Page(continuation_token="A")) == Active("A")
        assert advance("A", Page(continuation_token="B")) == Active("B")

    def test_echoed_token_exhausts(self) -> None:
        assert advance("A", Page(continuation_token="A")) == Exhausted()

    def test_absent_token_exhausts(self) -> None:
        assert advance("A", Page()) == Exhausted()
        assert advance(None, Page()) == Exhausted()

    def test_empty_token_on_first_page_exhausts(self) -> None:
        """Test an empty token answering a tokenless request is an echo."""
        assert advance(None, Page(continuation_token="")) == Exhausted()


class TestPageStream:
    """Test the lazy page stream against a scripted client."""

    @pytest.mark.asyncio
    async def test_echo_terminates_after_yielding_page(self, base_time: datetime) -> None:
        """Test the page carrying the echoed token is still yielded."""

        client, stream = sequential_stream([
            {"events": [make_record("one", base_time)], "nextForwardToken": "A"},
            {"events": [make_record("two", base_time)], "nextForwardToken": "A"},
        ])
        pages = await collect(stream)

        assert [[e.message for e in p.events] for p in pages] == [["one"], ["two"]]
        assert client.sent_tokens == [None, "A"]
        assert stream.requests_issued == 2
        assert isinstance(stream.state, Exhausted)

    @pytest.mark.asyncio
    async def test_terminates_after_n_distinct_tokens(self, base_time: datetime) -> None:
        """Test N distinct tokens then an echo issue exactly N + 1 requests."""

        tokens = ["t1", "t2", "t3", "t4"]
        responses = [{"events": [], "nextForwardToken": t} for t in tokens]
        responses.append({"events": [], "nextForwardToken": "t4"})
        client, stream = sequential_stream(responses)

        pages = await collect(stream)

        assert len(pages) == 5
        assert client.sent_tokens == [None, "t1", "t2", "t3", "t4"]

    @pytest.mark.asyncio
    async def test_absent_token_terminates(self, base_time: datetime) -> None:
        """Test a filtered search ends when no nextToken is returned."""

        client = FakeLogsClient(filter_responses=[
            {"events": [make_record("one", base_time, stream="a")], "nextToken": "n1"},
            {"events": [make_record("two", base_time, stream="b")]},
        ])
        stream = PageStream(FilteredReader(client, PageRequest(group_name="g"), filter_expression="x"))

        pages = await collect(stream)

        assert len(pages) == 2
        assert client.sent_tokens == [None, "n1"]

    @pytest.mark.asyncio
    async def test_empty_pages_are_yielded(self) -> None:
        """Test empty pages do not end pagination on their own."""

        client, stream = sequential_stream([
            {"events": [], "nextForwardToken": "A"},
            {"events": [], "nextForwardToken": "B"},
            {"events": [], "nextForwardToken": "B"},
        ])
        pages = await collect(stream)
        assert len(pages) == 3
        assert all(p.events == [] for p in pages)

    @pytest.mark.asyncio
    async def test_error_exhausts_stream(self) -> None:
        """Test a failed fetch is raised once and no further request follows."""

        client, stream = sequential_stream([
            {"events": [], "nextForwardToken": "A"},
            EndpointConnectionError(endpoint_url="https://logs.example"),
        ])

        first = await stream.__anext__()
        assert first.continuation_token == "A"

        with pytest.raises(TransportError):
            await stream.__anext__()

        assert isinstance(stream.state, Exhausted)
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_first_request_rejected(self) -> None:
        """Test a rejected first request yields no pages."""

        error = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "GetLogEvents")
        client, stream = sequential_stream([error])

        with pytest.raises(BackendRejectedError):
            await collect(stream)
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_requests_are_lazy(self) -> None:
        """Test nothing is requested until the consumer asks for a page."""

        client, stream = sequential_stream([
            {"events": [], "nextForwardToken": "A"},
            {"events": [], "nextForwardToken": "B"},
        ])
        assert client.calls == []
        assert isinstance(stream.state, Initial)

        await stream.__anext__()
        assert len(client.calls) == 1
        assert stream.state == Active("A")

    @pytest.mark.asyncio
    async def test_not_restartable(self) -> None:
        """Test iterating an exhausted stream again issues no requests."""

        client, stream = sequential_stream([{"events": [], "nextForwardToken": ""}])
        assert len(await collect(stream)) == 1
        assert await collect(stream) == []
        assert len(client.calls) == 1
