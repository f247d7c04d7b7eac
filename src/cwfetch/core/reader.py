"""
Backend readers for the two CloudWatch Logs query modes.

- SequentialReader: get-log-events against one stream, read forward
- FilteredReader: filter-log-events across a group (optionally narrowed to
  specific streams) with a server-side filter pattern

Each reader issues one page request per call and normalizes the response
into a Page of LogEvents.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..models.log_event import LogEvent, Page
from ..models.request import GetOptions, PageRequest
from .client import map_client_error
from .exceptions import InsufficientArgumentsError

logger = structlog.get_logger(__name__)


def _time_bounds(request: PageRequest, exclusive_end: bool = False) -> Dict[str, int]:
    """startTime/endTime params; both bounds in `request` are inclusive."""
    bounds = {}
    if request.start_time is not None:
        bounds["startTime"] = request.start_time_value()
    if request.end_time is not None:
        end = request.end_time_value()
        # GetLogEvents excludes events stamped exactly at endTime
        bounds["endTime"] = end + 1 if exclusive_end else end
    return bounds


class SequentialReader:
    """
    Reads a single log stream forward with get-log-events.

    The backend does not echo the stream name per record, so every event is
    tagged with the configured stream name.
    """

    operation = "GetLogEvents"

    def __init__(self, client: Any, request: PageRequest, stream_name: str) -> None:
        self.client = client
        self.request = request
        self.stream_name = stream_name

    def build_params(self, next_token: Optional[str]) -> Dict[str, Any]:
        """Keyword arguments for `client.get_log_events`."""
        params: Dict[str, Any] = {
            "logGroupName": self.request.group_name,
            "logStreamName": self.stream_name,
            "startFromHead": True,
            **_time_bounds(self.request, exclusive_end=True),
        }
        if next_token is not None:
            params["nextToken"] = next_token
        return params

    def to_page(self, response: Dict[str, Any]) -> Page:
        """Normalize a GetLogEvents response."""
        events = [
            LogEvent.from_record(record, source_stream=self.stream_name)
            for record in response.get("events") or []
        ]
        return Page(events=events, continuation_token=response.get("nextForwardToken"))

    async def fetch_page(self, next_token: Optional[str] = None) -> Page:
        """Issue one get-log-events request."""
        params = self.build_params(next_token)
        logger.debug("get-log-events", group=self.request.group_name, stream=self.stream_name, token=next_token)
        try:
            response = await asyncio.to_thread(self.client.get_log_events, **params)
        except (ClientError, BotoCoreError) as e:
            raise map_client_error(e, self.operation, self.request.group_name) from e
        return self.to_page(response)


class FilteredReader:
    """
    Searches a log group with filter-log-events.

    `source_stream` comes from each record's `logStreamName`.
    """

    operation = "FilterLogEvents"

    def __init__(
        self,
        client: Any,
        request: PageRequest,
        filter_expression: str,
        stream_names: Optional[Sequence[str]] = None,
    ) -> None:
        self.client = client
        self.request = request
        self.filter_expression = filter_expression
        self.stream_names: Optional[List[str]] = list(stream_names) if stream_names else None

    def build_params(self, next_token: Optional[str]) -> Dict[str, Any]:
        """Keyword arguments for `client.filter_log_events`."""
        params: Dict[str, Any] = {
            "logGroupName": self.request.group_name,
            "filterPattern": self.filter_expression,
            **_time_bounds(self.request),
        }
        if self.stream_names:
            params["logStreamNames"] = self.stream_names
        if next_token is not None:
            params["nextToken"] = next_token
        return params

    def to_page(self, response: Dict[str, Any]) -> Page:
        """Normalize a FilterLogEvents response."""
        events = [LogEvent.from_record(record) for record in response.get("events") or []]
        return Page(events=events, continuation_token=response.get("nextToken"))

    async def fetch_page(self, next_token: Optional[str] = None) -> Page:
        """Issue one filter-log-events request."""
        params = self.build_params(next_token)
        logger.debug(
            "filter-log-events",
            group=self.request.group_name,
            streams=self.stream_names,
            pattern=self.filter_expression,
            token=next_token,
        )
        try:
            response = await asyncio.to_thread(self.client.filter_log_events, **params)
        except (ClientError, BotoCoreError) as e:
            raise map_client_error(e, self.operation, self.request.group_name) from e
        return self.to_page(response)


BackendReader = Union[SequentialReader, FilteredReader]


def validate_options(options: GetOptions) -> None:
    """
    Check that the options select a usable reader.

    Raises:
        InsufficientArgumentsError: No filter pattern and no stream name
    """
    # get-log-events needs a stream name
    if not options.filter_expression and not options.stream_name:
        raise InsufficientArgumentsError(
            "Need to specify '--stream' when omitting '--filter-pattern'",
            missing="stream_name",
        )


def create_reader(client: Any, options: GetOptions) -> BackendReader:
    """
    Choose the reader for a run.

    A filter pattern selects filter-log-events (narrowed to the stream if one
    is given); otherwise get-log-events is used and a stream name is required.

    Raises:
        InsufficientArgumentsError: No filter pattern and no stream name
    """
    validate_options(options)
    request = options.page_request()

    if options.filter_expression:
        logger.info("Using filter-log-events reader", group=options.group_name)
        return FilteredReader(
            client,
            request,
            filter_expression=options.filter_expression,
            stream_names=[options.stream_name] if options.stream_name else None,
        )

    logger.info("Using get-log-events reader", group=options.group_name, stream=options.stream_name)
    return SequentialReader(client, request, stream_name=options.stream_name)
