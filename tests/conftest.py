"""
Pytest configuration and shared fixtures.

Contains the scripted CloudWatch Logs client and common test data used by
all test modules.
"""

import io
import os
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional, Tuple, Union
from unittest.mock import patch

import pytest

from cwfetch.config import Settings, get_settings, reload_settings
from cwfetch.models.log_event import to_epoch_millis
from cwfetch.models.request import GetOptions, PageRequest

Scripted = Union[Dict[str, Any], Exception]


class FakeLogsClient:
    """
    Scripted stand-in for boto3.client("logs").

    Each call pops the next scripted response (or raises the scripted
    exception) and records the keyword arguments it was called with.
    """

    def __init__(
        self,
        get_responses: Optional[List[Scripted]] = None,
        filter_responses: Optional[List[Scripted]] = None,
    ) -> None:
        self.get_responses = list(get_responses or [])
        self.filter_responses = list(filter_responses or [])
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def _next(self, operation: str, queue: List[Scripted], kwargs: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((operation, kwargs))
        if not queue:
            raise AssertionError(f"Unexpected {operation} request: {kwargs}")
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get_log_events(self, **kwargs: Any) -> Dict[str, Any]:
        return self._next("get_log_events", self.get_responses, kwargs)

    def filter_log_events(self, **kwargs: Any) -> Dict[str, Any]:
        return self._next("filter_log_events", self.filter_responses, kwargs)

    @property
    def sent_tokens(self) -> List[Optional[str]]:
        return [kwargs.get("nextToken") for _, kwargs in self.calls]


def make_record(message: str, when: datetime, stream: Optional[str] = None) -> Dict[str, Any]:
    """Build a raw CloudWatch Logs record."""
    record: Dict[str, Any] = {
        "message": message,
        "timestamp": to_epoch_millis(when),
        "ingestionTime": to_epoch_millis(when) + 50,
    }
    if stream is not None:
        record["logStreamName"] = stream
    return record


class RecordingSink:
    """Sink double that remembers every write."""

    def __init__(self) -> None:
        self.writes: List[List[Any]] = []
        self.closed = False

    def write(self, events: Any) -> None:
        self.writes.append(list(events))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def base_time() -> datetime:
    """A fixed UTC instant used across tests."""
    return datetime(2023, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def page_request(base_time: datetime) -> PageRequest:
    """Request for a single hour of events in test-group."""
    return PageRequest(
        group_name="test-group",
        start_time=base_time,
        end_time=base_time.replace(hour=1),
    )


@pytest.fixture
def stream_options() -> GetOptions:
    """Options selecting a get-log-events run."""
    return GetOptions(group_name="test-group", stream_name="test-stream")


@pytest.fixture
def filter_options() -> GetOptions:
    """Options selecting a filter-log-events run."""
    return GetOptions(group_name="test-group", filter_expression="ERROR")


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Test configuration data."""
    return {
        "logging": {
            "level": "WARNING",
        },
        "aws": {
            "profile": "test-profile",
            "region": "ap-northeast-1",
        },
        "display": {
            "utc_offset_hours": 9,
        },
    }


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove cwfetch and AWS environment variables for test isolation."""
    for name in list(os.environ):
        if name.startswith("CWFETCH_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def settings(clean_env: None, test_config: Dict[str, Any]) -> Generator[Settings, None, None]:
    """Settings loaded from the test configuration."""
    with patch("cwfetch.config.load_config_file") as mock_load:
        mock_load.return_value = test_config
        yield reload_settings()

    # The config file seeds os.environ directly; drop what it set
    for name in list(os.environ):
        if name.startswith("CWFETCH_"):
            del os.environ[name]
    get_settings.cache_clear()


@pytest.fixture
def output() -> io.StringIO:
    """In-memory output stream for sinks."""
    return io.StringIO()
