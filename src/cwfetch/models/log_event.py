"""
Log event data models and normalization.

- Timestamps are UTC, millisecond precision (CloudWatch epoch millis)
- Records missing `message` or `timestamp` are rejected as malformed
- Pages keep the backend's event order
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.exceptions import MalformedRecordError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def from_epoch_millis(epoch_millis: int) -> datetime:
    """Convert CloudWatch epoch milliseconds to an aware UTC datetime."""
    # timedelta arithmetic is integral, so no float rounding creeps in
    return EPOCH + timedelta(milliseconds=int(epoch_millis))


def to_epoch_millis(dt: datetime) -> int:
    """Convert a datetime to CloudWatch epoch milliseconds (naive means UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(milliseconds=1)


class LogEvent(BaseModel):
    """
    A single log record.

    Immutable once constructed; the timestamp is always stored in UTC.
    """

    message: str = Field(description="Log message content")
    timestamp: datetime = Field(description="When the event occurred (UTC)")
    source_stream: Optional[str] = Field(
        default=None,
        description="Name of the log stream that emitted the event, when known"
    )

    @field_validator("timestamp")
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store timestamps as aware UTC datetimes."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        source_stream: Optional[str] = None,
    ) -> "LogEvent":
        """
        Build an event from a raw CloudWatch Logs record.

        Args:
            record: An `OutputLogEvent` or `FilteredLogEvent` dict
            source_stream: Stream name to tag the event with; when omitted the
                record's own `logStreamName` is used

        Raises:
            MalformedRecordError: If `message` or `timestamp` is missing or
                cannot be interpreted
        """
        for field in ("message", "timestamp"):
            if record.get(field) is None:
                raise MalformedRecordError(
                    f"Log record is missing required field '{field}'",
                    field=field,
                    record=dict(record),
                )

        try:
            timestamp = from_epoch_millis(record["timestamp"])
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedRecordError(
                f"Log record has an invalid timestamp: {record['timestamp']!r}",
                field="timestamp",
                record=dict(record),
            ) from e

        try:
            return cls(
                message=record["message"],
                timestamp=timestamp,
                source_stream=source_stream if source_stream is not None else record.get("logStreamName"),
            )
        except ValidationError as e:
            field = str(e.errors()[0]["loc"][0]) if e.errors() else "message"
            raise MalformedRecordError(
                f"Log record has an invalid '{field}' field",
                field=field,
                record=dict(record),
            ) from e

    model_config = ConfigDict(frozen=True)


class Page(BaseModel):
    """
    One response unit from a backend reader.
    """

    events: List[LogEvent] = Field(
        default_factory=list,
        description="Events in backend order"
    )
    continuation_token: Optional[str] = Field(
        default=None,
        description="Token to resume from; absence or echo means no more data"
    )

    model_config = ConfigDict(frozen=True)
