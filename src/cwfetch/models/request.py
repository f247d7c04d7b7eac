"""
Request and option models for a retrieval run.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .log_event import to_epoch_millis


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class PageRequest(BaseModel):
    """
    Query parameters shared by every page request of one run.

    Both time bounds are inclusive; absent means unbounded.
    """

    group_name: str = Field(min_length=1, description="Log group name")
    start_time: Optional[datetime] = Field(default=None, description="Earliest event time (UTC)")
    end_time: Optional[datetime] = Field(default=None, description="Latest event time (UTC)")

    @field_validator("start_time", "end_time")
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store time bounds as aware UTC datetimes."""
        return _as_utc(v)

    def start_time_value(self) -> Optional[int]:
        """Start bound as CloudWatch epoch millis."""
        return to_epoch_millis(self.start_time) if self.start_time is not None else None

    def end_time_value(self) -> Optional[int]:
        """End bound as CloudWatch epoch millis."""
        return to_epoch_millis(self.end_time) if self.end_time is not None else None

    model_config = ConfigDict(frozen=True)


class GetOptions(BaseModel):
    """
    Fully-resolved options for the `get` command.
    """

    group_name: str = Field(min_length=1, description="Log group name")
    stream_name: Optional[str] = Field(
        default=None,
        description="Log stream name; required unless a filter pattern is given"
    )
    filter_expression: Optional[str] = Field(
        default=None,
        description="CloudWatch filter pattern evaluated server-side"
    )
    start_time: Optional[datetime] = Field(default=None, description="Start of the time range")
    end_time: Optional[datetime] = Field(default=None, description="End of the time range")
    use_prefix: bool = Field(default=True, description="Prefix each line with its timestamp")

    @field_validator("start_time", "end_time")
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store time bounds as aware UTC datetimes."""
        return _as_utc(v)

    @model_validator(mode="after")
    def validate_time_range(self) -> "GetOptions":
        """Reject inverted time ranges."""
        if self.start_time and self.end_time and self.start_time > self.end_time:
            raise ValueError("start_time must not be later than end_time")
        return self

    def page_request(self) -> PageRequest:
        """Build the PageRequest for this run."""
        return PageRequest(
            group_name=self.group_name,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    model_config = ConfigDict(frozen=True)
