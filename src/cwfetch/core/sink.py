"""
Output sinks for log events.

- BareSink: message only
- PrefixedSink: `[YYYY-MM-DD HH:MM:SS] message` in a fixed display offset,
  with a coloured prefix on interactive terminals
"""

import sys
from datetime import timedelta, timezone
from typing import Optional, Sequence, TextIO

import click

from ..config import Settings
from ..models.log_event import LogEvent
from ..models.request import GetOptions


class Sink:
    """Base sink writing one line per event to a text stream."""

    def __init__(self, out: Optional[TextIO] = None) -> None:
        self.out = out if out is not None else sys.stdout

    def puts(self, text: str) -> None:
        """Write a line, without doubling a newline the message already has."""
        if text.endswith("\n"):
            self.out.write(text)
        else:
            self.out.write(text + "\n")

    def write(self, events: Sequence[LogEvent]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self.out.flush()


class BareSink(Sink):
    """Emits only the event message."""

    def write(self, events: Sequence[LogEvent]) -> None:
        for event in events:
            self.puts(event.message)


class PrefixedSink(Sink):
    """
    Emits `[<local time>] <message>`.

    The timestamp is shifted to a fixed UTC offset before formatting.
    """

    def __init__(
        self,
        out: Optional[TextIO] = None,
        utc_offset_hours: int = 9,
        time_format: str = "%Y-%m-%d %H:%M:%S",
        enable_color: Optional[bool] = None,
    ) -> None:
        super().__init__(out)
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self.time_format = time_format
        if enable_color is None:
            isatty = getattr(self.out, "isatty", None)
            enable_color = bool(isatty and isatty())
        self.enable_color = enable_color

    def decorate(self, text: str) -> str:
        if self.enable_color:
            return click.style(text, fg="green")
        return text

    def format_event(self, event: LogEvent) -> str:
        local_time = event.timestamp.astimezone(self.tz).strftime(self.time_format)
        return f"{self.decorate(f'[{local_time}]')} {event.message}"

    def write(self, events: Sequence[LogEvent]) -> None:
        for event in events:
            self.puts(self.format_event(event))


def create_sink(options: GetOptions, settings: Settings, out: Optional[TextIO] = None) -> Sink:
    """Choose the sink for a run from the resolved options."""
    if options.use_prefix:
        return PrefixedSink(
            out,
            utc_offset_hours=settings.display.utc_offset_hours,
            time_format=settings.display.time_format,
        )
    return BareSink(out)
