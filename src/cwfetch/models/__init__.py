"""
Pydantic data models package.

Contains the value objects shared by the retrieval engine:
- Log events and pages
- Page requests and resolved command options
"""

from .log_event import LogEvent, Page, from_epoch_millis, to_epoch_millis
from .request import GetOptions, PageRequest

__all__ = [
    # Event models
    "LogEvent",
    "Page",
    "from_epoch_millis",
    "to_epoch_millis",

    # Request models
    "GetOptions",
    "PageRequest",
]
