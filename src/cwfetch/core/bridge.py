"""
Execution bridge between the async retrieval loop and the synchronous CLI.

The run is driven on a background thread with its own event loop and
reports exactly one outcome through a one-shot channel; the caller blocks
until that outcome arrives.
"""

import asyncio
import threading
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Optional, Union

import structlog

from .exceptions import SyncChannelError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Done:
    """The run completed successfully."""


@dataclass(frozen=True)
class Failure:
    """The run stopped at `error`."""
    error: Exception


Payload = Union[Done, Failure]


class OneShotChannel:
    """
    Single-use rendezvous: exactly one send, exactly one receive.

    Closing the channel without sending makes the receiver fail with
    SyncChannelError instead of blocking forever.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._payload: Optional[Payload] = None
        self._sent = False
        self._closed = False
        self._received = False

    def send(self, payload: Payload) -> None:
        with self._cond:
            if self._sent:
                raise SyncChannelError("A result was already sent on this channel")
            if self._closed:
                raise SyncChannelError("Channel closed before the result was sent")
            self._payload = payload
            self._sent = True
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def recv(self) -> Payload:
        with self._cond:
            if self._received:
                raise SyncChannelError("The result was already received")
            while not self._sent and not self._closed:
                self._cond.wait()
            if not self._sent or self._payload is None:
                raise SyncChannelError()
            self._received = True
            return self._payload


class ExecutionBridge:
    """
    Runs a coroutine to completion on a background thread.

    `run` returns when the coroutine succeeds and re-raises its exception
    when it fails. A background thread that dies without reporting surfaces
    as SyncChannelError.
    """

    def __init__(self, thread_name: str = "cwfetch-runner") -> None:
        self.thread_name = thread_name

    def run(self, make_coro: Callable[[], Coroutine[Any, Any, None]]) -> None:
        channel = OneShotChannel()

        def worker() -> None:
            try:
                asyncio.run(make_coro())
            except Exception as e:
                channel.send(Failure(e))
            else:
                channel.send(Done())
            finally:
                channel.close()

        thread = threading.Thread(target=worker, name=self.thread_name, daemon=True)

        logger.info("Starting background run", thread=self.thread_name)
        thread.start()

        logger.info("Waiting for run result")
        try:
            payload = channel.recv()
        finally:
            thread.join()

        if isinstance(payload, Failure):
            logger.debug("Run failed", error=str(payload.error), error_type=type(payload.error).__name__)
            raise payload.error

        logger.info("Run completed")
