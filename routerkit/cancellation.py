"""Cancellable stream reading and stream control."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from routerkit.sse import SSEEvent, SSEParser

_POLL_INTERVAL = 0.05

SUPPORTED_PROVIDERS = frozenset(
    {
        "openai",
        "azure",
        "anthropic",
        "fireworks",
        "mancer",
        "recursal",
        "anyscale",
        "lepton",
        "octoai",
        "novita",
        "deepinfra",
        "together",
        "cohere",
        "hyperbolic",
        "infermatic",
        "avian",
        "xai",
        "cloudflare",
        "sfcompute",
        "nineteen",
        "liquid",
        "friendli",
        "chutes",
        "deepseek",
    }
)


def is_provider_supported(provider: str) -> bool:
    """Return whether a provider supports stream cancellation."""
    return provider in SUPPORTED_PROVIDERS


class StreamCancelledError(Exception):
    """Raised when reading from a cancelled stream."""

    def __init__(self, message: str = "stream cancelled") -> None:
        super().__init__(message)


class CancellableReader:
    """Wraps a file-like object so pending reads stop when cancelled.

    ``cancel_event`` is an optional outside signal; setting it cancels the
    reader, while cancelling the reader leaves that event untouched.
    """

    def __init__(self, reader: Any, cancel_event: Optional[threading.Event] = None) -> None:
        self._reader = reader
        self._external = cancel_event
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or (
            self._external is not None and self._external.is_set()
        )

    def read(self, size: int = -1):
        """Read up to ``size`` bytes, raising if the stream is cancelled."""
        return self._guarded(self._reader.read, size)

    def readline(self):
        """Read one line, raising if the stream is cancelled."""
        return self._guarded(self._reader.readline)

    def _guarded(self, func: Callable, *args: Any):
        if self.cancelled:
            raise StreamCancelledError()

        done = threading.Event()
        outcome: dict = {}

        def worker() -> None:
            try:
                outcome["value"] = func(*args)
            except BaseException as exc:  # handed back to the caller
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=worker, daemon=True).start()
        while not done.wait(_POLL_INTERVAL):
            if self.cancelled:
                self.close()
                raise StreamCancelledError()

        if "error" in outcome:
            raise outcome["error"]
        return outcome["value"]

    def close(self) -> None:
        """Cancel and close the underlying reader; repeated calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancelled.set()
            closer = getattr(self._reader, "close", None)
            if closer is not None:
                closer()

    def cancel(self) -> None:
        """Cancel the stream."""
        self._cancelled.set()
        self.close()

    def __enter__(self) -> "CancellableReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class StreamController:
    """Reads server-sent events from a stream that can be cancelled."""

    def __init__(self, reader: Any, cancel_event: Optional[threading.Event] = None) -> None:
        self._reader = CancellableReader(reader, cancel_event)
        self._parser = SSEParser(self._reader)

    def read(self) -> Optional[SSEEvent]:
        """Return the next event, or None at the end of the stream."""
        return self._parser.parse_next()

    def cancel(self) -> None:
        self._reader.cancel()

    def close(self) -> None:
        self._reader.close()