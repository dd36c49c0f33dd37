"""Server-sent event parsing and readers for streamed completions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional


class StreamClosedError(Exception):
    """Raised when reading from a stream that has already ended."""

    def __init__(self, message: str = "stream is closed") -> None:
        super().__init__(message)


class StreamError(Exception):
    """Raised for unreadable streams, malformed chunks and errors sent in-stream."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class SSEEvent:
    """One server-sent event."""

    event: str = ""
    data: str = ""
    id: str = ""


class SSEParser:
    """Parses server-sent events from a file-like object with ``readline``."""

    def __init__(self, reader: Any) -> None:
        self._reader = reader
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _readline(self) -> str:
        try:
            line = self._reader.readline()
        except OSError as exc:
            raise StreamError(f"error reading stream: {exc}") from exc
        if isinstance(line, (bytes, bytearray)):
            line = bytes(line).decode("utf-8", errors="replace")
        return line

    def parse_next(self) -> Optional[SSEEvent]:
        """Return the next event, or None once the stream is exhausted."""
        if self._closed:
            raise StreamClosedError()

        event = SSEEvent()
        data = ""
        while True:
            raw = self._readline()
            if not raw.endswith("\n"):
                # End of input; an unterminated final line is discarded.
                self._closed = True
                if data:
                    event.data = data
                    return event
                return None

            line = raw.strip()
            if not line:
                if data:
                    event.data = data
                    return event
                continue
            if line.startswith(":"):
                continue

            name, sep, value = line.partition(":")
            if not sep:
                continue
            value = value.strip()

            if name == "event":
                event.event = value
            elif name == "data":
                if data:
                    data += "\n"
                data += value
            elif name == "id":
                event.id = value

    def __iter__(self) -> Iterator[SSEEvent]:
        while not self._closed:
            event = self.parse_next()
            if event is None:
                return
            yield event


@dataclass
class CompletionStreamChoice:
    """A choice within a streamed text completion chunk."""

    index: int = 0
    text: str = ""
    finish_reason: str = ""
    error: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CompletionStreamChoice":
        if not isinstance(data, dict):
            raise TypeError("choice must be a JSON object")
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            raise TypeError("choice error must be a JSON object")
        return cls(
            index=int(data.get("index") or 0),
            text=str(data.get("text") or ""),
            finish_reason=str(data.get("finish_reason") or ""),
            error=error,
        )


@dataclass
class CompletionResponse:
    """A streamed text completion chunk."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[CompletionStreamChoice] = field(default_factory=list)
    usage: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CompletionResponse":
        if not isinstance(data, dict):
            raise TypeError("response must be a JSON object")
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise TypeError("choices must be a JSON array")
        usage = data.get("usage")
        if usage is not None and not isinstance(usage, dict):
            raise TypeError("usage must be a JSON object")
        return cls(
            id=str(data.get("id") or ""),
            object=str(data.get("object") or ""),
            created=int(data.get("created") or 0),
            model=str(data.get("model") or ""),
            choices=[CompletionStreamChoice.from_dict(choice) for choice in choices],
            usage=usage,
        )


class _StreamReader:
    """Shared event handling for the completion stream readers."""

    def __init__(self, reader: Any) -> None:
        self._parser = SSEParser(reader)
        self._source = reader

    def _next_payload(self) -> Optional[str]:
        while True:
            event = self._parser.parse_next()
            if event is None:
                return None
            if event.data.startswith(": "):
                continue
            if event.data == "[DONE]":
                return None
            return event.data

    def _decode(self, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise StreamError(f"failed to parse response: {exc}") from exc

    def read(self) -> Any:
        raise NotImplementedError

    def close(self) -> None:
        """Close the underlying stream."""
        closer = getattr(self._source, "close", None)
        if closer is not None:
            closer()

    def __iter__(self) -> Iterator[Any]:
        while not self._parser.closed:
            chunk = self.read()
            if chunk is None:
                return
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()


class ChatCompletionStreamReader(_StreamReader):
    """Reads streamed chat completion chunks as decoded JSON objects."""

    def __init__(self, reader: Any) -> None:
        super().__init__(reader)

    def read(self) -> Optional[dict]:
        """Return the next chunk, or None when the stream is done."""
        payload = self._next_payload()
        if payload is None:
            return None
        chunk = self._decode(payload)
        if not isinstance(chunk, dict):
            raise StreamError("failed to parse response: expected a JSON object")
        error = chunk.get("error")
        if isinstance(error, dict):
            code = error.get("code", 0)
            message = error.get("message", "")
            raise StreamError(f"openrouter error {code}: {message}", code=code)
        return chunk

    def close(self) -> None:
        super().close()

    def __iter__(self) -> Iterator[dict]:
        return super().__iter__()

    def __enter__(self) -> "ChatCompletionStreamReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class CompletionStreamReader(_StreamReader):
    """Reads streamed text completion chunks."""

    def __init__(self, reader: Any) -> None:
        super().__init__(reader)

    def read(self) -> Optional[CompletionResponse]:
        """Return the next chunk, or None when the stream is done."""
        payload = self._next_payload()
        if payload is None:
            return None
        data = self._decode(payload)
        try:
            return CompletionResponse.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise StreamError(f"failed to parse response: {exc}") from exc

    def close(self) -> None:
        super().close()

    def __iter__(self) -> Iterator[CompletionResponse]:
        return super().__iter__()

    def __enter__(self) -> "CompletionStreamReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()