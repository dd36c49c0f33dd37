"""SSE parsing, cancellable streams and web-search helpers for chat-completion APIs."""

__version__ = "0.1.0"
__all__ = ["sse", "cancellation", "websearch"]