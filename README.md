# routerkit

routerkit provides small building blocks for chat-completion APIs. These APIs
stream their answers as server-sent events (SSE) and can search the web.

- `routerkit.sse` has an SSE parser and two stream readers. The readers turn a
  file-like body into chat-completion chunks or text-completion chunks.
- `routerkit.cancellation` wraps a file-like body so that a pending read
  stops when the body is cancelled. It also has a `StreamController` and
  `is_provider_supported()`.
- `routerkit.websearch` builds web-search requests. It also extracts URL
  citations, formats them as Markdown and runs a simple multi-step research
  agent.

The package depends only on the standard library.

## Installation

```
pip install routerkit
```

## Parsing server-sent events

`SSEParser` reads from any object that has a `readline()` method. That method
may return `bytes` or `str`.

`parse_next()` returns an `SSEEvent` with the fields `event`, `data` and `id`.
It returns `None` once the input is exhausted. Calling it after that raises
`StreamClosedError`.

The parser handles lines as follows:

- Comment lines, which start with `:`, are skipped.
- Several `data:` lines in one event are joined with newlines.
- A final line with no newline at the end is discarded.

Iterating over the parser yields events until the end of the input.

If the underlying read fails with an `OSError`, the parser raises
`StreamError` with a message of the form "error reading stream: ...".

## Reading completion streams

```python
import io
from routerkit.sse import ChatCompletionStreamReader

body = io.BytesIO(
    b": OPENROUTER PROCESSING\n\n"
    b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n'
    b'data: {"choices":[{"delta":{"content":" world"}}]}\n\n'
    b"data: [DONE]\n\n"
)

with ChatCompletionStreamReader(body) as stream:
    text = "".join(
        chunk["choices"][0]["delta"].get("content", "")
        for chunk in stream
        if chunk.get("choices")
    )
print(text)  # Hello world
```

### ChatCompletionStreamReader

`ChatCompletionStreamReader.read()` returns the next chunk as a decoded JSON
dict. It returns `None` at `[DONE]` or at the end of the input. Events whose
data starts with `": "` are skipped.

The reader raises `StreamError` in these cases:

- The payload is not valid JSON, or is not a JSON object. The message reads
  "failed to parse response: ...".
- The chunk has a top-level `error` object. The message reads
  `openrouter error <code>: <message>` and the error's `code` attribute holds
  the code.

An error attached to a single choice is not raised. It stays in the chunk for
you to inspect.

### CompletionStreamReader

`CompletionStreamReader.read()` returns `CompletionResponse` objects in the
same way. A `CompletionResponse` has the fields `id`, `object`, `created`,
`model`, `choices` and `usage`. Each entry in `choices` is a
`CompletionStreamChoice` with the fields `index`, `text`, `finish_reason` and
`error`.

### Common behaviour

Both readers:

- can be iterated,
- work as context managers,
- close the underlying body when you call `close()` or leave the `with`
  block.

## Cancelling a stream

```python
import io
import threading
from routerkit.cancellation import StreamController, is_provider_supported

stop = threading.Event()
body = io.BytesIO(b"data: first\n\ndata: second\n\n")
controller = StreamController(body, stop)

event = controller.read()   # SSEEvent(event='', data='first', id='')
stop.set()                  # or controller.cancel()
controller.read()           # raises StreamCancelledError

is_provider_supported("anthropic")  # True
```

### CancellableReader

`CancellableReader` wraps a body and runs each `read()` or `readline()` on a
worker thread. While the read is pending, it checks about every 50 ms whether
the stream has been cancelled.

The stream counts as cancelled once any of these happens:

- the optional `threading.Event` passed to the reader is set,
- `cancel()` is called,
- `close()` is called.

After cancellation, reads raise `StreamCancelledError` and the body is closed.
`close()` can be called more than once.

### StreamController

`StreamController` puts an `SSEParser` on top of a `CancellableReader`. Its
methods are `read()`, `cancel()` and `close()`.

### Providers

`is_provider_supported(provider)` looks the name up in the fixed set
`SUPPORTED_PROVIDERS`. That set lists the providers that honour stream
cancellation.

## Web search and citations

The helpers take a client object with a `create_chat_completion(request)`
method. The method receives the request as a JSON-shaped dict and returns the
response as a dict. The `ChatClient` protocol describes this shape.

```python
from routerkit.websearch import (
    SearchOptions,
    WebSearchHelper,
    extract_citations,
    format_citations_as_markdown,
)

helper = WebSearchHelper(client)
response = helper.create_with_web_search(
    "What's new in Python?", "openai/gpt-4o", SearchOptions(max_results=5)
)
print(format_citations_as_markdown(extract_citations(response)))
```

### create_with_web_search

How `create_with_web_search(prompt, model, opts)` builds the request depends
on `opts`:

- With `opts=None`, it sends the request to `model + ":online"`.
- Otherwise it adds a `{"id": "web"}` plugin. The plugin gets `max_results`
  when that value is positive, and `search_prompt` when it is not empty.

### create_with_native_web_search

`create_with_native_web_search(prompt, model, context_size)` handles
`context_size` as follows:

| `context_size` | Result |
| --- | --- |
| `"low"`, `"medium"` or `"high"` | Sets `web_search_options.search_context_size` |
| `""` | Leaves it out |
| any other value | Raises `ValueError` |

### Citation and message helpers

- `extract_citations(response)` returns the `url_citation` annotations of the
  first choice's message.
- `format_citations_as_markdown(citations)` joins the citations as
  `[domain](url)` links, separated by `, `.
- `extract_domain(url)` strips `https://` or `http://`, any path, and a
  leading `www.`. For example, `https://www.example.com/page` becomes
  `example.com`.
- `text_message(role, text)` builds a plain text message.
- `message_text(message)` returns a message's content as text. It raises
  `ValueError` when the content is a list of parts.

## Research agent

```python
agent = helper.create_research_agent("openai/gpt-4o")
result = agent.research("Artificial Intelligence", 3)
print(result.summary)
for section in result.sections:
    print(section.title, len(section.citations))
```

`research(topic, depth)` makes these calls in order:

1. It asks the `:online` model for an overview.
2. It takes up to `depth` numbered or bulleted items from the overview as
   subtopics. The bullets recognised are `•`, `-` and `*`. It then researches
   each subtopic with a further call.
3. It asks the plain model for a summary.

The method returns a `ResearchResult`. Its `sections` are `ResearchSection`
objects, starting with "Overview". Its `citations` field collects the
citations from every section.

Only a failure of the first request is an error; it is raised as
`RuntimeError("initial research failed: ...")`. A failed subtopic is skipped.
A failed summary leaves `summary` empty.

`extract_subtopics(response, max_count)` is available on its own.

## What the package does not do

routerkit has no HTTP client and no command-line program. It does not send
requests itself. You supply the object that talks to the API, and you pass in
response bodies as file-like objects.

## Running the tests

```
pip install -e ".[test]"
pytest
```