import pytest

from routerkit.websearch import (
    ResearchAgent,
    ResearchResult,
    SearchOptions,
    WebSearchHelper,
    extract_citations,
    extract_domain,
    format_citations_as_markdown,
    message_text,
    text_message,
)


def _response(content, annotations=None, model="test-model"):
    message = {"role": "assistant", "content": content}
    if annotations is not None:
        message["annotations"] = annotations
    return {"id": "resp-123", "model": model, "choices": [{"message": message}]}


def _citation(url, title=""):
    return {"type": "url_citation", "url_citation": {"url": url, "title": title}}


class FakeClient:
    def __init__(self, responder):
        self.requests = []
        self._responder = responder

    def create_chat_completion(self, request):
        self.requests.append(request)
        return self._responder(len(self.requests), request)


def test_web_search_uses_online_suffix_without_options():
    client = FakeClient(
        lambda n, req: _response(
            "Based on my web search, the latest news is...",
            [_citation("https://example.com/news", "Latest News")],
            model=req["model"],
        )
    )
    resp = WebSearchHelper(client).create_with_web_search(
        "What's the latest news?", "openai/gpt-4o", None
    )
    assert client.requests[0]["model"] == "openai/gpt-4o:online"
    assert client.requests[0]["messages"] == [
        {"role": "user", "content": "What's the latest news?"}
    ]
    assert "plugins" not in client.requests[0]
    annotations = resp["choices"][0]["message"]["annotations"]
    assert len(annotations) == 1
    assert annotations[0]["type"] == "url_citation"


def test_web_search_with_plugin_options():
    client = FakeClient(lambda n, req: _response("Search results processed"))
    opts = SearchOptions(max_results=10, search_prompt="Custom search prompt:")
    WebSearchHelper(client).create_with_web_search("Search query", "openai/gpt-4o", opts)
    request = client.requests[0]
    assert request["model"] == "openai/gpt-4o"
    assert request["plugins"] == [
        {"id": "web", "max_results": 10, "search_prompt": "Custom search prompt:"}
    ]


def test_web_search_with_default_options_sends_bare_plugin():
    client = FakeClient(lambda n, req: _response("ok"))
    WebSearchHelper(client).create_with_web_search("q", "m", SearchOptions())
    assert client.requests[0]["plugins"] == [{"id": "web"}]
    assert client.requests[0]["model"] == "m"


def test_web_search_does_not_request_streaming():
    client = FakeClient(lambda n, req: _response("Web search result", model=req["model"]))
    resp = WebSearchHelper(client).create_with_web_search("Query", "openai/gpt-4o", None)
    assert not client.requests[0].get("stream", False)
    assert ":online" in resp["model"]


@pytest.mark.parametrize("size", ["low", "medium", "high"])
def test_native_web_search_sets_context_size(size):
    client = FakeClient(lambda n, req: _response("Native search result"))
    resp = WebSearchHelper(client).create_with_native_web_search(
        "Query", "perplexity/sonar", size
    )
    assert client.requests[0]["web_search_options"] == {"search_context_size": size}
    assert message_text(resp["choices"][0]["message"]) == "Native search result"


def test_native_web_search_empty_context_omits_options():
    client = FakeClient(lambda n, req: _response("Native search result"))
    WebSearchHelper(client).create_with_native_web_search("Query", "perplexity/sonar", "")
    assert "web_search_options" not in client.requests[0]
    assert client.requests[0]["model"] == "perplexity/sonar"


def test_native_web_search_invalid_context_raises():
    client = FakeClient(lambda n, req: _response("unused"))
    with pytest.raises(ValueError, match="invalid search context size: invalid"):
        WebSearchHelper(client).create_with_native_web_search(
            "Query", "perplexity/sonar", "invalid"
        )
    assert client.requests == []


@pytest.mark.parametrize(
    "response, expected",
    [
        (
            _response(
                "x",
                [_citation("https://example.com", "Example"), _citation("https://test.com", "Test")],
            ),
            2,
        ),
        (_response("x", []), 0),
        ({"choices": []}, 0),
        (
            _response(
                "x",
                [
                    _citation("https://example.com"),
                    {
                        "type": "file",
                        "file": {"filename": "file-123", "file_data": {"id": "file-123"}},
                    },
                ],
            ),
            1,
        ),
    ],
)
def test_extract_citations_counts(response, expected):
    assert len(extract_citations(response)) == expected


def test_extract_citations_returns_citation_objects():
    citations = extract_citations(_response("x", [_citation("https://example.com", "Example")]))
    assert citations == [{"url": "https://example.com", "title": "Example"}]


@pytest.mark.parametrize(
    "urls, expected",
    [
        (["https://example.com/page"], "[example.com](https://example.com/page)"),
        (
            ["https://example.com/page", "https://test.org/article"],
            "[example.com](https://example.com/page), [test.org](https://test.org/article)",
        ),
        (["https://www.example.com/page"], "[example.com](https://www.example.com/page)"),
        (["example.com/page"], "[example.com](example.com/page)"),
        ([], ""),
    ],
)
def test_format_citations_as_markdown(urls, expected):
    assert format_citations_as_markdown([{"url": u} for u in urls]) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com", "example.com"),
        ("https://example.com/page", "example.com"),
        ("http://www.example.com/page", "example.com"),
        ("example.com/page", "example.com"),
        ("https://sub.example.com/page", "sub.example.com"),
        ("https://example.com:8080/page", "example.com:8080"),
    ],
)
def test_extract_domain(url, expected):
    assert extract_domain(url) == expected


OVERVIEW = """Here's an overview of AI:
1. Machine Learning - algorithms that learn from data
2. Neural Networks - systems inspired by the brain
3. Natural Language Processing - understanding human language"""


def _research_responder(n, req):
    if n == 1:
        return _response(OVERVIEW, [_citation("https://ai.example.com", "AI Overview")], req["model"])
    if n <= 4:
        return _response(
            "Detailed information about the subtopic...",
            [_citation("https://subtopic.example.com", "Subtopic Details")],
            req["model"],
        )
    return _response("In summary, AI encompasses various technologies...", model=req["model"])


def test_research_agent_full_run():
    client = FakeClient(_research_responder)
    agent = WebSearchHelper(client).create_research_agent("openai/gpt-4o")
    result = agent.research("Artificial Intelligence", 3)

    assert isinstance(result, ResearchResult)
    assert result.topic == "Artificial Intelligence"
    assert result.summary == "In summary, AI encompasses various technologies..."
    assert [s.title for s in result.sections] == [
        "Overview",
        "Machine Learning - algorithms that learn from data",
        "Neural Networks - systems inspired by the brain",
        "Natural Language Processing - understanding human language",
    ]
    assert result.sections[0].content == OVERVIEW
    assert len(result.citations) == 4
    assert [r["model"] for r in client.requests] == [
        "openai/gpt-4o:online",
        "openai/gpt-4o:online",
        "openai/gpt-4o:online",
        "openai/gpt-4o:online",
        "openai/gpt-4o",
    ]
    assert client.requests[0]["messages"][0]["role"] == "system"


def test_research_depth_limits_subtopics():
    client = FakeClient(_research_responder)
    result = ResearchAgent(client, "m").research("AI", 1)
    assert len(result.sections) == 2
    assert len(client.requests) == 3


def test_research_skips_failed_subtopics_and_summary():
    def responder(n, req):
        if n == 1:
            return _response(OVERVIEW, model=req["model"])
        raise ConnectionError("down")

    result = ResearchAgent(FakeClient(responder), "m").research("AI", 3)
    assert [s.title for s in result.sections] == ["Overview"]
    assert result.summary == ""
    assert result.citations == []


def test_research_initial_failure_raises():
    def responder(n, req):
        raise ConnectionError("down")

    with pytest.raises(RuntimeError, match="initial research failed: down"):
        ResearchAgent(FakeClient(responder), "m").research("AI", 2)


@pytest.mark.parametrize(
    "content, expected",
    [
        (
            "Overview:\n1. First topic\n2. Second topic\n3. Third topic",
            ["First topic", "Second topic", "Third topic"],
        ),
        (
            "Topics:\n• Topic A\n• Topic B\n- Topic C\n* Topic D",
            ["Topic A", "Topic B", "Topic C", "Topic D"],
        ),
        ("This is just plain text without any list", []),
    ],
)
def test_extract_subtopics(content, expected):
    agent = ResearchAgent(None, "")
    assert agent.extract_subtopics(_response(content), 10) == expected


def test_extract_subtopics_respects_max_count_and_empty_response():
    agent = ResearchAgent(None, "")
    assert agent.extract_subtopics(_response("- a\n- b\n- c"), 2) == ["a", "b"]
    assert agent.extract_subtopics({"choices": []}, 5) == []


@pytest.mark.parametrize(
    "content, expected",
    [
        ("Hello world", "Hello world"),
        ({"message": "Hello"}, '{"message": "Hello"}'),
        (None, ""),
        ("", ""),
        (42, "42"),
        (True, "true"),
    ],
)
def test_message_text(content, expected):
    assert message_text({"role": "assistant", "content": content}) == expected


def test_message_text_rejects_array_content():
    with pytest.raises(ValueError):
        message_text({"role": "assistant", "content": ["text", "parts"]})


def test_text_message_shape():
    assert text_message("user", "Hello world") == {"role": "user", "content": "Hello world"}