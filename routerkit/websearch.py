"""Web search requests, citation handling and a multi-step research agent."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ANNOTATION_URL_CITATION = "url_citation"
ONLINE_SUFFIX = ":online"
VALID_CONTEXT_SIZES = frozenset({"low", "medium", "high"})

_RESEARCH_SYSTEM_PROMPT = (
    "You are a research assistant. Provide comprehensive, well-sourced information."
)


class ChatClient(Protocol):
    """Anything that can send a chat completion request and return the response."""

    def create_chat_completion(self, request: dict) -> dict:
        """Send a chat completion request (a JSON-shaped dict) and return the response dict."""


def text_message(role: str, text: str) -> dict:
    """Build a chat message with plain text content."""
    return {"role": role, "content": text}


def message_text(message: dict) -> str:
    """Return a message's content as text.

    String content is returned as is, missing or null content as an empty
    string, and other scalar or object content as its JSON text. Content that
    is a list of parts has no single text form and raises ValueError.
    """
    content = message.get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        raise ValueError("message content is an array of parts, not text")
    return json.dumps(content)


def _first_message(response: dict) -> Optional[dict]:
    choices = response.get("choices") or []
    if not choices:
        return None
    message = choices[0].get("message")
    return message if isinstance(message, dict) else None


def _safe_text(message: dict) -> str:
    try:
        return message_text(message)
    except ValueError:
        return ""


def extract_citations(response: dict) -> list[dict]:
    """Return the URL citations attached to the first choice of a response."""
    message = _first_message(response)
    if message is None:
        return []
    return [
        annotation["url_citation"]
        for annotation in message.get("annotations") or []
        if annotation.get("type") == ANNOTATION_URL_CITATION
        and annotation.get("url_citation") is not None
    ]


def extract_domain(url: str) -> str:
    """Return the host part of a URL, without scheme, path or a leading ``www.``."""
    domain = url.removeprefix("https://").removeprefix("http://")
    slash = domain.find("/")
    if slash > 0:
        domain = domain[:slash]
    return domain.removeprefix("www.")


def format_citations_as_markdown(citations: list[dict]) -> str:
    """Format citations as comma-separated markdown links labelled by domain."""
    return ", ".join(
        f"[{extract_domain(citation.get('url', ''))}]({citation.get('url', '')})"
        for citation in citations
    )


@dataclass
class SearchOptions:
    """Options for plugin-based web search; zero values mean the server default."""

    max_results: int = 0
    search_prompt: str = ""


@dataclass
class ResearchSection:
    """One titled section of a research result."""

    title: str
    content: str
    citations: list[dict] = field(default_factory=list)


@dataclass
class ResearchResult:
    """The collected output of a research run."""

    topic: str
    summary: str = ""
    sections: list[ResearchSection] = field(default_factory=list)
    citations: list[dict] = field(default_factory=list)


class WebSearchHelper:
    """Builds chat completion requests that use web search."""

    def __init__(self, client: ChatClient) -> None:
        self._client = client

    def create_with_web_search(
        self, prompt: str, model: str, opts: Optional[SearchOptions] = None
    ) -> dict:
        """Ask ``model`` with web search, via ``:online`` or a configured web plugin."""
        messages = [text_message(ROLE_USER, prompt)]
        if opts is None:
            return self._client.create_chat_completion(
                {"model": model + ONLINE_SUFFIX, "messages": messages}
            )

        plugin: dict[str, Any] = {"id": "web"}
        if opts.max_results > 0:
            plugin["max_results"] = opts.max_results
        if opts.search_prompt:
            plugin["search_prompt"] = opts.search_prompt
        return self._client.create_chat_completion(
            {"model": model, "messages": messages, "plugins": [plugin]}
        )

    def create_with_native_web_search(
        self, prompt: str, model: str, context_size: str = ""
    ) -> dict:
        """Ask a model with built-in search, optionally setting the search context size."""
        if context_size and context_size not in VALID_CONTEXT_SIZES:
            raise ValueError(
                f"invalid search context size: {context_size} "
                "(must be 'low', 'medium', or 'high')"
            )
        request: dict[str, Any] = {
            "model": model,
            "messages": [text_message(ROLE_USER, prompt)],
        }
        if context_size:
            request["web_search_options"] = {"search_context_size": context_size}
        return self._client.create_chat_completion(request)

    def create_research_agent(self, model: str) -> "ResearchAgent":
        """Return a research agent that uses this helper's client."""
        return ResearchAgent(self._client, model)


class ResearchAgent:
    """Researches a topic through an overview, subtopic searches and a summary."""

    def __init__(self, client: Optional[ChatClient], model: str) -> None:
        self._client = client
        self._model = model

    def _ask(self, model: str, *messages: dict) -> dict:
        if self._client is None:
            raise RuntimeError("research agent has no client")
        return self._client.create_chat_completion(
            {"model": model, "messages": list(messages)}
        )

    def research(self, topic: str, depth: int) -> ResearchResult:
        """Run the research process; only the initial search failing is an error."""
        result = ResearchResult(topic=topic)
        online = self._model + ONLINE_SUFFIX

        try:
            overview = self._ask(
                online,
                text_message(ROLE_SYSTEM, _RESEARCH_SYSTEM_PROMPT),
                text_message(
                    ROLE_USER,
                    f"Research the topic: {topic}. Provide an overview and identify "
                    f"{depth} key subtopics to explore further.",
                ),
            )
        except Exception as exc:
            raise RuntimeError(f"initial research failed: {exc}") from exc

        self._add_section(result, "Overview", overview)

        for subtopic in self.extract_subtopics(overview, depth)[: max(depth, 0)]:
            try:
                response = self._ask(
                    online,
                    text_message(
                        ROLE_USER,
                        f"Provide detailed information about: {subtopic} "
                        f"(in the context of {topic})",
                    ),
                )
            except Exception:
                continue
            self._add_section(result, subtopic, response)

        try:
            summary = self._ask(
                self._model,
                text_message(
                    ROLE_USER,
                    f"Based on the research about {topic}, provide a concise "
                    "summary of the key findings.",
                ),
            )
        except Exception:
            summary = None
        if summary is not None:
            message = _first_message(summary)
            if message is not None:
                result.summary = _safe_text(message)

        return result

    @staticmethod
    def _add_section(result: ResearchResult, title: str, response: dict) -> None:
        message = _first_message(response)
        if message is None:
            return
        citations = extract_citations(response)
        result.sections.append(ResearchSection(title, _safe_text(message), citations))
        result.citations.extend(citations)

    def extract_subtopics(self, response: dict, max_count: int) -> list[str]:
        """Pick up to ``max_count`` numbered or bulleted list items from a response."""
        message = _first_message(response)
        if message is None:
            return []

        subtopics: list[str] = []
        for raw in _safe_text(message).split("\n"):
            line = raw.strip()
            if not line:
                continue
            topic = ""
            if len(line) > 2 and line[1] == "." and "0" <= line[0] <= "9":
                topic = line[2:].strip()
            else:
                for bullet in ("•", "-", "*"):
                    if line.startswith(bullet):
                        topic = line.removeprefix(bullet).strip()
                        break
            if topic and len(subtopics) < max_count:
                subtopics.append(topic)
        return subtopics