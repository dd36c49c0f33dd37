[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "routerkit"
version = "0.1.0"
description = "Server-sent event parsing, cancellable streams and web-search helpers for chat-completion APIs"
requires-python = ">=3.10"
dependencies = []
keywords = ["sse", "server-sent events", "streaming", "chat completions", "llm", "web search", "citations"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["routerkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
