"""
Search and web content tools.

The host performs the actual search, page fetch, summarization or PDF
analysis; these tools only validate input and emit the request intent.
"""
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from voxa.tools.tool_base import ToolBase
from voxa.tools.window_tools import new_window_id

SEARCH_RESULTS_TYPE = "search-results"

_URL_IN_TEXT_RE = re.compile(r"https?://[^\s)]+")


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def decode_redirect(url: str) -> str:
    """Unwrap a DuckDuckGo-style redirect link (uddg=<target>)"""
    query = parse_qs(urlparse(url).query)
    target = query.get("uddg")
    if target and target[0]:
        return target[0]
    return url


def _webview_intent(url: str, title: Optional[str]) -> Dict[str, Any]:
    window_id = new_window_id()
    return {
        "windowId": window_id,
        "url": url,
        "intents": [ToolBase.intent(
            "open_window",
            id=window_id,
            type="webview",
            title=title or url,
            content=url,
            context={"title": title or url, "type": "webview", "metadata": {"url": url}},
        )],
    }


class SearchTool(ToolBase):
    """Ask the host to run a web search and show the results in a new window"""

    def __init__(self):
        super().__init__()
        self._name = "search"
        self._description = (
            "Performs a web-grounded search and displays results in a new window. Use for queries "
            "like \"search for [topic]\" or \"find information about [subject]\"."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1, "description": "The search query or topic to research"},
            },
            "required": ["query"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        query = " ".join((kwargs.get("query") or "").split())
        if not query:
            return self.error("invalid_args", "query is required")
        window_id = new_window_id()
        return {
            "query": query,
            "windowId": window_id,
            "intents": [self.intent("search", query=query, windowId=window_id, windowType=SEARCH_RESULTS_TYPE)],
        }


class OpenWebviewTool(ToolBase):
    """Show a URL inside a sandboxed webview window"""

    def __init__(self):
        super().__init__()
        self._name = "open_webview"
        self._description = "Opens a sandboxed webview to display a URL inside a window. Use this to show a webpage."
        self._args_schema = {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL to load in the webview"},
                "title": {"type": "string", "description": "Optional window title"},
            },
            "required": ["url"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        url = (kwargs.get("url") or "").strip()
        if not _is_http_url(url):
            return self.error("invalid_args", f"Not an http(s) URL: {url!r}")
        return _webview_intent(url, kwargs.get("title"))


class OpenSearchResultTool(ToolBase):
    """Open the n-th link of the most recent search-results window"""

    def __init__(self, windows):
        super().__init__()
        self._name = "open_search_result"
        self._description = (
            "Opens one of the links from the most recent search result. Use for commands like "
            "\"open the first link\" or \"show me the third result\"."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "index": {"type": "integer", "minimum": 1, "description": "1-based index of the result (default 1)"},
                "url": {"type": "string", "description": "Direct result URL, when known"},
                "title": {"type": "string", "description": "Optional window title"},
            },
            "required": [],
            "additionalProperties": False,
        }
        self._windows = windows

    def _result_urls(self) -> Optional[List[str]]:
        results = self._windows.get_by_type(SEARCH_RESULTS_TYPE)
        if not results:
            return None
        newest = max(results, key=lambda w: w.created_at)

        structured = newest.metadata.get("results")
        if isinstance(structured, list):
            urls = [r.get("url") for r in structured if isinstance(r, dict) and isinstance(r.get("url"), str)]
            if urls:
                return [decode_redirect(u) for u in urls]
        return [decode_redirect(u) for u in _URL_IN_TEXT_RE.findall(newest.content or "")]

    def run(self, **kwargs) -> Dict[str, Any]:
        title = kwargs.get("title")
        if kwargs.get("url"):
            url = decode_redirect(kwargs["url"].strip())
            if not _is_http_url(url):
                return self.error("invalid_args", f"Not an http(s) URL: {url!r}")
            return _webview_intent(url, title)

        urls = self._result_urls()
        if urls is None:
            return self.error("no_target", "No recent search results found")
        index = int(kwargs.get("index") or 1)
        if index > len(urls):
            return self.error("no_target", "Requested result not found")
        return _webview_intent(urls[index - 1], title)


class SummarizeArticleTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "summarize_article"
        self._description = (
            "Reads a URL, extracts the main content, and generates a concise bullet-point summary "
            "in a new window."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Article URL to read and summarize"},
            },
            "required": ["url"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        url = (kwargs.get("url") or "").strip()
        if not _is_http_url(url):
            return self.error("invalid_args", f"Not an http(s) URL: {url!r}")
        window_id = new_window_id()
        return {
            "windowId": window_id,
            "url": url,
            "intents": [self.intent("summarize_article", url=url, windowId=window_id)],
        }


class AnalyzePdfTool(ToolBase):
    def __init__(self):
        super().__init__()
        self._name = "analyze_pdf"
        self._description = (
            "Prompts the user to upload a PDF file, then analyzes and summarizes its content in a new window."
        )
        self._args_schema = {
            "type": "object",
            "properties": {
                "prompt": {"type": "string", "description": "A question or prompt about the PDF content"},
            },
            "required": ["prompt"],
            "additionalProperties": False,
        }

    def run(self, **kwargs) -> Dict[str, Any]:
        prompt = (kwargs.get("prompt") or "").strip() or "Summarize this document."
        return {"prompt": prompt, "intents": [self.intent("analyze_pdf", prompt=prompt)]}
