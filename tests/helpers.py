"""Test doubles for the HTTP layer, the LLM and the embedder."""

import json
from typing import Any, Callable, Dict, List, Optional, Union

import requests


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        text: Optional[str] = None,
        lines: Optional[List[str]] = None,
        encoding: Optional[str] = "utf-8",
    ):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self._lines = lines or []
        self.encoding = encoding
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_lines(self, decode_unicode: bool = False):
        yield from self._lines

    def close(self) -> None:
        self.closed = True


Handler = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


class FakeSession:
    """Records requests and answers them from a URL -> response table."""

    def __init__(self, routes: Optional[Dict[str, Handler]] = None):
        self.routes: Dict[str, Handler] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def _respond(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        handler = self.routes.get(url)
        if handler is None:
            return FakeResponse(status_code=404, text="not found")
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(method=method, url=url, **kwargs)
        return handler

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self._respond("POST", url, **kwargs)

    def delete(self, url: str, **kwargs) -> FakeResponse:
        return self._respond("DELETE", url, **kwargs)

    def close(self) -> None:
        self.closed = True


class FakeLLM:
    """Returns canned replies in order and records every prompt it was given."""

    def __init__(self, replies: List[str]):
        self.replies = list(replies)
        self.prompts: List[str] = []
        self.options: List[Optional[Dict[str, Any]]] = []

    def generate(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        self.prompts.append(prompt)
        self.options.append(options)
        if not self.replies:
            raise AssertionError("FakeLLM ran out of replies")
        return self.replies.pop(0)


def keyword_embedder(keywords: List[str]) -> Callable[[List[str]], List[List[float]]]:
    """Embedder that counts occurrences of each keyword (case-insensitive), one dimension per keyword."""

    def embed(texts: List[str]) -> List[List[float]]:
        return [[float(text.lower().count(word)) for word in keywords] for text in texts]

    return embed
