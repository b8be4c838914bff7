"""HTTP client for a local Ollama server (generation, chat, embeddings and model management)."""

import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

import requests

from storyforge.config import DEFAULT_OLLAMA_BASE_URL, DEFAULT_OLLAMA_MODEL, Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class OllamaClient:
    """Thin wrapper over the Ollama REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_BASE_URL,
        model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "http://localhost:11434/api/".
            model: Default model for requests that do not name one.
            timeout: Request timeout in seconds.
            session: Optional requests session (one is created if omitted).
        """
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.model = model or DEFAULT_OLLAMA_MODEL
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "OllamaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _url(self, endpoint: str) -> str:
        return self.base_url + endpoint

    def _post(self, endpoint: str, body: Dict[str, Any], stream: bool = False) -> requests.Response:
        response = self.session.post(
            self._url(endpoint), json=body, timeout=self.timeout, stream=stream
        )
        response.raise_for_status()
        return response

    def _get(self, endpoint: str) -> requests.Response:
        response = self.session.get(self._url(endpoint), timeout=self.timeout)
        response.raise_for_status()
        return response

    def _request_body(self, model: Optional[str], options: Optional[Dict[str, Any]], format: Optional[str], **fields) -> Dict[str, Any]:
        body: Dict[str, Any] = {"model": model or self.model}
        body.update(fields)
        if options is not None:
            body["options"] = options
        if format is not None:
            body["format"] = format
        return body

    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        format: Optional[str] = None,
        suffix: Optional[str] = None,
    ) -> str:
        """
        Produce a single completion for ``prompt`` (``POST generate``, not streamed).

        Args:
            prompt: Input prompt.
            model: Model override.
            options: Model parameters such as temperature or top_p.
            format: Response format, e.g. "json".
            suffix: Text to place after the generated content.

        Returns:
            The ``response`` field, or the raw body if the field is absent.

        Raises:
            requests.HTTPError: On a non-2xx response.
        """
        body = self._request_body(model, options, format, prompt=prompt, stream=False)
        if suffix is not None:
            body["suffix"] = suffix
        logger.debug("POST generate (model=%s, %d prompt chars)", body["model"], len(prompt))
        response = self._post("generate", body)
        return _field_or_raw(response, "response")

    def chat(
        self,
        messages: Iterable[Dict[str, str]],
        model: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        format: Optional[str] = None,
    ) -> str:
        """
        Continue a conversation (``POST chat``, not streamed).

        Args:
            messages: Messages with "role" ("system", "user", "assistant") and "content".

        Returns:
            The assistant message content, or the raw body if it is absent.
        """
        body = self._request_body(model, options, format, messages=_message_list(messages), stream=False)
        response = self._post("chat", body)
        try:
            payload = response.json()
        except ValueError:
            return response.text
        message = payload.get("message") if isinstance(payload, dict) else None
        if isinstance(message, dict) and "content" in message:
            return message["content"] or ""
        return response.text

    def chat_stream(
        self,
        messages: Iterable[Dict[str, str]],
        model: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        format: Optional[str] = None,
    ) -> Iterator[str]:
        """Stream a chat reply, yielding each ``message.content`` piece as it arrives."""
        body = self._request_body(model, options, format, messages=_message_list(messages), stream=True)
        response = self._post("chat", body, stream=True)
        try:
            for line in response.iter_lines(decode_unicode=True):
                if not line:
                    continue
                payload = json.loads(line)
                message = payload.get("message")
                if isinstance(message, dict):
                    yield message.get("content") or ""
        finally:
            response.close()

    def list_models(self) -> List[str]:
        """Names of locally available models (``GET tags``)."""
        payload = self._get("tags").json()
        models = payload.get("models") or []
        return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]

    def show_model(self, model: str) -> Dict[str, Any]:
        """Model details: parameters, template, metadata (``POST show``)."""
        return self._post("show", {"model": model}).json()

    def pull_model(self, model: str) -> Dict[str, Any]:
        """Download a model from the registry (``POST pull``); returns the final status object."""
        return self._post("pull", {"model": model, "stream": False}).json()

    def delete_model(self, model: str) -> bool:
        """Delete a local model. Returns True on success; failures are reported, not raised."""
        response = self.session.delete(
            self._url("delete"), json={"model": model}, timeout=self.timeout
        )
        if not response.ok:
            logger.warning("Deleting model %s failed with status %s", model, response.status_code)
        return response.ok

    def embed(
        self,
        texts: List[str],
        model: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[List[float]]:
        """
        Embed texts (``POST embed``).

        Returns:
            One vector per input text, in input order.
        """
        body: Dict[str, Any] = {"model": model or self.model, "input": list(texts)}
        if options is not None:
            body["options"] = options
        payload = self._post("embed", body).json()
        embeddings = payload.get("embeddings") or []
        return [[float(x) for x in vector] for vector in embeddings]

    def version(self) -> str:
        """Server version string (``GET version``)."""
        return self._get("version").json().get("version", "")


def _message_list(messages: Iterable[Dict[str, str]]) -> List[Dict[str, str]]:
    return [{"role": m["role"], "content": m["content"]} for m in messages]


def _field_or_raw(response: requests.Response, field: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict) and field in payload:
        return payload[field] or ""
    return response.text


def create_client(settings: Settings, session: Optional[requests.Session] = None) -> OllamaClient:
    """Build an OllamaClient from application settings."""
    return OllamaClient(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        timeout=settings.request_timeout,
        session=session,
    )
