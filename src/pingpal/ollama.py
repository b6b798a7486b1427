"""Minimal Ollama client used as the inference collaborator."""

from typing import Any

import requests


class InferenceError(RuntimeError):
    """Raised when the model call fails or returns an unexpected envelope."""


class OllamaClient:
    def __init__(self, url: str, model: str, timeout: float) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._timeout = timeout

    def infer(self, prompt: str, schema: dict) -> Any:
        """Send ``prompt`` with structured-output ``schema``; return the reply.

        The reply is the ``message.content`` value exactly as Ollama sent it,
        usually a JSON string. Decoding it is the caller's job.
        """
        body = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "format": schema,
            "stream": False,
        }

        try:
            resp = requests.post(
                f"{self._url}/api/chat",
                json=body,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise InferenceError(f"Ollama request failed: {exc}") from exc
        except ValueError as exc:
            raise InferenceError(f"Ollama returned invalid JSON: {exc}") from exc

        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise InferenceError(f"unexpected Ollama response: {data!r}") from exc
