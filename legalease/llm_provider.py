from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, request

from legalease.config import Settings
from legalease.errors import ConfigurationError, EmptyResponse, RemoteServiceError

logger = logging.getLogger(__name__)


def _collect_gemini_text(response_payload: dict[str, Any]) -> str | None:
    candidates = response_payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None

    parts = (candidates[0].get("content") or {}).get("parts") or []
    extracted: list[str] = []
    for part in parts:
        text = part.get("text") if isinstance(part, dict) else None
        if isinstance(text, str) and text.strip():
            extracted.append(text.strip())

    if extracted:
        return "\n".join(extracted)
    return None


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=body, headers=headers, method="POST")
    with request.urlopen(req, timeout=timeout) as response:
        response_body = response.read().decode("utf-8")
    return json.loads(response_body)


def _http_error_message(exc: error.HTTPError) -> str:
    try:
        response_body = exc.read().decode("utf-8", errors="replace").strip()
    except Exception:
        response_body = ""

    if response_body:
        try:
            parsed = json.loads(response_body)
        except json.JSONDecodeError:
            return response_body[:200]
        if isinstance(parsed, dict):
            error_payload = parsed.get("error")
            if isinstance(error_payload, dict):
                message = error_payload.get("message")
                if isinstance(message, str) and message.strip():
                    return message.strip()
        return response_body[:200]

    return exc.reason if isinstance(exc.reason, str) and exc.reason else "request failed"


class GeminiClient:
    """Thin wrapper over the Gemini ``generateContent`` endpoint.

    One call per ``generate``; retries are left to the caller.
    """

    def __init__(self, settings: Settings):
        if not settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable is required")
        self.settings = settings

    @property
    def endpoint(self) -> str:
        return f"{self.settings.gemini_api_url}/models/{self.settings.gemini_model}:generateContent"

    def generate(self, parts: list[dict[str, Any]], generation_config: dict[str, Any]) -> str:
        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": dict(generation_config),
        }
        url = f"{self.endpoint}?key={self.settings.gemini_api_key}"

        try:
            response_payload = _post_json(
                url,
                payload,
                {"Content-Type": "application/json"},
                self.settings.timeout_seconds,
            )
        except error.HTTPError as exc:
            message = _http_error_message(exc)
            logger.error("Gemini request failed with HTTP %s: %s", exc.code, message)
            raise RemoteServiceError(exc.code, message) from exc
        except (error.URLError, TimeoutError, OSError) as exc:
            reason = getattr(exc, "reason", None) or exc
            logger.error("Gemini request failed before receiving a response: %s", reason)
            raise RemoteServiceError(None, f"network error: {reason}") from exc
        except json.JSONDecodeError as exc:
            raise EmptyResponse("Gemini response was not valid JSON.") from exc

        if not isinstance(response_payload, dict):
            raise EmptyResponse("Gemini response was not a JSON object.")

        text = _collect_gemini_text(response_payload)
        if not text:
            raise EmptyResponse("No response received from Gemini API")
        return text
