from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from sitegen.config import Settings

log = logging.getLogger(__name__)


class FailureKind(str, enum.Enum):
    RATE_LIMITED = "RateLimited"
    QUOTA_EXCEEDED = "QuotaExceeded"
    UPSTREAM_ERROR = "UpstreamError"
    TRANSPORT_ERROR = "TransportError"
    EMPTY_RESPONSE = "EmptyResponse"


@dataclass(frozen=True)
class GatewaySuccess:
    raw_text: str


@dataclass(frozen=True)
class GatewayFailure:
    kind: FailureKind
    http_status: Optional[int] = None
    detail: str = ""
    retry_after: Optional[str] = None


GatewayOutcome = Union[GatewaySuccess, GatewayFailure]


def _extract_message_text(payload: Any) -> Optional[str]:
    """Pull the assistant text out of a chat-completions envelope."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, list):
        # Content-part arrays: [{"type": "text", "text": "..."}]
        parts = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
            elif isinstance(part, str):
                parts.append(part)
        content = "".join(parts)
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class GatewayClient:
    """Single-shot client for an OpenAI-compatible chat-completions gateway.

    One POST per call, no retries and no fallback models. Every way the call
    can go wrong comes back as a GatewayFailure instead of an exception.
    """

    def __init__(self, settings: Settings) -> None:
        if not settings.api_key:
            raise ValueError("gateway API key is not configured")
        self.settings = settings

    def _request_body(self, system: str, user: str) -> Dict[str, Any]:
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

    def complete(self, system: str, user: str) -> GatewayOutcome:
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(
                self.settings.gateway_url,
                headers=headers,
                json=self._request_body(system, user),
                timeout=self.settings.timeout_secs,
            )
        except requests.RequestException as exc:
            log.warning("Gateway request error: %r", exc)
            return GatewayFailure(FailureKind.TRANSPORT_ERROR, detail=str(exc))

        status = resp.status_code
        if not 200 <= status < 300:
            try:
                msg = resp.text[:400]
            except Exception:
                msg = str(status)
            log.warning("Gateway HTTP %s: %s", status, msg)
            if status == 429:
                return GatewayFailure(
                    FailureKind.RATE_LIMITED,
                    http_status=status,
                    detail=msg,
                    retry_after=resp.headers.get("Retry-After"),
                )
            if status == 402:
                return GatewayFailure(FailureKind.QUOTA_EXCEEDED, http_status=status, detail=msg)
            return GatewayFailure(FailureKind.UPSTREAM_ERROR, http_status=status, detail=msg)

        try:
            data = resp.json()
        except ValueError:
            log.warning("Gateway: non-JSON HTTP body")
            return GatewayFailure(FailureKind.EMPTY_RESPONSE, http_status=status, detail="non-JSON body")

        text = _extract_message_text(data)
        if text is None:
            log.warning("Gateway: empty response text")
            return GatewayFailure(FailureKind.EMPTY_RESPONSE, http_status=status, detail="no message content")
        return GatewaySuccess(raw_text=text)
