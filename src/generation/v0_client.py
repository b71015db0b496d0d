# src/generation/v0_client.py - v1
"""v0 Platform API client implementing BaseGenerationClient.

Creates one chat per builder prompt and returns the files of its latest
version. HTTP and transport failures are translated into classified
``ProviderCallError`` instances; the retry policy lives in the caller.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import httpx

from nuggetwise.core.errors import ProviderCallError
from nuggetwise.generation.base_client import BaseGenerationClient
from nuggetwise.generation.models import GeneratedFile, GenerationResult

if TYPE_CHECKING:
    from nuggetwise.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM = "You are an expert React developer. Generate clean, modern, accessible components."


class V0Client(BaseGenerationClient):
    """Client for the v0 chats endpoint.

    Args:
        api_key: Bearer token.
        base_url: API root, e.g. https://api.v0.dev/v1.
        model_id: Default model tier.
        timeout_s: Per-request HTTP timeout.
        cost_per_1k_tokens: Price used to cost a call.
        estimated_tokens: Token count assumed when the reply carries no usage.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.v0.dev/v1",
        model_id: str = "v0-1.5-sm",
        timeout_s: float = 120.0,
        cost_per_1k_tokens: Decimal = Decimal("0.02"),
        estimated_tokens: int = 1000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model_id = model_id
        self._timeout_s = timeout_s
        self._cost_per_1k = Decimal(cost_per_1k_tokens)
        self._estimated_tokens = estimated_tokens
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> V0Client:
        return cls(
            api_key=settings.v0_api_key,
            base_url=settings.v0_base_url,
            model_id=settings.v0_model_id,
            timeout_s=settings.v0_request_timeout_s,
            cost_per_1k_tokens=settings.generation_cost_per_1k_tokens,
            estimated_tokens=settings.generation_estimated_tokens,
        )

    @property
    def provider_name(self) -> str:
        return "v0"

    def estimated_cost(self) -> Decimal:
        return self._cost_for(self._estimated_tokens)

    async def generate(self, prompt_text: str, model_tier: str | None = None) -> GenerationResult:
        if not self._api_key:
            raise ProviderCallError("V0_API_KEY is not configured", kind="authentication")

        model_id = model_tier or self._model_id
        body = {
            "message": prompt_text,
            "system": DEFAULT_SYSTEM,
            "modelConfiguration": {
                "modelId": model_id,
                "imageGenerations": False,
                "thinking": False,
            },
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                resp = await client.post(f"{self._base_url}/chats", json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise ProviderCallError(f"v0 request timed out: {exc}", kind="timeout") from exc
        except httpx.TransportError as exc:
            raise ProviderCallError(f"v0 transport error: {exc}", kind="timeout") from exc

        if resp.status_code >= 400:
            raise _status_error(resp)

        try:
            data = resp.json()
            chat_id = data["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ProviderCallError(
                f"v0 returned an unreadable body: {exc}",
                kind="malformed_response",
                billed_cost=self.estimated_cost(),
                status_code=resp.status_code,
            ) from exc

        result = self._to_result(chat_id, data, model_id)
        logger.info(
            "v0 generation %s: %d file(s), cost=%s", chat_id, len(result.files), result.cost
        )
        return result

    def _to_result(self, chat_id: str, data: dict[str, Any], model_id: str) -> GenerationResult:
        latest = data.get("latestVersion") or {}
        files = [
            GeneratedFile(
                name=f.get("name") or f"Component{i + 1}",
                content=f.get("content") or "",
                path=f.get("path"),
            )
            for i, f in enumerate(latest.get("files") or [])
        ]
        chat_url = data.get("url") or f"https://v0.dev/chat/{chat_id}"
        usage = data.get("usage") or {}
        tokens = usage.get("totalTokens") or usage.get("total_tokens") or self._estimated_tokens
        return GenerationResult(
            id=chat_id,
            preview_url=latest.get("demoUrl") or chat_url,
            project_url=chat_url,
            files=files,
            cost=self._cost_for(int(tokens)),
            model_tier=model_id,
        )

    def _cost_for(self, tokens: int) -> Decimal:
        return self._cost_per_1k * tokens / 1000


def _status_error(resp: httpx.Response) -> ProviderCallError:
    status = resp.status_code
    detail = resp.text[:200]
    if status in (401, 403):
        kind = "authentication"
    elif status == 429:
        kind = "rate_limit"
    elif status == 408:
        kind = "timeout"
    elif status >= 500:
        kind = "server_error"
    else:
        kind = "unknown"
    return ProviderCallError(f"v0 API error {status}: {detail}", kind=kind, status_code=status)
