# src/generation/generator.py - v1
"""Run the downstream generation call under the retry policy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nuggetwise.llm.retry import RetryConfig, with_retry

if TYPE_CHECKING:
    from nuggetwise.core.cancellation import CancelToken
    from nuggetwise.generation.base_client import BaseGenerationClient
    from nuggetwise.generation.models import GenerationResult


async def generate_with_retry(
    client: BaseGenerationClient,
    prompt_text: str,
    model_tier: str | None = None,
    config: RetryConfig | None = None,
    cancel_token: CancelToken | None = None,
) -> GenerationResult:
    """Generate code, retrying rate limits, timeouts and server errors.

    Raises:
        ProviderError: Terminal or exhausted failure, with the partial cost billed.
        OperationCancelled: The request deadline fired.
    """
    return await with_retry(
        client.generate,
        prompt_text,
        model_tier,
        operation=f"{client.provider_name}.generate",
        config=config,
        cancel_token=cancel_token,
    )
