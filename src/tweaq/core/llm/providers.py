# Tweaq Change Engine
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Tweaq Change Engine.
#
# Tweaq Change Engine is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Tweaq Change Engine -- LLM Provider Routing

The engine only ever needs one thing from a language model: given a prompt,
return text. TextGenerationProvider is that contract; ProviderTextGenerator
fulfils it over HTTP for every supported provider.

Failures surface as ProviderError after the retry wrapper gives up; the
Strategy Executor counts them as failed attempts.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx

from tweaq.core.errors import ProviderError
from tweaq.core.llm.config import ProviderConfig, load_provider_config, resolve_api_key
from tweaq.core.logging import get_logger

logger = logging.getLogger("tweaq.llm.providers")

# ── Retry configuration ──────────────────────────────────────────────────

API_MAX_RETRIES = 3
API_RETRY_DELAY_SECONDS = 2

_RETRYABLE_KEYWORDS = [
    "timeout",
    "timed out",
    "connection",
    "rate limit",
    "temporarily unavailable",
    "overloaded",
]

# ── OpenAI-compatible providers ──────────────────────────────────────────

_OPENAI_COMPATIBLE = {
    "openai": "https://api.openai.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "mistral": "https://api.mistral.ai/v1",
    "together": "https://api.together.xyz/v1",
}

OLLAMA_BASE_URL = "http://localhost:11434"
OLLAMA_TIMEOUT = 300
CLOUD_TIMEOUT = 120

DEFAULT_SYSTEM_PROMPT = (
    "You are a precise front-end code editor. You receive a complete source file and "
    "a change request, and you return the complete modified file. You never omit, "
    "summarise or reorder code you were not asked to change."
)


class TextGenerationProvider(Protocol):
    """Anything that turns a prompt into text."""

    async def generate_text(self, prompt: str) -> str: ...


# ── Async retry wrapper ──────────────────────────────────────────────────


async def retry_api_call(
    func: Callable[[], Awaitable[str]],
    max_retries: int = API_MAX_RETRIES,
    delay_seconds: float = API_RETRY_DELAY_SECONDS,
    component: str = "api",
    provider: str = "",
) -> str:
    """Retry an async API call with exponential backoff; raise ProviderError when spent."""
    last_error: Exception | None = None
    last_status: int | None = None

    attempts_made = 0
    for attempt in range(max_retries):
        attempts_made = attempt + 1
        try:
            return await func()
        except httpx.HTTPStatusError as e:
            last_error = e
            last_status = e.response.status_code

            # Auth errors and missing models never get better on retry
            if last_status in (401, 403):
                logger.error("[%s] Auth error %d (not retrying)", component, last_status)
                raise ProviderError(
                    f"{provider or 'provider'} rejected the API key (HTTP {last_status})",
                    provider=provider,
                    status=last_status,
                ) from e
            if last_status == 404:
                logger.error("[%s] Resource not found: %s", component, str(e)[:200])
                raise ProviderError(
                    f"Model or endpoint not found (HTTP 404): {str(e)[:150]}",
                    provider=provider,
                    status=404,
                ) from e

            if last_status in (429, 500, 502, 503) and attempt < max_retries - 1:
                wait_time = delay_seconds * (2**attempt)
                logger.warning(
                    "[%s] Retrying in %.1fs (HTTP %d, attempt %d/%d)",
                    component,
                    wait_time,
                    last_status,
                    attempts_made,
                    max_retries,
                )
                await asyncio.sleep(wait_time)
                continue

            logger.error("[%s] HTTP %d after %d attempt(s)", component, last_status, attempts_made)
            break

        except (httpx.TransportError, KeyError, IndexError, ValueError) as e:
            last_error = e
            error_str = str(e).lower()
            retryable = isinstance(e, httpx.TransportError) or any(
                kw in error_str for kw in _RETRYABLE_KEYWORDS
            )
            if not retryable or attempt >= max_retries - 1:
                logger.error(
                    "[%s] API call failed after %d attempt(s): %s",
                    component,
                    attempts_made,
                    str(e)[:200],
                )
                break

            wait_time = delay_seconds * (2**attempt)
            logger.warning(
                "[%s] Retrying in %.1fs (attempt %d/%d): %s",
                component,
                wait_time,
                attempts_made,
                max_retries,
                str(e)[:100],
            )
            await asyncio.sleep(wait_time)

    raise ProviderError(
        f"API error after {attempts_made} attempt(s): {last_error}",
        provider=provider,
        status=last_status,
    )


# ── Provider-specific callers ────────────────────────────────────────────


async def _call_ollama(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Call a local Ollama model (non-streaming)."""
    url = f"{config.base_url or OLLAMA_BASE_URL}/api/chat"
    payload = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "stream": False,
        "options": {"num_predict": config.max_tokens, "temperature": config.temperature},
    }
    async with httpx.AsyncClient(timeout=OLLAMA_TIMEOUT, transport=transport) as client:
        resp = await client.post(url, json=payload)
        resp.raise_for_status()
        return resp.json().get("message", {}).get("content", "")


async def _call_openai_compatible(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Call OpenAI or any OpenAI-compatible provider."""
    base_url = config.base_url or _OPENAI_COMPATIBLE[config.provider]
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    payload = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }
    async with httpx.AsyncClient(timeout=CLOUD_TIMEOUT, transport=transport) as client:
        resp = await client.post(f"{base_url}/chat/completions", headers=headers, json=payload)
        resp.raise_for_status()
        data = resp.json()
        return data["choices"][0]["message"]["content"]


async def _call_anthropic(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Call Anthropic Claude API."""
    headers = {
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }
    payload = {
        "model": config.model,
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
        "system": system_prompt,
        "messages": [{"role": "user", "content": user_prompt}],
    }
    base_url = config.base_url or "https://api.anthropic.com"
    async with httpx.AsyncClient(timeout=CLOUD_TIMEOUT, transport=transport) as client:
        resp = await client.post(f"{base_url}/v1/messages", headers=headers, json=payload)
        resp.raise_for_status()
        data = resp.json()
        return data["content"][0]["text"]


async def _call_google(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Call Google Gemini API via REST (API key auth)."""
    base = config.base_url or "https://generativelanguage.googleapis.com/v1beta"
    url = f"{base}/models/{config.model}:generateContent"
    payload = {
        "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
        "generationConfig": {
            "maxOutputTokens": config.max_tokens,
            "temperature": config.temperature,
        },
    }
    async with httpx.AsyncClient(timeout=CLOUD_TIMEOUT, transport=transport) as client:
        resp = await client.post(url, params={"key": api_key}, json=payload)
        resp.raise_for_status()
        data = resp.json()
        return data["candidates"][0]["content"]["parts"][0]["text"]


# ── Unified call_provider ────────────────────────────────────────────────


async def call_provider(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    api_key: str | None = None,
    component: str = "provider",
    transport: httpx.AsyncBaseTransport | None = None,
    max_retries: int = API_MAX_RETRIES,
    retry_delay: float = API_RETRY_DELAY_SECONDS,
) -> str:
    """
    Async unified entry point for all LLM calls.

    Routes to the correct provider based on ProviderConfig, resolves the API
    key and wraps the call in retry_api_call.

    Returns:
        str: Model response text

    Raises:
        ProviderError: unknown provider, missing key, HTTP failure or empty reply
    """
    provider = config.provider
    logger.info(
        "[%s] Calling %s/%s (prompt=%d chars)", component, provider, config.model, len(user_prompt)
    )

    if provider == "ollama":

        async def _do():
            return await _call_ollama(config, system_prompt, user_prompt, transport)

    elif provider in ("openai", "anthropic", "google") or provider in _OPENAI_COMPATIBLE:
        key = resolve_api_key(provider, api_key)
        if not key:
            raise ProviderError(
                f"{provider} API key not configured. Set TWEAQ_{provider.upper()}_API_KEY "
                f"or add it to keys.json.",
                provider=provider,
            )

        if provider == "anthropic":

            async def _do():
                return await _call_anthropic(config, system_prompt, user_prompt, key, transport)

        elif provider == "google":

            async def _do():
                return await _call_google(config, system_prompt, user_prompt, key, transport)

        else:

            async def _do():
                return await _call_openai_compatible(config, system_prompt, user_prompt, key, transport)

    else:
        raise ProviderError(f"Unknown provider: {provider}", provider=provider)

    text = await retry_api_call(
        _do,
        max_retries=max_retries,
        delay_seconds=retry_delay,
        component=component,
        provider=provider,
    )
    if not text or not text.strip():
        raise ProviderError(f"{provider} returned an empty response", provider=provider)
    return text


# ── TextGenerationProvider over HTTP ─────────────────────────────────────


class ProviderTextGenerator:
    """TextGenerationProvider backed by a configured HTTP LLM provider."""

    def __init__(
        self,
        config: ProviderConfig | None = None,
        api_key: str | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = API_MAX_RETRIES,
        retry_delay: float = API_RETRY_DELAY_SECONDS,
    ):
        self.config = config or load_provider_config()
        self.api_key = api_key
        self.system_prompt = system_prompt
        self.transport = transport
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def generate_text(self, prompt: str) -> str:
        start = time.monotonic()
        try:
            text = await call_provider(
                self.config,
                self.system_prompt,
                prompt,
                api_key=self.api_key,
                component="Executor",
                transport=self.transport,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )
        except ProviderError as e:
            get_logger().llm(
                "Executor",
                model=self.config.model,
                latency_ms=int((time.monotonic() - start) * 1000),
                success=False,
                error=str(e)[:200],
            )
            raise
        get_logger().llm(
            "Executor",
            model=self.config.model,
            latency_ms=int((time.monotonic() - start) * 1000),
            prompt_chars=len(prompt),
            response_chars=len(text),
        )
        return text
