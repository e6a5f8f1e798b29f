"""OpenAI-compatible chat completions provider (OpenAI, Ollama, vLLM, etc.)."""

from __future__ import annotations

import logging

import httpx

from curator.llm import register_provider
from curator.llm.base import BaseLLMProvider, LLMResponse
from curator.retry import retry_async

logger = logging.getLogger(__name__)


@register_provider("openai_compatible")
class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat completions against any OpenAI-compatible endpoint.

    With ``json_mode`` the request asks for a JSON object reply. Replies that
    stop on the token limit are rejected rather than returned half-written.
    """

    @property
    def provider_name(self) -> str:
        return "openai_compatible"

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        model = model or self.default_model
        return await retry_async(
            self._do_complete, prompt, system, model,
            temperature, max_tokens,
            max_retries=self.max_retries,
        )

    async def _do_complete(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        url = f"{self.base_url.rstrip('/')}/chat/completions"

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        choice = data["choices"][0]
        content = choice["message"].get("content")
        if not content:
            raise ValueError("Empty completion from LLM provider")
        if choice.get("finish_reason") == "length":
            # Cut off mid-reply
            raise ValueError(f"Completion truncated at max_tokens={max_tokens}")

        usage = data.get("usage") or {}
        logger.debug(
            "Completion from %s: %s prompt / %s completion tokens",
            model, usage.get("prompt_tokens"), usage.get("completion_tokens"),
        )
        return LLMResponse(
            text=content,
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            model=model,
        )
