"""Generative backend clients.

Every component that needs synthesis talks to a ``GenerativeBackend``: a
system prompt, a user prompt and (for structured output) an Anthropic-style
tool definition whose ``input_schema`` is the output contract. Model ids are
written as ``provider/model`` (``anthropic/claude-sonnet-4-20250514``,
``openai/gpt-4o-mini``) and resolved with ``get_backend()``.

There is no retry or backoff here; callers wrap the core with their own
retry/timeout policy.
"""

import json
import re
import time
from typing import Any, Protocol

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.llm_usage import log_llm_usage


class GenerativeBackend(Protocol):
    """Narrow seam around the structured-text-generation service."""

    async def complete_structured(
        self,
        system: str,
        prompt: str,
        tool: dict[str, Any],
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ) -> dict[str, Any]:
        """Return the tool input produced by the model (schema-shaped dict)."""
        ...

    async def complete_text(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> str:
        """Return a free-text completion."""
        ...


class AnthropicBackend:
    """Backend over ``anthropic.AsyncAnthropic`` using forced tool_use."""

    provider = "anthropic"

    def __init__(self, model: str, api_key: str | None = None, timeout: float | None = None):
        self.model = model
        self._api_key = api_key
        self._timeout = timeout

    def _client(self):
        from anthropic import AsyncAnthropic

        settings = get_settings()
        return AsyncAnthropic(
            api_key=self._api_key or settings.ANTHROPIC_API_KEY,
            timeout=self._timeout or settings.LLM_TIMEOUT_SECONDS,
        )

    async def complete_structured(
        self,
        system: str,
        prompt: str,
        tool: dict[str, Any],
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ) -> dict[str, Any]:
        client = self._client()
        start = time.time()
        response = await client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            tools=[tool],
            tool_choice={"type": "tool", "name": tool["name"]},
        )
        self._log_usage(tool["name"], response, start)

        for block in response.content:
            if block.type == "tool_use" and block.name == tool["name"]:
                data = block.input
                # Handle API returning the payload as a JSON string
                if isinstance(data, str):
                    data = parse_llm_json_dict(data)
                return data

        raise ValueError(f"No tool_use block for {tool['name']} in response")

    async def complete_text(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> str:
        client = self._client()
        start = time.time()
        response = await client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        self._log_usage("complete_text", response, start)
        return "".join(
            block.text for block in response.content if isinstance(getattr(block, "text", None), str)
        )

    def _log_usage(self, chain: str, response: Any, start: float) -> None:
        usage = getattr(response, "usage", None)
        log_llm_usage(
            chain=chain,
            model=self.model,
            provider=self.provider,
            tokens_input=getattr(usage, "input_tokens", 0) or 0,
            tokens_output=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.time() - start) * 1000),
        )


class OpenAIBackend:
    """Backend over ``openai.AsyncOpenAI`` using a forced function call."""

    provider = "openai"

    def __init__(self, model: str, api_key: str | None = None, timeout: float | None = None):
        self.model = model
        self._api_key = api_key
        self._timeout = timeout

    def _client(self):
        from openai import AsyncOpenAI

        settings = get_settings()
        return AsyncOpenAI(
            api_key=self._api_key or settings.OPENAI_API_KEY,
            timeout=self._timeout or settings.LLM_TIMEOUT_SECONDS,
        )

    async def complete_structured(
        self,
        system: str,
        prompt: str,
        tool: dict[str, Any],
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ) -> dict[str, Any]:
        client = self._client()
        start = time.time()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            tools=[
                {
                    "type": "function",
                    "function": {
                        "name": tool["name"],
                        "description": tool.get("description", ""),
                        "parameters": tool["input_schema"],
                    },
                }
            ],
            tool_choice={"type": "function", "function": {"name": tool["name"]}},
        )
        self._log_usage(tool["name"], response, start)

        message = response.choices[0].message
        for call in message.tool_calls or []:
            if call.function.name == tool["name"]:
                return parse_llm_json_dict(call.function.arguments)

        # Some models answer in content despite the forced call
        if message.content:
            return parse_llm_json_dict(message.content)
        raise ValueError(f"No function call for {tool['name']} in response")

    async def complete_text(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> str:
        client = self._client()
        start = time.time()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self._log_usage("complete_text", response, start)
        return response.choices[0].message.content or ""

    def _log_usage(self, chain: str, response: Any, start: float) -> None:
        usage = getattr(response, "usage", None)
        log_llm_usage(
            chain=chain,
            model=self.model,
            provider=self.provider,
            tokens_input=getattr(usage, "prompt_tokens", 0) or 0,
            tokens_output=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.time() - start) * 1000),
        )


_PROVIDERS = {
    "anthropic": AnthropicBackend,
    "openai": OpenAIBackend,
}


def get_backend(model_id: str) -> GenerativeBackend:
    """
    Resolve a ``provider/model`` id to a backend instance.

    A bare model name is routed by prefix (``claude-`` to Anthropic,
    everything else to OpenAI).

    Raises:
        ValueError: If the provider is not supported
    """
    if "/" in model_id:
        provider, model = model_id.split("/", 1)
    else:
        provider = "anthropic" if model_id.startswith("claude-") else "openai"
        model = model_id

    backend_cls = _PROVIDERS.get(provider)
    if backend_cls is None:
        raise ValueError(f"Unsupported generative provider: {provider}")
    return backend_cls(model)


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the JSON is not an object
    """
    cleaned = _strip_llm_fences(raw_output)
    parsed = json.loads(cleaned)
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object")
    return parsed
