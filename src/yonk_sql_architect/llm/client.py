"""Async LLM client shared by the tagging and SQL generation oracles.

Supported providers:
- gemini: Google Generative Language REST API (generateContent)
- ollama: local Ollama /api/generate
- vllm: OpenAI-compatible completions served by vLLM
- openai: OpenAI-compatible chat completions (also Azure OpenAI, Groq, ...)

Usage:
    from yonk_sql_architect.llm import call_llm, call_llm_json

    text = await call_llm(prompt, system="You are a MySQL architect.")
    mapping = await call_llm_json(prompt)
"""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Default configuration (used when no config has been injected)
DEFAULT_LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "gemini"),
    "model": os.getenv("LLM_MODEL", "gemini-2.5-flash"),
    "base_url": os.getenv("LLM_BASE_URL", "https://generativelanguage.googleapis.com"),
    "api_key": os.getenv("LLM_API_KEY", os.getenv("GEMINI_API_KEY", "")),
    "temperature": 0.3,
    "max_tokens": 8192,
    "timeout": 120.0,
}

# Global config cache (set by the CLI / web app on startup)
_llm_config: dict[str, Any] | None = None


def set_llm_config(config: dict[str, Any]) -> None:
    """Set the global LLM configuration.

    Args:
        config: Dict with provider, model, base_url, api_key, temperature,
            max_tokens and timeout keys. Missing keys fall back to defaults.
    """
    global _llm_config
    _llm_config = {**DEFAULT_LLM_CONFIG, **config}
    logger.info(f"LLM config set: {_llm_config.get('provider')}/{_llm_config.get('model')}")


def get_llm_config() -> dict[str, Any]:
    """Get the active LLM configuration."""
    return _llm_config or DEFAULT_LLM_CONFIG


async def call_llm(
    prompt: str,
    system: str | None = None,
    json_mode: bool = False,
    config_override: dict[str, Any] | None = None
) -> str | None:
    """Call the configured LLM to generate text.

    Args:
        prompt: Prompt to send
        system: Optional system instruction
        json_mode: Ask the provider for a JSON response body
        config_override: Optional config to use instead of the global one

    Returns:
        Generated text or None on error
    """
    config = config_override or get_llm_config()

    provider = config.get("provider", "gemini")
    model = config.get("model")
    base_url = str(config.get("base_url", "")).rstrip("/")
    api_key = config.get("api_key") or ""
    temperature = config.get("temperature", 0.3)
    max_tokens = config.get("max_tokens", 2000)
    timeout = config.get("timeout", 120.0)

    logger.debug(f"Calling {provider}/{model} (json_mode={json_mode})")

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            if provider == "gemini":
                if not api_key:
                    logger.error("Gemini API key not configured (set LLM_API_KEY or GEMINI_API_KEY)")
                    return None
                generation_config: dict[str, Any] = {
                    "temperature": temperature,
                    "maxOutputTokens": max_tokens,
                }
                if json_mode:
                    generation_config["responseMimeType"] = "application/json"
                body: dict[str, Any] = {
                    "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                    "generationConfig": generation_config,
                }
                if system:
                    body["systemInstruction"] = {"parts": [{"text": system}]}
                response = await client.post(
                    f"{base_url}/v1beta/models/{model}:generateContent",
                    headers={"x-goog-api-key": api_key},
                    json=body
                )
                response.raise_for_status()
                candidates = response.json().get("candidates", [])
                if candidates:
                    parts = candidates[0].get("content", {}).get("parts", [])
                    return "".join(p.get("text", "") for p in parts)

            elif provider == "ollama":
                payload: dict[str, Any] = {
                    "model": model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {
                        "temperature": temperature,
                        "num_predict": max_tokens
                    }
                }
                if system:
                    payload["system"] = system
                if json_mode:
                    payload["format"] = "json"
                response = await client.post(f"{base_url}/api/generate", json=payload)
                response.raise_for_status()
                return response.json().get("response", "")

            elif provider == "vllm":
                api_key = api_key or os.getenv("VLLM_API_KEY", "local-key")
                full_prompt = f"{system}\n\n{prompt}" if system else prompt
                response = await client.post(
                    f"{base_url}/v1/completions",
                    headers={"Authorization": f"Bearer {api_key}"},
                    json={
                        "model": model,
                        "prompt": full_prompt,
                        "max_tokens": max_tokens,
                        "temperature": temperature
                    }
                )
                response.raise_for_status()
                choices = response.json().get("choices", [])
                if choices:
                    return choices[0].get("text", "")

            elif provider == "openai":
                api_key = api_key or os.getenv("OPENAI_API_KEY", "")
                if not api_key:
                    logger.error("OpenAI API key not configured (set LLM_API_KEY or OPENAI_API_KEY)")
                    return None
                messages = []
                if system:
                    messages.append({"role": "system", "content": system})
                messages.append({"role": "user", "content": prompt})
                payload = {
                    "model": model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature
                }
                if json_mode:
                    payload["response_format"] = {"type": "json_object"}
                response = await client.post(
                    f"{base_url}/v1/chat/completions",
                    headers={"Authorization": f"Bearer {api_key}"},
                    json=payload
                )
                response.raise_for_status()
                choices = response.json().get("choices", [])
                if choices:
                    return choices[0].get("message", {}).get("content", "")

            else:
                logger.error(f"Unknown LLM provider: {provider}")

    except Exception as e:
        logger.warning(f"LLM call failed ({provider}/{model}): {e}")

    return None


async def call_llm_json(
    prompt: str,
    system: str | None = None,
    config_override: dict[str, Any] | None = None
) -> dict[str, Any] | list | None:
    """Call LLM in JSON mode and parse the response.

    Returns:
        Parsed JSON or None on error
    """
    response = await call_llm(prompt, system=system, json_mode=True, config_override=config_override)
    if not response:
        return None

    return parse_json_response(response)


def parse_json_response(text: str) -> dict[str, Any] | list | None:
    """Parse JSON from LLM response.

    Handles various LLM output formats:
    - Direct JSON
    - JSON in markdown code blocks
    - JSON with surrounding text

    Args:
        text: Raw LLM response

    Returns:
        Parsed JSON or None
    """
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    for pattern in [r'\{[\s\S]*\}', r'\[[\s\S]*\]']:
        match = re.search(pattern, text)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass

    return None
