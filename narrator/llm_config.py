"""LLM provider/config and model construction for the narrator."""

import os
from typing import Any

# Type alias for model passed to Agent.run(); pydantic-ai accepts Model | str | None
ModelT = Any

# Default env var names
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"
ENV_GOOGLE_API_KEY = "GOOGLE_GENERATIVE_AI_API_KEY"
ENV_OLLAMA_BASE_URL = "OLLAMA_BASE_URL"
ENV_DEFAULT_PROVIDER = "DEFAULT_PROVIDER"
ENV_DEFAULT_MODEL = "DEFAULT_MODEL"

ANTHROPIC_OPENAI_BASE_URL = "https://api.anthropic.com/v1"
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def get_model_from_config(
    provider: str,
    model_name: str,
    api_key: str | None = None,
) -> ModelT:
    """
    Build a pydantic-ai Model instance for the given provider/model/api_key.
    If api_key is None, falls back to env (OPENAI_API_KEY, etc.).
    Raises ValueError when anthropic or gemini has no key at all.
    Every provider is reached through its OpenAI-compatible endpoint.
    """
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    key = api_key or _env_key_for_provider(provider)
    model_name = model_name or _default_model_for_provider(provider)

    if provider == "anthropic":
        return OpenAIChatModel(
            model_name,
            provider=OpenAIProvider(base_url=ANTHROPIC_OPENAI_BASE_URL, api_key=_require_key(provider, key)),
        )
    if provider in ("google", "gemini"):
        return OpenAIChatModel(
            model_name,
            provider=OpenAIProvider(base_url=GEMINI_OPENAI_BASE_URL, api_key=_require_key(provider, key)),
        )
    if provider == "ollama":
        # Local Ollama: OLLAMA_BASE_URL (default http://localhost:11434/v1), no API key
        base_url = os.environ.get(ENV_OLLAMA_BASE_URL, "http://localhost:11434/v1")
        return OpenAIChatModel(
            model_name,
            provider=OpenAIProvider(base_url=base_url, api_key=api_key or "ollama"),
        )
    return OpenAIChatModel(
        model_name,
        provider=OpenAIProvider(api_key=key) if key else OpenAIProvider(),
    )


def get_default_model() -> ModelT:
    """Model from DEFAULT_PROVIDER / DEFAULT_MODEL env vars."""
    provider = os.environ.get(ENV_DEFAULT_PROVIDER, "gemini")
    return get_model_from_config(provider, os.environ.get(ENV_DEFAULT_MODEL, ""))


def _env_key_for_provider(provider: str) -> str | None:
    if provider == "ollama":
        return None  # Local only; no key
    return os.environ.get(_env_name_for_provider(provider))


def _default_model_for_provider(provider: str) -> str:
    return os.environ.get(ENV_DEFAULT_MODEL) or {
        "openai": "gpt-4o-mini",
        "anthropic": "claude-3-5-haiku-20241022",
        "google": "gemini-2.0-flash",
        "gemini": "gemini-2.0-flash",
        "ollama": "llama3.2",
    }.get(provider, "gpt-4o-mini")


def _require_key(provider: str, key: str | None) -> str:
    """Non-OpenAI providers need their own key; never fall through to OpenAI's endpoint."""
    if not key:
        raise ValueError(f"No API key for provider {provider!r}; set {_env_name_for_provider(provider)}")
    return key


def _env_name_for_provider(provider: str) -> str:
    if provider == "anthropic":
        return ENV_ANTHROPIC_API_KEY
    if provider in ("google", "gemini"):
        return ENV_GOOGLE_API_KEY
    return ENV_OPENAI_API_KEY
