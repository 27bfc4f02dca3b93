"""LiteLLM client wrapper with API key validation.

Every generation call made by enrichment routes through this module.
LiteLLM's own retry is switched off (num_retries=0): retry and backoff are
owned by feedsync.enrich.retry so the per-record attempt budget stays exact.
"""

from __future__ import annotations

import os

import litellm

from feedsync.errors import GenerationBackendError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "bedrock": None,  # AWS credential chain, not a single env var
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def required_env_var(model: str) -> tuple[str, str | None]:
    """Return (provider, env var holding its key) for *model*; env var may be None."""
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    return provider, _PROVIDER_ENV.get(provider)


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider, env_var = required_env_var(model)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 300,
    temperature: float = 0.0,
    timeout: float | None = None,
    num_retries: int = 0,
) -> str:
    """Call litellm.completion() once. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature (0 = deterministic).
        timeout: Request timeout in seconds.
        num_retries: LiteLLM-level retries; keep 0 when an outer retry loop exists.

    Raises:
        GenerationBackendError: On any failure of the backend call.
    """
    try:
        response = litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            num_retries=num_retries,
        )
    except Exception as err:
        raise GenerationBackendError(f"{type(err).__name__}: {err}") from err
    return response.choices[0].message.content or ""


class LiteLLMGenerator:
    """Prompt-in, text-out callable bound to one model configuration."""

    def __init__(
        self,
        model: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        timeout: float | None = 30.0,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    def __call__(self, prompt: str) -> str:
        return complete(
            self.model,
            [{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
        )
