"""
AI Completion Providers

Provides pluggable text-completion backends behind one interface.

Main entry point:
    from packages.providers import create_provider_from_config, CompletionOptions

    provider = create_provider_from_config()
    text = await provider.get_completion(prompt, CompletionOptions(temperature=0.2, max_tokens=2048))

Available providers (AI_PROVIDER):
    - openai: OpenAI Chat Completions (OPENAI_API_KEY, OPENAI_MODEL)
    - gemini: Google Gemini (GEMINI_API_KEY, GEMINI_MODEL)
    - anthropic: Anthropic Claude (ANTHROPIC_API_KEY, ANTHROPIC_MODEL)

SDK modules are imported lazily by the registry, so only the selected
backend's SDK is loaded.
"""
from packages.providers.base import (
    CompletionOptions,
    CompletionProvider,
    ProviderConfigurationError,
    ProviderError,
)
from packages.providers.registry import create_provider_from_config, list_providers

__all__ = [
    "CompletionOptions",
    "CompletionProvider",
    "ProviderConfigurationError",
    "ProviderError",
    "create_provider_from_config",
    "list_providers",
]
