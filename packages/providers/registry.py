"""
Completion Provider Registry

Creates the configured AI provider from settings.
Implements the strategy pattern for AI backend selection.
"""
from typing import Callable, Dict, List, Optional

import structlog

from packages.common.config import Settings, get_settings
from packages.providers.base import CompletionProvider, ProviderConfigurationError

logger = structlog.get_logger()


def _create_openai(settings: Settings) -> CompletionProvider:
    if not settings.openai_api_key:
        raise ProviderConfigurationError(
            "Provider 'openai' is missing required configuration: OPENAI_API_KEY"
        )
    # Lazy import to avoid loading unused SDKs
    from packages.providers.provider_openai import OpenAiProvider
    return OpenAiProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        temperature=settings.openai_temperature,
    )


def _create_gemini(settings: Settings) -> CompletionProvider:
    if not settings.gemini_api_key:
        raise ProviderConfigurationError(
            "Provider 'gemini' is missing required configuration: GEMINI_API_KEY"
        )
    from packages.providers.provider_gemini import GeminiProvider
    return GeminiProvider(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        temperature=settings.gemini_temperature,
    )


def _create_anthropic(settings: Settings) -> CompletionProvider:
    if not settings.anthropic_api_key:
        raise ProviderConfigurationError(
            "Provider 'anthropic' is missing required configuration: ANTHROPIC_API_KEY"
        )
    from packages.providers.provider_anthropic import AnthropicProvider
    return AnthropicProvider(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        temperature=settings.anthropic_temperature,
    )


PROVIDER_FACTORIES: Dict[str, Callable[[Settings], CompletionProvider]] = {
    "openai": _create_openai,
    "gemini": _create_gemini,
    "anthropic": _create_anthropic,
}


def list_providers() -> List[str]:
    """Names accepted by AI_PROVIDER."""
    return list(PROVIDER_FACTORIES.keys())


def create_provider_from_config(settings: Optional[Settings] = None) -> CompletionProvider:
    """
    Create the AI provider selected by AI_PROVIDER.

    Args:
        settings: Settings to use (defaults to cached environment settings)

    Returns:
        Configured CompletionProvider

    Raises:
        ProviderConfigurationError: If the provider is unknown or misconfigured
    """
    settings = settings or get_settings()
    selected = settings.ai_provider
    factory = PROVIDER_FACTORIES.get(selected)

    if factory is None:
        raise ProviderConfigurationError(
            f"AI_PROVIDER '{selected}' is not supported. "
            f"Supported providers: {', '.join(list_providers())}"
        )

    provider = factory(settings)
    logger.info("ai_provider_created", provider=selected)
    return provider
