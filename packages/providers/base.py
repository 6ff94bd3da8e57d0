"""
Completion Provider Base Interface

Defines the contract for all AI text-completion backends (OpenAI, Gemini, Anthropic).
This allows swapping AI backends via configuration without changing calling code.
"""
from dataclasses import dataclass
from typing import Protocol, Optional, Dict, Any


@dataclass(frozen=True)
class CompletionOptions:
    """
    Sampling options for a single completion.

    Attributes:
        temperature: Sampling temperature, provider default when None
        max_tokens: Output token limit, translated to each SDK's parameter name
    """
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate ranges"""
        if self.temperature is not None and not 0 <= self.temperature <= 2:
            raise ValueError(f"Temperature must be 0-2, got {self.temperature}")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")


class ProviderError(Exception):
    """Transport or authentication failure while talking to an AI backend."""

    def __init__(self, label: str, message: str):
        super().__init__(f"Error while communicating with {label}: {message}")
        self.label = label


class ProviderConfigurationError(Exception):
    """AI provider is unknown or missing required configuration."""


class CompletionProvider(Protocol):
    """
    Protocol for AI completion providers.

    All providers must implement this interface to be usable by the
    expense account matcher and the provider registry.
    """

    async def get_completion(
        self,
        prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """
        Produce a completion for a prompt.

        Args:
            prompt: Full prompt text
            options: Sampling options (provider defaults when None)

        Returns:
            Completion text (may be empty)

        Raises:
            ProviderError: If the backend call fails
        """
        ...

    def capabilities(self) -> Dict[str, Any]:
        """
        Describe the provider for diagnostics.

        Returns:
            Dict with id, label and models
        """
        ...
