"""
OpenAI Completion Provider

Uses the Chat Completions API with a single user message.
"""
from typing import Optional, Dict, Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from packages.providers.base import CompletionOptions, ProviderError

logger = structlog.get_logger()


class OpenAiProvider:
    """OpenAI chat completion provider."""

    LABEL = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Chat model name
            temperature: Default sampling temperature
            client: Preconfigured client (tests inject a mock)
        """
        self.model = model
        self.default_options = CompletionOptions(temperature=temperature, max_tokens=2048)
        self.client = client or AsyncOpenAI(api_key=api_key)
        logger.info("openai_provider_initialized", model=model)

    async def get_completion(
        self,
        prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """Get a completion; max_tokens is sent as max_completion_tokens."""
        options = options or CompletionOptions()
        temperature = options.temperature if options.temperature is not None else self.default_options.temperature
        max_tokens = options.max_tokens or self.default_options.max_tokens

        logger.debug("openai_completion_requested",
                    model=self.model,
                    prompt_chars=len(prompt),
                    temperature=temperature,
                    max_tokens=max_tokens)

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_completion_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.error("openai_completion_failed", model=self.model, error=str(e))
            raise ProviderError(self.LABEL, str(e)) from e

        text = response.choices[0].message.content or ""

        if response.usage is not None:
            logger.info("openai_completion_complete",
                       model=self.model,
                       input_tokens=response.usage.prompt_tokens,
                       output_tokens=response.usage.completion_tokens)

        return text

    def capabilities(self) -> Dict[str, Any]:
        return {"id": "openai", "label": self.LABEL, "models": [self.model]}
