"""
Anthropic Completion Provider

Uses the Claude Messages API. Token usage is logged with an approximate
cost so AI spend per resolution can be followed in the logs.
"""
from decimal import Decimal
from typing import Optional, Dict, Any

import anthropic
import structlog

from packages.providers.base import CompletionOptions, ProviderError

logger = structlog.get_logger()


class AnthropicProvider:
    """Anthropic Claude completion provider."""

    LABEL = "Anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5",
        temperature: float = 0.0,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Claude model name
            temperature: Default sampling temperature
            client: Preconfigured client (tests inject a mock)
        """
        self.model = model
        self.default_options = CompletionOptions(temperature=temperature, max_tokens=1024)
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

        # Cost per token (Claude Sonnet pricing)
        self.input_cost_per_1k = Decimal("0.003")
        self.output_cost_per_1k = Decimal("0.015")

        logger.info("anthropic_provider_initialized", model=model)

    async def get_completion(
        self,
        prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """Get a completion; max_tokens is required by the Messages API."""
        options = options or CompletionOptions()
        temperature = options.temperature if options.temperature is not None else self.default_options.temperature
        max_tokens = options.max_tokens or self.default_options.max_tokens

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ]
            )
        except anthropic.APIError as e:
            logger.error("anthropic_completion_failed", model=self.model, error=str(e))
            raise ProviderError(self.LABEL, str(e)) from e

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        logger.info("anthropic_completion_complete",
                   model=self.model,
                   input_tokens=input_tokens,
                   output_tokens=output_tokens,
                   cost_usd=float(self._calculate_cost(input_tokens, output_tokens)))

        return "".join(block.text for block in response.content if block.type == "text")

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> Decimal:
        input_cost = (Decimal(input_tokens) / 1000) * self.input_cost_per_1k
        output_cost = (Decimal(output_tokens) / 1000) * self.output_cost_per_1k
        return input_cost + output_cost

    def capabilities(self) -> Dict[str, Any]:
        return {"id": "anthropic", "label": self.LABEL, "models": [self.model]}
