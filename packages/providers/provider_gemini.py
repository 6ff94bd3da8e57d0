"""
Gemini Completion Provider

Uses the google-genai async client. Text is read from response.text first,
then from the first candidate part when the convenience accessor is empty.
"""
from typing import Optional, Dict, Any

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from packages.providers.base import CompletionOptions, ProviderError

logger = structlog.get_logger()


class GeminiProvider:
    """Google Gemini completion provider."""

    LABEL = "Gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.3,
        client: Optional[genai.Client] = None,
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            model: Gemini model name
            temperature: Default sampling temperature
            client: Preconfigured client (tests inject a mock)
        """
        self.model = model
        self.default_options = CompletionOptions(temperature=temperature, max_tokens=2048)
        self.client = client or genai.Client(api_key=api_key)
        logger.info("gemini_provider_initialized", model=model)

    async def get_completion(
        self,
        prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """Get a completion; max_tokens is sent as max_output_tokens."""
        options = options or CompletionOptions()
        config = genai_types.GenerateContentConfig(
            temperature=options.temperature if options.temperature is not None else self.default_options.temperature,
            max_output_tokens=options.max_tokens or self.default_options.max_tokens,
        )

        logger.debug("gemini_completion_requested",
                    model=self.model,
                    prompt_chars=len(prompt),
                    temperature=config.temperature,
                    max_tokens=config.max_output_tokens)

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error("gemini_completion_failed", model=self.model, error=str(e))
            raise ProviderError(self.LABEL, str(e)) from e

        text = self._extract_text(response)

        if response.candidates:
            finish_reason = response.candidates[0].finish_reason
            if finish_reason == genai_types.FinishReason.MAX_TOKENS and text:
                logger.warning("gemini_response_truncated", model=self.model)

        if not text:
            logger.warning("gemini_empty_response", model=self.model)

        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        text = response.text
        if isinstance(text, str) and text:
            return text

        for candidate in response.candidates or []:
            content = candidate.content
            if content is None:
                continue
            for part in content.parts or []:
                if isinstance(part.text, str) and part.text:
                    return part.text

        return ""

    def capabilities(self) -> Dict[str, Any]:
        return {"id": "gemini", "label": self.LABEL, "models": [self.model]}
