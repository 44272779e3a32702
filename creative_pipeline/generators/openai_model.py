import logging
from typing import Any, Optional

import openai
from openai import OpenAI

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import ConfigurationError
from creative_pipeline.engine.parsing import parse_json_response
from creative_pipeline.generators.base import TextModel
from creative_pipeline.utils.decorators import smart_retry

logger = logging.getLogger("CreativePipeline")


class OpenAITextModel(TextModel):
    """Chat-completions backend in JSON mode."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.model = model or settings.openai_model
        self.name = self.model
        if client is not None:
            self.client = client
            return
        key = api_key or settings.openai_api_key
        if not key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self.client = OpenAI(api_key=key, timeout=settings.call_timeout_seconds)

    @smart_retry(retries=3, delay=2, backoff=2, retry_on=(ConnectionError, TimeoutError, openai.APIConnectionError, openai.RateLimitError))
    def complete_json(self, prompt, system_prompt=None, temperature=None) -> Any:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=settings.openai_temperature if temperature is None else temperature,
        )
        content = response.choices[0].message.content or "{}"
        return parse_json_response(content)
