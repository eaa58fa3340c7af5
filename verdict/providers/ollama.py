"""Open-source models served by Ollama, via its OpenAI-compatible API. Text only."""

import asyncio
import logging
import time

from openai import AsyncOpenAI

from config.config_loader import ProviderConfig
from verdict.providers.base import Connector, ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(Connector):
    """Ollama provider. Deliberately implements no image or attachment tier."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        # Ollama ignores the key, but the SDK requires one
        self._client = AsyncOpenAI(api_key="ollama", base_url=config.base_url or _DEFAULT_BASE_URL)

    def name(self) -> str:
        return self._config.name

    async def generate(self, prompt: str, model: str) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        logger.info("Ollama %s: %.2fs", model, latency)
        return choice.message.content
