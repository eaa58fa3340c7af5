"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ProviderConfig
from verdict.models import Attachment
from verdict.providers.base import (
    AttachmentCapable,
    Connector,
    ImageCapable,
    ProviderError,
    b64,
    catalog_flag,
    text_block,
)

logger = logging.getLogger(__name__)


def build_content(prompt: str, attachments: list[Attachment]) -> list[dict]:
    """Chat-completions content parts: prompt, then each attachment in order."""
    parts: list[dict] = [{"type": "text", "text": prompt}]
    for attachment in attachments:
        if attachment.kind == "image":
            parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{attachment.media_type};base64,{b64(attachment)}"},
            })
        else:
            parts.append({"type": "text", "text": text_block(attachment)})
    return parts


class OpenAIProvider(Connector, ImageCapable, AttachmentCapable):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env or "", "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def supports_images(self, model: str) -> bool:
        return catalog_flag(self._config, model, "images")

    def supports_attachments(self, model: str) -> bool:
        return catalog_flag(self._config, model, "attachments")

    async def generate(self, prompt: str, model: str) -> str:
        return await self._complete(model, prompt)

    async def generate_with_image(self, prompt: str, model: str, image: Attachment) -> str:
        if not self.supports_images(model):
            raise ProviderError(self._config.name, f"Model {model} does not support image inputs")
        return await self._complete(model, build_content(prompt, [image]))

    async def generate_with_attachments(self, prompt: str, model: str, attachments: list[Attachment]) -> str:
        if not self.supports_attachments(model):
            raise ProviderError(self._config.name, f"Model {model} does not support attachments")
        return await self._complete(model, build_content(prompt, attachments))

    async def _complete(self, model: str, content: str | list[dict]) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": content}],
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

        logger.info(
            "OpenAI %s: %.2fs, %s tokens",
            model,
            latency,
            response.usage.total_tokens if response.usage else None,
        )
        return choice.message.content
