"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

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
    """Messages API content blocks: attachments first, prompt last."""
    blocks: list[dict] = []
    for attachment in attachments:
        if attachment.kind == "image":
            blocks.append({
                "type": "image",
                "source": {"type": "base64", "media_type": attachment.media_type, "data": b64(attachment)},
            })
        else:
            blocks.append({"type": "text", "text": text_block(attachment)})
    blocks.append({"type": "text", "text": prompt})
    return blocks


class AnthropicProvider(Connector, ImageCapable, AttachmentCapable):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env or "", "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

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
                self._client.messages.create(
                    model=model,
                    max_tokens=self._config.max_tokens,
                    messages=[{"role": "user", "content": content}],
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %.2fs, %s tokens", model, latency, token_count)

        return "\n".join(text_blocks)
