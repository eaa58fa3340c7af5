"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ProviderConfig
from verdict.models import Attachment
from verdict.providers.base import (
    AttachmentCapable,
    Connector,
    ImageCapable,
    ProviderError,
    catalog_flag,
    text_block,
)

logger = logging.getLogger(__name__)


def build_contents(prompt: str, attachments: list[Attachment]) -> list:
    contents: list = []
    for attachment in attachments:
        if attachment.kind == "image":
            payload = attachment.payload
            if isinstance(payload, str):
                payload = payload.encode("utf-8")
            contents.append(genai_types.Part.from_bytes(data=payload, mime_type=attachment.media_type))
        else:
            contents.append(text_block(attachment))
    contents.append(prompt)
    return contents


class GeminiProvider(Connector, ImageCapable, AttachmentCapable):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env or "", "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

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
        return await self._complete(model, build_contents(prompt, [image]))

    async def generate_with_attachments(self, prompt: str, model: str, attachments: list[Attachment]) -> str:
        if not self.supports_attachments(model):
            raise ProviderError(self._config.name, f"Model {model} does not support attachments")
        return await self._complete(model, build_contents(prompt, attachments))

    async def _complete(self, model: str, contents) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=genai_types.GenerateContentConfig(
                        max_output_tokens=self._config.max_tokens,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", model, latency, token_count)

        return response.text
