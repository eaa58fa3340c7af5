"""Connector capability interface.

Every connector can answer a text prompt. Image and attachment support are
separate tiers, expressed as mixins and checked per model at call time.
"""

import base64
from abc import ABC, abstractmethod

from config.config_loader import ProviderConfig
from verdict.models import Attachment


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class Connector(ABC):
    """Abstract base for all model connectors."""

    @abstractmethod
    def name(self) -> str:
        """Return the provider id this connector is registered under (e.g. 'openai')."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, model: str) -> str:
        """Generate a text response for the given prompt.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...


class ImageCapable(ABC):
    """Connector tier that accepts a single image alongside the prompt."""

    @abstractmethod
    def supports_images(self, model: str) -> bool:
        ...

    @abstractmethod
    async def generate_with_image(self, prompt: str, model: str, image: Attachment) -> str:
        ...


class AttachmentCapable(ABC):
    """Connector tier that accepts a list of image and text attachments."""

    @abstractmethod
    def supports_attachments(self, model: str) -> bool:
        ...

    @abstractmethod
    async def generate_with_attachments(self, prompt: str, model: str, attachments: list[Attachment]) -> str:
        ...


def accepts_images(connector: Connector, model: str) -> bool:
    return isinstance(connector, ImageCapable) and connector.supports_images(model)


def accepts_attachments(connector: Connector, model: str) -> bool:
    return isinstance(connector, AttachmentCapable) and connector.supports_attachments(model)


def catalog_flag(config: ProviderConfig, model: str, flag: str) -> bool:
    """Look up a capability flag in the provider's configured model catalog."""
    caps = config.models.get(model)
    return bool(caps and getattr(caps, flag))


def b64(attachment: Attachment) -> str:
    payload = attachment.payload
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return base64.b64encode(payload).decode("ascii")


def text_block(attachment: Attachment) -> str:
    """Render a text attachment for inclusion in a prompt."""
    payload = attachment.payload
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    header = f"--- Attachment: {attachment.name} ---" if attachment.name else "--- Attachment ---"
    return f"{header}\n{payload}"
