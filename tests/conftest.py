"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelCapabilities, ProviderConfig, PromptsConfig
from verdict.models import Attachment, DeliberationRequest, JustifierConfig, ModelSpec, Vote
from verdict.providers.base import AttachmentCapable, Connector, ImageCapable


def vote_text(vector: list[int], justification: str = "because") -> str:
    """A well-formed JSON vote as a model would return it."""
    return json.dumps({"score": vector, "justification": justification})


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        initial="Score these outcomes:\n{outcomes}",
        feedback="Previous round:\n{previous_summaries}",
        justification="Composite {composite_vector}\n\n{justifications}\n\nExplain.",
    )


@pytest.fixture
def sample_provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="openai",
        sdk="openai",
        api_key_env="TEST_OPENAI_KEY",
        timeout_sec=30,
        max_tokens=1024,
        models={
            "gpt-4o": ModelCapabilities(images=True, attachments=True),
            "gpt-4": ModelCapabilities(images=True, attachments=False),
            "gpt-3.5-turbo": ModelCapabilities(),
        },
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        iterations=1,
        output_dir=tmp_path / "output",
        justifier=JustifierConfig("openai", "gpt-4o"),
        max_iterations=3,
        panel=[ModelSpec("openai", "gpt-4o", 0.5), ModelSpec("anthropic", "claude", 0.5)],
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    sample_provider_config: ProviderConfig,
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        providers={"openai": sample_provider_config},
        prompts=sample_prompts_config,
        available_providers={"openai"},
    )


@pytest.fixture
def sample_vote() -> Vote:
    return Vote((700000, 300000), "x")


@pytest.fixture
def two_model_request() -> DeliberationRequest:
    return DeliberationRequest(
        prompt="Is the statement true?",
        models=(ModelSpec("a", "model-a", 0.5), ModelSpec("b", "model-b", 0.5)),
        outcomes=("true", "false"),
    )


@pytest.fixture
def image_attachment() -> Attachment:
    return Attachment(kind="image", payload=b"\x89PNG", media_type="image/png", name="chart.png")


class MockConnector(Connector):
    """Text-only test double connector."""

    def __init__(self, provider_name: str = "mock", responses: list[str] | str = "") -> None:
        self._name = provider_name
        if isinstance(responses, str):
            responses = [responses]
        self.prompts: list[str] = []
        self._responses = list(responses)
        # Shadow the class method with an AsyncMock at the instance level.
        self.generate = AsyncMock(side_effect=self._next)  # type: ignore[assignment]

    async def _next(self, prompt: str, model: str) -> str:
        self.prompts.append(prompt)
        if len(self._responses) == 1:
            return self._responses[0]
        return self._responses.pop(0)

    def name(self) -> str:
        return self._name

    async def generate(self, prompt: str, model: str) -> str:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return await self._next(prompt, model)


class MultimodalConnector(MockConnector, ImageCapable, AttachmentCapable):
    """Test double with configurable image and attachment tiers."""

    def __init__(
        self,
        provider_name: str = "multi",
        responses: list[str] | str = "",
        images: bool = True,
        attachments: bool = True,
    ) -> None:
        super().__init__(provider_name, responses)
        self._images = images
        self._attachments = attachments
        self.generate_with_image = AsyncMock(side_effect=self._next_with_media)  # type: ignore[assignment]
        self.generate_with_attachments = AsyncMock(side_effect=self._next_with_media)  # type: ignore[assignment]

    async def _next_with_media(self, prompt: str, model: str, media) -> str:
        return await self._next(prompt, model)

    def supports_images(self, model: str) -> bool:
        return self._images

    def supports_attachments(self, model: str) -> bool:
        return self._attachments

    async def generate_with_image(self, prompt: str, model: str, image: Attachment) -> str:  # type: ignore[override]
        return await self._next(prompt, model)

    async def generate_with_attachments(  # type: ignore[override]
        self, prompt: str, model: str, attachments: list[Attachment]
    ) -> str:
        return await self._next(prompt, model)


@pytest.fixture
def justifier_connector() -> MockConnector:
    return MockConnector("judge", "Both models lean true.")
