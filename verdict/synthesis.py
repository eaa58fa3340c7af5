"""Final justification: one call to the justifier connector."""

import logging

from config.config_loader import PromptsConfig
from verdict.errors import ConnectorFailure
from verdict.prompts import render_justification
from verdict.providers.base import Connector

logger = logging.getLogger(__name__)


async def synthesize(
    composite: tuple[int, ...],
    justifications: list[str],
    connector: Connector,
    model: str,
    templates: PromptsConfig,
) -> str:
    """Ask the justifier to explain the composite vote.

    Args:
        composite: The final round's composite vector.
        justifications: Every per-sample justification from the final round.
        connector: The justifier connector (not necessarily a voter).
        model: Model id passed to the justifier connector.
        templates: Prompt templates from config.

    Returns:
        The justifier's text, verbatim.

    Raises:
        ConnectorFailure: If the call fails or returns empty content.
    """
    prompt = render_justification(templates, composite, justifications)

    logger.info("Running justification via %s/%s", connector.name(), model)

    try:
        text = await connector.generate(prompt, model)
    except Exception as exc:
        raise ConnectorFailure(f"Justifier call failed: {exc}", provider=connector.name(), model=model) from exc

    if not text:
        raise ConnectorFailure("Justifier returned empty content", provider=connector.name(), model=model)
    return text
