"""Integration tests: real API calls, no mocks. Requires .env with 2+ API keys."""

import os

import pytest
from dotenv import load_dotenv

load_dotenv()

# Skip entire module if fewer than 2 API keys are set
_AVAILABLE_KEYS = [
    k for k in ["ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if len(_AVAILABLE_KEYS) < 2:
    pytestmark = pytest.mark.skip(reason=f"Need 2+ API keys, found {len(_AVAILABLE_KEYS)}")


async def test_full_deliberation_pipeline():
    """Run a real 1-round deliberation with the configured panel, verify the invariants hold."""
    from config.config_loader import load_config
    from verdict.cli import _build_all_providers
    from verdict.deliberation import deliberate
    from verdict.models import DeliberationRequest

    config = load_config()
    connectors = _build_all_providers(config)

    panel = [m for m in config.defaults.panel if m.provider in connectors]
    if len(panel) < 2 or config.defaults.justifier.provider not in connectors:
        pytest.skip("Configured panel or justifier not available with the keys present")

    request = DeliberationRequest(
        prompt="Statement: water boils at 100 degrees Celsius at sea level.",
        models=tuple(panel),
        outcomes=("true", "false"),
    )

    result = await deliberate(request, connectors, config.prompts, config.defaults.justifier)

    assert [s.outcome for s in result.scores] == ["true", "false"]
    assert sum(s.score for s in result.scores) <= 1_000_000
    assert result.justification
