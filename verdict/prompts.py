"""Prompt composition from the configured templates."""

import json

from config.config_loader import PromptsConfig
from verdict.models import ModelSpec, Vote

_POSITIONAL_HINT = "Outcomes are unnamed; refer to them positionally as outcome1, outcome2, ... and keep the order fixed."


def format_outcomes(outcomes: tuple[str, ...] | None) -> str:
    if not outcomes:
        return _POSITIONAL_HINT
    return "\n".join(f"{i + 1}. {label}" for i, label in enumerate(outcomes))


def format_vector(vector: tuple[int, ...]) -> str:
    return json.dumps(list(vector))


def format_summary(spec: ModelSpec, vote: Vote) -> str:
    """One feedback entry for a single sample's vote."""
    return f"From {spec.label}: vector={format_vector(vote.decision_vector)}, justification={vote.justification}"


def format_justification(spec: ModelSpec, vote: Vote) -> str:
    """One synthesis entry for a single sample's justification."""
    return f"From {spec.label}:\n{vote.justification}"


def render_initial(templates: PromptsConfig, outcomes: tuple[str, ...] | None) -> str:
    return templates.initial.format(outcomes=format_outcomes(outcomes))


def render_feedback(templates: PromptsConfig, previous_summaries: str) -> str:
    return templates.feedback.format(previous_summaries=previous_summaries)


def render_justification(templates: PromptsConfig, composite: tuple[int, ...], justifications: list[str]) -> str:
    return templates.justification.format(
        composite_vector=format_vector(composite),
        justifications="\n\n".join(justifications),
    )


def compose_round_prompt(
    templates: PromptsConfig,
    outcomes: tuple[str, ...] | None,
    user_prompt: str,
    previous_summaries: tuple[str, ...] = (),
) -> str:
    """Initial instructions + user prompt, plus peer feedback after round 1."""
    parts = [render_initial(templates, outcomes), user_prompt]
    if previous_summaries:
        parts.append(render_feedback(templates, "\n".join(previous_summaries)))
    return "\n\n".join(parts)
