"""Tests for verdict/models.py dataclasses."""

import dataclasses
import json

import pytest

from verdict.models import (
    Attachment,
    DeliberationRequest,
    JustifierConfig,
    ModelSpec,
    Round,
    RoundState,
    Vote,
    outcome_labels,
)


def test_model_spec_label_and_default_count():
    spec = ModelSpec("openai", "gpt-4o", 0.5)
    assert spec.label == "openai/gpt-4o"
    assert spec.sample_count == 1


def test_model_spec_is_immutable():
    spec = ModelSpec("openai", "gpt-4o", 0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.weight = 1.0  # type: ignore[misc]


def test_request_expected_k():
    models = (ModelSpec("a", "m", 1.0),)
    assert DeliberationRequest("Q?", models, outcomes=("x", "y")).expected_k == 2
    assert DeliberationRequest("Q?", models).expected_k is None


def test_request_images_filters_kind():
    image = Attachment("image", b"img", "image/png")
    text = Attachment("text", "notes", "text/plain")
    request = DeliberationRequest("Q?", (ModelSpec("a", "m", 1.0),), attachments=(text, image))
    assert request.images == (image,)


def test_vote_to_json_is_canonical():
    assert json.loads(Vote((700000, 300000), "x").to_json()) == {"score": [700000, 300000], "justification": "x"}


def test_round_defaults():
    rnd = Round(number=1)
    assert rnd.models == []
    assert rnd.composite == ()


def test_round_state_starts_empty():
    state = RoundState()
    assert state.composite is None
    assert state.summaries == ()


def test_justifier_label():
    assert JustifierConfig("openai", "gpt-4o").label == "openai/gpt-4o"


def test_outcome_labels():
    assert outcome_labels(("a", "b"), 2) == ["a", "b"]
    assert outcome_labels(None, 3) == ["outcome1", "outcome2", "outcome3"]
