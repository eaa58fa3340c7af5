"""Tests for verdict/output.py."""

from pathlib import Path

import pytest

from verdict.errors import ParseFailure
from verdict.models import (
    DeliberationRequest,
    DeliberationResult,
    ModelRound,
    ModelSpec,
    OutcomeScore,
    Round,
    SampleVote,
    Vote,
)
from verdict.output import _slug, error_to_dict, print_result, print_round_summary, result_to_dict, save_to_file


@pytest.fixture
def finished(two_model_request) -> tuple[DeliberationRequest, DeliberationResult]:
    spec_a, spec_b = two_model_request.models
    vote_a = Vote((600000, 400000), "A says true")
    vote_b = Vote((400000, 600000), "B says false")
    rnd = Round(
        number=1,
        models=[
            ModelRound(spec_a, [SampleVote(spec_a, 0, "raw a", vote_a)], vote_a),
            ModelRound(spec_b, [SampleVote(spec_b, 0, "raw b", vote_b)], vote_b),
        ],
        composite=(500000, 500000),
    )
    result = DeliberationResult(
        scores=[OutcomeScore("true", 500000), OutcomeScore("false", 500000)],
        justification="## Split\nEven.",
        rounds=[rnd],
        justifier="judge/j",
        total_duration_sec=2.5,
    )
    return two_model_request, result


def test_slug_basic():
    assert _slug("Is the sky blue?") == "is-the-sky-blue"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_result_to_dict(finished):
    _, result = finished
    assert result_to_dict(result) == {
        "scores": [{"outcome": "true", "score": 500000}, {"outcome": "false", "score": 500000}],
        "justification": "## Split\nEven.",
    }


def test_error_to_dict():
    err = ParseFailure("bad vote", provider="a", model="m", round_number=2, raw_text="???")
    assert error_to_dict(err) == {"error": {"kind": "ParseFailure", "message": "[a/m, round 2] bad vote"}}


def test_save_to_file_creates_transcript(finished, tmp_path: Path):
    request, result = finished
    path = save_to_file(request, result, tmp_path / "out")

    assert path.exists()
    assert path.suffix == ".md"
    content = path.read_text(encoding="utf-8")
    assert "# Deliberation: Is the statement true?" in content
    assert "| true | 500000 |" in content
    assert "A says true" in content
    assert "B says false" in content
    assert "**Composite:** [500000, 500000]" in content
    assert "## Justification (by judge/j)" in content


def test_save_to_file_slug_override(finished, tmp_path: Path):
    request, result = finished
    path = save_to_file(request, result, tmp_path, slug_override="my-request")
    assert path.name.endswith("_my-request.md")


def test_print_functions_do_not_raise(finished):
    request, result = finished
    print_round_summary(result.rounds[0], request.outcomes)
    print_result(result)
