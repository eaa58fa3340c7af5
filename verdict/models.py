"""Dataclasses for the deliberation engine. No I/O, no deps."""

import json
from dataclasses import dataclass, field
from typing import Literal

SCORE_TOTAL = 1_000_000


@dataclass(frozen=True)
class ModelSpec:
    provider: str          # connector id, e.g. "openai", "anthropic"
    model: str             # model string passed to the connector
    weight: float
    sample_count: int = 1

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class Attachment:
    kind: Literal["image", "text"]
    payload: bytes | str   # bytes for images, str for text
    media_type: str
    name: str = ""


@dataclass(frozen=True)
class DeliberationRequest:
    prompt: str
    models: tuple[ModelSpec, ...]
    outcomes: tuple[str, ...] | None = None
    iteration_count: int = 1
    attachments: tuple[Attachment, ...] = ()

    @property
    def expected_k(self) -> int | None:
        return len(self.outcomes) if self.outcomes else None

    @property
    def images(self) -> tuple[Attachment, ...]:
        return tuple(a for a in self.attachments if a.kind == "image")


@dataclass(frozen=True)
class Vote:
    decision_vector: tuple[int, ...]
    justification: str

    def to_json(self) -> str:
        return json.dumps({"score": list(self.decision_vector), "justification": self.justification})


@dataclass
class SampleVote:
    spec: ModelSpec
    sample_index: int
    raw_text: str
    vote: Vote


@dataclass
class ModelRound:
    spec: ModelSpec
    samples: list[SampleVote]
    averaged: Vote


@dataclass
class Round:
    number: int            # 1-indexed
    models: list[ModelRound] = field(default_factory=list)
    composite: tuple[int, ...] = ()


@dataclass(frozen=True)
class RoundState:
    composite: tuple[int, ...] | None = None
    summaries: tuple[str, ...] = ()        # feedback entries for the next round
    justifications: tuple[str, ...] = ()   # synthesis entries, one per sample


@dataclass(frozen=True)
class JustifierConfig:
    provider: str
    model: str

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass
class OutcomeScore:
    outcome: str
    score: int


@dataclass
class DeliberationResult:
    scores: list[OutcomeScore]
    justification: str
    rounds: list[Round] = field(default_factory=list)
    justifier: str = ""
    total_duration_sec: float = 0.0


def outcome_labels(outcomes: tuple[str, ...] | None, k: int) -> list[str]:
    """Named outcomes when given, positional ``outcome1..outcomeK`` otherwise."""
    if outcomes:
        return list(outcomes)
    return [f"outcome{i + 1}" for i in range(k)]
