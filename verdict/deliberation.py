"""Deliberation rounds: concurrent model calls, vote parsing, aggregation, feedback."""

import asyncio
import logging
import time
from collections.abc import Callable

from config.config_loader import PromptsConfig
from verdict.aggregation import aggregate, average_samples
from verdict.errors import ConnectorFailure, DeliberationError, InvalidRequest, ParseError, ParseFailure
from verdict.models import (
    DeliberationRequest,
    DeliberationResult,
    JustifierConfig,
    ModelRound,
    ModelSpec,
    OutcomeScore,
    Round,
    RoundState,
    SampleVote,
    outcome_labels,
)
from verdict.parsing import parse_vote
from verdict.prompts import compose_round_prompt, format_justification, format_summary
from verdict.providers.base import Connector, accepts_attachments, accepts_images
from verdict.synthesis import synthesize
from verdict.validation import check_capabilities, resolve_connectors, validate_request

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


async def _invoke(
    connector: Connector,
    spec: ModelSpec,
    prompt: str,
    request: DeliberationRequest,
    round_number: int,
) -> str:
    """Call the connector in the richest form the model supports.

    Attachment lists win over the single-image form; text-only otherwise.
    """
    try:
        if request.attachments and accepts_attachments(connector, spec.model):
            return await connector.generate_with_attachments(prompt, spec.model, list(request.attachments))
        if request.images and accepts_images(connector, spec.model):
            return await connector.generate_with_image(prompt, spec.model, request.images[0])
        return await connector.generate(prompt, spec.model)
    except DeliberationError:
        raise
    except Exception as exc:
        raise ConnectorFailure(
            f"Connector call failed: {exc}",
            provider=spec.provider,
            model=spec.model,
            round_number=round_number,
        ) from exc


async def _collect_sample(
    connector: Connector,
    spec: ModelSpec,
    sample_index: int,
    prompt: str,
    request: DeliberationRequest,
    round_number: int,
    expected_k: int | None,
    semaphore: asyncio.Semaphore,
) -> SampleVote:
    async with semaphore:
        raw_text = await _invoke(connector, spec, prompt, request, round_number)

    logger.debug("Raw response from %s (round %d, sample %d): %s", spec.label, round_number, sample_index + 1, raw_text)
    try:
        vote = parse_vote(raw_text, expected_k)
    except ParseError as exc:
        raise ParseFailure(
            f"Could not parse vote: {exc}",
            provider=spec.provider,
            model=spec.model,
            round_number=round_number,
            raw_text=exc.raw_text,
        ) from exc
    return SampleVote(spec=spec, sample_index=sample_index, raw_text=raw_text, vote=vote)


async def _gather_fail_fast(coros: list) -> list:
    """Run coroutines concurrently; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _check_dimensions(samples: list[SampleVote], k: int, round_number: int) -> None:
    for sample in samples:
        if len(sample.vote.decision_vector) != k:
            raise ParseFailure(
                f"Expected {k} scores, got {len(sample.vote.decision_vector)}",
                provider=sample.spec.provider,
                model=sample.spec.model,
                round_number=round_number,
                raw_text=sample.raw_text,
            )


async def _run_round(
    round_number: int,
    request: DeliberationRequest,
    connectors: dict[str, Connector],
    prompt: str,
    expected_k: int | None,
    semaphore: asyncio.Semaphore,
) -> Round:
    coros = [
        _collect_sample(connectors[spec.provider], spec, i, prompt, request, round_number, expected_k, semaphore)
        for spec in request.models
        for i in range(spec.sample_count)
    ]
    samples: list[SampleVote] = await _gather_fail_fast(coros)

    # Positional outcomes: the first vote collected fixes K
    k = expected_k if expected_k is not None else len(samples[0].vote.decision_vector)
    _check_dimensions(samples, k, round_number)

    model_rounds: list[ModelRound] = []
    offset = 0
    for spec in request.models:
        own = samples[offset:offset + spec.sample_count]
        offset += spec.sample_count
        averaged = average_samples([s.vote for s in own])
        model_rounds.append(ModelRound(spec=spec, samples=own, averaged=averaged))
        logger.info("Round %d: %s averaged %s over %d sample(s)", round_number, spec.label, list(averaged.decision_vector), len(own))

    composite = aggregate(
        [m.averaged.decision_vector for m in model_rounds],
        [m.spec.weight for m in model_rounds],
    )
    logger.info("Round %d composite: %s", round_number, list(composite))
    return Round(number=round_number, models=model_rounds, composite=composite)


def advance(state: RoundState, rnd: Round) -> RoundState:
    """Round transition: the next state depends only on the round just completed."""
    samples = [s for m in rnd.models for s in m.samples]
    return RoundState(
        composite=rnd.composite,
        summaries=tuple(format_summary(s.spec, s.vote) for s in samples),
        justifications=tuple(format_justification(s.spec, s.vote) for s in samples),
    )


async def _run_rounds(
    request: DeliberationRequest,
    connectors: dict[str, Connector],
    templates: PromptsConfig,
    max_concurrency: int,
    on_round_complete: Callable[[Round], None] | None,
) -> list[Round]:
    if max_concurrency < 1:
        raise InvalidRequest(f"max_concurrency must be >= 1, got {max_concurrency}")
    semaphore = asyncio.Semaphore(max_concurrency)

    rounds: list[Round] = []
    state = RoundState()
    expected_k = request.expected_k

    for round_number in range(1, request.iteration_count + 1):
        prompt = compose_round_prompt(templates, request.outcomes, request.prompt, state.summaries)
        logger.info("Starting round %d with %d models", round_number, len(request.models))

        current_round = await _run_round(round_number, request, connectors, prompt, expected_k, semaphore)
        expected_k = len(current_round.composite)
        rounds.append(current_round)
        state = advance(state, current_round)

        if on_round_complete:
            on_round_complete(current_round)

    return rounds


async def run_deliberation(
    request: DeliberationRequest,
    connectors: dict[str, Connector],
    templates: PromptsConfig,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    on_round_complete: Callable[[Round], None] | None = None,
) -> list[Round]:
    """Run every round of the deliberation.

    Args:
        request: The validated-on-entry deliberation request.
        connectors: Connectors keyed by provider id.
        templates: Prompt templates from config.
        max_concurrency: Upper bound on in-flight connector calls.
        on_round_complete: Optional callback invoked after each round completes.

    Returns:
        List of Round objects, one per iteration.

    Raises:
        DeliberationError: Any invalid request, connector or parse failure. The
            first failure cancels the remaining calls of the round.
    """
    validate_request(request)
    resolve_connectors(request, connectors)
    check_capabilities(request, connectors)
    return await _run_rounds(request, connectors, templates, max_concurrency, on_round_complete)


async def deliberate(
    request: DeliberationRequest,
    connectors: dict[str, Connector],
    templates: PromptsConfig,
    justifier: JustifierConfig,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    on_round_complete: Callable[[Round], None] | None = None,
) -> DeliberationResult:
    """Run the deliberation and synthesize the final justification.

    Every check, including the justifier's provider id, runs before the first
    connector call.
    """
    start = time.monotonic()
    validate_request(request)
    resolve_connectors(request, connectors, justifier)
    check_capabilities(request, connectors)

    rounds = await _run_rounds(request, connectors, templates, max_concurrency, on_round_complete)
    final = advance(RoundState(), rounds[-1])

    justification = await synthesize(
        composite=final.composite,
        justifications=list(final.justifications),
        connector=connectors[justifier.provider],
        model=justifier.model,
        templates=templates,
    )

    labels = outcome_labels(request.outcomes, len(final.composite))
    return DeliberationResult(
        scores=[OutcomeScore(outcome=label, score=int(score)) for label, score in zip(labels, final.composite)],
        justification=justification,
        rounds=rounds,
        justifier=justifier.label,
        total_duration_sec=time.monotonic() - start,
    )
