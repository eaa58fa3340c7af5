"""Sample averaging and cross-model weighted aggregation."""

import math
from fractions import Fraction

from verdict.models import Vote


def average_samples(votes: list[Vote]) -> Vote:
    """Reduce repeated votes from one model into one representative vote.

    Each component is the floor of the per-index mean. Justifications are not
    averaged; they are joined so the single-sample case is the identity.
    Callers that need per-sample text keep the original votes.

    Raises:
        ValueError: On an empty list or vectors of different lengths.
    """
    if not votes:
        raise ValueError("Cannot average zero votes")
    if len(votes) == 1:
        return votes[0]

    k = len(votes[0].decision_vector)
    if any(len(v.decision_vector) != k for v in votes):
        raise ValueError("Sample vectors have different lengths")

    n = len(votes)
    vector = tuple(sum(v.decision_vector[i] for v in votes) // n for i in range(k))
    justification = "\n\n".join(v.justification for v in votes)
    return Vote(vector, justification)


def aggregate(vectors: list[tuple[int, ...]], weights: list[float]) -> tuple[int, ...]:
    """Weighted mean per outcome index, floored to integers.

    The result is not renormalized, so it may sum to slightly less than
    SCORE_TOTAL. Weights are taken at their decimal value to keep the
    arithmetic exact.

    Raises:
        ValueError: On mismatched inputs or a zero weight sum.
    """
    if not vectors or len(vectors) != len(weights):
        raise ValueError("Need one weight per vector")
    k = len(vectors[0])
    if any(len(v) != k for v in vectors):
        raise ValueError("Model vectors have different lengths")

    exact = [Fraction(str(w)) for w in weights]
    total_weight = sum(exact)
    if total_weight <= 0:
        raise ValueError("Total weight must be positive")

    return tuple(
        math.floor(sum(v[i] * w for v, w in zip(vectors, exact)) / total_weight)
        for i in range(k)
    )
