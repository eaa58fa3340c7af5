"""Vote parser: reduce one raw model response to a validated Vote.

Models wrap structured output in prose differently, so a fixed, ordered list
of strategies is tried. The first one that yields a schema-conforming
candidate (numeric ``score`` list + ``justification`` string) wins, and that
candidate is then validated. A failed validation is final: later strategies
are not consulted and the vector is never renormalized.
"""

import json
import logging
import re
from collections.abc import Callable

from verdict.errors import ParseError
from verdict.models import SCORE_TOTAL, Vote

logger = logging.getLogger(__name__)

Candidate = tuple[list, str]

_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_LEGACY_SCORE_RE = re.compile(r"SCORE:\s*([0-9,\s]+)", re.IGNORECASE)
_LEGACY_JUSTIFICATION_RE = re.compile(r"JUSTIFICATION:\s*(.*?)(?=SCORE:|\Z)", re.IGNORECASE | re.DOTALL)

_NO_JUSTIFICATION = "No justification provided."


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_candidate(obj: object) -> Candidate | None:
    if not isinstance(obj, dict):
        return None
    score = obj.get("score")
    justification = obj.get("justification")
    if not isinstance(score, list) or not isinstance(justification, str):
        return None
    if not all(_is_number(entry) for entry in score):
        return None
    return score, justification


def _loads_candidate(text: str) -> Candidate | None:
    # ValueError covers JSONDecodeError and integer literals past the digit limit
    try:
        return _as_candidate(json.loads(text))
    except (ValueError, RecursionError):
        return None


def parse_direct(text: str) -> Candidate | None:
    """The whole trimmed response is the JSON object."""
    return _loads_candidate(text.strip())


def parse_fenced(text: str) -> Candidate | None:
    """The first fenced code block holds the JSON object."""
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _loads_candidate(match.group(1).strip())


def _match_braces(text: str, start: int) -> dict[int, int | None]:
    """Scan forward from the brace at ``start``, pairing every brace seen outside strings.

    Stops when ``start`` closes. Braces still open at the end of the text map to None.
    """
    matched: dict[int, int | None] = {}
    stack: list[int] = []
    in_string = False
    escape = False
    for idx in range(start, len(text)):
        c = text[idx]
        if in_string:
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c == "{":
            stack.append(idx)
        elif c == "}":
            matched[stack.pop()] = idx
            if not stack:
                break
    for idx in stack:
        matched[idx] = None
    return matched


def _balanced_objects(text: str):
    """Yield every balanced ``{...}`` substring, ordered by start position.

    A nested brace that one scan already paired is not scanned again, so a long
    run of unclosed braces costs one pass instead of one pass per brace.
    """
    closes: dict[int, int | None] = {}
    for start, char in enumerate(text):
        if char != "{":
            continue
        if start not in closes:
            closes.update(_match_braces(text, start))
        end = closes[start]
        if end is not None:
            yield text[start:end + 1]


def parse_scan(text: str) -> Candidate | None:
    """Try each balanced brace group in order."""
    for chunk in _balanced_objects(text):
        candidate = _loads_candidate(chunk)
        if candidate is not None:
            return candidate
    return None


def parse_legacy(text: str) -> Candidate | None:
    """``SCORE: a,b,c`` plus ``JUSTIFICATION: ...`` up to the next SCORE: or end."""
    score_match = _LEGACY_SCORE_RE.search(text)
    if not score_match:
        return None
    entries: list = []
    for raw in score_match.group(1).split(","):
        raw = raw.strip()
        if not raw:
            continue  # trailing comma
        if not raw.isdigit():
            entries.append(raw)
            continue
        try:
            entries.append(int(raw))
        except ValueError as exc:
            raise ParseError(f"Score entry too long: {len(raw)} digits", text) from exc
    justification_match = _LEGACY_JUSTIFICATION_RE.search(text)
    justification = justification_match.group(1).strip() if justification_match else _NO_JUSTIFICATION
    return entries, justification


STRATEGIES: list[tuple[str, Callable[[str], Candidate | None]]] = [
    ("direct", parse_direct),
    ("fenced", parse_fenced),
    ("scan", parse_scan),
    ("legacy", parse_legacy),
]


def validate_vector(score: list, expected_k: int | None, raw_text: str) -> tuple[int, ...]:
    """Check the decision-vector invariants and return the canonical tuple.

    Raises:
        ParseError: non-numeric or negative entries, length mismatch, or a
            sum other than SCORE_TOTAL.
    """
    vector: list[int] = []
    for entry in score:
        if isinstance(entry, bool) or not isinstance(entry, (int, float)):
            raise ParseError(f"Non-numeric score entry: {entry!r}", raw_text)
        if isinstance(entry, float) and not entry.is_integer():
            raise ParseError(f"Non-integer score entry: {entry!r}", raw_text)
        if entry < 0:
            raise ParseError(f"Negative score entry: {entry!r}", raw_text)
        vector.append(int(entry))

    if not vector:
        raise ParseError("Empty score vector", raw_text)
    if expected_k is not None and len(vector) != expected_k:
        raise ParseError(f"Expected {expected_k} scores, got {len(vector)}", raw_text)
    total = sum(vector)
    if total != SCORE_TOTAL:
        raise ParseError(f"Scores sum to {total}, expected {SCORE_TOTAL}", raw_text)
    return tuple(vector)


def parse_vote(raw_text: str, expected_k: int | None = None) -> Vote:
    """Parse one raw model response into a validated Vote.

    Args:
        raw_text: The connector's response, verbatim.
        expected_k: Number of named outcomes, or None when outcomes are positional.

    Raises:
        ParseError: When no strategy matches or the vector fails validation.
    """
    for name, strategy in STRATEGIES:
        candidate = strategy(raw_text)
        if candidate is None:
            continue
        score, justification = candidate
        logger.debug("Vote matched by %s strategy", name)
        return Vote(validate_vector(score, expected_k, raw_text), justification)
    raise ParseError("No score/justification found in response", raw_text)
