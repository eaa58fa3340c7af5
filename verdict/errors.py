"""Structured errors surfaced by the deliberation engine.

Every error aborts the whole request. None of them are retried here; retry and
timeout policy lives in the connectors.
"""


class DeliberationError(Exception):
    """Base for all engine errors. ``kind`` is the stable machine-readable name."""

    kind = "DeliberationError"

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        round_number: int | None = None,
        raw_text: str | None = None,
    ) -> None:
        self.message = message
        self.provider = provider
        self.model = model
        self.round_number = round_number
        self.raw_text = raw_text
        super().__init__(self._describe())

    def _describe(self) -> str:
        context: list[str] = []
        if self.provider or self.model:
            context.append(f"{self.provider or '?'}/{self.model or '?'}")
        if self.round_number is not None:
            context.append(f"round {self.round_number}")
        if context:
            return f"[{', '.join(context)}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self)}


class InvalidRequest(DeliberationError):
    kind = "InvalidRequest"


class UnsupportedProvider(DeliberationError):
    kind = "UnsupportedProvider"


class CapabilityMismatch(DeliberationError):
    kind = "CapabilityMismatch"


class ConnectorFailure(DeliberationError):
    kind = "ConnectorFailure"


class ParseFailure(DeliberationError):
    kind = "ParseFailure"


class ParseError(ValueError):
    """Raised by the vote parser. Carries the raw response for diagnostics."""

    def __init__(self, message: str, raw_text: str) -> None:
        self.raw_text = raw_text
        super().__init__(message)
