"""Request checks that run before any connector is called."""

from verdict.errors import CapabilityMismatch, InvalidRequest, UnsupportedProvider
from verdict.models import DeliberationRequest, JustifierConfig
from verdict.providers.base import Connector, accepts_attachments, accepts_images


def validate_request(request: DeliberationRequest) -> None:
    """Reject malformed requests.

    The weight sum may exceed 1; it is bounded by the number of models.

    Raises:
        InvalidRequest: On any violation.
    """
    if not request.prompt or not request.prompt.strip():
        raise InvalidRequest('"prompt" is required')
    if not request.models:
        raise InvalidRequest('"models" must list at least one model')
    if request.iteration_count < 1:
        raise InvalidRequest(f"iteration_count must be >= 1, got {request.iteration_count}")
    if request.outcomes is not None:
        if not request.outcomes:
            raise InvalidRequest("outcomes, when given, must not be empty")
        if any(not str(label).strip() for label in request.outcomes):
            raise InvalidRequest("outcome labels must not be blank")

    for spec in request.models:
        if not spec.provider or not spec.model:
            raise InvalidRequest("every model needs a provider and a model id")
        if not 0.0 <= spec.weight <= 1.0:
            raise InvalidRequest(
                f"weight must be within [0, 1], got {spec.weight}",
                provider=spec.provider,
                model=spec.model,
            )
        if spec.sample_count < 1:
            raise InvalidRequest(
                f"sample count must be >= 1, got {spec.sample_count}",
                provider=spec.provider,
                model=spec.model,
            )

    total = sum(spec.weight for spec in request.models)
    if total <= 0 or total > len(request.models):
        raise InvalidRequest(f"invalid total weight {total} for {len(request.models)} models")


def resolve_connectors(
    request: DeliberationRequest,
    connectors: dict[str, Connector],
    justifier: JustifierConfig | None = None,
) -> None:
    """Every provider id in the request (and the justifier) must be registered.

    Raises:
        UnsupportedProvider: For the first unknown provider id.
    """
    for spec in request.models:
        if spec.provider not in connectors:
            raise UnsupportedProvider(f"Unsupported provider: {spec.provider}", provider=spec.provider, model=spec.model)
    if justifier is not None and justifier.provider not in connectors:
        raise UnsupportedProvider(
            f"Unsupported justifier provider: {justifier.provider}",
            provider=justifier.provider,
            model=justifier.model,
        )


def check_capabilities(request: DeliberationRequest, connectors: dict[str, Connector]) -> None:
    """Attachments must be usable by at least one participating model.

    Models that cannot take them still vote on the text prompt alone.

    Raises:
        CapabilityMismatch: When no model accepts the supplied attachments.
    """
    if not request.attachments:
        return
    has_image = bool(request.images)
    for spec in request.models:
        connector = connectors[spec.provider]
        if accepts_attachments(connector, spec.model):
            return
        if has_image and accepts_images(connector, spec.model):
            return
    kinds = "images" if has_image else "attachments"
    raise CapabilityMismatch(f"{kinds} supplied but no model in the request supports them")
