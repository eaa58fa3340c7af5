"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from verdict.errors import InvalidRequest
from verdict.models import JustifierConfig, ModelSpec

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# SDKs that talk to a local server and need no API key
_KEYLESS_SDKS = {"ollama"}


@dataclass
class ModelCapabilities:
    images: bool = False
    attachments: bool = False


@dataclass
class ProviderConfig:
    name: str
    sdk: str
    api_key_env: str | None
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    models: dict[str, ModelCapabilities] = field(default_factory=dict)


@dataclass
class PromptsConfig:
    initial: str
    feedback: str
    justification: str


@dataclass
class DefaultsConfig:
    iterations: int
    output_dir: Path
    justifier: JustifierConfig
    max_iterations: int = 5
    max_concurrency: int = 4
    panel: list[ModelSpec] = field(default_factory=list)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    providers: dict[str, ProviderConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def parse_justifier(value: str) -> JustifierConfig:
    """Parse a ``provider:model`` string. The model part may itself contain colons."""
    provider, sep, model = value.partition(":")
    if not sep or not provider.strip() or not model.strip():
        raise ValueError(f"Justifier must look like 'provider:model', got {value!r}")
    return JustifierConfig(provider=provider.strip(), model=model.strip())


def parse_panel_entry(raw: object) -> ModelSpec:
    """Build a ModelSpec from a ``{provider, model, weight, count}`` mapping.

    Raises:
        InvalidRequest: The entry is not a mapping, lacks provider or model,
            or has a non-numeric weight or count.
    """
    if not isinstance(raw, dict):
        raise InvalidRequest(f"Panel entry must be a mapping, got {raw!r}")
    missing = [key for key in ("provider", "model") if not raw.get(key)]
    if missing:
        raise InvalidRequest(f"Panel entry {raw!r} is missing {', '.join(missing)}")
    try:
        weight = float(raw.get("weight", 1.0))
        sample_count = int(raw.get("count", 1))
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"Panel entry {raw!r} has a non-numeric weight or count") from exc
    return ModelSpec(
        provider=str(raw["provider"]),
        model=str(raw["model"]),
        weight=weight,
        sample_count=sample_count,
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs providers without API keys but does not raise. Callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        iterations=int(defaults_raw["iterations"]),
        max_iterations=int(defaults_raw.get("max_iterations", 5)),
        output_dir=Path(defaults_raw["output_dir"]),
        justifier=parse_justifier(str(defaults_raw["justifier"])),
        max_concurrency=int(defaults_raw.get("max_concurrency", 4)),
        panel=[parse_panel_entry(entry) for entry in defaults_raw.get("panel", [])],
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        initial=prompts_raw["initial"],
        feedback=prompts_raw["feedback"],
        justification=prompts_raw["justification"],
    )

    providers: dict[str, ProviderConfig] = {}
    available_providers: set[str] = set()

    for provider_name, provider_raw in raw["providers"].items():
        catalog = {
            str(model_name): ModelCapabilities(
                images=bool((caps or {}).get("images", False)),
                attachments=bool((caps or {}).get("attachments", False)),
            )
            for model_name, caps in (provider_raw.get("models") or {}).items()
        }
        provider_cfg = ProviderConfig(
            name=provider_name,
            sdk=provider_raw["sdk"],
            api_key_env=provider_raw.get("api_key_env"),
            timeout_sec=int(provider_raw["timeout_sec"]),
            max_tokens=int(provider_raw["max_tokens"]),
            base_url=provider_raw.get("base_url"),
            models=catalog,
        )
        providers[provider_name] = provider_cfg

        if provider_cfg.sdk in _KEYLESS_SDKS:
            available_providers.add(provider_name)
            logger.info("Provider available (no key needed): %s", provider_name)
            continue

        api_key = os.environ.get(provider_cfg.api_key_env or "", "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                provider_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        providers=providers,
        prompts=prompts,
        available_providers=available_providers,
    )
