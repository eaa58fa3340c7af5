"""Click CLI: orchestrates config loading, connector setup, deliberation, and output."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from config.config_loader import AppConfig, load_config, parse_justifier
from verdict.deliberation import deliberate
from verdict.errors import DeliberationError
from verdict.models import Attachment, DeliberationRequest, DeliberationResult, JustifierConfig, ModelSpec, Round
from verdict.output import error_to_dict, print_result, print_round_summary, result_to_dict, save_to_file
from verdict.providers.anthropic import AnthropicProvider
from verdict.providers.base import Connector
from verdict.providers.gemini import GeminiProvider
from verdict.providers.ollama import OllamaProvider
from verdict.providers.openai_provider import OpenAIProvider
from verdict.request_file import load_attachment, parse_file

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[Connector]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}


def _setup_logging(verbose: bool, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, Connector]:
    """Build all available connectors. Returns dict keyed by provider id."""
    connectors: dict[str, Connector] = {}
    for name in sorted(config.available_providers):
        provider_cfg = config.providers[name]
        if provider_cfg.sdk not in PROVIDER_CLASSES:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, provider_cfg.sdk)
            continue
        try:
            connectors[name] = PROVIDER_CLASSES[provider_cfg.sdk](provider_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return connectors


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _parse_model_option(value: str) -> ModelSpec:
    """Parse ``provider:model[:weight[:count]]``.

    Model ids may contain colons (``llama3.1:8b``), so weight and count are
    only taken from trailing numeric parts. Weight defaults to 1.0.
    """
    provider, sep, rest = value.partition(":")
    if not sep or not provider or not rest:
        raise click.BadParameter(f"expected provider:model[:weight[:count]], got {value!r}")
    parts = rest.split(":")
    weight, count = 1.0, 1
    if len(parts) >= 3 and parts[-1].isdigit() and _is_number(parts[-2]):
        weight, count = float(parts[-2]), int(parts[-1])
        parts = parts[:-2]
    elif len(parts) >= 2 and _is_number(parts[-1]):
        weight = float(parts[-1])
        parts = parts[:-1]
    return ModelSpec(provider=provider, model=":".join(parts), weight=weight, sample_count=count)


def _determine_panel(
    config: AppConfig,
    model_args: tuple[str, ...],
    file_models: list[ModelSpec] | None,
) -> list[ModelSpec]:
    """--model flags override front matter, which overrides the configured panel."""
    if model_args:
        return [_parse_model_option(m) for m in model_args]
    if file_models:
        return file_models
    return list(config.defaults.panel)


def _build_request(
    prompt: str,
    models: list[ModelSpec],
    outcomes: list[str] | None,
    iterations: int,
    attachments: list[Attachment],
) -> DeliberationRequest:
    return DeliberationRequest(
        prompt=prompt,
        models=tuple(models),
        outcomes=tuple(outcomes) if outcomes else None,
        iteration_count=iterations,
        attachments=tuple(attachments),
    )


def _print_catalog(config: AppConfig) -> None:
    """List every configured model with its capability flags and availability."""
    table = Table(title="Configured models")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Images", justify="center")
    table.add_column("Attachments", justify="center")
    table.add_column("Available", justify="center")
    for name, provider_cfg in config.providers.items():
        available = name in config.available_providers
        for model, caps in provider_cfg.models.items():
            table.add_row(
                name,
                model,
                "yes" if caps.images else "-",
                "yes" if caps.attachments else "-",
                "[green]yes[/green]" if available else "[red]no key[/red]",
            )
    console.print(table)


def _report_error(exc: DeliberationError, json_output: bool) -> None:
    """Print a structured error and exit 1. No partial scores are printed."""
    logger.error("Deliberation failed: %s", exc)
    if exc.raw_text:
        logger.debug("Offending response:\n%s", exc.raw_text)
    if json_output:
        click.echo(json.dumps(error_to_dict(exc), indent=2))
    else:
        console.print(f"[bold red]{exc.kind}:[/bold red] {escape(str(exc))}")
    sys.exit(1)


async def _run_single(
    request: DeliberationRequest,
    config: AppConfig,
    connectors: dict[str, Connector],
    justifier: JustifierConfig,
    max_concurrency: int,
    quiet: bool,
) -> DeliberationResult:
    """Run one deliberation, with a spinner unless quiet."""
    if quiet:
        return await deliberate(request, connectors, config.prompts, justifier, max_concurrency)

    labels = ", ".join(f"{m.label} (w={m.weight:g}, n={m.sample_count})" for m in request.models)
    console.print(f"\n[bold cyan]Verdict[/bold cyan] - {len(request.models)} models, {request.iteration_count} rounds")
    console.print(f"Panel: {labels}")
    console.print(f"Justifier: {justifier.label}")
    console.print(f"Prompt: [italic]{request.prompt[:80]}{'...' if len(request.prompt) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:

        def on_round_complete(rnd: Round) -> None:
            progress.print(f"[green]OK[/green] Round {rnd.number} complete ({len(rnd.models)} models)")

        progress.add_task("Deliberating...", total=None)
        return await deliberate(
            request,
            connectors,
            config.prompts,
            justifier,
            max_concurrency,
            on_round_complete=on_round_complete,
        )


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True), help="Read the request from a .md file")
@click.option("--outcomes", default=None, help="Comma-separated outcome labels, e.g. 'true,false'")
@click.option("--model", "model_args", multiple=True,
              help="provider:model[:weight[:count]], repeatable. Overrides the configured panel.")
@click.option("--iterations", default=None, type=int, help="Number of deliberation rounds (default: from config)")
@click.option("--image", "image_path", type=click.Path(exists=True), default=None, help="Attach one image")
@click.option("--attach", "attach_paths", multiple=True, type=click.Path(exists=True),
              help="Attach a file (image or text), repeatable")
@click.option("--justifier", default=None, help="provider:model that writes the final justification")
@click.option("--concurrency", default=None, type=int, help="Max in-flight model calls (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--json", "json_output", is_flag=True, help="Print the result as JSON only")
@click.option("--list-models", is_flag=True, help="List configured models and their capabilities")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    question: str | None,
    question_file: str | None,
    outcomes: str | None,
    model_args: tuple[str, ...],
    iterations: int | None,
    image_path: str | None,
    attach_paths: tuple[str, ...],
    justifier: str | None,
    concurrency: int | None,
    output_path: str | None,
    json_output: bool,
    list_models: bool,
    verbose: bool,
) -> None:
    """Verdict -- weighted multi-model deliberation over a fixed set of outcomes.

    \b
    Examples:
      python -m verdict.cli "Is the claim true?" --outcomes true,false
      python -m verdict.cli "Who wins?" --outcomes home,draw,away --model openai:gpt-4o:0.6:2 --model anthropic:claude-3-5-sonnet-20241022:0.4
      python -m verdict.cli --file request.md --iterations 2
      python -m verdict.cli "Does the chart show growth?" --image chart.png --outcomes yes,no
      python -m verdict.cli --list-models
    """
    load_dotenv()
    _setup_logging(verbose, quiet=json_output)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)
    except DeliberationError as exc:
        _report_error(exc, json_output)

    if list_models:
        _print_catalog(config)
        return

    meta: dict = {}
    if question_file:
        try:
            prompt, meta = parse_file(Path(question_file))
        except DeliberationError as exc:
            _report_error(exc, json_output)
    elif question:
        prompt = question
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument or --file.")
        sys.exit(1)

    effective_outcomes = [o.strip() for o in outcomes.split(",")] if outcomes else meta.get("outcomes")
    effective_iterations = (
        iterations if iterations is not None
        else meta.get("iterations", config.defaults.iterations)
    )
    if effective_iterations > config.defaults.max_iterations:
        console.print(
            f"[bold red]Error:[/bold red] {effective_iterations} rounds exceeds max_iterations "
            f"({config.defaults.max_iterations})."
        )
        sys.exit(1)

    attachments: list[Attachment] = list(meta.get("attachments", []))
    if image_path:
        image = load_attachment(Path(image_path))
        if image.kind != "image":
            raise click.BadParameter(f"{image_path} is not an image", param_hint="--image")
        attachments.append(image)
    attachments += [load_attachment(Path(p)) for p in attach_paths]

    try:
        effective_justifier = parse_justifier(justifier) if justifier else config.defaults.justifier
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--justifier") from exc

    request = _build_request(
        prompt=prompt,
        models=_determine_panel(config, model_args, meta.get("models")),
        outcomes=effective_outcomes,
        iterations=effective_iterations,
        attachments=attachments,
    )

    connectors = _build_all_providers(config)
    max_concurrency = concurrency if concurrency is not None else config.defaults.max_concurrency

    try:
        result = asyncio.run(
            _run_single(request, config, connectors, effective_justifier, max_concurrency, quiet=json_output)
        )
    except DeliberationError as exc:
        _report_error(exc, json_output)

    if json_output:
        click.echo(json.dumps(result_to_dict(result), indent=2))
        return

    for rnd in result.rounds:
        print_round_summary(rnd, request.outcomes)
    print_result(result)

    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    slug = Path(question_file).stem if question_file else None
    saved_path = save_to_file(request, result, output_dir, slug_override=slug)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
