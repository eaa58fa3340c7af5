"""Rich console output, JSON surface, and markdown file save for deliberation results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from verdict.errors import DeliberationError
from verdict.models import DeliberationRequest, DeliberationResult, Round, outcome_labels

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def result_to_dict(result: DeliberationResult) -> dict:
    return {
        "scores": [{"outcome": s.outcome, "score": s.score} for s in result.scores],
        "justification": result.justification,
    }


def error_to_dict(error: DeliberationError) -> dict:
    return {"error": error.to_dict()}


def print_round_summary(rnd: Round, outcomes: tuple[str, ...] | None) -> None:
    """Print a table of per-model vectors and the round composite."""
    labels = outcome_labels(outcomes, len(rnd.composite))
    table = Table(title=f"Round {rnd.number}", title_style="bold cyan")
    table.add_column("Model")
    table.add_column("Weight", justify="right")
    table.add_column("Samples", justify="right")
    for label in labels:
        table.add_column(label, justify="right")
    for m in rnd.models:
        table.add_row(
            m.spec.label,
            f"{m.spec.weight:g}",
            str(len(m.samples)),
            *(f"{v:,}" for v in m.averaged.decision_vector),
        )
    table.add_row("[bold]composite[/bold]", "", "", *(f"[bold]{v:,}[/bold]" for v in rnd.composite))
    console.print(table)


def print_result(result: DeliberationResult) -> None:
    """Print final scores and the justification using Rich markdown."""
    console.print(Rule("[bold green]Verdict[/bold green]"))
    console.print(
        Text(
            f"Justified by: {result.justifier} | "
            f"Duration: {result.total_duration_sec:.1f}s | "
            f"Rounds: {len(result.rounds)}",
            style="dim",
        )
    )
    table = Table(show_header=True)
    table.add_column("Outcome")
    table.add_column("Score (ppm)", justify="right")
    table.add_column("Share", justify="right")
    for s in result.scores:
        table.add_row(s.outcome, f"{s.score:,}", f"{s.score / 10_000:.2f}%")
    console.print(table)
    console.print(Markdown(result.justification))


def save_to_file(
    request: DeliberationRequest,
    result: DeliberationResult,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the deliberation transcript as a markdown file.

    Args:
        request: The request that was deliberated.
        result: The completed DeliberationResult.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the prompt text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(request.prompt)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    panel_str = ", ".join(f"{m.label} (w={m.weight:g}, n={m.sample_count})" for m in request.models)

    lines: list[str] = [
        f"# Deliberation: {request.prompt[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Panel:** {panel_str}",
        f"**Justifier:** {result.justifier}",
        f"**Rounds:** {len(result.rounds)}",
        f"**Duration:** {result.total_duration_sec:.1f}s",
        "",
        "## Scores",
        "",
        "| Outcome | Score |",
        "|---|---|",
    ]
    lines += [f"| {s.outcome} | {s.score} |" for s in result.scores]
    lines += ["", "---", ""]

    for rnd in result.rounds:
        round_label = "Initial Votes" if rnd.number == 1 else "Revised Votes"
        lines.append(f"## Round {rnd.number}: {round_label}")
        lines.append("")
        for m in rnd.models:
            for sample in m.samples:
                lines.append(f"### {m.spec.label} (sample {sample.sample_index + 1})")
                lines.append("")
                lines.append(f"*Vector: {list(sample.vote.decision_vector)}*")
                lines.append("")
                lines.append(sample.vote.justification)
                lines.append("")
        lines.append(f"**Composite:** {list(rnd.composite)}")
        lines.append("")

    lines += [
        f"## Justification (by {result.justifier})",
        "",
        result.justification,
        "",
    ]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Deliberation saved to: %s", filepath)
    return filepath
