"""Request files: markdown prompt with optional YAML front matter, and attachment loading."""

import mimetypes
from pathlib import Path

import frontmatter

from config.config_loader import parse_panel_entry
from verdict.errors import InvalidRequest
from verdict.models import Attachment, ModelSpec


def load_attachment(path: Path) -> Attachment:
    """Read one attachment from disk. Images stay bytes; everything else is UTF-8 text."""
    media_type = mimetypes.guess_type(path.name)[0] or "text/plain"
    if media_type.startswith("image/"):
        return Attachment(kind="image", payload=path.read_bytes(), media_type=media_type, name=path.name)
    return Attachment(
        kind="text",
        payload=path.read_text(encoding="utf-8", errors="replace"),
        media_type=media_type,
        name=path.name,
    )


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown request file with optional YAML front matter.

    Returns:
        (prompt, metadata) where metadata may hold: outcomes (list[str]),
        iterations (int), models (list[ModelSpec]), attachments (list[Attachment]).
        Keys absent from the front matter are absent from metadata.

    Raises:
        InvalidRequest: A front-matter field has the wrong shape.
    """
    post = frontmatter.load(str(file_path))
    prompt = post.content.strip()
    raw = dict(post.metadata)

    metadata: dict = {}
    if "outcomes" in raw:
        outcomes = raw["outcomes"]
        if isinstance(outcomes, str):
            outcomes = [o.strip() for o in outcomes.split(",")]
        if not isinstance(outcomes, list):
            raise InvalidRequest(f"{file_path.name}: outcomes must be a list or comma-separated string")
        metadata["outcomes"] = [str(o) for o in outcomes]
    if "iterations" in raw:
        try:
            metadata["iterations"] = int(raw["iterations"])
        except (TypeError, ValueError) as exc:
            raise InvalidRequest(f"{file_path.name}: iterations must be an integer, got {raw['iterations']!r}") from exc
    if "models" in raw:
        if not isinstance(raw["models"], list):
            raise InvalidRequest(f"{file_path.name}: models must be a list")
        models: list[ModelSpec] = [parse_panel_entry(entry) for entry in raw["models"]]
        metadata["models"] = models
    if "attachments" in raw:
        base = file_path.parent
        metadata["attachments"] = [load_attachment(base / str(p)) for p in raw["attachments"]]
    return prompt, metadata
