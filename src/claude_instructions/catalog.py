"""Command metadata catalog derived from source frontmatter."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import CategoryError
from .frontmatter import parse_frontmatter
from .models import (
    DEFAULT_DESCRIPTION,
    DEFAULT_ORDER,
    REQUESTED_TOOLS_KEY,
    Category,
    CommandMetadata,
)

logger = logging.getLogger(__name__)

_BASH_TOOL_RE = re.compile(r"^Bash\(([^:]+):")


@dataclass(frozen=True)
class ToolOption:
    """A requested tool offered for pre-approval."""

    value: str
    label: str
    hint: str


def list_markdown_files(directory: Path) -> list[str]:
    """Return the sorted names of Markdown files directly inside a directory."""
    return sorted(p.name for p in Path(directory).iterdir() if p.is_file() and p.suffix == ".md")


def command_name(filename: str) -> str:
    """``commit.md`` -> ``commit``"""
    return filename[:-3] if filename.endswith(".md") else filename


def metadata_from_frontmatter(fields: Mapping[str, Any], filename: str = "") -> CommandMetadata:
    """Build a catalog entry from parsed frontmatter fields.

    Raises:
        CategoryError: If ``_category`` is not one of the known categories
    """
    raw_category = fields.get("_category") or Category.UTILITIES.value
    try:
        category = Category(raw_category)
    except ValueError as e:
        msg = f"Invalid category: {raw_category}"
        raise CategoryError(msg, details={"file": filename, "category": raw_category}) from e

    order = fields.get("_order")
    if not isinstance(order, int) or isinstance(order, bool):
        order = DEFAULT_ORDER

    description = fields.get("description")
    if not isinstance(description, str) or not description:
        description = DEFAULT_DESCRIPTION

    hint = fields.get("_hint")
    requested_tools = fields.get(REQUESTED_TOOLS_KEY)

    return CommandMetadata(
        description=description,
        hint=hint if isinstance(hint, str) else None,
        category=category,
        order=order,
        selected_by_default=fields.get("_selectedByDefault") is not False,
        requested_tools=list(requested_tools) if isinstance(requested_tools, list) else None,
    )


def scan_commands(sources_dir: Path) -> dict[str, CommandMetadata]:
    """Derive catalog entries for every source document in a directory.

    Args:
        sources_dir: Directory of command source ``.md`` files

    Returns:
        Mapping of filename to metadata, in filename order

    Raises:
        CategoryError: If any source declares an unknown category
    """
    catalog: dict[str, CommandMetadata] = {}
    for filename in list_markdown_files(sources_dir):
        content = (Path(sources_dir) / filename).read_text(encoding="utf-8")
        catalog[filename] = metadata_from_frontmatter(parse_frontmatter(content), filename)
    logger.debug("Cataloged %d commands from %s", len(catalog), sources_dir)
    return catalog


def group_by_category(
    metadata: Mapping[str, CommandMetadata],
) -> dict[Category, list[tuple[str, CommandMetadata]]]:
    """Group entries by category in display order.

    Each group is sorted by ``order`` and then by command name, so the result
    does not depend on the iteration order of ``metadata``.
    """
    grouped: dict[Category, list[tuple[str, CommandMetadata]]] = {}
    for category in Category:
        entries = [(name, entry) for name, entry in metadata.items() if entry.category == category]
        if entries:
            entries.sort(key=lambda item: (item[1].order, command_name(item[0])))
            grouped[category] = entries
    return grouped


def render_commands_list(metadata: Mapping[str, CommandMetadata]) -> str:
    """Render the grouped catalog as a Markdown list."""
    sections = []
    for category, entries in group_by_category(metadata).items():
        lines = [f"### {category.value}", ""]
        lines.extend(f"- `/{command_name(name)}` - {entry.description}" for name, entry in entries)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def _tool_label(tool: str) -> str:
    match = _BASH_TOOL_RE.match(tool)
    return match.group(1) if match else tool


def _commands_hint(commands: list[str]) -> str:
    shown = ", ".join(f"/{c}" for c in commands[:2])
    remaining = len(commands) - 2
    if remaining <= 0:
        return shown
    return f"{shown}, and {remaining} {'other' if remaining == 1 else 'others'}"


def requested_tool_options(metadata: Mapping[str, CommandMetadata]) -> list[ToolOption]:
    """List each distinct requested tool with the commands that asked for it."""
    tool_commands: dict[str, list[str]] = {}
    for filename, entry in metadata.items():
        for tool in entry.requested_tools or []:
            tool_commands.setdefault(tool, []).append(command_name(filename))

    return [
        ToolOption(value=tool, label=_tool_label(tool), hint=_commands_hint(commands))
        for tool, commands in tool_commands.items()
    ]


def dump_metadata(metadata: Mapping[str, CommandMetadata]) -> str:
    """Serialize a catalog as the JSON sidecar stored with a variant."""
    payload = {name: entry.to_sidecar() for name, entry in metadata.items()}
    return json.dumps(payload, indent=2) + "\n"
