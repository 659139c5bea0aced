"""Detect destination files that an install would change."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path

from .generator import CommandRenderer, load_blocks_for, resolve_destination, select_files
from .models import ExistingFile, GenerateOptions, Scope
from .variants import CommandSource

logger = logging.getLogger(__name__)


def check_existing_files(
    source: CommandSource,
    output_path: Path | None = None,
    scope: str | Scope | None = None,
    options: GenerateOptions | None = None,
    cwd: Path | None = None,
) -> list[ExistingFile]:
    """Compare already-installed files with what an install would write.

    Only files that exist at the destination are reported. The prospective
    content goes through the same rendering as the generator, so an
    unchanged re-run reports every file as identical.

    Raises:
        ConfigurationError: If no destination can be resolved
    """
    options = options or GenerateOptions()
    destination = resolve_destination(output_path, scope)
    renderer = CommandRenderer(source, options, load_blocks_for(scope, options, cwd))

    existing: list[ExistingFile] = []
    for filename in select_files(source, options, apply_skip_list=False):
        dest_name = f"{options.command_prefix}{filename}"
        target = destination / dest_name
        if not target.is_file():
            continue

        existing_content = target.read_text(encoding="utf-8")
        new_content = renderer.render(filename)
        existing.append(
            ExistingFile(
                filename=dest_name,
                existing_content=existing_content,
                new_content=new_content,
                is_identical=existing_content == new_content,
            ),
        )

    logger.debug(
        "%d existing file(s) at %s, %d differ",
        len(existing),
        destination,
        sum(1 for f in existing if not f.is_identical),
    )
    return existing


def check_for_conflicts(
    source: CommandSource,
    output_path: Path | None = None,
    scope: str | Scope | None = None,
    options: GenerateOptions | None = None,
    cwd: Path | None = None,
) -> list[ExistingFile]:
    """Existing files whose content would change."""
    return [
        f
        for f in check_existing_files(source, output_path, scope, options, cwd)
        if not f.is_identical
    ]


def diff_stats(old_content: str, new_content: str) -> tuple[int, int]:
    """Count ``(added, removed)`` lines between two versions."""
    matcher = difflib.SequenceMatcher(
        None,
        old_content.splitlines(),
        new_content.splitlines(),
        autojunk=False,
    )
    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return added, removed


def unified_diff(old_content: str, new_content: str, filename: str, context_lines: int = 3) -> str:
    """Render a unified diff of an existing file against its replacement."""
    diff = difflib.unified_diff(
        old_content.splitlines(),
        new_content.splitlines(),
        fromfile=f"existing/{filename}",
        tofile=f"new/{filename}",
        n=context_lines,
        lineterm="",
    )
    return "\n".join(diff)
