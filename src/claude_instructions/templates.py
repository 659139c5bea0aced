"""Project customization blocks read from CLAUDE.md or AGENTS.md.

A project can tailor installed commands by adding blocks such as::

    <claude-commands-template commands="commit,red">
    Always reference the ticket number.
    </claude-commands-template>

Blocks without a ``commands`` attribute apply to every command.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from .models import TemplateBlock

logger = logging.getLogger(__name__)

TEMPLATE_SOURCE_FILES = ("CLAUDE.md", "AGENTS.md")
TEMPLATE_TAG = "claude-commands-template"

_TEMPLATE_BLOCK_RE = re.compile(
    rf'<{TEMPLATE_TAG}(?:\s+commands="([^"]+)")?\s*>(.*?)</{TEMPLATE_TAG}>',
    re.DOTALL,
)


def find_template_source(directory: Path) -> Path | None:
    """Return the first recognized instruction file in ``directory``."""
    for filename in TEMPLATE_SOURCE_FILES:
        candidate = Path(directory) / filename
        if candidate.is_file():
            return candidate
    return None


def extract_template_blocks(content: str) -> list[TemplateBlock]:
    """Extract customization blocks in the order they appear."""
    blocks = []
    for match in _TEMPLATE_BLOCK_RE.finditer(content):
        commands_attr = match.group(1)
        commands = tuple(c.strip() for c in commands_attr.split(",")) if commands_attr else None
        blocks.append(TemplateBlock(content=match.group(2).strip(), commands=commands))
    return blocks


def load_template_blocks(directory: Path) -> list[TemplateBlock]:
    """Read blocks from the instruction file in ``directory``, if any."""
    source = find_template_source(directory)
    if source is None:
        logger.debug("No %s found in %s", " or ".join(TEMPLATE_SOURCE_FILES), directory)
        return []
    blocks = extract_template_blocks(source.read_text(encoding="utf-8"))
    logger.debug("Found %d template block(s) in %s", len(blocks), source)
    return blocks


def apply_template_blocks(
    content: str,
    command_name: str,
    blocks: Sequence[TemplateBlock],
) -> str:
    """Append every block that applies to ``command_name``."""
    for block in blocks:
        if block.applies_to(command_name):
            content = f"{content}\n\n{block.content}"
    return content
