"""Minimal frontmatter parsing and cleaning for command documents.

Command frontmatter is a small YAML subset: ``key: value`` scalars plus
string lists written as an empty-valued key followed by indented
``- item`` lines. Fields starting with an underscore are build-only
metadata and are stripped before publishing.
"""

from __future__ import annotations

import re
from typing import Any

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---", re.DOTALL)
FRONTMATTER_BLOCK_RE = re.compile(r"---\n(.*?)\n---", re.DOTALL)
FRONTMATTER_SPLIT_RE = re.compile(r"^---[ \t]*\n(.*?)\n---[ \t]*(?:\n|$)", re.DOTALL)
UNDERSCORE_FIELD_RE = re.compile(r"^_[a-zA-Z0-9_-]+:")
LIST_ITEM_RE = re.compile(r"^\s+-\s+")

# Fields whose values are coerced from strings.
INTEGER_FIELDS = frozenset({"_order"})
BOOLEAN_FIELDS = frozenset({"_selectedByDefault"})


def parse_frontmatter(content: str) -> dict[str, Any]:
    """Parse the frontmatter block at the start of a document.

    Args:
        content: Full document text

    Returns:
        Mapping of field names to strings, ints, bools or string lists.
        Empty when the document has no frontmatter.
    """
    match = FRONTMATTER_RE.match(content)
    if not match:
        return {}

    fields: dict[str, Any] = {}
    current_key: str | None = None
    current_list: list[str] | None = None

    for line in match.group(1).split("\n"):
        if current_list is not None and LIST_ITEM_RE.match(line):
            current_list.append(LIST_ITEM_RE.sub("", line).strip())
            continue

        if current_key is not None and current_list is not None:
            fields[current_key] = current_list
            current_key = None
            current_list = None

        key, sep, raw_value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        value: Any = raw_value.strip()

        if value == "":
            current_key = key
            current_list = []
            continue

        if key in INTEGER_FIELDS:
            try:
                value = int(value)
            except ValueError:
                pass
        elif key in BOOLEAN_FIELDS:
            value = value == "true"

        fields[key] = value

    if current_key is not None and current_list is not None:
        fields[current_key] = current_list

    return fields


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split a document into its frontmatter text and body.

    Returns:
        ``(frontmatter, body)``; frontmatter is None when absent and the body
        is then the whole document.
    """
    match = FRONTMATTER_SPLIT_RE.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end():]


def clean_frontmatter(content: str) -> str:
    """Remove underscore-prefixed fields from the leading frontmatter block.

    List items belonging to a removed field are removed with it and blank
    lines inside the block are collapsed. Text after the block is untouched.
    """
    match = FRONTMATTER_BLOCK_RE.match(content)
    if not match:
        return content

    kept: list[str] = []
    dropping_list = False
    for line in match.group(1).split("\n"):
        if UNDERSCORE_FIELD_RE.match(line):
            dropping_list = True
            continue
        if dropping_list and LIST_ITEM_RE.match(line):
            continue
        dropping_list = False
        if not line.strip():
            continue
        kept.append(line)

    if not kept:
        return "---\n---" + content[match.end():]
    return "---\n" + "\n".join(kept) + "\n---" + content[match.end():]


def inject_frontmatter_line(content: str, line: str) -> str:
    """Insert a line directly after the opening ``---`` delimiter.

    Documents that do not start with frontmatter are returned unchanged.
    """
    if not content.startswith("---\n"):
        return content
    return f"---\n{line}\n{content[4:]}"
