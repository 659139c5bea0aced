"""Fragment expansion for ``<!-- docs INCLUDE ... -->`` directives.

A document is first tokenized into literal text and directive segments, then
each directive is substituted independently. Expansion only reads files; it
never writes. Fragments are inserted verbatim and are not expanded again.

Directive syntax::

    <!-- docs INCLUDE path='fragments/beads.md' featureFlag='beads' -->
    anything here is discarded
    <!-- /docs -->

An open marker without a matching close marker is rejected. A close marker
without an open marker is ordinary text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import DirectiveError, FragmentReadError

logger = logging.getLogger(__name__)

INCLUDE_TRANSFORM = "INCLUDE"

OPEN_MARKER_RE = re.compile(r"<!--\s*docs\s+(\w+)([^>]*)-->")
CLOSE_MARKER_RE = re.compile(r"<!--\s*/docs\s*-->")
ATTRIBUTE_RE = re.compile(r"""(\w+)=['"]([^'"]*)['"]""")


@dataclass(frozen=True)
class TextSegment:
    """Literal document text, emitted unchanged."""

    text: str


@dataclass(frozen=True)
class DirectiveSegment:
    """A transform directive block."""

    transform: str
    attributes: dict[str, str] = field(default_factory=dict)
    line: int = 1


Segment = TextSegment | DirectiveSegment


def parse_attributes(attr_string: str) -> dict[str, str]:
    """Parse ``key='value'`` pairs from a directive's open marker."""
    return {match.group(1): match.group(2) for match in ATTRIBUTE_RE.finditer(attr_string)}


def tokenize(content: str) -> list[Segment]:
    """Split a document into literal text and directive segments.

    Raises:
        DirectiveError: If an open marker has no close marker after it
    """
    segments: list[Segment] = []
    pos = 0

    while True:
        opening = OPEN_MARKER_RE.search(content, pos)
        if opening is None:
            break

        line = content.count("\n", 0, opening.start()) + 1
        closing = CLOSE_MARKER_RE.search(content, opening.end())
        if closing is None:
            msg = f"Unterminated transform directive '{opening.group(1)}' at line {line}"
            raise DirectiveError(
                msg,
                details={"transform": opening.group(1), "line": line},
            )

        if opening.start() > pos:
            segments.append(TextSegment(content[pos:opening.start()]))
        segments.append(
            DirectiveSegment(
                transform=opening.group(1),
                attributes=parse_attributes(opening.group(2)),
                line=line,
            ),
        )
        pos = closing.end()

    if pos < len(content):
        segments.append(TextSegment(content[pos:]))

    return segments


def contains_directives(content: str) -> bool:
    """Whether the text has at least one directive open marker."""
    return OPEN_MARKER_RE.search(content) is not None


def expand_content(
    content: str,
    flags: Iterable[str],
    base_dir: Path | str,
) -> str:
    """Expand every directive in ``content``.

    Args:
        content: Document text
        flags: Feature flags enabled for this expansion
        base_dir: Directory that directive paths are relative to

    Returns:
        The document with each directive block replaced by its substitution

    Raises:
        DirectiveError: On unknown transforms, missing attributes or
            unterminated blocks
        FragmentReadError: If a referenced fragment cannot be read
    """
    active = frozenset(flags)
    root = Path(base_dir)

    parts = []
    for segment in tokenize(content):
        if isinstance(segment, TextSegment):
            parts.append(segment.text)
        else:
            parts.append(resolve_directive(segment, active, root))
    return "".join(parts)


def resolve_directive(
    directive: DirectiveSegment,
    flags: frozenset[str],
    base_dir: Path,
) -> str:
    """Compute the substitution text for a single directive."""
    if directive.transform != INCLUDE_TRANSFORM:
        msg = f"Unknown transform type: {directive.transform}"
        raise DirectiveError(msg, details={"transform": directive.transform, "line": directive.line})

    attrs = directive.attributes
    feature_flag = attrs.get("featureFlag")
    if feature_flag and feature_flag not in flags:
        else_path = attrs.get("elsePath")
        if else_path:
            return _read_fragment(base_dir, else_path, label="elsePath ")
        logger.debug("Dropping directive gated on disabled flag '%s'", feature_flag)
        return ""

    unless_flags = attrs.get("unlessFlags")
    if unless_flags:
        excluded = [name.strip() for name in unless_flags.split(",")]
        if any(name in flags for name in excluded):
            logger.debug("Dropping directive excluded by flags '%s'", unless_flags)
            return ""

    include_path = attrs.get("path")
    if not include_path:
        msg = f"{INCLUDE_TRANSFORM} directive missing required 'path' attribute"
        raise DirectiveError(msg, details={"line": directive.line})

    return _read_fragment(base_dir, include_path)


def _read_fragment(base_dir: Path, relative_path: str, label: str = "") -> str:
    full_path = base_dir / relative_path
    try:
        return full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read {label}'{relative_path}': {e}"
        raise FragmentReadError(msg, details={"path": str(full_path)}) from e
