"""Command sources: pre-built variants and on-the-fly expansion.

A command source is passed explicitly to the generator and the conflict
detector. It lists the command files it provides, returns their published
content and exposes the catalog metadata for them.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from functools import cached_property
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .catalog import list_markdown_files, scan_commands
from .exceptions import MetadataError
from .expander import expand_content
from .frontmatter import clean_frontmatter
from .models import METADATA_FILENAME, CommandMetadata, Variant
from .schemas import validate_against_schema

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).parent
DOWNLOADS_DIR = PACKAGE_ROOT / "downloads"
SOURCES_DIR = PACKAGE_ROOT / "sources"


class CommandSource(Protocol):
    """Provider of published command files."""

    name: str
    flags: frozenset[str]

    def list_files(self) -> list[str]:
        """Filenames of every command the source provides."""
        ...

    def read(self, filename: str) -> str:
        """Published content of one command."""
        ...

    def metadata(self) -> dict[str, CommandMetadata]:
        """Catalog entries keyed by filename."""
        ...


class PrebuiltVariant:
    """A variant directory produced ahead of time by the build step."""

    def __init__(self, variant: Variant, root: Path = DOWNLOADS_DIR) -> None:
        """Initialize from the variant name and the downloads root.

        Args:
            variant: Variant to read
            root: Directory holding one subdirectory per variant
        """
        self.variant = variant
        self.name = variant.value
        self.flags = variant.flags
        self.path = Path(root) / variant.value

    def list_files(self) -> list[str]:
        if not self.path.is_dir():
            msg = f"Variant directory not found: {self.path}"
            raise MetadataError(msg, details={"variant": self.name})
        return list_markdown_files(self.path)

    def read(self, filename: str) -> str:
        return (self.path / filename).read_text(encoding="utf-8")

    def metadata(self) -> dict[str, CommandMetadata]:
        return dict(self._metadata)

    @cached_property
    def _metadata(self) -> dict[str, CommandMetadata]:
        metadata_path = self.path / METADATA_FILENAME
        try:
            with metadata_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            msg = f"Failed to parse {metadata_path}: {e}"
            raise MetadataError(msg) from e
        except OSError as e:
            msg = f"Failed to read {metadata_path}: {e}"
            raise MetadataError(msg) from e

        validate_against_schema(data, "commands-metadata", MetadataError, metadata_path)

        try:
            return {name: CommandMetadata.model_validate(entry) for name, entry in data.items()}
        except ValidationError as e:
            msg = f"Invalid metadata in {metadata_path}: {e}"
            raise MetadataError(msg) from e


class ExpandedSource:
    """Command files expanded from sources with an arbitrary flag set."""

    def __init__(
        self,
        flags: Iterable[str],
        sources_dir: Path = SOURCES_DIR,
        base_dir: Path = PACKAGE_ROOT,
    ) -> None:
        """Initialize from the flag set and the source locations.

        Args:
            flags: Feature flags to expand with
            sources_dir: Directory of command source documents
            base_dir: Directory that directive paths are relative to
        """
        self.flags = frozenset(flags)
        self.name = "custom" if self.flags else "none"
        self.sources_dir = Path(sources_dir)
        self.base_dir = Path(base_dir)

    def list_files(self) -> list[str]:
        return list_markdown_files(self.sources_dir)

    def read(self, filename: str) -> str:
        raw = (self.sources_dir / filename).read_text(encoding="utf-8")
        return clean_frontmatter(expand_content(raw, self.flags, self.base_dir))

    def metadata(self) -> dict[str, CommandMetadata]:
        return dict(self._metadata)

    @cached_property
    def _metadata(self) -> dict[str, CommandMetadata]:
        return scan_commands(self.sources_dir)


def resolve_source(
    variant: Variant,
    extra_flags: Iterable[str] = (),
    downloads_dir: Path = DOWNLOADS_DIR,
) -> CommandSource:
    """Pick the pre-built variant, or expand sources when flags go beyond it."""
    flags = variant.flags | frozenset(extra_flags)
    if flags == variant.flags:
        return PrebuiltVariant(variant, downloads_dir)
    logger.info("Expanding sources with flags: %s", ", ".join(sorted(flags)))
    return ExpandedSource(flags)
