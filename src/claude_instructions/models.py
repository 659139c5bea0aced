"""Core data models for claude-instructions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ORDER = 999
DEFAULT_DESCRIPTION = "No description"
METADATA_FILENAME = "commands-metadata.json"
REQUESTED_TOOLS_KEY = "_requested-tools"


class Variant(str, Enum):
    """Named pre-built output sets."""

    WITH_BEADS = "with-beads"
    WITHOUT_BEADS = "without-beads"

    @property
    def flags(self) -> frozenset[str]:
        """Feature flags the variant was expanded with."""
        return VARIANT_FLAGS[self]


VARIANT_FLAGS: dict[Variant, frozenset[str]] = {
    Variant.WITH_BEADS: frozenset({"beads"}),
    Variant.WITHOUT_BEADS: frozenset(),
}


class Scope(str, Enum):
    """Installation targets."""

    PROJECT = "project"
    USER = "user"


class Category(str, Enum):
    """Known command categories, in display order."""

    TDD = "Test-Driven Development"
    PLANNING = "Planning"
    WORKFLOW = "Workflow"
    WORKTREE = "Worktree Management"
    UTILITIES = "Utilities"
    SHIP_SHOW_ASK = "Ship / Show / Ask"


@dataclass(frozen=True)
class FlagOption:
    """A feature flag offered by the installer."""

    value: str
    label: str
    hint: str


FLAG_OPTIONS: tuple[FlagOption, ...] = (
    FlagOption("beads", "Beads MCP", "Local issue tracking"),
    FlagOption("no-plan-files", "No Plan Files", "Forbid Claude Code's internal plan.md"),
    FlagOption("gh-cli", "GitHub CLI", "Use gh CLI instead of GitHub MCP"),
    FlagOption("gh-mcp", "GitHub MCP", "Use GitHub MCP only (no CLI fallback)"),
)

# Pairs of flags that cannot be enabled together.
EXCLUSIVE_FLAGS: tuple[tuple[str, str], ...] = (("gh-cli", "gh-mcp"),)


class CommandMetadata(BaseModel):
    """Catalog entry derived from a command's frontmatter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str = Field(default=DEFAULT_DESCRIPTION, description="One-line summary")
    hint: str | None = Field(default=None, description="Hint shown in selection prompts")
    category: Category = Field(default=Category.UTILITIES, description="Display group")
    order: int = Field(default=DEFAULT_ORDER, description="Sort key within the category")
    selected_by_default: bool = Field(
        default=True,
        alias="selectedByDefault",
        description="Whether interactive selection pre-checks the command",
    )
    requested_tools: list[str] | None = Field(
        default=None,
        alias=REQUESTED_TOOLS_KEY,
        description="Tool permissions the command would like pre-approved",
    )

    def to_sidecar(self) -> dict[str, Any]:
        """Serialize the entry the way the JSON sidecar stores it."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        if self.selected_by_default:
            data.pop("selectedByDefault")
        return data


class GenerateOptions(BaseModel):
    """Options shared by the generator and the conflict detector."""

    model_config = ConfigDict(frozen=True)

    command_prefix: str = ""
    commands: list[str] | None = None
    skip_files: list[str] = Field(default_factory=list)
    allowed_tools: list[str] | None = None
    skip_template_injection: bool = False


class GenerateResult(BaseModel):
    """Outcome of one generator invocation."""

    success: bool
    files_generated: int
    variant: str | None = None
    flags: list[str] = Field(default_factory=list)
    destination: Path
    template_injection_skipped: bool = False
    template_injected: bool = False


class SkillsResult(BaseModel):
    """Outcome of one skill generation pass."""

    success: bool
    skills_generated: int
    destination: Path


class InstallerConfig(BaseModel):
    """Project-level defaults read from ``.claude-instructions.yaml``."""

    prefix: str | None = Field(default=None, description="Default command prefix")
    flags: list[str] = Field(default_factory=list, description="Default feature flags")
    allowed_tools: list[str] = Field(
        default_factory=list,
        description="Tools to pre-approve for commands that request them",
    )
    skip_template_injection: bool = Field(
        default=False,
        description="Never append CLAUDE.md/AGENTS.md template blocks",
    )

    @field_validator("flags")
    @classmethod
    def validate_flags(cls, v: list[str]) -> list[str]:
        """Reject flags the installer does not know about."""
        known = {option.value for option in FLAG_OPTIONS}
        unknown = [flag for flag in v if flag not in known]
        if unknown:
            msg = f"Unknown feature flag(s): {', '.join(unknown)}"
            raise ValueError(msg)
        return v


@dataclass(frozen=True)
class TemplateBlock:
    """A customization block extracted from CLAUDE.md or AGENTS.md."""

    content: str
    commands: tuple[str, ...] | None = None

    def applies_to(self, command_name: str) -> bool:
        """Whether the block should be appended to the given command."""
        return self.commands is None or command_name in self.commands


@dataclass(frozen=True)
class ExistingFile:
    """Comparison of a destination file against its prospective content."""

    filename: str
    existing_content: str
    new_content: str
    is_identical: bool
