"""claude-instructions: installer for curated Claude Code slash commands."""

__version__ = "0.4.0"
__author__ = "claude-instructions Contributors"
__description__ = "Installer for curated Claude Code slash commands and skills"

from .conflicts import check_existing_files, check_for_conflicts
from .expander import expand_content
from .generator import generate_skills_to_directory, generate_to_directory
from .models import CommandMetadata, GenerateOptions, Scope, Variant
from .variants import ExpandedSource, PrebuiltVariant, resolve_source

__all__ = [
    "CommandMetadata",
    "ExpandedSource",
    "GenerateOptions",
    "PrebuiltVariant",
    "Scope",
    "Variant",
    "check_existing_files",
    "check_for_conflicts",
    "expand_content",
    "generate_skills_to_directory",
    "generate_to_directory",
    "resolve_source",
]
