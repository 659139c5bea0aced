"""Install command files and skills into a destination directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from .catalog import command_name
from .exceptions import ConfigurationError
from .frontmatter import inject_frontmatter_line, parse_frontmatter, split_frontmatter
from .models import GenerateOptions, GenerateResult, Scope, SkillsResult, TemplateBlock
from .templates import apply_template_blocks, load_template_blocks
from .variants import CommandSource

logger = logging.getLogger(__name__)

CLAUDE_DIR = ".claude"
COMMANDS_DIR = "commands"
SKILLS_DIR = "skills"
SKILL_MANIFEST = "SKILL.md"
ALLOWED_TOOLS_KEY = "allowed-tools"

_CUSTOM_SCOPE_PREFIXES = ("/", "~", ".")


def is_custom_scope(scope: str | Scope | None) -> bool:
    """Whether the scope is a filesystem path rather than project/user."""
    if scope is None or isinstance(scope, Scope):
        return False
    return scope not in {s.value for s in Scope}


def validate_scope(scope: str) -> str:
    """Check a scope given on the command line.

    Raises:
        ConfigurationError: If the scope is neither a known scope nor a path
    """
    if is_custom_scope(scope) and not scope.startswith(_CUSTOM_SCOPE_PREFIXES):
        msg = f'Invalid scope "{scope}": custom scope must be a path starting with "/", "~", or "."'
        raise ConfigurationError(msg, details={"scope": scope})
    return scope


def scope_root(scope: str | Scope | None) -> Path | None:
    """Directory that holds ``.claude/`` for the given scope."""
    if scope is None:
        return None
    if is_custom_scope(scope):
        return Path(scope).expanduser()
    if Scope(scope) == Scope.PROJECT:
        return Path.cwd()
    return Path.home()


def is_user_scope(scope: str | Scope | None) -> bool:
    return scope is not None and not is_custom_scope(scope) and Scope(scope) == Scope.USER


def resolve_destination(output_path: Path | None, scope: str | Scope | None) -> Path:
    """Resolve where command files go.

    An explicit output path wins over the scope.

    Raises:
        ConfigurationError: If neither an output path nor a scope is given
    """
    if output_path is not None:
        return Path(output_path)
    root = scope_root(scope)
    if root is None:
        msg = "Either an output path or a scope must be provided"
        raise ConfigurationError(msg)
    return root / CLAUDE_DIR / COMMANDS_DIR


def get_skills_path(scope: str | Scope) -> Path:
    """Resolve the skills directory for a scope."""
    root = scope_root(scope)
    if root is None:
        msg = "A scope is required to locate the skills directory"
        raise ConfigurationError(msg)
    return root / CLAUDE_DIR / SKILLS_DIR


def normalize_command_names(names: Iterable[str]) -> list[str]:
    """Accept ``commit`` or ``commit.md`` and return filenames."""
    normalized = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        normalized.append(name if name.endswith(".md") else f"{name}.md")
    return normalized


def select_files(
    source: CommandSource,
    options: GenerateOptions,
    apply_skip_list: bool = True,
) -> list[str]:
    """Pick the command files one run would install."""
    files = source.list_files()
    if options.commands is not None:
        wanted = set(normalize_command_names(options.commands))
        files = [f for f in files if f in wanted]
    if apply_skip_list and options.skip_files:
        skipped = set(options.skip_files)
        files = [f for f in files if options.command_prefix + f not in skipped]
    return files


def template_injection_skipped(scope: str | Scope | None, options: GenerateOptions) -> bool:
    """Project customizations never go into the user-wide install."""
    return options.skip_template_injection or is_user_scope(scope)


def load_blocks_for(
    scope: str | Scope | None,
    options: GenerateOptions,
    cwd: Path | None = None,
) -> list[TemplateBlock]:
    """Template blocks to apply for this run, honoring skip rules."""
    if template_injection_skipped(scope, options):
        return []
    return load_template_blocks(cwd or Path.cwd())


class CommandRenderer:
    """Computes the final content of each installed command file.

    The generator writes what this renders and the conflict detector compares
    against it, so both always agree on the prospective content.
    """

    def __init__(
        self,
        source: CommandSource,
        options: GenerateOptions,
        template_blocks: Sequence[TemplateBlock] = (),
    ) -> None:
        """Initialize renderer.

        Args:
            source: Where published command content comes from
            options: Prefix, tool and selection options
            template_blocks: Project customization blocks to append
        """
        self.source = source
        self.options = options
        self.template_blocks = list(template_blocks)
        self._allowed_tools = set(options.allowed_tools or [])
        self._metadata = source.metadata() if self._allowed_tools else {}

    def tools_for(self, filename: str) -> list[str]:
        """Requested tools of a command that the user also allowed."""
        entry = self._metadata.get(filename)
        if entry is None or not entry.requested_tools:
            return []
        return [tool for tool in entry.requested_tools if tool in self._allowed_tools]

    def injects_templates(self, filename: str) -> bool:
        name = command_name(filename)
        return any(block.applies_to(name) for block in self.template_blocks)

    def render(self, filename: str) -> str:
        content = self.source.read(filename)

        tools = self.tools_for(filename)
        if tools:
            content = inject_frontmatter_line(content, f"{ALLOWED_TOOLS_KEY}: {', '.join(tools)}")

        if self.template_blocks:
            content = apply_template_blocks(content, command_name(filename), self.template_blocks)

        return content


def generate_to_directory(
    source: CommandSource,
    output_path: Path | None = None,
    scope: str | Scope | None = None,
    options: GenerateOptions | None = None,
    cwd: Path | None = None,
) -> GenerateResult:
    """Install command files from ``source``.

    Args:
        source: Pre-built variant or expanded sources
        output_path: Explicit destination, overrides ``scope``
        scope: ``project``, ``user`` or a custom path
        options: Selection, prefix, skip list, tools and template options
        cwd: Directory searched for CLAUDE.md/AGENTS.md (defaults to cwd)

    Returns:
        Summary of the run

    Raises:
        ConfigurationError: If no destination can be resolved
    """
    options = options or GenerateOptions()
    destination = resolve_destination(output_path, scope)
    files = select_files(source, options)

    skipped = template_injection_skipped(scope, options)
    renderer = CommandRenderer(source, options, load_blocks_for(scope, options, cwd))

    destination.mkdir(parents=True, exist_ok=True)
    template_injected = False
    for filename in files:
        target = destination / f"{options.command_prefix}{filename}"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(renderer.render(filename), encoding="utf-8")
        template_injected = template_injected or renderer.injects_templates(filename)
        logger.debug("Wrote %s", target)

    logger.info("Installed %d command(s) to %s", len(files), destination)
    return GenerateResult(
        success=True,
        files_generated=len(files),
        variant=source.name,
        flags=sorted(source.flags),
        destination=destination,
        template_injection_skipped=skipped,
        template_injected=template_injected,
    )


def render_skill(name: str, content: str) -> str:
    """Turn a published command into a skill manifest."""
    description = parse_frontmatter(content).get("description")
    if not isinstance(description, str):
        description = ""
    _, body = split_frontmatter(content)
    body = body.lstrip("\n")
    return f"---\nname: {name}\ndescription: {description}\n---\n\n{body}"


def generate_skills_to_directory(
    source: CommandSource,
    skills_dir: Path,
    names: Iterable[str],
) -> SkillsResult:
    """Write ``<skills_dir>/<name>/SKILL.md`` for each selected command.

    Raises:
        ConfigurationError: If a name does not match any command in the source
    """
    filenames = normalize_command_names(names)
    available = set(source.list_files())
    unknown = [f for f in filenames if f not in available]
    if unknown:
        msg = f"Unknown command(s) for skills: {', '.join(command_name(f) for f in unknown)}"
        raise ConfigurationError(msg, details={"unknown": unknown})

    for filename in filenames:
        name = command_name(filename)
        skill_dir = Path(skills_dir) / name
        skill_dir.mkdir(parents=True, exist_ok=True)
        (skill_dir / SKILL_MANIFEST).write_text(
            render_skill(name, source.read(filename)),
            encoding="utf-8",
        )
        logger.debug("Wrote skill %s", skill_dir)

    return SkillsResult(success=True, skills_generated=len(filenames), destination=Path(skills_dir))
