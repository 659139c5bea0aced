"""claude-instructions command-line interface."""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from . import prompts
from .catalog import command_name, group_by_category, requested_tool_options
from .config import load_installer_config
from .conflicts import check_existing_files, diff_stats, unified_diff
from .exceptions import ClaudeInstructionsError, ConfigurationError, UserCancelled
from .generator import (
    generate_skills_to_directory,
    generate_to_directory,
    get_skills_path,
    normalize_command_names,
    resolve_destination,
    validate_scope,
)
from .logging_config import setup_logging
from .models import EXCLUSIVE_FLAGS, FLAG_OPTIONS, ExistingFile, GenerateOptions, Scope, Variant
from .prompts import Choice
from .variants import CommandSource, resolve_source

logger = logging.getLogger(__name__)

PROGRAM_NAME = "claude-instructions"
DEFAULT_SKILLS = ("tdd.md",)

app = typer.Typer(
    name=PROGRAM_NAME,
    help="Install curated Claude Code slash commands and skills",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()

VARIANT_CHOICES = (
    Choice(Variant.WITH_BEADS.value, "With Beads", "Beads MCP integration for issue tracking"),
    Choice(Variant.WITHOUT_BEADS.value, "Without Beads", "Standard commands only"),
)

_OVERWRITE = "overwrite"
_SKIP = "skip"
_OVERWRITE_ALL = "overwrite-all"
_SKIP_ALL = "skip-all"

CONFLICT_CHOICES = (
    Choice(_OVERWRITE, "Yes", "overwrite this file"),
    Choice(_SKIP, "No", "keep the existing file"),
    Choice(_OVERWRITE_ALL, "Overwrite all", "overwrite every remaining conflict"),
    Choice(_SKIP_ALL, "Skip all", "keep every remaining existing file"),
)


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version(PROGRAM_NAME)
    except PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', pyproject_path.read_text())
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"{PROGRAM_NAME} version {_get_version_string()}")
        raise typer.Exit


def is_interactive() -> bool:
    """Whether both ends of the terminal are attached to a TTY."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def split_list(value: str | None) -> list[str] | None:
    """Split a comma-separated option, or None when it was not given."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def check_flags(flags: list[str]) -> list[str]:
    """Validate feature flags.

    Raises:
        ConfigurationError: On unknown flags or an exclusive pair
    """
    known = {option.value for option in FLAG_OPTIONS}
    unknown = [flag for flag in flags if flag not in known]
    if unknown:
        msg = f"Unknown feature flag(s): {', '.join(unknown)}"
        raise ConfigurationError(msg, details={"known": sorted(known)})

    for first, second in EXCLUSIVE_FLAGS:
        if first in flags and second in flags:
            msg = f"Flags '{first}' and '{second}' cannot be used together"
            raise ConfigurationError(msg)
    return flags


@dataclass
class InstallPlan:
    """Everything one install run needs, gathered from options and prompts."""

    variant: Variant
    scope: str
    prefix: str
    flags: list[str] = field(default_factory=list)
    commands: list[str] | None = None
    skills: list[str] = field(default_factory=list)
    allowed_tools: list[str] | None = None
    skip_template_injection: bool = False

    @property
    def options(self) -> GenerateOptions:
        return GenerateOptions(
            command_prefix=self.prefix,
            commands=self.commands,
            allowed_tools=self.allowed_tools,
            skip_template_injection=self.skip_template_injection,
        )

    def automation_command(self) -> str:
        """Equivalent non-interactive command line."""
        parts = [
            PROGRAM_NAME,
            f"--variant={self.variant.value}",
            f"--scope={self.scope}",
            f"--prefix={self.prefix}",
        ]
        if self.flags:
            parts.append(f"--flags={','.join(self.flags)}")
        if self.commands is not None:
            parts.append(f"--commands={','.join(command_name(c) for c in self.commands)}")
        if self.skills:
            parts.append(f"--skills={','.join(command_name(s) for s in self.skills)}")
        if self.allowed_tools:
            parts.append(f'--allowed-tools="{",".join(self.allowed_tools)}"')
        if self.skip_template_injection:
            parts.append("--skip-template-injection")
        return " ".join(parts)


def existing_command_names(source: CommandSource, scope: str, prefix: str) -> list[str]:
    """Source filenames already installed at the scope under ``prefix``."""
    options = GenerateOptions(command_prefix=prefix, skip_template_injection=True)
    return [f.filename[len(prefix):] for f in check_existing_files(source, scope=scope, options=options)]


def _scope_choices() -> tuple[Choice, ...]:
    return (
        Choice(Scope.PROJECT.value, "Project", str(resolve_destination(None, Scope.PROJECT))),
        Choice(Scope.USER.value, "User (global)", str(resolve_destination(None, Scope.USER))),
    )


def _prompt_flags(initial: list[str]) -> list[str]:
    groups = {"Feature flags": [Choice(o.value, o.label, o.hint) for o in FLAG_OPTIONS]}
    while True:
        flags = prompts.multiselect("Select feature flags", groups, initial=initial)
        try:
            return check_flags(flags)
        except ConfigurationError as e:
            console.print(f"[yellow]{e}[/yellow]")


def _prompt_commands(source: CommandSource, only: list[str] | None) -> list[str]:
    metadata = source.metadata()
    if only is not None:
        metadata = {name: entry for name, entry in metadata.items() if name in only}

    groups = {
        category.value: [
            Choice(name, f"/{command_name(name)}", entry.hint or entry.description)
            for name, entry in entries
        ]
        for category, entries in group_by_category(metadata).items()
    }
    initial = [name for name, entry in metadata.items() if entry.selected_by_default]
    return prompts.multiselect("Select commands to install", groups, initial=initial, required=True)


def _prompt_allowed_tools(source: CommandSource, commands: list[str]) -> list[str] | None:
    metadata = {name: entry for name, entry in source.metadata().items() if name in commands}
    options = requested_tool_options(metadata)
    if not options:
        return None
    groups = {"Requested tools": [Choice(o.value, o.label, o.hint) for o in options]}
    return prompts.multiselect("Pre-approve tools for the selected commands", groups) or None


def _prompt_skills(commands: list[str]) -> list[str]:
    groups = {"Skills": [Choice(name, command_name(name)) for name in commands]}
    initial = [name for name in DEFAULT_SKILLS if name in commands]
    return prompts.multiselect("Also install as skills", groups, initial=initial)


def show_diff(existing: ExistingFile) -> None:
    """Print a colored diff of an existing file against its replacement."""
    added, removed = diff_stats(existing.existing_content, existing.new_content)
    diff = unified_diff(existing.existing_content, existing.new_content, existing.filename)
    console.print(
        Panel(
            Syntax(diff, "diff", theme="ansi_dark"),
            title=f"{existing.filename} [green]+{added}[/green] [red]-{removed}[/red]",
            expand=False,
        ),
    )


def resolve_conflicts(
    existing: list[ExistingFile],
    overwrite: bool = False,
    skip_on_conflict: bool = False,
    interactive: bool = True,
) -> list[str]:
    """Decide which existing destination files to leave untouched.

    Identical files are always left alone. Differing files are overwritten
    with ``overwrite``, kept with ``skip_on_conflict`` or without a TTY, and
    otherwise confirmed one by one after showing a diff.

    Returns:
        Destination filenames to skip
    """
    skip = [f.filename for f in existing if f.is_identical]
    for filename in skip:
        console.print(f"[dim]{filename} is up to date[/dim]")

    conflicts = [f for f in existing if not f.is_identical]
    if not conflicts:
        return skip

    if overwrite:
        for f in conflicts:
            console.print(f"[yellow]Overwriting[/yellow] {f.filename}")
        return skip

    if skip_on_conflict or not interactive:
        for f in conflicts:
            console.print(f"[yellow]Skipping[/yellow] {f.filename} (modified locally)")
            skip.append(f.filename)
        return skip

    decision = None
    for f in conflicts:
        if decision == _OVERWRITE_ALL:
            continue
        if decision == _SKIP_ALL:
            skip.append(f.filename)
            continue

        show_diff(f)
        if len(conflicts) == 1:
            if not prompts.confirm(f"Overwrite {f.filename}?", default=False):
                skip.append(f.filename)
            continue

        choice = prompts.select(f"Overwrite {f.filename}?", CONFLICT_CHOICES, default=_SKIP)
        if choice in (_OVERWRITE_ALL, _SKIP_ALL):
            decision = choice
        if choice in (_SKIP, _SKIP_ALL):
            skip.append(f.filename)
    return skip


def run_install(
    plan: InstallPlan,
    overwrite: bool = False,
    skip_on_conflict: bool = False,
    interactive: bool = False,
) -> None:
    """Resolve conflicts, then install commands and skills for a plan.

    Conflicts are only prompted for when a terminal is attached.
    ``interactive`` marks a run whose inputs were gathered by prompts.
    """
    source = resolve_source(plan.variant, plan.flags)

    if plan.commands is not None:
        available = set(source.list_files())
        unknown = [name for name in normalize_command_names(plan.commands) if name not in available]
        if unknown:
            console.print(
                f"[yellow]Warning:[/yellow] Unknown command(s) ignored: "
                f"{', '.join(command_name(u) for u in unknown)}",
            )

    if plan.skills:
        available = set(source.list_files())
        unknown = [name for name in normalize_command_names(plan.skills) if name not in available]
        if unknown:
            msg = f"Unknown command(s) for skills: {', '.join(command_name(u) for u in unknown)}"
            raise ConfigurationError(msg, details={"unknown": unknown})

    options = plan.options
    existing = check_existing_files(source, scope=plan.scope, options=options)
    skip_files = resolve_conflicts(existing, overwrite, skip_on_conflict, is_interactive())

    result = generate_to_directory(
        source,
        scope=plan.scope,
        options=options.model_copy(update={"skip_files": skip_files}),
    )
    console.print(
        f"[green]✓[/green] Installed {result.files_generated} command(s) "
        f"({result.variant}) to {result.destination}",
    )
    if result.template_injected:
        console.print("[green]✓[/green] Applied template blocks from CLAUDE.md/AGENTS.md")

    if plan.skills:
        skills = generate_skills_to_directory(source, get_skills_path(plan.scope), plan.skills)
        console.print(
            f"[green]✓[/green] Installed {skills.skills_generated} skill(s) to {skills.destination}",
        )

    if interactive:
        console.print("\nTo automate this setup, run:")
        console.print(plan.automation_command(), markup=False, highlight=False, soft_wrap=True)


@app.command()
def install(
    variant: Variant | None = typer.Option(None, "--variant", help="Pre-built variant to install"),
    scope: str | None = typer.Option(
        None,
        "--scope",
        help="project, user, or a path starting with /, ~ or .",
    ),
    prefix: str | None = typer.Option(None, "--prefix", help="Prefix for installed filenames"),
    commands: str | None = typer.Option(
        None,
        "--commands",
        help="Comma-separated commands to install (default: all)",
    ),
    skills: str | None = typer.Option(None, "--skills", help="Comma-separated commands to install as skills"),
    allowed_tools: str | None = typer.Option(
        None,
        "--allowed-tools",
        help="Comma-separated tools to pre-approve for commands that request them",
    ),
    flags: str | None = typer.Option(None, "--flags", help="Comma-separated feature flags"),
    skip_template_injection: bool = typer.Option(
        False,
        "--skip-template-injection",
        help="Do not append CLAUDE.md/AGENTS.md template blocks",
    ),
    update_existing: bool = typer.Option(
        False,
        "--update-existing",
        help="Only reinstall commands that are already installed",
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite modified files without asking"),
    skip_on_conflict: bool = typer.Option(
        False,
        "--skip-on-conflict",
        help="Keep modified files without asking",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Install curated slash commands into a Claude Code directory."""
    setup_logging(verbose)

    if overwrite and skip_on_conflict:
        console.print("[red]Error:[/red] --overwrite and --skip-on-conflict cannot be used together")
        raise typer.Exit(1)

    try:
        config = load_installer_config()
        flag_list = check_flags(split_list(flags) if flags is not None else list(config.flags))
        tools = split_list(allowed_tools)
        if tools is None and config.allowed_tools:
            tools = list(config.allowed_tools)
        skip_injection = skip_template_injection or config.skip_template_injection
        if scope is not None:
            validate_scope(scope)

        non_interactive = variant is not None and scope is not None and prefix is not None
        interactive = not non_interactive
        if interactive and not is_interactive():
            console.print(
                "[yellow]Warning:[/yellow] No terminal detected. "
                "Pass --variant, --scope and --prefix to run non-interactively.",
            )
            raise typer.Exit(1)

        if interactive:
            console.print(Panel.fit("[bold]claude-instructions[/bold]", border_style="cyan"))
            if variant is None:
                variant = Variant(prompts.select("Select variant", VARIANT_CHOICES))
            if scope is None:
                scope = prompts.select("Select installation scope", _scope_choices())
            if prefix is None:
                prefix = prompts.text("Command prefix", default=config.prefix or "", placeholder="e.g. my-")
            if flags is None:
                flag_list = _prompt_flags(flag_list)

        source = resolve_source(variant, flag_list)

        only = None
        if update_existing:
            only = existing_command_names(source, scope, prefix)
            if not only:
                console.print("[yellow]No existing commands found to update[/yellow]")
                return

        command_list = split_list(commands)
        if command_list is None and interactive:
            command_list = _prompt_commands(source, only)
        elif command_list is None:
            command_list = only
        elif only is not None:
            wanted = set(normalize_command_names(command_list))
            command_list = [name for name in only if name in wanted]

        if tools is None and interactive:
            selected = command_list if command_list is not None else source.list_files()
            tools = _prompt_allowed_tools(source, selected)

        skill_list = split_list(skills)
        if skill_list is None and interactive:
            selected = command_list if command_list is not None else source.list_files()
            skill_list = _prompt_skills(normalize_command_names(selected))

        plan = InstallPlan(
            variant=variant,
            scope=scope,
            prefix=prefix,
            flags=flag_list,
            commands=command_list,
            skills=skill_list or [],
            allowed_tools=tools,
            skip_template_injection=skip_injection,
        )
        logger.debug("Install plan: %s", plan)
        run_install(plan, overwrite, skip_on_conflict, interactive)
    except UserCancelled as e:
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0) from e
    except ClaudeInstructionsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


def main() -> None:
    """Entry point for the installer CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
