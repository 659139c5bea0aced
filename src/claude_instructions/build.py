"""Build the pre-built variants from the packaged command sources."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .catalog import dump_metadata, list_markdown_files, render_commands_list, scan_commands
from .exceptions import ClaudeInstructionsError, DirectiveError
from .expander import DirectiveSegment, contains_directives, tokenize
from .logging_config import setup_logging
from .models import METADATA_FILENAME, Variant
from .variants import DOWNLOADS_DIR, PACKAGE_ROOT, SOURCES_DIR, ExpandedSource

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="claude-instructions-build",
    help="Rebuild the pre-built command variants from sources",
    add_completion=False,
)
console = Console()


def referenced_fragments(sources_dir: Path) -> set[str]:
    """Collect every fragment path named by directives in the sources."""
    paths: set[str] = set()
    for filename in list_markdown_files(sources_dir):
        content = (sources_dir / filename).read_text(encoding="utf-8")
        for segment in tokenize(content):
            if isinstance(segment, DirectiveSegment):
                for key in ("path", "elsePath"):
                    if segment.attributes.get(key):
                        paths.add(segment.attributes[key])
    return paths


def check_fragments(sources_dir: Path, base_dir: Path) -> None:
    """Ensure no referenced fragment contains directives of its own.

    Raises:
        DirectiveError: If a fragment contains a directive
    """
    for relative_path in sorted(referenced_fragments(sources_dir)):
        fragment = base_dir / relative_path
        if fragment.is_file() and contains_directives(fragment.read_text(encoding="utf-8")):
            msg = f"Fragment '{relative_path}' must not contain transform directives"
            raise DirectiveError(msg, details={"path": str(fragment)})


def build_variant(
    variant: Variant,
    sources_dir: Path = SOURCES_DIR,
    base_dir: Path = PACKAGE_ROOT,
    downloads_dir: Path = DOWNLOADS_DIR,
) -> list[str]:
    """Expand every source with the variant's flags and write the result.

    Stale command files in the variant directory are removed first. The
    metadata sidecar is written last.

    Returns:
        Filenames written
    """
    metadata = scan_commands(sources_dir)
    source = ExpandedSource(variant.flags, sources_dir, base_dir)
    rendered = {filename: source.read(filename) for filename in source.list_files()}

    out_dir = downloads_dir / variant.value
    out_dir.mkdir(parents=True, exist_ok=True)
    for stale in list_markdown_files(out_dir):
        if stale not in rendered:
            (out_dir / stale).unlink()
            logger.info("Removed stale %s", out_dir / stale)

    for filename, content in rendered.items():
        (out_dir / filename).write_text(content, encoding="utf-8")
    (out_dir / METADATA_FILENAME).write_text(dump_metadata(metadata), encoding="utf-8")

    logger.info("Built %s with %d command(s)", variant.value, len(rendered))
    return list(rendered)


def build_all(
    sources_dir: Path = SOURCES_DIR,
    base_dir: Path = PACKAGE_ROOT,
    downloads_dir: Path = DOWNLOADS_DIR,
) -> dict[Variant, list[str]]:
    """Check fragments, then build every variant."""
    check_fragments(sources_dir, base_dir)
    return {
        variant: build_variant(variant, sources_dir, base_dir, downloads_dir)
        for variant in Variant
    }


@app.command()
def build(
    sources: Path = typer.Option(
        SOURCES_DIR,
        "--sources",
        help="Directory of command source documents",
        file_okay=False,
    ),
    base_dir: Path = typer.Option(
        PACKAGE_ROOT,
        "--base-dir",
        help="Directory that INCLUDE paths are relative to",
        file_okay=False,
    ),
    output: Path = typer.Option(
        DOWNLOADS_DIR,
        "--output",
        "-o",
        help="Directory receiving one subdirectory per variant",
        file_okay=False,
    ),
    print_commands: bool = typer.Option(
        False,
        "--print-commands",
        help="Print the Markdown commands list after building",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Expand sources into every variant and write their metadata."""
    setup_logging(verbose)
    try:
        built = build_all(sources, base_dir, output)
    except ClaudeInstructionsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    table = Table(title="Built variants")
    table.add_column("Variant", style="cyan")
    table.add_column("Commands", style="green")
    for variant, files in built.items():
        table.add_row(variant.value, ", ".join(files))
    console.print(table)
    console.print(f"[green]✓[/green] Variants written to {output}")

    if print_commands:
        console.print(render_commands_list(scan_commands(sources)), markup=False)


def main() -> None:
    """Entry point for the build CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
