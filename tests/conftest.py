"""Shared fixtures."""

from pathlib import Path

import pytest

from claude_instructions.variants import ExpandedSource


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """Create command sources and fragments under one base directory."""
    base = tmp_path / "corpus"
    sources = base / "sources"
    fragments = base / "fragments"
    sources.mkdir(parents=True)
    fragments.mkdir()

    (fragments / "beads.md").write_text("Track work with Beads.\n")
    (sources / "commit.md").write_text(
        "---\n"
        "description: Create a commit\n"
        "_category: Workflow\n"
        "_requested-tools:\n"
        "  - Bash(git add:*)\n"
        "  - Bash(git status:*)\n"
        "---\n"
        "\n"
        "# Commit\n",
    )
    (sources / "red.md").write_text(
        "---\n"
        "description: Write a failing test\n"
        "_category: Test-Driven Development\n"
        "_order: 2\n"
        "---\n"
        "\n"
        "# Red\n"
        "<!-- docs INCLUDE path='fragments/beads.md' featureFlag='beads' -->\n"
        "<!-- /docs -->\n",
    )
    (sources / "tdd.md").write_text(
        "---\n"
        "description: TDD cycle\n"
        "_category: Test-Driven Development\n"
        "_order: 1\n"
        "---\n"
        "\n"
        "# TDD\n",
    )
    return base


@pytest.fixture
def source(source_tree: Path) -> ExpandedSource:
    """Command source expanded without flags."""
    return ExpandedSource(set(), source_tree / "sources", source_tree)


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an isolated project directory with an isolated home."""
    project = tmp_path / "project"
    home = tmp_path / "home"
    project.mkdir()
    home.mkdir()
    monkeypatch.chdir(project)
    monkeypatch.setenv("HOME", str(home))
    return project
