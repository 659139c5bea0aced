"""Tests for installing commands and skills."""

from pathlib import Path

import pytest

from claude_instructions.exceptions import ConfigurationError
from claude_instructions.generator import (
    generate_skills_to_directory,
    generate_to_directory,
    get_skills_path,
    render_skill,
    resolve_destination,
    validate_scope,
)
from claude_instructions.models import GenerateOptions, Scope
from claude_instructions.variants import ExpandedSource

COMMIT = "---\ndescription: Create a commit\n---\n\n# Commit\n"


class TestDestinations:
    """Test destination resolution."""

    def test_project_scope(self, workdir: Path) -> None:
        """Test that project scope installs under the working directory."""
        assert resolve_destination(None, Scope.PROJECT) == workdir / ".claude" / "commands"

    def test_user_scope(self, workdir: Path, tmp_path: Path) -> None:
        """Test that user scope installs under the home directory."""
        assert resolve_destination(None, "user") == tmp_path / "home" / ".claude" / "commands"
        assert get_skills_path("user") == tmp_path / "home" / ".claude" / "skills"

    def test_custom_scope(self, tmp_path: Path) -> None:
        """Test that a path scope installs under that path."""
        target = tmp_path / "elsewhere"
        assert resolve_destination(None, str(target)) == target / ".claude" / "commands"
        assert get_skills_path(str(target)) == target / ".claude" / "skills"

    def test_output_path_wins(self, tmp_path: Path) -> None:
        """Test that an explicit output path overrides the scope."""
        assert resolve_destination(tmp_path, Scope.USER) == tmp_path

    def test_missing_destination(self) -> None:
        """Test that a destination is required."""
        with pytest.raises(ConfigurationError, match="Either an output path or a scope must be provided"):
            resolve_destination(None, None)

    def test_invalid_custom_scope(self) -> None:
        """Test that a bare word other than project/user is rejected."""
        with pytest.raises(ConfigurationError, match="Invalid scope"):
            validate_scope("global")
        assert validate_scope("./here") == "./here"
        assert validate_scope("project") == "project"


class TestGenerateToDirectory:
    """Test installing command files."""

    def test_installs_all_commands(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test a full install into an explicit directory."""
        out = tmp_path / "out"
        result = generate_to_directory(source, output_path=out)

        assert result.success
        assert result.files_generated == 3
        assert result.destination == out
        assert sorted(p.name for p in out.iterdir()) == ["commit.md", "red.md", "tdd.md"]
        assert (out / "commit.md").read_text() == COMMIT

    def test_prefix_applied(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test that the prefix is prepended to every filename."""
        generate_to_directory(source, output_path=tmp_path, options=GenerateOptions(command_prefix="my-"))

        assert sorted(p.name for p in tmp_path.glob("*.md")) == ["my-commit.md", "my-red.md", "my-tdd.md"]
        assert (tmp_path / "my-commit.md").read_text() == COMMIT

    def test_subset_without_suffix(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test selecting commands by bare name."""
        out = tmp_path / "out"
        result = generate_to_directory(
            source,
            output_path=out,
            options=GenerateOptions(commands=["red", "tdd.md", "missing"]),
        )

        assert result.files_generated == 2
        assert sorted(p.name for p in out.iterdir()) == ["red.md", "tdd.md"]

    def test_skip_list_uses_destination_names(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test that skipped files are named as installed."""
        options = GenerateOptions(command_prefix="p-", skip_files=["p-red.md"])
        result = generate_to_directory(source, output_path=tmp_path, options=options)

        assert result.files_generated == 2
        assert not (tmp_path / "p-red.md").exists()

    def test_allowed_tools_injected(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test that only requested and allowed tools are injected."""
        options = GenerateOptions(allowed_tools=["Bash(git status:*)", "Bash(rm:*)"])
        generate_to_directory(source, output_path=tmp_path, options=options)

        commit = (tmp_path / "commit.md").read_text()
        assert commit.startswith("---\nallowed-tools: Bash(git status:*)\ndescription: Create a commit\n")
        assert "allowed-tools" not in (tmp_path / "tdd.md").read_text()

    def test_allowed_tools_keep_requested_order(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test the comma-joined tool list."""
        options = GenerateOptions(allowed_tools=["Bash(git status:*)", "Bash(git add:*)"])
        generate_to_directory(source, output_path=tmp_path, options=options)

        assert "allowed-tools: Bash(git add:*), Bash(git status:*)\n" in (tmp_path / "commit.md").read_text()

    def test_result_reports_variant_and_flags(self, source_tree: Path, tmp_path: Path) -> None:
        """Test the result summary."""
        source = ExpandedSource({"beads"}, source_tree / "sources", source_tree)
        result = generate_to_directory(source, output_path=tmp_path / "out")

        assert result.variant == "custom"
        assert result.flags == ["beads"]
        assert "Track work with Beads." in (tmp_path / "out" / "red.md").read_text()

    def test_generation_is_idempotent(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test that a second run writes the same content."""
        out = tmp_path / "out"
        generate_to_directory(source, output_path=out)
        first = {p.name: p.read_text() for p in out.iterdir()}
        generate_to_directory(source, output_path=out)
        assert {p.name: p.read_text() for p in out.iterdir()} == first


class TestTemplateInjection:
    """Test appending CLAUDE.md/AGENTS.md customization blocks."""

    def test_blocks_applied_in_project_scope(self, source: ExpandedSource, workdir: Path) -> None:
        """Test that targeted and untargeted blocks are appended."""
        (workdir / "CLAUDE.md").write_text(
            "# Project\n"
            '<claude-commands-template commands="commit">\nReference the ticket.\n</claude-commands-template>\n'
            "<claude-commands-template>\nUse British spelling.\n</claude-commands-template>\n",
        )
        result = generate_to_directory(source, scope=Scope.PROJECT)
        commands = workdir / ".claude" / "commands"

        assert result.template_injected
        assert not result.template_injection_skipped
        assert (commands / "commit.md").read_text() == COMMIT + "\n\nReference the ticket.\n\nUse British spelling."
        assert (commands / "tdd.md").read_text().endswith("# TDD\n\n\nUse British spelling.")

    def test_agents_md_fallback(self, source: ExpandedSource, workdir: Path) -> None:
        """Test that AGENTS.md is used when CLAUDE.md is absent."""
        (workdir / "AGENTS.md").write_text("<claude-commands-template>Extra</claude-commands-template>")
        generate_to_directory(source, scope="project")

        assert (workdir / ".claude" / "commands" / "commit.md").read_text() == COMMIT + "\n\nExtra"

    def test_claude_md_takes_precedence(self, source: ExpandedSource, workdir: Path) -> None:
        """Test that only the first instruction file is read."""
        (workdir / "CLAUDE.md").write_text("<claude-commands-template>From Claude</claude-commands-template>")
        (workdir / "AGENTS.md").write_text("<claude-commands-template>From Agents</claude-commands-template>")
        generate_to_directory(source, scope="project")

        content = (workdir / ".claude" / "commands" / "commit.md").read_text()
        assert "From Claude" in content
        assert "From Agents" not in content

    def test_user_scope_skips_injection(self, source: ExpandedSource, workdir: Path, tmp_path: Path) -> None:
        """Test that project customizations never reach the user directory."""
        (workdir / "CLAUDE.md").write_text("<claude-commands-template>Private</claude-commands-template>")
        result = generate_to_directory(source, scope=Scope.USER)

        assert result.template_injection_skipped
        assert not result.template_injected
        installed = tmp_path / "home" / ".claude" / "commands" / "commit.md"
        assert installed.read_text() == COMMIT

    def test_skip_option(self, source: ExpandedSource, workdir: Path) -> None:
        """Test the explicit opt-out."""
        (workdir / "CLAUDE.md").write_text("<claude-commands-template>Extra</claude-commands-template>")
        result = generate_to_directory(
            source,
            scope="project",
            options=GenerateOptions(skip_template_injection=True),
        )

        assert result.template_injection_skipped
        assert (workdir / ".claude" / "commands" / "commit.md").read_text() == COMMIT

    def test_untargeted_commands_not_flagged(self, source: ExpandedSource, workdir: Path) -> None:
        """Test that template_injected stays false when no block applies."""
        (workdir / "CLAUDE.md").write_text(
            '<claude-commands-template commands="ship">Ship it</claude-commands-template>',
        )
        result = generate_to_directory(source, scope="project")

        assert not result.template_injected


class TestSkills:
    """Test skill generation."""

    def test_render_skill(self) -> None:
        """Test the skill manifest format."""
        assert render_skill("commit", COMMIT) == (
            "---\nname: commit\ndescription: Create a commit\n---\n\n# Commit\n"
        )

    def test_render_skill_without_description(self) -> None:
        """Test that a missing description is left empty."""
        assert render_skill("x", "Body\n") == "---\nname: x\ndescription: \n---\n\nBody\n"

    def test_generate_skills(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test writing one directory per skill."""
        skills_dir = tmp_path / "skills"
        result = generate_skills_to_directory(source, skills_dir, ["commit", "tdd.md"])

        assert result.skills_generated == 2
        assert (skills_dir / "commit" / "SKILL.md").read_text().startswith("---\nname: commit\n")
        assert (skills_dir / "tdd" / "SKILL.md").exists()

    def test_unknown_skill(self, source: ExpandedSource, tmp_path: Path) -> None:
        """Test that unknown names are rejected before writing."""
        with pytest.raises(ConfigurationError, match="Unknown command\\(s\\) for skills: nope"):
            generate_skills_to_directory(source, tmp_path / "skills", ["commit", "nope"])
        assert not (tmp_path / "skills").exists()
