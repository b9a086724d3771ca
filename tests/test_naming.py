"""Tests for worktree and branch name resolution"""
import re
import pytest

from git_prl.config import Config
from git_prl.exceptions import NameCollisionError
from git_prl.services.naming import NameResolver, sanitize

SEGMENT = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class TestSanitize:
    """Test name segment sanitization."""

    @pytest.mark.parametrize("raw,expected", [
        ("writer", "writer"),
        ("Writer", "writer"),
        ("Writer Bot", "writer-bot"),
        ("claude.code v2", "claude-code-v2"),
        ("--A__b--", "a-b"),
        ("a///b", "a-b"),
        ("  spaced  out  ", "spaced-out"),
    ])
    def test_sanitize_cases(self, raw, expected):
        """Test known inputs."""
        assert sanitize(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "!!!", "---", None, "日本語"])
    def test_empty_result_falls_back(self, raw):
        """Test that input with nothing usable becomes 'agent'."""
        assert sanitize(raw) == "agent"

    @pytest.mark.parametrize("raw", [
        "x", "X-Y", "a--b", "-lead", "trail-", "MiXeD_case.123", "tab\there",
        "über agent", "1", "a b c d", "ñandú", "feature/new", "..", "UPPER",
    ])
    def test_output_is_always_a_valid_segment(self, raw):
        """Test that output is lowercase alphanumerics separated by single hyphens."""
        assert SEGMENT.match(sanitize(raw))


class TestResolveDefault:
    """Test default (agent-derived) name resolution."""

    def test_unused_name_is_returned_unchanged(self, ctx, config):
        """Test first resolution for an unused agent name."""
        resolver = NameResolver(config)

        assert resolver.resolve_default(ctx, "writer") == ("writer", "prl/writer")

    def test_repeated_resolution_increments(self, ctx, lifecycle):
        """Test that each creation pushes the next resolution to the smallest free suffix."""
        resolver = lifecycle.resolver

        seen = []
        for _ in range(3):
            name, branch = resolver.resolve_default(ctx, "writer")
            lifecycle.create(ctx, name, branch)
            seen.append((name, branch))

        assert seen == [
            ("writer", "prl/writer"),
            ("writer-1", "prl/writer-1"),
            ("writer-2", "prl/writer-2"),
        ]

    def test_existing_branch_without_directory_is_taken(self, ctx, config, git_repo):
        """Test that a branch alone makes a candidate unavailable."""
        git_repo.git.branch("prl/writer")
        resolver = NameResolver(config)

        assert resolver.resolve_default(ctx, "writer") == ("writer-1", "prl/writer-1")

    def test_existing_directory_without_branch_is_taken(self, ctx, config):
        """Test that a directory alone makes a candidate unavailable."""
        resolver = NameResolver(config)
        (resolver.container_path(ctx) / "writer").mkdir(parents=True)

        assert resolver.resolve_default(ctx, "writer") == ("writer-1", "prl/writer-1")

    def test_lowest_free_suffix_is_used(self, ctx, config, git_repo):
        """Test that gaps in the sequence are filled first."""
        git_repo.git.branch("prl/writer")
        git_repo.git.branch("prl/writer-2")
        resolver = NameResolver(config)

        assert resolver.resolve_default(ctx, "writer") == ("writer-1", "prl/writer-1")

    def test_template_name_is_reserved(self, ctx, config):
        """Test that an agent cannot claim the template directory."""
        resolver = NameResolver(config)

        assert resolver.resolve_default(ctx, "Template") == ("template-1", "prl/template-1")

    def test_agent_name_is_sanitized(self, ctx, config):
        """Test that the agent name goes through sanitization."""
        resolver = NameResolver(config)

        assert resolver.resolve_default(ctx, "Claude Code") == ("claude-code", "prl/claude-code")

    def test_custom_prefix(self, ctx):
        """Test that the branch prefix comes from configuration."""
        resolver = NameResolver(Config(branch_prefix="agents"))

        assert resolver.resolve_default(ctx, "writer") == ("writer", "agents/writer")


class TestResolveExplicit:
    """Test resolution with an explicit worktree name."""

    def test_branch_sequence_is_keyed_on_agent(self, ctx, config, git_repo):
        """Test explicit name 'scratch' for agent 'writer' when prl/writer-1 exists."""
        git_repo.git.branch("prl/writer-1")
        resolver = NameResolver(config)

        assert resolver.resolve_explicit(ctx, "scratch", "writer") == ("scratch", "prl/writer-2")

    def test_first_branch_is_numbered(self, ctx, config):
        """Test that the explicit path starts its branch sequence at 1."""
        resolver = NameResolver(config)

        assert resolver.resolve_explicit(ctx, "Scratch Pad", "writer") == (
            "scratch-pad", "prl/writer-1"
        )

    def test_collision_is_an_error(self, ctx, config):
        """Test that an existing directory is never auto-incremented."""
        resolver = NameResolver(config)
        (resolver.container_path(ctx) / "scratch").mkdir(parents=True)

        with pytest.raises(NameCollisionError) as exc_info:
            resolver.resolve_explicit(ctx, "scratch", "writer")

        assert ".prl-worktrees/scratch" in str(exc_info.value)
        assert exc_info.value.stage == "resolve-name"

    def test_template_is_not_an_allowed_name(self, ctx, config):
        """Test that the template entry cannot be requested explicitly."""
        resolver = NameResolver(config)

        with pytest.raises(NameCollisionError):
            resolver.resolve_explicit(ctx, "template", "writer")


class TestManagedBranches:
    """Test branch-name helpers."""

    def test_is_managed_branch(self, config):
        """Test prefix detection."""
        resolver = NameResolver(config)

        assert resolver.is_managed_branch("prl/writer")
        assert not resolver.is_managed_branch("main")
        assert not resolver.is_managed_branch("prlwriter")
        assert not resolver.is_managed_branch(None)

    def test_worktree_name_for_branch(self, config):
        """Test the default-formula mapping from branch to worktree name."""
        resolver = NameResolver(config)

        assert resolver.worktree_name_for("prl/writer-3") == "writer-3"
        assert resolver.branch_for("writer-3") == "prl/writer-3"

    def test_describe(self, ctx, config):
        """Test descriptor paths."""
        descriptor = NameResolver(config).describe(ctx, "writer", "prl/writer", "writer")

        assert descriptor.worktree_path == ctx.root / ".prl-worktrees" / "writer"
        assert descriptor.root == ctx.root
        assert str(descriptor) == f"prl/writer @ {descriptor.worktree_path}"
