"""
Verify Commands - Structural checks over planning documents.

Commands:
- verify plan-structure/phase-completeness/references: Document checks
- verify artifacts/key-links: must_haves checks against the codebase
- validate consistency: ROADMAP.md against phase directories
- verify-path-exists: File or directory test
"""

import click

from .common import project_root, resolve_path, run_and_emit


def register(cli):
    """Register verify commands with CLI."""

    @cli.group("verify")
    def verify_group():
        """Verification commands.

        \b
            verify plan-structure FILE       - Frontmatter and <task> elements
            verify phase-completeness N      - Every plan has a summary
            verify references FILE           - @path references resolve
            verify artifacts FILE            - must_haves.artifacts exist
            verify key-links FILE            - must_haves.key_links are wired
        """
        pass

    @verify_group.command("plan-structure")
    @click.argument("file")
    @click.pass_obj
    def verify_plan_structure_cmd(obj, file):
        """Check a PLAN.md for required frontmatter and task elements."""
        from gsdtools.verify import verify_plan_structure
        run_and_emit(verify_plan_structure, resolve_path(obj, file))

    @verify_group.command("phase-completeness")
    @click.argument("phase")
    @click.pass_obj
    def verify_phase_completeness_cmd(obj, phase):
        """Match plans and summaries of a phase."""
        from gsdtools.verify import verify_phase_completeness
        run_and_emit(verify_phase_completeness, project_root(obj), phase)

    @verify_group.command("references")
    @click.argument("file")
    @click.pass_obj
    def verify_references_cmd(obj, file):
        """Resolve every @path reference in FILE."""
        from gsdtools.verify import verify_references
        run_and_emit(verify_references, resolve_path(obj, file), project_root(obj))

    @verify_group.command("artifacts")
    @click.argument("file")
    @click.pass_obj
    def verify_artifacts_cmd(obj, file):
        """Check the must_haves.artifacts of a plan."""
        from gsdtools.must_haves import verify_artifacts
        run_and_emit(verify_artifacts, resolve_path(obj, file), project_root(obj))

    @verify_group.command("key-links")
    @click.argument("file")
    @click.pass_obj
    def verify_key_links_cmd(obj, file):
        """Check the must_haves.key_links of a plan."""
        from gsdtools.must_haves import verify_key_links
        run_and_emit(verify_key_links, resolve_path(obj, file), project_root(obj))

    @cli.group("validate")
    def validate_group():
        """Project-wide validation."""
        pass

    @validate_group.command("consistency")
    @click.pass_obj
    def validate_consistency_cmd(obj):
        """Cross-check ROADMAP.md against the phase directories."""
        from gsdtools.verify import validate_consistency
        run_and_emit(validate_consistency, project_root(obj))

    @cli.command("verify-path-exists")
    @click.argument("path")
    @click.pass_obj
    def verify_path_exists_cmd(obj, path):
        """Report whether PATH is a file, a directory or missing."""
        from gsdtools.verify import verify_path_exists
        run_and_emit(verify_path_exists, project_root(obj), path)
