"""
Roadmap Commands - ROADMAP.md lookups, milestones and progress.

Commands:
- roadmap get-phase: One phase section
- roadmap analyze: Every phase with disk status
- milestone complete: Archive a shipped milestone
- progress: Plan/summary counts as JSON, a bar or a table
"""

import click

from .common import emit, project_root, run, run_and_emit


def register(cli):
    """Register roadmap commands with CLI."""

    @cli.group("roadmap")
    def roadmap_group():
        """Read ROADMAP.md."""
        pass

    @roadmap_group.command("get-phase")
    @click.argument("phase")
    @click.pass_obj
    def roadmap_get_phase(obj, phase):
        """Name, goal and section text of one phase."""
        from gsdtools.roadmap import get_phase
        run_and_emit(get_phase, project_root(obj), phase)

    @roadmap_group.command("analyze")
    @click.pass_obj
    def roadmap_analyze(obj):
        """All phases with goals, dependencies and disk status."""
        from gsdtools.roadmap import analyze_roadmap
        run_and_emit(analyze_roadmap, project_root(obj))

    @cli.group("milestone")
    def milestone_group():
        """Milestone lifecycle."""
        pass

    @milestone_group.command("complete")
    @click.argument("version")
    @click.option("--name", default=None, help="Milestone name (default: from ROADMAP.md)")
    @click.pass_obj
    def milestone_complete(obj, version, name):
        """Archive the roadmap and record VERSION in MILESTONES.md.

        \b
        Example:
            gsd-tools milestone complete v1.0 --name "MVP Foundation"
        """
        from gsdtools.milestone import complete_milestone
        run_and_emit(complete_milestone, project_root(obj), version, name)

    @cli.command("progress")
    @click.argument("fmt", required=False, default="json",
                    type=click.Choice(["json", "bar", "table"]))
    @click.option("--raw", is_flag=True, hidden=True)
    @click.pass_obj
    def progress_cmd(obj, fmt, raw):
        """Milestone progress.

        \b
        Examples:
            gsd-tools progress          # JSON
            gsd-tools progress bar      # [██████░░░░] 3/5 plans (60%)
            gsd-tools progress table    # Markdown table per phase
        """
        from gsdtools.progress import get_progress, render_bar, render_table
        progress = run(get_progress, project_root(obj))
        if fmt == "bar":
            click.echo(render_bar(progress))
        elif fmt == "table":
            click.echo(render_table(progress))
        else:
            emit(progress)
