"""
Phase Commands - Phase directories and their place in ROADMAP.md.

Commands:
- phases list: Phase directories or their plan/summary files
- phase next-decimal/add/insert/remove/complete: Roadmap edits
- find-phase: Locate one phase directory
- phase-plan-index: Plans of a phase grouped into waves
"""

import click

from .common import project_root, run_and_emit


def register(cli):
    """Register phase commands with CLI."""

    @cli.group("phases")
    def phases_group():
        """Phase directory listings."""
        pass

    @phases_group.command("list")
    @click.option("--type", "kind", type=click.Choice(["plans", "summaries"]), default=None,
                  help="List files of this kind instead of directories")
    @click.option("--phase", default=None, help="Restrict to one phase")
    @click.pass_obj
    def phases_list(obj, kind, phase):
        """List phase directories in phase order.

        \b
        Examples:
            gsd-tools phases list
            gsd-tools phases list --type plans --phase 01
        """
        from gsdtools.phases import list_phases
        run_and_emit(list_phases, project_root(obj), kind, phase)

    @cli.group("phase")
    def phase_group():
        """Add, insert, remove and complete phases.

        \b
            phase next-decimal N        - Next free N.x id
            phase add DESCRIPTION       - Append a phase to the roadmap
            phase insert AFTER DESC     - Insert a decimal phase after AFTER
            phase remove N [--force]    - Delete a phase and renumber
            phase complete N            - Check off a phase
        """
        pass

    @phase_group.command("next-decimal")
    @click.argument("base")
    @click.pass_obj
    def phase_next_decimal(obj, base):
        """Next unused decimal id after phase BASE."""
        from gsdtools.phases import next_decimal_phase
        run_and_emit(next_decimal_phase, project_root(obj), base)

    @phase_group.command("add")
    @click.argument("description", nargs=-1, required=True)
    @click.pass_obj
    def phase_add(obj, description):
        """Append a new phase to the current milestone."""
        from gsdtools.phases import add_phase
        run_and_emit(add_phase, project_root(obj), " ".join(description))

    @phase_group.command("insert")
    @click.argument("after")
    @click.argument("description", nargs=-1, required=True)
    @click.pass_obj
    def phase_insert(obj, after, description):
        """Insert urgent work as a decimal phase after AFTER."""
        from gsdtools.phases import insert_phase
        run_and_emit(insert_phase, project_root(obj), after, " ".join(description))

    @phase_group.command("remove")
    @click.argument("phase")
    @click.option("--force", is_flag=True, help="Remove even if plans were executed")
    @click.pass_obj
    def phase_remove(obj, phase, force):
        """Delete a phase and renumber the ones after it."""
        from gsdtools.phases import remove_phase
        run_and_emit(remove_phase, project_root(obj), phase, force)

    @phase_group.command("complete")
    @click.argument("phase")
    @click.pass_obj
    def phase_complete(obj, phase):
        """Mark a phase complete and move STATE.md to the next one."""
        from gsdtools.phases import complete_phase
        run_and_emit(complete_phase, project_root(obj), phase)

    @cli.command("find-phase")
    @click.argument("phase")
    @click.pass_obj
    def find_phase_cmd(obj, phase):
        """Locate the directory of a phase."""
        from gsdtools.phases import find_phase
        run_and_emit(find_phase, project_root(obj), phase)

    @cli.command("phase-plan-index")
    @click.argument("phase")
    @click.pass_obj
    def phase_plan_index(obj, phase):
        """Plans of a phase with waves, objectives and task counts."""
        from gsdtools.phases import plan_index
        run_and_emit(plan_index, project_root(obj), phase)
