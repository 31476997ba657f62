"""
Init Commands - One JSON context bundle per GSD workflow.

Commands:
- init execute-phase/plan-phase/verify-work/phase-op PHASE: Phase workflows
- init progress, resume, todos, milestone-op, map-codebase: Project state
- init new-project, new-milestone, quick: Starting work
- template select: Summary template for a plan
"""

import click

from .common import emit, project_root, resolve_path, run_and_emit

INCLUDE_HELP = "Comma-separated file contents to add, e.g. state,roadmap,context"


def _with_includes(loader, allowed, project_path, *args, include=None):
    """Check --include names, then call the loader with them."""
    from gsdtools.init_context import parse_includes

    def load():
        return loader(project_path, *args, includes=parse_includes(include, allowed))

    run_and_emit(load)


def register(cli):
    """Register init and template commands with CLI."""

    @cli.group("init")
    def init_group():
        """Context bundles for workflows."""
        pass

    @init_group.command("execute-phase")
    @click.argument("phase")
    @click.option("--include", default=None, help=INCLUDE_HELP)
    @click.pass_obj
    def init_execute_phase_cmd(obj, phase, include):
        """Models, plans and incomplete plans of PHASE."""
        from gsdtools.init_context import PLANNING_INCLUDES, PHASE_INCLUDES, init_execute_phase
        _with_includes(init_execute_phase, [*PLANNING_INCLUDES, *PHASE_INCLUDES],
                       project_root(obj), phase, include=include)

    @init_group.command("plan-phase")
    @click.argument("phase")
    @click.option("--include", default=None, help=INCLUDE_HELP)
    @click.pass_obj
    def init_plan_phase_cmd(obj, phase, include):
        """Models, workflow switches and existing docs of PHASE."""
        from gsdtools.init_context import PLANNING_INCLUDES, PHASE_INCLUDES, init_plan_phase
        _with_includes(init_plan_phase, [*PLANNING_INCLUDES, *PHASE_INCLUDES],
                       project_root(obj), phase, include=include)

    @init_group.command("progress")
    @click.option("--include", default=None, help=INCLUDE_HELP)
    @click.pass_obj
    def init_progress_cmd(obj, include):
        """Phase statuses with the current and next phase."""
        from gsdtools.init_context import PLANNING_INCLUDES, init_progress
        _with_includes(init_progress, list(PLANNING_INCLUDES), project_root(obj), include=include)

    @init_group.command("new-project")
    @click.pass_obj
    def init_new_project_cmd(obj):
        """Models plus brownfield and git detection."""
        from gsdtools.init_context import init_new_project
        run_and_emit(init_new_project, project_root(obj))

    @init_group.command("new-milestone")
    @click.pass_obj
    def init_new_milestone_cmd(obj):
        """Models and the milestone being closed."""
        from gsdtools.init_context import init_new_milestone
        run_and_emit(init_new_milestone, project_root(obj))

    @init_group.command("quick")
    @click.argument("description", nargs=-1)
    @click.pass_obj
    def init_quick_cmd(obj, description):
        """Numbered task directory for an ad-hoc task."""
        from gsdtools.init_context import init_quick
        run_and_emit(init_quick, project_root(obj), " ".join(description))

    @init_group.command("resume")
    @click.pass_obj
    def init_resume_cmd(obj):
        """Which planning files exist and any interrupted agent."""
        from gsdtools.init_context import init_resume
        run_and_emit(init_resume, project_root(obj))

    @init_group.command("verify-work")
    @click.argument("phase")
    @click.pass_obj
    def init_verify_work_cmd(obj, phase):
        """Models and verification docs of PHASE."""
        from gsdtools.init_context import init_verify_work
        run_and_emit(init_verify_work, project_root(obj), phase)

    @init_group.command("phase-op")
    @click.argument("phase")
    @click.pass_obj
    def init_phase_op_cmd(obj, phase):
        """Directory and existing docs of PHASE."""
        from gsdtools.init_context import init_phase_op
        run_and_emit(init_phase_op, project_root(obj), phase)

    @init_group.command("todos")
    @click.argument("area", required=False)
    @click.pass_obj
    def init_todos_cmd(obj, area):
        """Pending todos, optionally only those in AREA."""
        from gsdtools.init_context import init_todos
        run_and_emit(init_todos, project_root(obj), area)

    @init_group.command("milestone-op")
    @click.pass_obj
    def init_milestone_op_cmd(obj):
        """Phase completion and archived milestones."""
        from gsdtools.init_context import init_milestone_op
        run_and_emit(init_milestone_op, project_root(obj))

    @init_group.command("map-codebase")
    @click.pass_obj
    def init_map_codebase_cmd(obj):
        """Mapper model and existing codebase maps."""
        from gsdtools.init_context import init_map_codebase
        run_and_emit(init_map_codebase, project_root(obj))

    @cli.group("template")
    def template_group():
        """Document templates."""
        pass

    @template_group.command("select")
    @click.argument("file")
    @click.pass_obj
    def template_select(obj, file):
        """Summary template (minimal, standard, complex) that fits plan FILE."""
        from gsdtools.init_context import select_template
        emit(select_template(resolve_path(obj, file)))
