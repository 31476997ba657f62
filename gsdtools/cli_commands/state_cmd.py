"""
State Commands - Read and edit .planning/STATE.md.

Commands:
- state: Config plus raw STATE.md
- state get/update/patch: Fields and sections
- state advance-plan, update-progress, record-metric: Execution bookkeeping
- state add-decision, add-blocker, resolve-blocker, record-session: Session log
- state-snapshot: Structured view of STATE.md
"""

import click

from .common import emit, fail, project_root, run_and_emit


def parse_patch_args(args):
    """Pair ``--Label value`` tokens into a dict, keeping label text as given."""
    patches = {}
    i = 0
    while i < len(args):
        token = args[i]
        if not token.startswith("--") or len(token) == 2:
            fail(f"Expected --Field value, got: {token}")
        if i + 1 >= len(args):
            fail(f"Missing value for {token}")
        patches[token[2:]] = args[i + 1]
        i += 2
    return patches


def register(cli):
    """Register state commands with CLI."""

    @cli.group("state", invoke_without_command=True)
    @click.pass_context
    def state_group(ctx):
        """Read and edit STATE.md.

        Without a subcommand, prints config.json and the raw STATE.md.

        \b
            state get [FIELD]           - Whole file, one field or a section
            state update FIELD VALUE    - Replace one **Field:** value
            state patch --Field value   - Replace several fields
            state advance-plan          - Move Current Plan forward
        """
        if ctx.invoked_subcommand is None:
            from gsdtools.state import load_state
            emit(load_state(project_root(ctx.obj)))

    @state_group.command("get")
    @click.argument("field", required=False)
    @click.pass_obj
    def state_get(obj, field):
        """Print STATE.md, one **Field:** value, or a ## section body."""
        from gsdtools.state import get_state
        run_and_emit(get_state, project_root(obj), field)

    @state_group.command("update")
    @click.argument("field")
    @click.argument("value")
    @click.pass_obj
    def state_update(obj, field, value):
        """Replace the value of one field."""
        from gsdtools.state import update_field
        run_and_emit(update_field, project_root(obj), field, value)

    @state_group.command(
        "patch",
        context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
    )
    @click.pass_context
    def state_patch(ctx):
        """Replace several fields at once.

        \b
        Example:
            gsd-tools state patch --Status "In progress" --"Current Plan" 2
        """
        from gsdtools.state import patch_fields
        run_and_emit(patch_fields, project_root(ctx.obj), parse_patch_args(ctx.args))

    @state_group.command("advance-plan")
    @click.pass_obj
    def state_advance_plan(obj):
        """Increment Current Plan, or mark the phase ready for verification."""
        from gsdtools.state import advance_plan
        run_and_emit(advance_plan, project_root(obj))

    @state_group.command("record-metric")
    @click.option("--phase", required=True, help="Phase number")
    @click.option("--plan", required=True, help="Plan number")
    @click.option("--duration", required=True, help="Execution time, e.g. 5m")
    @click.option("--tasks", default=None, help="Tasks completed")
    @click.option("--files", default=None, help="Files touched")
    @click.pass_obj
    def state_record_metric(obj, phase, plan, duration, tasks, files):
        """Append a row to the Performance Metrics table."""
        from gsdtools.state import record_metric
        run_and_emit(record_metric, project_root(obj), phase, plan, duration, tasks, files)

    @state_group.command("update-progress")
    @click.pass_obj
    def state_update_progress(obj):
        """Recount plans and summaries and rewrite the progress bar."""
        from gsdtools.state import update_progress
        run_and_emit(update_progress, project_root(obj))

    @state_group.command("add-decision")
    @click.option("--summary", required=True, help="What was decided")
    @click.option("--phase", default=None, help="Phase the decision belongs to")
    @click.option("--rationale", default=None, help="Why")
    @click.pass_obj
    def state_add_decision(obj, summary, phase, rationale):
        """Append a decision bullet."""
        from gsdtools.state import add_decision
        run_and_emit(add_decision, project_root(obj), summary, phase, rationale)

    @state_group.command("add-blocker")
    @click.option("--text", required=True, help="Blocker description")
    @click.pass_obj
    def state_add_blocker(obj, text):
        """Append a blocker bullet."""
        from gsdtools.state import add_blocker
        run_and_emit(add_blocker, project_root(obj), text)

    @state_group.command("resolve-blocker")
    @click.option("--text", required=True, help="Text of the blocker to drop")
    @click.pass_obj
    def state_resolve_blocker(obj, text):
        """Remove blockers containing TEXT (case-insensitive)."""
        from gsdtools.state import resolve_blocker
        run_and_emit(resolve_blocker, project_root(obj), text)

    @state_group.command("record-session")
    @click.option("--stopped-at", "stopped_at", required=True, help="Where work stopped")
    @click.option("--resume-file", "resume_file", default=None, help="File to resume from")
    @click.pass_obj
    def state_record_session(obj, stopped_at, resume_file):
        """Record the end of a work session."""
        from gsdtools.state import record_session
        run_and_emit(record_session, project_root(obj), stopped_at, resume_file)

    @cli.command("state-snapshot")
    @click.pass_obj
    def state_snapshot_cmd(obj):
        """Structured view of STATE.md: position, decisions, blockers, session."""
        from gsdtools.state import state_snapshot
        run_and_emit(state_snapshot, project_root(obj))
