"""
Utility Commands - Small helpers used by GSD workflows.

Commands:
- generate-slug: URL-safe slug from text
- current-timestamp: Now as ISO, date or filename-safe text
- list-todos, todo complete: Pending todos
- history-digest: All summaries merged
- summary-extract: Selected fields of one summary
"""

from datetime import datetime

import click

from .common import emit, fail, project_root, resolve_path, run_and_emit

TIMESTAMP_FORMATS = {
    "date": "%Y-%m-%d",
    "filename": "%Y-%m-%dT%H-%M-%S",
}


def register(cli):
    """Register utility commands with CLI."""

    @cli.command("generate-slug")
    @click.argument("text", required=False)
    def generate_slug_cmd(text):
        """Lowercase hyphenated slug of TEXT."""
        from gsdtools.planning import generate_slug
        if not text:
            fail("text required for slug generation")
        emit({"slug": generate_slug(text)})

    @cli.command("current-timestamp")
    @click.argument("fmt", required=False, default="full",
                    type=click.Choice(["full", "date", "filename"]))
    def current_timestamp(fmt):
        """Current time as full ISO, date only, or filename-safe."""
        from gsdtools.planning import timestamp
        if fmt == "full":
            emit({"timestamp": timestamp()})
        else:
            emit({"timestamp": datetime.now().strftime(TIMESTAMP_FORMATS[fmt])})

    @cli.command("list-todos")
    @click.argument("area", required=False)
    @click.pass_obj
    def list_todos_cmd(obj, area):
        """Pending todos, optionally only those in AREA."""
        from gsdtools.todos import list_todos
        run_and_emit(list_todos, project_root(obj), area)

    @cli.group("todo")
    def todo_group():
        """Todo lifecycle."""
        pass

    @todo_group.command("complete")
    @click.argument("filename")
    @click.pass_obj
    def todo_complete(obj, filename):
        """Move a pending todo to completed/."""
        from gsdtools.todos import complete_todo
        run_and_emit(complete_todo, project_root(obj), filename)

    @cli.command("history-digest")
    @click.pass_obj
    def history_digest_cmd(obj):
        """Phases, decisions and tech stack from every SUMMARY.md."""
        from gsdtools.summaries import history_digest
        run_and_emit(history_digest, project_root(obj))

    @cli.command("summary-extract")
    @click.argument("file")
    @click.option("--fields", default=None,
                  help="Comma-separated: one_liner,key_files,tech_added,patterns,decisions")
    @click.pass_obj
    def summary_extract(obj, file, fields):
        """Selected fields from one SUMMARY.md."""
        from gsdtools.summaries import extract_summary
        wanted = [f.strip() for f in fields.split(",") if f.strip()] if fields else None
        run_and_emit(extract_summary, resolve_path(obj, file), wanted)
