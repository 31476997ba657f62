"""
gsd-tools CLI - Planning state for GSD projects.

Reads and edits the markdown documents under .planning/ (STATE.md,
ROADMAP.md, phase directories) and installs GSD commands into AI
assistant runtimes. Commands print JSON on stdout.

Commands:
- State: state, state-snapshot, history-digest, summary-extract
- Phases: phases list, phase, find-phase, phase-plan-index
- Roadmap: roadmap, milestone complete, progress
- Documents: frontmatter, verify, validate consistency, verify-path-exists
- Config: config-ensure-section, config-set, config-get, resolve-model
- Utilities: generate-slug, current-timestamp, list-todos, todo complete
- Runtimes: install, convert
"""

import logging
from pathlib import Path

import click

from gsdtools import __version__
from gsdtools.cli_commands import register_all


@click.group()
@click.version_option(version=__version__)
@click.option("--cwd", "cwd", default=".", type=click.Path(file_okay=False),
              help="Project root containing .planning/ (default: current directory).")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, cwd: str, verbose: bool):
    """gsd-tools - Manage GSD planning documents.

    Phases, plans, roadmap and session state for a project, plus
    installation of GSD commands for Claude, OpenCode and Gemini.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["root"] = Path(cwd).resolve()


register_all(cli)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
