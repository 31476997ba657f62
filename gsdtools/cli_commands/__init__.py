"""
gsd-tools CLI commands, one module per command family.

Structure:
    cli_commands/
    ├── __init__.py        # This file - registration
    ├── common.py          # JSON output and error exit helpers
    ├── state_cmd.py       # state (get, update, patch, advance-plan, ...), state-snapshot
    ├── phase_cmd.py       # phases list, phase (add, insert, remove, ...), find-phase
    ├── roadmap_cmd.py     # roadmap (get-phase, analyze), milestone complete, progress
    ├── frontmatter_cmd.py # frontmatter (get, set, merge, validate)
    ├── verify_cmd.py      # verify (...), validate consistency, verify-path-exists
    ├── config_cmd.py      # config-ensure-section, config-set, config-get, resolve-model
    ├── util_cmd.py        # generate-slug, current-timestamp, todos, digests
    ├── init_cmd.py        # init (execute-phase, plan-phase, quick, ...), template select
    └── install.py         # install, convert

Usage:
    from gsdtools.cli_commands import register_all

    @click.group()
    def cli():
        pass

    register_all(cli)
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_all(cli: "click.Group") -> None:
    """Register all command modules with the CLI group.

    Each module has a `register(cli)` function that adds its commands
    to the CLI group using Click decorators.

    Args:
        cli: The Click group to register commands with
    """
    from . import state_cmd
    from . import phase_cmd
    from . import roadmap_cmd
    from . import frontmatter_cmd
    from . import verify_cmd
    from . import config_cmd
    from . import util_cmd
    from . import init_cmd
    from . import install

    state_cmd.register(cli)
    phase_cmd.register(cli)
    roadmap_cmd.register(cli)
    frontmatter_cmd.register(cli)
    verify_cmd.register(cli)
    config_cmd.register(cli)
    util_cmd.register(cli)
    init_cmd.register(cli)
    install.register(cli)
