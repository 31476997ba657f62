"""
Install Commands - AI assistant runtime integration.

Commands:
- install: Copy GSD commands and agents into a runtime's config dir
- convert: Print one file converted to another runtime's dialect
"""

from pathlib import Path

import click

from .common import fail, project_root, run, run_and_emit

CONVERT_TARGETS = {
    "opencode": ("opencode", "command"),
    "gemini-agent": ("gemini", "agent"),
    "gemini-command": ("gemini", "command"),
}


def register(cli):
    """Register install commands with CLI."""

    @cli.command()
    @click.argument("runtime", type=click.Choice(["claude", "opencode", "gemini"]))
    @click.option("--source", required=True, type=click.Path(exists=True, file_okay=False),
                  help="Directory holding commands/gsd/ and agents/")
    @click.option("--global", "scope", flag_value="global", default=True,
                  help="Install into the runtime's global config dir (default)")
    @click.option("--local", "scope", flag_value="local",
                  help="Install into the project (e.g. ./.claude)")
    @click.option("--config-dir", "config_dir", default=None,
                  help="Explicit config dir, overrides environment variables")
    @click.pass_obj
    def install(obj, runtime, source, scope, config_dir):
        """Install GSD commands and agents for RUNTIME.

        \b
        Examples:
            gsd-tools install claude --source ./gsd
            gsd-tools install opencode --local --source ./gsd
            gsd-tools install gemini --config-dir ~/.gemini-work --source ./gsd
        """
        from gsdtools.install import get_dir_name, get_global_dir, install as install_runtime
        if scope == "local" and config_dir is None:
            target = project_root(obj) / get_dir_name(runtime)
        else:
            target = run(get_global_dir, runtime, config_dir)
        run_and_emit(install_runtime, runtime, Path(source), target)

    @cli.command()
    @click.argument("file", type=click.Path(exists=True, dir_okay=False))
    @click.option("--to", "target", required=True, type=click.Choice(sorted(CONVERT_TARGETS)),
                  help="Target dialect")
    def convert(file, target):
        """Print FILE converted from Claude format to another runtime."""
        from gsdtools.install import convert_for_runtime
        runtime, kind = CONVERT_TARGETS[target]
        try:
            content = Path(file).read_text(encoding="utf-8")
        except OSError as e:
            fail(str(e))
        click.echo(run(convert_for_runtime, content, runtime, kind), nl=False)
