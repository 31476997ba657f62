"""
Config Commands - .planning/config.json.

Commands:
- config-ensure-section: Write the default config once
- config-set: Assign a dot-path key
- config-get: Read a dot-path key
- resolve-model: Model for an agent under the configured profile
"""

import click

from .common import project_root, run_and_emit


def register(cli):
    """Register config commands with CLI."""

    @cli.command("config-ensure-section")
    @click.pass_obj
    def config_ensure_section(obj):
        """Create config.json with defaults unless it exists."""
        from gsdtools.config import ensure_config
        run_and_emit(ensure_config, project_root(obj))

    @cli.command("config-set")
    @click.argument("key")
    @click.argument("value")
    @click.pass_obj
    def config_set_cmd(obj, key, value):
        """Set KEY (dot path, e.g. workflow.research) to VALUE.

        "true"/"false" become booleans and numeric text becomes a number.
        """
        from gsdtools.config import config_set
        run_and_emit(config_set, project_root(obj), key, value)

    @cli.command("config-get")
    @click.argument("key")
    @click.pass_obj
    def config_get_cmd(obj, key):
        """Read KEY (dot path) from config.json."""
        from gsdtools.config import config_get
        run_and_emit(config_get, project_root(obj), key)

    @cli.command("resolve-model")
    @click.argument("agent")
    @click.option("--profile", default=None,
                  help="quality, balanced or budget (default: model_profile from config)")
    @click.pass_obj
    def resolve_model_cmd(obj, agent, profile):
        """Model name for AGENT under the active model profile."""
        from gsdtools.config import load_config, resolve_model
        if profile is None:
            profile = load_config(project_root(obj)).get("model_profile", "balanced")
        run_and_emit(resolve_model, agent, profile)
