"""
Install GSD commands and agents into an AI assistant runtime.

Usage:
    gsd-tools install claude --source ./gsd          # ~/.claude
    gsd-tools install opencode --local --source ./gsd  # ./.opencode
    gsd-tools install gemini --config-dir ~/alt --source ./gsd

Source layout:
    commands/gsd/*.md    slash commands
    agents/*.md          agent definitions

Files are written for Claude; the other runtimes get converted copies.
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.converters import (
    convert_claude_to_gemini_agent,
    convert_claude_to_gemini_toml,
    convert_claude_to_opencode_frontmatter,
)
from gsdtools.errors import InvalidInputError, JsoncSyntaxError
from gsdtools.jsonc import parse_jsonc

logger = logging.getLogger(__name__)

RUNTIMES = ("claude", "opencode", "gemini")

_DIR_NAMES = {"claude": ".claude", "opencode": ".opencode", "gemini": ".gemini"}


def _check_runtime(runtime: str) -> None:
    if runtime not in RUNTIMES:
        raise InvalidInputError(f"Unknown runtime: {runtime}. Available: {', '.join(RUNTIMES)}")


def get_dir_name(runtime: str) -> str:
    """Local config directory name for a runtime."""
    _check_runtime(runtime)
    return _DIR_NAMES[runtime]


def expand_tilde(path: str) -> str:
    """Expand a leading ``~/`` only."""
    if path == "~" or path.startswith("~/"):
        return str(Path.home()) + path[1:]
    return path


def get_opencode_global_dir() -> Path:
    """OpenCode config dir: OPENCODE_CONFIG_DIR, then OPENCODE_CONFIG's dir, then XDG."""
    if os.environ.get("OPENCODE_CONFIG_DIR"):
        return Path(expand_tilde(os.environ["OPENCODE_CONFIG_DIR"]))
    if os.environ.get("OPENCODE_CONFIG"):
        return Path(expand_tilde(os.environ["OPENCODE_CONFIG"])).parent
    if os.environ.get("XDG_CONFIG_HOME"):
        return Path(expand_tilde(os.environ["XDG_CONFIG_HOME"])) / "opencode"
    return Path.home() / ".config" / "opencode"


def get_global_dir(runtime: str, explicit_dir: Optional[str] = None) -> Path:
    """Global config dir for a runtime; an explicit dir always wins."""
    _check_runtime(runtime)
    if explicit_dir:
        return Path(expand_tilde(explicit_dir))
    if runtime == "opencode":
        return get_opencode_global_dir()
    env_var = "CLAUDE_CONFIG_DIR" if runtime == "claude" else "GEMINI_CONFIG_DIR"
    if os.environ.get(env_var):
        return Path(expand_tilde(os.environ[env_var]))
    return Path.home() / _DIR_NAMES[runtime]


def convert_for_runtime(content: str, runtime: str, kind: str) -> str:
    """Convert a Claude command or agent file for runtime.

    Args:
        content: Source document
        runtime: Target runtime
        kind: "command" or "agent"
    """
    _check_runtime(runtime)
    if runtime == "opencode":
        return convert_claude_to_opencode_frontmatter(content)
    if runtime == "gemini":
        if kind == "command":
            return convert_claude_to_gemini_toml(content)
        return convert_claude_to_gemini_agent(content)
    return content


def command_target(runtime: str, target_dir: Path, name: str) -> Path:
    """Where a command named NAME lands for a runtime."""
    if runtime == "opencode":
        return target_dir / "command" / f"gsd-{name}.md"
    if runtime == "gemini":
        return target_dir / "commands" / "gsd" / f"{name}.toml"
    return target_dir / "commands" / "gsd" / f"{name}.md"


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.debug(f"Wrote {path}")


def install(runtime: str, source_dir: Path, target_dir: Path) -> Dict[str, Any]:
    """Copy commands and agents from source_dir into target_dir.

    Returns:
        Installed command and agent paths, plus the permissions outcome
        for OpenCode
    """
    _check_runtime(runtime)
    commands: List[str] = []
    agents: List[str] = []

    commands_src = source_dir / "commands" / "gsd"
    if commands_src.is_dir():
        if runtime == "claude":
            dest = target_dir / "commands" / "gsd"
            if dest.exists():
                shutil.rmtree(dest)
        for src in sorted(commands_src.glob("*.md")):
            target = command_target(runtime, target_dir, src.stem)
            content = src.read_text(encoding="utf-8")
            _write(target, convert_for_runtime(content, runtime, "command"))
            commands.append(str(target))

    agents_src = source_dir / "agents"
    if agents_src.is_dir():
        for src in sorted(agents_src.glob("*.md")):
            target = target_dir / "agents" / src.name
            content = src.read_text(encoding="utf-8")
            _write(target, convert_for_runtime(content, runtime, "agent"))
            agents.append(str(target))

    result: Dict[str, Any] = {
        "runtime": runtime,
        "target": str(target_dir),
        "commands": commands,
        "agents": agents,
    }
    if runtime == "opencode":
        result["permissions_configured"] = configure_opencode_permissions(target_dir)
    return result


def configure_opencode_permissions(config_dir: Path) -> bool:
    """Allow OpenCode to read the installed GSD files.

    opencode.json is read as JSONC. An unparseable file is left untouched.

    Returns:
        True if opencode.json was written
    """
    config_path = config_dir / "opencode.json"
    config: Dict[str, Any] = {}
    if config_path.is_file():
        try:
            config = parse_jsonc(config_path.read_text(encoding="utf-8"))
        except JsoncSyntaxError as e:
            logger.warning(f"Leaving {config_path} unchanged, cannot parse it: {e}")
            return False
        if not isinstance(config, dict):
            logger.warning(f"Leaving {config_path} unchanged, top level is not an object")
            return False

    pattern = f"{config_dir.as_posix()}/get-shit-done/*"
    permission = config.setdefault("permission", {})
    if not isinstance(permission, dict):
        logger.warning(f"Leaving {config_path} unchanged, permission is not an object")
        return False

    changed = False
    for key in ("read", "external_directory"):
        rules = permission.setdefault(key, {})
        if isinstance(rules, dict) and rules.get(pattern) != "allow":
            rules[pattern] = "allow"
            changed = True

    if changed:
        _write(config_path, json.dumps(config, indent=2) + "\n")
    return changed
