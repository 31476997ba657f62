"""
Project configuration (.planning/config.json).

The file is read as JSONC so hand edits with comments survive. Missing or
unreadable config falls back to defaults when reading; config_set refuses
to overwrite a file it cannot parse. The model profile picks which
model each GSD agent role runs on.
"""

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from gsdtools.errors import InvalidInputError, JsoncSyntaxError
from gsdtools.jsonc import parse_jsonc
from gsdtools.planning import CONFIG_FILE, ensure_planning_dir, get_planning_dir

logger = logging.getLogger(__name__)

ModelProfile = Literal["quality", "balanced", "budget"]
MODEL_PROFILE_NAMES: Tuple[str, ...] = ("quality", "balanced", "budget")

DEFAULT_CONFIG: Dict[str, Any] = {
    "model_profile": "balanced",
    "commit_docs": True,
    "search_gitignored": False,
    "branching_strategy": "none",
    "phase_branch_template": "gsd/phase-{phase}-{slug}",
    "milestone_branch_template": "gsd/{milestone}-{slug}",
    "workflow": {
        "research": True,
        "plan_check": True,
        "verifier": True,
    },
    "parallelization": True,
}

# Agent role -> model per profile
MODEL_PROFILES: Dict[str, Dict[str, str]] = {
    "gsd-planner": {"quality": "opus", "balanced": "opus", "budget": "sonnet"},
    "gsd-roadmapper": {"quality": "opus", "balanced": "sonnet", "budget": "sonnet"},
    "gsd-executor": {"quality": "opus", "balanced": "sonnet", "budget": "sonnet"},
    "gsd-phase-researcher": {"quality": "opus", "balanced": "sonnet", "budget": "haiku"},
    "gsd-project-researcher": {"quality": "opus", "balanced": "sonnet", "budget": "haiku"},
    "gsd-research-synthesizer": {"quality": "sonnet", "balanced": "sonnet", "budget": "haiku"},
    "gsd-debugger": {"quality": "opus", "balanced": "sonnet", "budget": "sonnet"},
    "gsd-codebase-mapper": {"quality": "sonnet", "balanced": "haiku", "budget": "haiku"},
    "gsd-verifier": {"quality": "sonnet", "balanced": "sonnet", "budget": "haiku"},
    "gsd-plan-checker": {"quality": "sonnet", "balanced": "sonnet", "budget": "haiku"},
    "gsd-integration-checker": {"quality": "sonnet", "balanced": "sonnet", "budget": "haiku"},
}

DEFAULT_MODEL = "sonnet"


def get_config_path(project_path: Optional[Path] = None) -> Path:
    return get_planning_dir(project_path) / CONFIG_FILE


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def read_config_file(project_path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """Raw config as stored, or None when absent or unreadable."""
    config_path = get_config_path(project_path)
    if not config_path.is_file():
        return None
    try:
        data = parse_jsonc(config_path.read_text(encoding="utf-8"))
    except (JsoncSyntaxError, UnicodeDecodeError) as e:
        logger.warning(f"Ignoring unreadable {config_path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {config_path}: top level is not an object")
        return None
    return data


def load_config(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load project config, shallow-merged over the defaults."""
    config = get_default_config()
    stored = read_config_file(project_path)
    if stored:
        config.update(stored)
    return config


def save_config(config: Dict[str, Any], project_path: Optional[Path] = None) -> Path:
    """Save project config to .planning/config.json."""
    config_path = ensure_planning_dir(project_path) / CONFIG_FILE
    config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    return config_path


def ensure_config(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Write the default config unless one already exists."""
    config_path = get_config_path(project_path)
    if config_path.exists():
        return {"created": False, "reason": "already_exists", "path": str(config_path)}
    save_config(get_default_config(), project_path)
    return {"created": True, "path": str(config_path)}


def coerce_value(raw: str) -> Any:
    """Turn CLI text into a config value: booleans and numbers are recognized."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    if re.match(r"^-?\d+$", raw):
        return int(raw)
    if re.match(r"^-?\d+\.\d+$", raw):
        return float(raw)
    return raw


def set_path(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """Assign value at a dot path, creating intermediate objects."""
    parts = key_path.split(".")
    if not all(parts):
        raise InvalidInputError(f"Invalid config key: {key_path}")
    node = config
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def get_path(config: Dict[str, Any], key_path: str) -> Tuple[bool, Any]:
    """Look up a dot path; returns (found, value)."""
    node: Any = config
    for part in key_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node


def config_set(project_path: Optional[Path], key_path: str, raw_value: str) -> Dict[str, Any]:
    """Set one key in config.json, creating the file if needed.

    Raises:
        JsoncSyntaxError: If an existing config.json cannot be parsed
        InvalidInputError: If its top level is not an object, or the key is invalid
    """
    config_path = get_config_path(project_path)
    if config_path.is_file():
        try:
            text = config_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInputError(f"{config_path} is not valid UTF-8 text") from e
        config = parse_jsonc(text)
        if not isinstance(config, dict):
            raise InvalidInputError(f"{config_path}: top level is not an object")
    else:
        config = get_default_config()
    value = coerce_value(raw_value)
    set_path(config, key_path, value)
    save_config(config, project_path)
    return {"updated": True, "key": key_path, "value": value}


def config_get(project_path: Optional[Path], key_path: str) -> Dict[str, Any]:
    found, value = get_path(load_config(project_path), key_path)
    if not found:
        return {"found": False, "key": key_path}
    return {"found": True, "key": key_path, "value": value}


def resolve_model(agent: str, profile: str) -> Dict[str, Any]:
    """Model for an agent role under a profile.

    Raises:
        InvalidInputError: If the profile is not one of MODEL_PROFILE_NAMES
    """
    if profile not in MODEL_PROFILE_NAMES:
        raise InvalidInputError(
            f"Unknown model profile: {profile}. Available: {', '.join(MODEL_PROFILE_NAMES)}"
        )
    models = MODEL_PROFILES.get(agent)
    if models is None:
        return {"model": DEFAULT_MODEL, "profile": profile, "unknown_agent": True}
    return {"model": models[profile], "profile": profile}
