"""
Dialect converters for GSD command and agent definitions.

Source files are written for Claude. Each converter takes a whole
document and returns a whole document for another runtime:

- OpenCode: ``tools:`` becomes a mapping of lowercase names to true,
  ``name`` is dropped, color names become hex values
- Gemini agents: ``tools:`` becomes a YAML list of Gemini names,
  ``color`` is dropped, <sub> tags are rewritten
- Gemini commands: a TOML file with ``description`` and ``prompt``

Frontmatter keys the converter does not touch pass through verbatim.
"""

import json
import re
from types import MappingProxyType
from typing import List, Mapping

from gsdtools.frontmatter import (
    Entry,
    join_frontmatter,
    serialize_frontmatter,
    split_entries,
    split_frontmatter,
)
from gsdtools.tool_names import (
    CLAUDE_TO_GEMINI,
    CLAUDE_TO_OPENCODE,
    convert_gemini_tool_name,
    convert_tool_name,
    replace_tool_names,
)

COLOR_HEX: Mapping[str, str] = MappingProxyType({
    "cyan": "#00FFFF",
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "magenta": "#FF00FF",
    "orange": "#FFA500",
    "purple": "#800080",
    "pink": "#FFC0CB",
    "white": "#FFFFFF",
    "black": "#000000",
    "gray": "#808080",
    "grey": "#808080",
})

CONFIG_ROOTS: Mapping[str, str] = MappingProxyType({
    "opencode": "~/.config/opencode",
    "gemini": "~/.gemini",
})

TOOL_KEYS = ("allowed-tools", "tools")

_SUB_RE = re.compile(r"<sub>(.*?)</sub>")


def strip_sub_tags(text: str) -> str:
    """Rewrite every <sub>text</sub> span as *(text)*."""
    return _SUB_RE.sub(r"*(\1)*", text)


def _rewrite_paths(content: str, runtime: str) -> str:
    content = content.replace("~/.claude", CONFIG_ROOTS[runtime])
    return content.replace("/gsd:", "/gsd-")


def _tool_list(entry: Entry) -> List[str]:
    """Tool names from ``allowed-tools: [...]``, a block list, or ``tools: a, b``."""
    value = entry.value()
    if isinstance(value, list):
        names = value
    elif isinstance(value, str):
        names = value.split(",")
    else:
        names = []
    return [str(name).strip() for name in names if str(name).strip()]


def convert_claude_to_opencode_frontmatter(content: str) -> str:
    """Convert a command or agent definition to the OpenCode dialect."""
    content = _rewrite_paths(content, "opencode")
    fm_text, body = split_frontmatter(content)
    if fm_text is None:
        return replace_tool_names(content, CLAUDE_TO_OPENCODE)

    kept = []
    tools: List[str] = []
    for entry in split_entries(fm_text):
        if entry.key == "name":
            continue
        if entry.key in TOOL_KEYS:
            for name in _tool_list(entry):
                if name not in tools:
                    tools.append(name)
            continue
        if entry.key == "color":
            hex_color = COLOR_HEX.get(str(entry.value()).strip().lower())
            if hex_color:
                kept.append(serialize_frontmatter({"color": hex_color}))
                continue
        kept.append(entry.text)

    if tools:
        mapping = {convert_tool_name(name): True for name in tools}
        kept.append(serialize_frontmatter({"tools": mapping}))

    fm_out = "\n".join(kept).strip("\n")
    return join_frontmatter(fm_out, replace_tool_names(body, CLAUDE_TO_OPENCODE))


def convert_claude_to_gemini_agent(content: str) -> str:
    """Convert an agent definition to the Gemini dialect."""
    content = _rewrite_paths(content, "gemini")
    fm_text, body = split_frontmatter(content)
    if fm_text is None:
        return strip_sub_tags(replace_tool_names(content, CLAUDE_TO_GEMINI, compound_only=False))

    kept = []
    tools: List[str] = []
    for entry in split_entries(fm_text):
        if entry.key == "color":
            continue
        if entry.key in TOOL_KEYS:
            for name in _tool_list(entry):
                converted = convert_gemini_tool_name(name)
                if converted and converted not in tools:
                    tools.append(converted)
            continue
        kept.append(entry.text)

    if tools:
        kept.append(serialize_frontmatter({"tools": tools}))

    fm_out = "\n".join(kept).strip("\n")
    body = strip_sub_tags(replace_tool_names(body, CLAUDE_TO_GEMINI, compound_only=False))
    return join_frontmatter(fm_out, body)


def convert_claude_to_gemini_toml(content: str) -> str:
    """Convert a command definition to a Gemini TOML command."""
    content = _rewrite_paths(content, "gemini")
    fm_text, body = split_frontmatter(content)
    if fm_text is None:
        prompt = replace_tool_names(content, CLAUDE_TO_GEMINI, compound_only=False)
        return f"prompt = {json.dumps(prompt)}\n"

    description = None
    for entry in split_entries(fm_text):
        if entry.key == "description":
            description = entry.value()

    prompt = replace_tool_names(body, CLAUDE_TO_GEMINI, compound_only=False).strip()
    lines = []
    if description:
        lines.append(f"description = {json.dumps(str(description))}")
    lines.append(f"prompt = {json.dumps(prompt)}")
    return "\n".join(lines) + "\n"
