"""
Tool-name tables for the supported runtimes.

GSD definitions are written against Claude's tool names. OpenCode uses
lowercase names with a few renames; Gemini has its own vocabulary and
no equivalent for sub-agent spawning or MCP tools.
"""

import re
from types import MappingProxyType
from typing import Mapping, Optional

MCP_PREFIX = "mcp__"

CLAUDE_TO_OPENCODE: Mapping[str, str] = MappingProxyType({
    "AskUserQuestion": "question",
    "SlashCommand": "skill",
    "TodoWrite": "todowrite",
    "WebFetch": "webfetch",
    "WebSearch": "websearch",
})

CLAUDE_TO_GEMINI: Mapping[str, str] = MappingProxyType({
    "Read": "read_file",
    "Write": "write_file",
    "Edit": "replace",
    "Bash": "run_shell_command",
    "Glob": "glob",
    "Grep": "search_file_content",
    "WebSearch": "google_web_search",
    "WebFetch": "web_fetch",
    "TodoWrite": "write_todos",
    "AskUserQuestion": "ask_user",
})

# Claude tools Gemini has no counterpart for
GEMINI_EXCLUDED = frozenset({"Task"})

# Multi-word identifiers like TodoWrite
_COMPOUND_RE = re.compile(r"^[A-Z][a-z]+(?:[A-Z][a-z]+)+$")


def convert_tool_name(
    name: str,
    table: Mapping[str, str] = CLAUDE_TO_OPENCODE,
) -> str:
    """Translate a Claude tool name for OpenCode.

    MCP tools keep their name, known tools use the table, everything else
    is lowercased.
    """
    if name.startswith(MCP_PREFIX):
        return name
    if name in table:
        return table[name]
    return name.lower()


def convert_gemini_tool_name(
    name: str,
    table: Mapping[str, str] = CLAUDE_TO_GEMINI,
    excluded: frozenset = GEMINI_EXCLUDED,
) -> Optional[str]:
    """Translate a Claude tool name for Gemini.

    Returns:
        The Gemini name, or None when the tool must be left out
        (MCP tools and anything in ``excluded``)
    """
    if name.startswith(MCP_PREFIX) or name in excluded:
        return None
    if name in table:
        return table[name]
    return name.lower()


def replace_tool_names(text: str, table: Mapping[str, str], compound_only: bool = True) -> str:
    """Replace tool names used as bare words in prose.

    Args:
        text: Prose to rewrite
        table: Claude name -> runtime name
        compound_only: Only touch CamelCase names like TodoWrite, leaving
            single-word tools (Read, Edit, ...) as ordinary English. Gemini
            passes False because its prompts must name its own tools.
    """
    names = [name for name in table if not compound_only or _COMPOUND_RE.match(name)]
    if not names:
        return text
    pattern = re.compile(r"\b(" + "|".join(map(re.escape, names)) + r")\b")
    return pattern.sub(lambda m: table[m.group(1)], text)
