"""
JSON-with-comments reader.

Runtime config files (opencode.json, .planning/config.json) are edited by
hand and often carry // comments, /* blocks */ and trailing commas. They
are cleaned here and then handed to the json module, so anything that is
still invalid fails loudly with json's own message.
"""

import json
from typing import Any

from gsdtools.errors import JsoncSyntaxError

BOM = "\ufeff"


def strip_comments(text: str) -> str:
    """Remove // and /* */ comments that sit outside string literals."""
    out = []
    i = 0
    n = len(text)
    in_string = False

    while i < n:
        ch = text[i]

        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                # Unterminated block comment is left for json to reject
                out.append(text[i:])
                break
            i = end + 2
        else:
            out.append(ch)
            i += 1

    return "".join(out)


def strip_trailing_commas(text: str) -> str:
    """Drop commas that are followed only by whitespace and a closing bracket."""
    out = []
    i = 0
    n = len(text)
    in_string = False

    while i < n:
        ch = text[i]

        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1

    return "".join(out)


def parse_jsonc(text: str) -> Any:
    """Parse JSONC text into plain Python values.

    Args:
        text: Raw file content, optionally prefixed with a byte-order mark

    Returns:
        The decoded value tree

    Raises:
        JsoncSyntaxError: If the cleaned text is not valid JSON
    """
    if text.startswith(BOM):
        text = text[1:]

    cleaned = strip_trailing_commas(strip_comments(text))

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise JsoncSyntaxError(str(e)) from e
