"""
Frontmatter codec for planning documents.

Plans, summaries and agent definitions open with a block delimited by
two ``---`` lines:

    ---
    phase: 01-foundation
    tags: [node, jest]
    dependency-graph:
      provides:
        - database schema
    ---

    # Body text

Only the YAML subset that planning documents use is understood: scalars,
inline ``[a, b]`` lists, block ``- item`` lists and nested mappings. The
block is tokenized into indented lines and read by a small recursive
descent parser. Malformed entries are dropped and reported as issues, they
never raise.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from gsdtools.planning import read_text_file, write_text_file

DELIMITER = "---"

_INT_RE = re.compile(r"^-?(?:0|[1-9]\d*)$")
_NUMERIC_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SPECIAL_START = tuple("[]{}\"'&*!|>%@`#,?")
_RESERVED_WORDS = {"true", "false", "null", "~", "yes", "no", "on", "off"}


class _MalformedValue(ValueError):
    pass


# ============================================================================
# Splitting
# ============================================================================

def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """Split a document into (frontmatter text, body).

    The frontmatter exists only when the first line is exactly ``---`` and
    a later line is exactly ``---``. Otherwise the whole text is the body
    and the frontmatter is None.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = text.split("\n")
    if lines[0].rstrip("\r") != DELIMITER:
        return None, text

    for i in range(1, len(lines)):
        if lines[i].rstrip("\r") == DELIMITER:
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1:])

    return None, text


def join_frontmatter(fm_text: str, body: str) -> str:
    """Reassemble a document from frontmatter text and body."""
    return f"{DELIMITER}\n{fm_text}\n{DELIMITER}\n{body}"


# ============================================================================
# Tokenizer
# ============================================================================

@dataclass
class Line:
    """One meaningful line of a frontmatter block."""
    number: int
    indent: int
    text: str

    @property
    def is_item(self) -> bool:
        return self.text == "-" or self.text.startswith("- ")

    @property
    def item_text(self) -> str:
        return self.text[1:].strip()


def tokenize(fm_text: str) -> List[Line]:
    """Turn a frontmatter block into indented lines, dropping blanks and comments."""
    lines = []
    for number, raw in enumerate(fm_text.split("\n"), start=1):
        raw = raw.rstrip("\r").expandtabs(2)
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(Line(number, len(raw) - len(raw.lstrip(" ")), stripped))
    return lines


# ============================================================================
# Scalars
# ============================================================================

def strip_quotes(value: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        if value[0] == '"':
            try:
                decoded = json.loads(value)
            except ValueError:
                return value[1:-1]
            return decoded if isinstance(decoded, str) else value[1:-1]
        return value[1:-1].replace("''", "'")
    return value


def _split_inline(inner: str) -> List[str]:
    parts = []
    buf = []
    quote = None
    for ch in inner:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
            buf.append(ch)
        elif ch == ",":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))
    return [strip_quotes(p.strip()) for p in parts if p.strip()]


def parse_scalar(raw: str) -> Any:
    """Parse the value part of a ``key: value`` line.

    Raises:
        _MalformedValue: For an inline list without its closing bracket
    """
    raw = raw.strip()
    if raw.startswith("["):
        if not raw.endswith("]"):
            raise _MalformedValue("unterminated inline list")
        return _split_inline(raw[1:-1])
    if raw == "{}":
        return {}
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        return strip_quotes(raw)
    if raw in ("true", "false"):
        return raw == "true"
    if raw in ("null", "~"):
        return None
    if _INT_RE.match(raw):
        return int(raw)
    return raw


# ============================================================================
# Parser
# ============================================================================

class _Parser:
    """Recursive descent over tokenized lines."""

    def __init__(self, lines: List[Line]):
        self.lines = lines
        self.pos = 0
        self.issues: List[str] = []

    def peek(self) -> Optional[Line]:
        return self.lines[self.pos] if self.pos < len(self.lines) else None

    def skip_deeper(self, indent: int) -> None:
        while self.pos < len(self.lines) and self.lines[self.pos].indent > indent:
            self.pos += 1

    def parse_mapping(self, indent: int) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        while True:
            line = self.peek()
            if line is None or line.indent < indent:
                return result

            if line.indent > indent or line.is_item:
                self.issues.append(f"line {line.number}: unexpected '{line.text}'")
                self.pos += 1
                continue

            key, sep, raw = line.text.partition(":")
            key = strip_quotes(key.strip())
            self.pos += 1
            if not sep or not key:
                self.issues.append(f"line {line.number}: expected 'key: value'")
                self.skip_deeper(line.indent)
                continue

            if raw.strip():
                try:
                    result[key] = parse_scalar(raw)
                except _MalformedValue as e:
                    self.issues.append(f"line {line.number}: {key}: {e}")
                self.skip_deeper(line.indent)
            else:
                result[key] = self.parse_block(line.indent)

    def parse_block(self, indent: int) -> Any:
        line = self.peek()
        if line is None or line.indent < indent:
            return ""
        if line.is_item:
            return self.parse_list(line.indent)
        if line.indent > indent:
            return self.parse_mapping(line.indent)
        return ""

    def parse_list(self, indent: int) -> List[str]:
        items = []
        while True:
            line = self.peek()
            if line is None or line.indent != indent or not line.is_item:
                return items
            self.pos += 1
            items.append(strip_quotes(line.item_text))
            # Continuation lines of a mapping-style item belong to the item
            self.skip_deeper(indent)


def parse_frontmatter_report(fm_text: str) -> Tuple[Dict[str, Any], List[str]]:
    """Parse a frontmatter block, also returning the problems found."""
    lines = tokenize(fm_text)
    if not lines:
        return {}, []

    parser = _Parser(lines)
    mapping = parser.parse_mapping(min(line.indent for line in lines))
    return mapping, parser.issues


def flatten_frontmatter(mapping: Dict[str, Any]) -> Dict[str, Any]:
    """Hoist nested sub-keys to the top level.

    ``dependency-graph: {provides: [...]}`` also becomes a top-level
    ``provides`` key. Existing top-level keys win over hoisted ones.
    """
    flat = dict(mapping)
    for value in mapping.values():
        if isinstance(value, dict):
            for sub_key, sub_value in flatten_frontmatter(value).items():
                flat.setdefault(sub_key, sub_value)
    return flat


def parse_frontmatter(fm_text: str, flatten: bool = False) -> Dict[str, Any]:
    """Parse a frontmatter block into a mapping.

    Args:
        fm_text: Text between the two ``---`` delimiters
        flatten: Also expose nested sub-keys as top-level keys

    Returns:
        Ordered key -> value mapping. Malformed entries are omitted.
        Nested mappings stay nested dicts unless flatten is set.
    """
    mapping, _ = parse_frontmatter_report(fm_text)
    return flatten_frontmatter(mapping) if flatten else mapping


def extract_frontmatter(text: str, flatten: bool = False) -> Dict[str, Any]:
    """Parse the frontmatter of a whole document ({} when there is none)."""
    fm_text, _ = split_frontmatter(text)
    if fm_text is None:
        return {}
    return parse_frontmatter(fm_text, flatten=flatten)


# ============================================================================
# Serializer
# ============================================================================

def _needs_quotes(text: str, inline: bool) -> bool:
    if not text or text != text.strip():
        return True
    if ":" in text or " #" in text or "\n" in text:
        return True
    if text.startswith(_SPECIAL_START) or text.startswith("- ") or text == "-":
        return True
    if text.lower() in _RESERVED_WORDS or _NUMERIC_RE.match(text) or _DATE_RE.match(text):
        return True
    return inline and ("," in text or "]" in text)


def format_scalar(value: Any, inline: bool = False) -> str:
    """Render one value so that parse_scalar reads it back unchanged."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    text = str(value)
    if _needs_quotes(text, inline):
        return json.dumps(text, ensure_ascii=False)
    return text


def serialize_frontmatter(
    mapping: Dict[str, Any],
    list_style: str = "block",
    indent: int = 0,
) -> str:
    """Render a mapping in the frontmatter dialect (without delimiters).

    Args:
        mapping: Values to write; nested dicts become indented blocks
        list_style: "block" for ``- item`` lines, "inline" for ``[a, b]``
        indent: Leading spaces for every line

    Returns:
        Frontmatter text
    """
    pad = " " * indent
    lines = []
    for key, value in mapping.items():
        if isinstance(value, dict):
            if not value:
                lines.append(f"{pad}{key}: {{}}")
            else:
                lines.append(f"{pad}{key}:")
                lines.append(serialize_frontmatter(value, list_style, indent + 2))
        elif isinstance(value, (list, tuple)):
            if not value:
                lines.append(f"{pad}{key}: []")
            elif list_style == "inline":
                items = ", ".join(format_scalar(v, inline=True) for v in value)
                lines.append(f"{pad}{key}: [{items}]")
            else:
                lines.append(f"{pad}{key}:")
                lines.extend(f"{pad}  - {format_scalar(v)}" for v in value)
        else:
            lines.append(f"{pad}{key}: {format_scalar(value)}")
    return "\n".join(lines)


# ============================================================================
# Raw entries
# ============================================================================

@dataclass
class Entry:
    """A top-level frontmatter key with its raw lines, continuation included."""
    key: Optional[str]
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def value(self) -> Any:
        if not self.key:
            return None
        return parse_frontmatter(self.text).get(self.key)


def split_entries(fm_text: str) -> List[Entry]:
    """Group frontmatter lines by top-level key.

    Used by dialect converters to drop or rewrite a few keys while every
    other line passes through untouched.
    """
    entries: List[Entry] = []
    for raw in fm_text.split("\n"):
        stripped = raw.strip()
        continuation = (
            not stripped
            or raw[:1] in (" ", "\t")
            or stripped == "-"
            or stripped.startswith("- ")
        )
        if continuation and entries:
            entries[-1].lines.append(raw)
            continue
        key, sep, _ = stripped.partition(":")
        entries.append(Entry(key.strip() if sep else None, [raw]))
    return entries


# ============================================================================
# Documents
# ============================================================================

@dataclass
class ParsedDocument:
    """A document whose frontmatter parsed cleanly."""
    frontmatter: Dict[str, Any]
    body: str
    ok: ClassVar[bool] = True


@dataclass
class SkippedDocument:
    """A document left out of aggregation, with the reason."""
    reason: str
    ok: ClassVar[bool] = False


DocumentResult = Union[ParsedDocument, SkippedDocument]


def parse_document(text: str, flatten: bool = False) -> DocumentResult:
    """Parse a document strictly: any frontmatter problem skips it."""
    fm_text, body = split_frontmatter(text)
    if fm_text is None:
        return SkippedDocument("no frontmatter")

    mapping, issues = parse_frontmatter_report(fm_text)
    if issues:
        return SkippedDocument(f"malformed frontmatter ({issues[0]})")

    if flatten:
        mapping = flatten_frontmatter(mapping)
    return ParsedDocument(mapping, body)


def read_document(path: Path, flatten: bool = False) -> DocumentResult:
    """Read and parse a document from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return SkippedDocument(f"unreadable: {e}")
    return parse_document(text, flatten=flatten)


# ============================================================================
# Files
# ============================================================================

def set_fields(text: str, values: Dict[str, Any]) -> str:
    """Set top-level keys, leaving every other entry's lines untouched.

    Existing keys are rewritten in place and new keys are appended. A
    document without frontmatter gains a block holding just the new keys.
    """
    fm_text, body = split_frontmatter(text)
    if fm_text is None:
        return join_frontmatter(serialize_frontmatter(values), text)

    pending = dict(values)
    out = []
    for entry in split_entries(fm_text):
        if entry.key in pending:
            out.append(serialize_frontmatter({entry.key: pending.pop(entry.key)}))
        else:
            out.append(entry.text)
    out.extend(serialize_frontmatter({key: value}) for key, value in pending.items())
    return join_frontmatter("\n".join(out).strip("\n"), body)


def coerce_field_value(raw: str) -> Any:
    """CLI text to a field value: JSON when it parses, the plain string otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def get_frontmatter_field(path: Path, name: Optional[str] = None) -> Dict[str, Any]:
    """Whole frontmatter mapping, or one top-level field of it.

    Nested maps come back as nested dicts ("tech-stack": {"added": [...]}),
    so a sub-key like "added" is not a field name here. Callers that want
    sub-keys hoisted to the top level use flatten_frontmatter.
    """
    if not path.is_file():
        return {"error": "File not found", "path": str(path)}
    mapping = extract_frontmatter(path.read_text(encoding="utf-8", errors="replace"))
    if name is None:
        return mapping
    if name not in mapping:
        return {"error": "Field not found", "field": name}
    return {name: mapping[name]}


def _rewrite(path: Path, values: Dict[str, Any]) -> None:
    write_text_file(path, set_fields(read_text_file(path), values))


def set_frontmatter_field(path: Path, name: str, value: Any) -> Dict[str, Any]:
    """Set one field in place.

    Raises:
        UnreadableFileError: If the file is not UTF-8 text
    """
    if not path.is_file():
        return {"error": "File not found", "path": str(path)}
    _rewrite(path, {name: value})
    return {"updated": True, "field": name, "value": value}


def merge_frontmatter(path: Path, data: Dict[str, Any]) -> Dict[str, Any]:
    if not path.is_file():
        return {"error": "File not found", "path": str(path)}
    _rewrite(path, data)
    return {"merged": True, "fields": list(data)}
