"""
Must-haves blocks in plan frontmatter, and checks against the working tree.

    must_haves:
      truths:
        - "User can see existing messages"
      artifacts:
        - path: src/components/Chat.tsx
          provides: Message list rendering
          min_lines: 30
      key_links:
        - from: src/components/Chat.tsx
          to: /api/chat
          via: fetch in useEffect
          pattern: "fetch.*api/chat"

Items are small mappings, which the general frontmatter parser keeps as
plain strings, so this block has its own reader over the tokenized lines.
The block may sit at any indentation.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.errors import UnreadableFileError
from gsdtools.frontmatter import Line, parse_scalar, split_frontmatter, strip_quotes, tokenize
from gsdtools.planning import read_text_file

_KEY_RE = re.compile(r"^[A-Za-z_][\w-]*$")


@dataclass
class Artifact:
    """A file the plan must leave behind."""
    path: str
    provides: Optional[str] = None
    min_lines: Optional[int] = None
    contains: Optional[str] = None
    exports: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "provides": self.provides,
            "min_lines": self.min_lines,
            "contains": self.contains,
            "exports": self.exports,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Artifact":
        min_lines = d.get("min_lines")
        if isinstance(min_lines, str) and min_lines.isdigit():
            min_lines = int(min_lines)
        exports = d.get("exports") or []
        return cls(
            path=str(d.get("path", "")),
            provides=d.get("provides"),
            min_lines=min_lines if isinstance(min_lines, int) else None,
            contains=d.get("contains"),
            exports=exports if isinstance(exports, list) else [exports],
        )


@dataclass
class KeyLink:
    """A connection between two files that must exist."""
    from_path: str
    to: str
    via: Optional[str] = None
    pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_path, "to": self.to, "via": self.via, "pattern": self.pattern}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "KeyLink":
        return cls(
            from_path=str(d.get("from", "")),
            to=str(d.get("to", "")),
            via=d.get("via"),
            pattern=d.get("pattern"),
        )


@dataclass
class MustHaves:
    """Requirements a plan declares for post-execution verification."""
    truths: List[str] = field(default_factory=list)
    artifacts: List[Artifact] = field(default_factory=list)
    key_links: List[KeyLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "truths": self.truths,
            "artifacts": [a.to_dict() for a in self.artifacts],
            "key_links": [k.to_dict() for k in self.key_links],
        }


# ============================================================================
# Block reader
# ============================================================================

def _children(lines: List[Line], index: int) -> List[Line]:
    """Lines nested under lines[index]."""
    parent = lines[index].indent
    end = index + 1
    while end < len(lines) and lines[end].indent > parent:
        end += 1
    return lines[index + 1:end]


def _find_key(lines: List[Line], key: str) -> Optional[List[Line]]:
    """Children of the first shallowest ``key:`` line."""
    if not lines:
        return None
    top = min(line.indent for line in lines)
    for i, line in enumerate(lines):
        if line.indent == top and not line.is_item and line.text == f"{key}:":
            return _children(lines, i)
    return None


def _value(raw: str) -> Any:
    raw = raw.strip()
    if not raw:
        return ""
    try:
        return parse_scalar(raw)
    except ValueError:
        return raw


def parse_items(lines: List[Line]) -> List[Any]:
    """Parse a list whose items are scalars or one-level mappings."""
    items: List[Any] = []
    if not lines:
        return items

    base = min(line.indent for line in lines)
    current: Optional[Dict[str, Any]] = None
    for line in lines:
        if line.is_item and line.indent == base:
            key, sep, raw = line.item_text.partition(":")
            if sep and _KEY_RE.match(key.strip()):
                current = {key.strip(): _value(raw)}
                items.append(current)
            else:
                current = None
                items.append(strip_quotes(line.item_text))
        elif current is not None:
            key, sep, raw = line.text.partition(":")
            if sep and _KEY_RE.match(key.strip()):
                current[key.strip()] = _value(raw)
    return items


def parse_must_haves(text: str) -> MustHaves:
    """Read the must_haves block of a plan document (empty when absent)."""
    fm_text, _ = split_frontmatter(text)
    if fm_text is None:
        return MustHaves()

    lines = tokenize(fm_text)
    block = None
    for i, line in enumerate(lines):
        if not line.is_item and line.text == "must_haves:":
            block = _children(lines, i)
            break
    if not block:
        return MustHaves()

    def items(key: str) -> List[Any]:
        return parse_items(_find_key(block, key) or [])

    return MustHaves(
        truths=[str(item) for item in items("truths") if not isinstance(item, dict)],
        artifacts=[
            Artifact.from_dict(item) if isinstance(item, dict) else Artifact(path=str(item))
            for item in items("artifacts")
        ],
        key_links=[KeyLink.from_dict(item) for item in items("key_links") if isinstance(item, dict)],
    )


# ============================================================================
# Verification
# ============================================================================

def check_artifact(artifact: Artifact, root: Path) -> Dict[str, Any]:
    target = root / artifact.path
    issues = []
    if not target.is_file():
        issues.append("File not found")
    else:
        content = target.read_text(encoding="utf-8", errors="replace")
        line_count = len(content.splitlines())
        if artifact.min_lines and line_count < artifact.min_lines:
            issues.append(f"Only {line_count} lines, need {artifact.min_lines}")
        if artifact.contains and artifact.contains not in content:
            issues.append(f"Missing pattern: {artifact.contains}")
        for name in artifact.exports:
            if str(name) not in content:
                issues.append(f"Missing export: {name}")

    return {
        "path": artifact.path,
        "exists": target.is_file(),
        "issues": issues,
        "passed": not issues,
    }


def verify_artifacts(plan_path: Path, root: Path) -> Dict[str, Any]:
    """Check every must_haves artifact of a plan against files under root."""
    if not plan_path.is_file():
        return {"error": "File not found", "path": str(plan_path)}

    try:
        must_haves = parse_must_haves(read_text_file(plan_path))
    except UnreadableFileError as e:
        return {"error": str(e), "path": str(plan_path)}
    if not must_haves.artifacts:
        return {"error": "No must_haves.artifacts found in frontmatter", "path": str(plan_path)}

    results = [check_artifact(a, root) for a in must_haves.artifacts]
    passed = sum(1 for r in results if r["passed"])
    return {
        "all_passed": passed == len(results),
        "passed": passed,
        "total": len(results),
        "artifacts": results,
    }


def check_key_link(link: KeyLink, root: Path) -> Dict[str, Any]:
    result = {"from": link.from_path, "to": link.to, "via": link.via, "verified": False}

    source = root / link.from_path
    if not source.is_file():
        result["detail"] = "Source file not found"
        return result
    content = source.read_text(encoding="utf-8", errors="replace")

    if not link.pattern:
        if link.to in content:
            result.update(verified=True, detail="Target referenced in source")
        else:
            result["detail"] = "Target not referenced in source"
        return result

    try:
        regex = re.compile(link.pattern)
    except re.error as e:
        result["detail"] = f"Invalid regex pattern: {link.pattern} ({e})"
        return result

    if regex.search(content):
        result.update(verified=True, detail="Pattern found in source")
        return result

    target = root / link.to
    if target.is_file() and regex.search(target.read_text(encoding="utf-8", errors="replace")):
        result.update(verified=True, detail="Pattern found in target")
    else:
        result["detail"] = f'Pattern "{link.pattern}" not found in source or target'
    return result


def verify_key_links(plan_path: Path, root: Path) -> Dict[str, Any]:
    """Check every must_haves key link of a plan against files under root."""
    if not plan_path.is_file():
        return {"error": "File not found", "path": str(plan_path)}

    try:
        must_haves = parse_must_haves(read_text_file(plan_path))
    except UnreadableFileError as e:
        return {"error": str(e), "path": str(plan_path)}
    if not must_haves.key_links:
        return {"error": "No must_haves.key_links found in frontmatter", "path": str(plan_path)}

    results = [check_key_link(link, root) for link in must_haves.key_links]
    verified = sum(1 for r in results if r["verified"])
    return {
        "all_verified": verified == len(results),
        "verified": verified,
        "total": len(results),
        "links": results,
    }
