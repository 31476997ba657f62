"""
Summary documents: per-file field extraction and the project-wide digest.

Summaries are the post-execution reports next to each plan
(``03-02-SUMMARY.md``). Their frontmatter carries what the plan delivered:

    dependency-graph:
      provides: [Auth system]
      affects: [API layer]
    tech-stack:
      added: [jose]
    patterns-established: [JWT auth flow]
    key-decisions:
      - "Use jose: smaller than jsonwebtoken"
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from gsdtools.errors import UnreadableFileError
from gsdtools.frontmatter import extract_frontmatter, read_document
from gsdtools.phase_ids import normalize_phase_id, split_phase_dir_name
from gsdtools.planning import get_phases_dir, list_phase_dirs, phase_files, read_text_file

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = ("one_liner", "key_files", "tech_added", "patterns", "decisions")


def _as_list(value: Any) -> List[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def _nested(fm: Dict[str, Any], key: str, subkey: str) -> Any:
    """fm[key][subkey], also accepting an already-flattened ``key.subkey``."""
    block = fm.get(key)
    if isinstance(block, dict) and subkey in block:
        return block[subkey]
    return fm.get(f"{key}.{subkey}")


def _extend_unique(target: List[Any], values: Iterable[Any]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def split_decision(text: Any) -> Dict[str, Any]:
    """Split "Use X: because Y" on the first colon."""
    decision, sep, rationale = str(text).partition(":")
    if not sep:
        return {"decision": decision.strip()}
    return {"decision": decision.strip(), "rationale": rationale.strip()}


def _key_files(fm: Dict[str, Any]) -> List[Any]:
    value = fm.get("key-files")
    if isinstance(value, dict):
        return _as_list(value.get("created")) + _as_list(value.get("modified"))
    return _as_list(value)


def extract_summary(path: Path, fields: Optional[List[str]] = None) -> Dict[str, Any]:
    """Selected fields of one summary file.

    Args:
        path: Summary file
        fields: Allow-list from SUMMARY_FIELDS; None returns them all

    Returns:
        Dict with ``path`` plus the requested fields, or an error dict
    """
    if not path.is_file():
        return {"error": "File not found", "path": str(path)}

    try:
        fm = extract_frontmatter(read_text_file(path))
    except UnreadableFileError as e:
        return {"error": str(e), "path": str(path)}
    decisions = []
    for entry in _as_list(fm.get("key-decisions")):
        split = split_decision(entry)
        decisions.append({"summary": split["decision"], "rationale": split.get("rationale")})

    values = {
        "one_liner": fm.get("one-liner"),
        "key_files": _key_files(fm),
        "tech_added": _as_list(_nested(fm, "tech-stack", "added")),
        "patterns": _as_list(fm.get("patterns-established")),
        "decisions": decisions,
    }

    wanted = fields or list(SUMMARY_FIELDS)
    result: Dict[str, Any] = {"path": str(path)}
    for name in wanted:
        if name in values:
            result[name] = values[name]
    return result


def history_digest(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Merge every summary in the project into one digest.

    Phases are keyed by their padded id. Summaries without frontmatter or
    with malformed frontmatter are skipped; the phase still appears if any
    sibling summary parses.
    """
    digest: Dict[str, Any] = {"phases": {}, "decisions": [], "tech_stack": []}
    phases_dir = get_phases_dir(project_path)

    for dir_name in list_phase_dirs(project_path):
        prefix, slug = split_phase_dir_name(dir_name)
        phase_key = normalize_phase_id(prefix)
        _, summaries = phase_files(phases_dir / dir_name)

        for filename in summaries:
            result = read_document(phases_dir / dir_name / filename)
            if not result.ok:
                logger.debug(f"Skipping {dir_name}/{filename}: {result.reason}")
                continue
            fm = result.frontmatter

            phase = digest["phases"].get(phase_key)
            if phase is None:
                phase = {
                    "name": fm.get("name") or slug.replace("-", " "),
                    "provides": [],
                    "affects": [],
                    "patterns": [],
                }
                digest["phases"][phase_key] = phase

            for key in ("provides", "affects"):
                nested = _nested(fm, "dependency-graph", key)
                _extend_unique(phase[key], _as_list(nested if nested is not None else fm.get(key)))
            _extend_unique(phase["patterns"], _as_list(fm.get("patterns-established")))

            for entry in _as_list(fm.get("key-decisions")):
                digest["decisions"].append({"phase": phase_key, **split_decision(entry)})

            _extend_unique(digest["tech_stack"], _as_list(_nested(fm, "tech-stack", "added")))

    return digest
