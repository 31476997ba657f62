"""
Structural checks over planning documents.

None of these change files. Each returns a result dict; a missing file
is reported as ``{"error": "File not found"}`` rather than raised.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.errors import InvalidInputError, UnreadableFileError
from gsdtools.frontmatter import extract_frontmatter
from gsdtools.phase_ids import parse_phase_id
from gsdtools.planning import find_phase_dir, get_phases_dir, list_phase_dirs, phase_files, plan_id_of
from gsdtools.roadmap import find_phase_sections, load_roadmap

FRONTMATTER_SCHEMAS: Dict[str, List[str]] = {
    "plan": ["phase", "plan", "type", "wave", "depends_on", "files_modified", "autonomous", "must_haves"],
    "summary": ["phase", "plan", "subsystem", "tags", "duration", "completed"],
    "verification": ["phase", "verified", "status", "score"],
}

_TASK_RE = re.compile(r"<task\b[^>]*>(.*?)</task>", re.S)
_REFERENCE_RE = re.compile(r"(?<![\w@])@(~?[\w.\-]*/[\w./\-]+)")
_PLAN_SEQ_RE = re.compile(r"^\d+(?:\.\d+)?-(\d+)-PLAN\.md$")


def _file_not_found(path: Path) -> Dict[str, Any]:
    return {"error": "File not found", "path": str(path)}


def _element(body: str, tag: str) -> Optional[str]:
    match = re.search(rf"<{tag}\b[^>]*>(.*?)</{tag}>", body, re.S)
    return match.group(1).strip() if match else None


def validate_frontmatter(path: Path, schema: str) -> Dict[str, Any]:
    """Check a document for the required fields of a schema.

    Raises:
        InvalidInputError: If schema is not in FRONTMATTER_SCHEMAS
    """
    required = FRONTMATTER_SCHEMAS.get(schema)
    if required is None:
        raise InvalidInputError(
            f"Unknown schema: {schema}. Available: {', '.join(FRONTMATTER_SCHEMAS)}"
        )
    if not path.is_file():
        return _file_not_found(path)

    fm = extract_frontmatter(path.read_text(encoding="utf-8", errors="replace"))
    missing = [name for name in required if name not in fm]
    return {
        "valid": not missing,
        "missing": missing,
        "present": [name for name in required if name in fm],
        "schema": schema,
    }


def verify_plan_structure(path: Path) -> Dict[str, Any]:
    """Required frontmatter plus well-formed <task> elements."""
    if not path.is_file():
        return _file_not_found(path)

    content = path.read_text(encoding="utf-8", errors="replace")
    fm = extract_frontmatter(content)
    errors = [
        f"Missing required frontmatter field: {name}"
        for name in FRONTMATTER_SCHEMAS["plan"]
        if name not in fm
    ]
    warnings = []

    tasks = []
    for body in _TASK_RE.findall(content):
        name = _element(body, "name")
        label = name or "(unnamed)"
        if not name:
            errors.append("Task missing <name> element")
        for tag in ("files", "verify", "done"):
            if _element(body, tag) is None:
                warnings.append(f"Task '{label}' missing <{tag}> element")
        tasks.append({
            "name": name,
            "has_files": _element(body, "files") is not None,
            "has_action": _element(body, "action") is not None,
            "has_verify": _element(body, "verify") is not None,
            "has_done": _element(body, "done") is not None,
        })

    if not tasks:
        warnings.append("No <task> elements found")

    wave = fm.get("wave")
    if isinstance(wave, int) and wave > 1 and not fm.get("depends_on"):
        warnings.append("Wave > 1 but depends_on is empty")

    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "task_count": len(tasks),
        "tasks": tasks,
        "frontmatter_fields": list(fm),
    }


def verify_phase_completeness(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Every plan of a phase has a summary, and every summary has a plan."""
    dir_name = find_phase_dir(project_path, phase)
    if dir_name is None:
        return {"error": "Phase not found", "phase": phase}

    plans, summaries = phase_files(get_phases_dir(project_path) / dir_name)
    plan_ids = [plan_id_of(p) for p in plans]
    summary_ids = [plan_id_of(s) for s in summaries]
    incomplete = [p for p in plan_ids if p not in summary_ids]
    return {
        "complete": not incomplete,
        "phase": phase,
        "plan_count": len(plans),
        "summary_count": len(summaries),
        "incomplete_plans": incomplete,
        "orphan_summaries": [s for s in summary_ids if s not in plan_ids],
    }


def verify_references(path: Path, root: Path) -> Dict[str, Any]:
    """Resolve every ``@path/to/file`` reference in a document."""
    if not path.is_file():
        return _file_not_found(path)

    refs = []
    for match in _REFERENCE_RE.finditer(path.read_text(encoding="utf-8", errors="replace")):
        ref = match.group(1).rstrip(".")
        if ref not in refs:
            refs.append(ref)

    missing = []
    for ref in refs:
        target = Path(ref).expanduser() if ref.startswith("~") else root / ref
        if not target.exists():
            missing.append(ref)

    return {
        "valid": not missing,
        "found": len(refs) - len(missing),
        "missing": missing,
        "total": len(refs),
    }


def _sequence_gaps(numbers: List[int]) -> List[str]:
    ordered = sorted(set(numbers))
    return [f"{a} -> {b}" for a, b in zip(ordered, ordered[1:]) if b - a > 1]


def validate_consistency(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Cross-check ROADMAP.md against the phase directories on disk."""
    errors: List[str] = []
    warnings: List[str] = []

    try:
        content = load_roadmap(project_path)
    except UnreadableFileError as e:
        errors.append(str(e))
        return {"passed": False, "errors": errors, "warnings": warnings, "warning_count": 0}
    if content is None:
        errors.append("ROADMAP.md not found")
        return {"passed": False, "errors": errors, "warnings": warnings, "warning_count": 0}

    sections = find_phase_sections(content)
    roadmap_ids = {s.phase_id: s.number for s in sections}
    dirs = list_phase_dirs(project_path)
    disk_ids = {parse_phase_id(d): d for d in dirs}

    for phase_id, name in disk_ids.items():
        if phase_id not in roadmap_ids:
            warnings.append(f"Phase {phase_id} exists on disk but not in ROADMAP.md ({name})")
    for phase_id, number in roadmap_ids.items():
        if phase_id not in disk_ids:
            warnings.append(f"Phase {number} in ROADMAP.md but no directory on disk")

    wholes = [p.whole for p in roadmap_ids if not p.is_decimal]
    for gap in _sequence_gaps(wholes):
        warnings.append(f"Gap in phase numbering: {gap}")

    phases_dir = get_phases_dir(project_path)
    for name in dirs:
        plans, summaries = phase_files(phases_dir / name)
        sequence = [int(m.group(1)) for m in map(_PLAN_SEQ_RE.match, plans) if m]
        for gap in _sequence_gaps(sequence):
            warnings.append(f"Gap in plan numbering in {name}: {gap}")

        plan_ids = {plan_id_of(p) for p in plans}
        for summary in summaries:
            if plan_id_of(summary) not in plan_ids:
                warnings.append(f"Summary without matching plan in {name}: {summary}")

        for plan in plans:
            fm = extract_frontmatter(
                (phases_dir / name / plan).read_text(encoding="utf-8", errors="replace")
            )
            if "wave" not in fm:
                warnings.append(f"Plan {name}/{plan} has no wave in frontmatter")

    return {
        "passed": not errors,
        "errors": errors,
        "warnings": warnings,
        "warning_count": len(warnings),
    }


def verify_path_exists(root: Path, target: str) -> Dict[str, Any]:
    path = Path(target)
    if not path.is_absolute():
        path = root / path
    if path.is_dir():
        return {"exists": True, "type": "directory"}
    if path.exists():
        return {"exists": True, "type": "file"}
    return {"exists": False, "type": None}
