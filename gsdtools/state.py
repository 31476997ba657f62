"""
STATE.md fields and sections.

    **Current Phase:** 03
    **Current Plan:** 2
    **Total Plans in Phase:** 3
    **Status:** In progress
    **Progress:** [████░░░░░░] 40%

    ## Decisions Made
    | Phase | Decision | Rationale |
    |-------|----------|-----------|
    | 01 | Use Prisma | Type safety |

    ### Blockers/Concerns
    - Waiting on API keys

    ## Session
    **Last Date:** 2025-01-15
    **Stopped At:** Task 2
    **Resume File:** None

Mutators rewrite only the line or section they target and leave every
other byte alone. A missing label or section is reported in the result,
never raised.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from gsdtools.config import get_config_path, load_config
from gsdtools.errors import MissingResourceError, UnreadableFileError
from gsdtools.planning import (
    ROADMAP_FILE,
    STATE_FILE,
    format_progress_bar,
    get_phases_dir,
    get_planning_dir,
    list_phase_dirs,
    percent,
    phase_files,
    read_planning_file,
    timestamp,
    today,
    write_planning_file,
)

STATE_NOT_FOUND = "STATE.md not found"

DECISIONS_HEADING = r"(?:Key\s+)?Decisions(?:\s+Made)?|Accumulated\s+Decisions"
BLOCKERS_HEADING = r"Blockers(?:\s*/\s*Concerns)?|Concerns"
SESSION_HEADING = r"Session(?:\s+Continuity)?"
METRICS_HEADING = r"Performance\s+Metrics"

# Label in STATE.md -> snapshot key
SNAPSHOT_FIELDS = (
    ("Current Phase", "current_phase"),
    ("Current Phase Name", "current_phase_name"),
    ("Total Phases", "total_phases"),
    ("Current Plan", "current_plan"),
    ("Total Plans in Phase", "total_plans_in_phase"),
    ("Status", "status"),
    ("Progress", "progress_percent"),
    ("Last Activity", "last_activity"),
    ("Last Activity Description", "last_activity_desc"),
    ("Paused At", "paused_at"),
)

PLACEHOLDERS = {"none", "none yet", "no decisions yet", "no blockers", "no blockers yet"}

_INT_RE = re.compile(r"^-?(?:0|[1-9]\d*)$")
_SEPARATOR_RE = re.compile(r"^\|[\s:|-]*-[\s:|-]*\|?$")
_HEADING_RE = re.compile(r"^#{1,6}[ \t]", re.M)


# ============================================================================
# Fields
# ============================================================================

def _field_re(label: str) -> "re.Pattern":
    return re.compile(rf"^\*\*({re.escape(label)}):\*\*[ \t]*(.*?)[ \t]*(?=\r?$)", re.M | re.I)


def get_field(content: str, label: str) -> Optional[str]:
    """Value of a ``**Label:** value`` line (label matched case-insensitively)."""
    match = _field_re(label).search(content)
    return match.group(2) if match else None


def replace_field(content: str, label: str, value: Any) -> Tuple[str, Optional[str]]:
    """Rewrite one field line.

    Returns:
        (new content, label as written in the file), or (content, None)
        when the field does not exist
    """
    match = _field_re(label).search(content)
    if not match:
        return content, None
    line = f"**{match.group(1)}:** {value}".rstrip()
    return content[:match.start()] + line + content[match.end():], match.group(1)


def update_fields(content: str, values: Dict[str, Any]) -> Tuple[str, List[str]]:
    """Rewrite several fields, skipping labels that are absent."""
    updated = []
    for label, value in values.items():
        content, written = replace_field(content, label, value)
        if written:
            updated.append(written)
    return content, updated


def _coerce(value: str) -> Any:
    if value == "":
        return None
    if _INT_RE.match(value):
        return int(value)
    return value


# ============================================================================
# Sections
# ============================================================================

@dataclass
class Section:
    """Span of a heading's body, up to the next heading of any level."""
    body_start: int
    end: int


def find_section(content: str, heading: str) -> Optional[Section]:
    """Find a section whose heading text matches the regex heading."""
    match = re.search(
        rf"^(#{{1,6}})[ \t]*(?:{heading})[ \t]*:?[ \t]*$", content, re.M | re.I
    )
    if not match:
        return None
    body_start = min(match.end() + 1, len(content))
    following = _HEADING_RE.search(content, body_start)
    return Section(body_start, following.start() if following else len(content))


def section_body(content: str, section: Section) -> str:
    return content[section.body_start:section.end]


def rewrite_section(content: str, section: Section, transform: Callable[[str], str]) -> str:
    head = content[:section.body_start]
    if not head.endswith("\n"):
        head += "\n"
    return head + transform(section_body(content, section)) + content[section.end:]


def is_placeholder(line: str) -> bool:
    text = line.strip().lstrip("-*").strip().rstrip(".").lower()
    return text in PLACEHOLDERS


def append_entry(body: str, entry: str) -> str:
    """Add a line after the last non-blank line, dropping placeholder lines.

    In an otherwise empty body the entry takes the placeholder's place, or
    the line after the heading's blank line.
    """
    lines = []
    slot = None
    for line in body.split("\n"):
        if is_placeholder(line):
            if slot is None:
                slot = len(lines)
            continue
        lines.append(line)

    last = max((i for i, line in enumerate(lines) if line.strip()), default=-1)
    if last >= 0:
        pos = last + 1
    elif slot is not None:
        pos = slot
    else:
        pos = min(1, len(lines))
    lines.insert(pos, entry)
    return "\n".join(lines)


def _bullets(body: str) -> List[str]:
    items = []
    for line in body.split("\n"):
        match = re.match(r"^\s*[-*]\s+(.*\S)", line)
        if match and not is_placeholder(line):
            items.append(match.group(1))
    return items


def _decision_rows(body: str) -> List[Dict[str, str]]:
    rows = []
    header_seen = False
    for line in body.split("\n"):
        text = line.strip()
        if text.startswith("|"):
            if not header_seen:
                header_seen = True
                continue
            if _SEPARATOR_RE.match(text):
                continue
            cells = [cell.strip() for cell in text.strip("|").split("|")]
            rows.append({
                "phase": cells[0],
                "summary": cells[1] if len(cells) > 1 else "",
                "rationale": cells[2] if len(cells) > 2 else "",
            })
            continue

        match = re.match(r"^[-*]\s*\[Phase\s+([^\]]+)\]:?\s*(.*)$", text)
        if match:
            rows.append({"phase": match.group(1), "summary": match.group(2), "rationale": ""})
    return rows


# ============================================================================
# Read-only views
# ============================================================================

def load_state_file(project_path: Optional[Path] = None) -> Optional[str]:
    return read_planning_file(project_path, STATE_FILE)


def save_state_file(project_path: Optional[Path], content: str) -> None:
    write_planning_file(project_path, STATE_FILE, content)


def load_state(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Config plus raw STATE.md and which planning files exist."""
    state_error = None
    try:
        content = load_state_file(project_path)
    except UnreadableFileError as e:
        content = None
        state_error = str(e)
    result = {
        "config": load_config(project_path),
        "config_exists": get_config_path(project_path).is_file(),
        "state_exists": content is not None,
        "roadmap_exists": (get_planning_dir(project_path) / ROADMAP_FILE).is_file(),
        "state_raw": content or "",
    }
    if state_error:
        result["state_error"] = state_error
    return result


def get_state(project_path: Optional[Path], name: Optional[str] = None) -> Dict[str, Any]:
    """Whole STATE.md, one field, or one section body.

    Raises:
        MissingResourceError: If STATE.md or the requested name is missing
        UnreadableFileError: If STATE.md is not UTF-8 text
    """
    content = load_state_file(project_path)
    if content is None:
        raise MissingResourceError(STATE_NOT_FOUND)
    if not name:
        return {"content": content}

    value = get_field(content, name)
    if value is not None:
        return {name: value}

    section = find_section(content, re.escape(name))
    if section is not None:
        return {name: section_body(content, section).strip()}

    raise MissingResourceError(f'Section or field "{name}" not found in STATE.md')


def state_snapshot(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Structured view of STATE.md."""
    try:
        content = load_state_file(project_path)
    except UnreadableFileError as e:
        return {"error": str(e)}
    if content is None:
        return {"error": STATE_NOT_FOUND}

    snapshot: Dict[str, Any] = {}
    for label, key in SNAPSHOT_FIELDS:
        value = get_field(content, label)
        if key == "progress_percent":
            match = re.search(r"(\d+)\s*%", value or "")
            snapshot[key] = int(match.group(1)) if match else None
        else:
            snapshot[key] = _coerce(value) if value is not None else None

    decisions = find_section(content, DECISIONS_HEADING)
    snapshot["decisions"] = _decision_rows(section_body(content, decisions)) if decisions else []

    blockers = find_section(content, BLOCKERS_HEADING)
    snapshot["blockers"] = _bullets(section_body(content, blockers)) if blockers else []

    session = find_section(content, SESSION_HEADING)
    if session:
        body = section_body(content, session)
        snapshot["session"] = {
            "last_date": get_field(body, "Last Date") or get_field(body, "Last session"),
            "stopped_at": get_field(body, "Stopped At"),
            "resume_file": get_field(body, "Resume File"),
        }
    else:
        snapshot["session"] = None

    return snapshot


# ============================================================================
# Mutators
# ============================================================================

def update_field(project_path: Optional[Path], label: str, value: str) -> Dict[str, Any]:
    content = load_state_file(project_path)
    if content is None:
        return {"updated": False, "reason": STATE_NOT_FOUND}

    content, written = replace_field(content, label, value)
    if not written:
        return {"updated": False, "reason": f'Field "{label}" not found in STATE.md'}

    save_state_file(project_path, content)
    return {"updated": True, "field": written, "value": value}


def patch_fields(project_path: Optional[Path], patches: Dict[str, str]) -> Dict[str, Any]:
    """Apply several field updates; labels may use - or _ for spaces."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    updated, failed = [], []
    for label, value in patches.items():
        new_content, written = replace_field(content, label, value)
        if not written:
            spaced = re.sub(r"[-_]+", " ", label)
            new_content, written = replace_field(content, spaced, value)
        if written:
            content = new_content
            updated.append(written)
        else:
            failed.append(label)

    if updated:
        save_state_file(project_path, content)
    return {"updated": updated, "failed": failed}


def advance_plan(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Move Current Plan forward, or flag the phase ready for verification."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    current_text = re.match(r"\d+", get_field(content, "Current Plan") or "")
    total_text = re.match(r"\d+", get_field(content, "Total Plans in Phase") or "")
    if not current_text or not total_text:
        return {"error": "Cannot parse Current Plan or Total Plans in Phase from STATE.md"}

    current = int(current_text.group())
    total = int(total_text.group())
    date = today()

    if current >= total:
        content, _ = update_fields(content, {
            "Status": "Phase complete - ready for verification",
            "Last Activity": date,
        })
        save_state_file(project_path, content)
        return {
            "advanced": False,
            "reason": "last_plan",
            "current_plan": current,
            "total_plans": total,
            "status": "ready_for_verification",
        }

    content, _ = update_fields(content, {
        "Current Plan": current + 1,
        "Status": "Ready to execute",
        "Last Activity": date,
    })
    save_state_file(project_path, content)
    return {
        "advanced": True,
        "previous_plan": current,
        "current_plan": current + 1,
        "total_plans": total,
    }


def record_metric(
    project_path: Optional[Path],
    phase: str,
    plan: str,
    duration: str,
    tasks: Optional[str] = None,
    files: Optional[str] = None,
) -> Dict[str, Any]:
    """Append a row to the Performance Metrics table."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    missing = {"recorded": False, "reason": "Performance Metrics section not found in STATE.md"}
    section = find_section(content, METRICS_HEADING)
    if section is None:
        return missing

    lines = section_body(content, section).split("\n")
    separator = next((i for i, line in enumerate(lines) if _SEPARATOR_RE.match(line.strip())), None)
    if separator is None:
        return missing

    last_row = separator
    while last_row + 1 < len(lines) and lines[last_row + 1].strip().startswith("|"):
        last_row += 1

    row = f"| Phase {phase} P{plan} | {duration} | {tasks or '-'} tasks | {files or '-'} files |"
    lines.insert(last_row + 1, row)
    content = rewrite_section(content, section, lambda _: "\n".join(lines))
    save_state_file(project_path, content)
    return {"recorded": True, "phase": phase, "plan": plan, "duration": duration}


def update_progress(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Recount plans and summaries across all phases into the Progress field."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    phases_dir = get_phases_dir(project_path)
    total = completed = 0
    for name in list_phase_dirs(project_path):
        plans, summaries = phase_files(phases_dir / name)
        total += len(plans)
        completed += len(summaries)

    pct = percent(completed, total)
    bar = f"{format_progress_bar(pct)} {pct}%"

    content, written = replace_field(content, "Progress", bar)
    if not written:
        return {"updated": False, "reason": "Progress field not found in STATE.md"}

    save_state_file(project_path, content)
    return {"updated": True, "percent": pct, "completed": completed, "total": total, "bar": bar}


def add_decision(
    project_path: Optional[Path],
    summary: str,
    phase: Optional[str] = None,
    rationale: Optional[str] = None,
) -> Dict[str, Any]:
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    section = find_section(content, DECISIONS_HEADING)
    if section is None:
        return {"added": False, "reason": "Decisions section not found in STATE.md"}

    entry = f"- [Phase {phase or '?'}]: {summary}"
    if rationale:
        entry += f" - {rationale}"

    content = rewrite_section(content, section, lambda body: append_entry(body, entry))
    save_state_file(project_path, content)
    return {"added": True, "decision": entry}


def add_blocker(project_path: Optional[Path], text: str) -> Dict[str, Any]:
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    section = find_section(content, BLOCKERS_HEADING)
    if section is None:
        return {"added": False, "reason": "Blockers section not found in STATE.md"}

    content = rewrite_section(content, section, lambda body: append_entry(body, f"- {text}"))
    save_state_file(project_path, content)
    return {"added": True, "blocker": text}


def resolve_blocker(project_path: Optional[Path], text: str) -> Dict[str, Any]:
    """Remove blocker bullets containing text; an empty list gets "None" back."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    section = find_section(content, BLOCKERS_HEADING)
    if section is None:
        return {"resolved": False, "reason": "Blockers section not found in STATE.md"}

    needle = text.lower()

    def drop(body: str) -> str:
        lines = [
            line for line in body.split("\n")
            if not (re.match(r"^\s*[-*]\s", line) and needle in line.lower())
        ]
        remaining = "\n".join(lines)
        if not _bullets(remaining) and not any(is_placeholder(line) for line in lines):
            remaining = append_entry(remaining, "None")
        return remaining

    content = rewrite_section(content, section, drop)
    save_state_file(project_path, content)
    return {"resolved": True, "blocker": text}


def record_session(
    project_path: Optional[Path],
    stopped_at: str,
    resume_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Stamp the session fields with now, where work stopped, and the resume file."""
    content = load_state_file(project_path)
    if content is None:
        return {"error": STATE_NOT_FOUND}

    updates = (
        (("Last session", "Last Date"), timestamp()),
        (("Stopped At",), stopped_at),
        (("Resume File",), resume_file or "None"),
    )

    updated = []
    for labels, value in updates:
        for label in labels:
            content, written = replace_field(content, label, value)
            if written:
                updated.append(written)
                break

    if not updated:
        return {"recorded": False, "reason": "No session fields found in STATE.md"}

    save_state_file(project_path, content)
    return {"recorded": True, "updated": updated}
