"""
ROADMAP.md sections.

A roadmap is a sequence of phase sections:

    ### Phase 2: Authentication
    **Goal:** Users can sign in
    **Depends on:** Phase 1
    **Plans:** 3 plans

    Plans:
    - [ ] 02-01-PLAN.md

A section runs until the next phase heading, a shallower heading, a
``---`` rule, or the end of the file. It never includes the next phase.
Checklist lines like ``- [ ] **Phase 2: Authentication**`` elsewhere in
the file track completion.

Lookups here are read-only. The text helpers at the bottom return new
roadmap content for the phase mutators in gsdtools.phases.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from gsdtools.errors import UnreadableFileError
from gsdtools.phase_ids import PhaseId, parse_phase_id
from gsdtools.planning import (
    ROADMAP_FILE,
    get_phases_dir,
    has_phase_doc,
    list_phase_dirs,
    percent,
    phase_files,
    plan_id_of,
    read_planning_file,
)

_PHASE_HEADING_RE = re.compile(
    r"^(#{1,6})[ \t]*Phase[ \t]+(\d+(?:\.\d+)?)[ \t]*:[ \t]*(.*?)[ \t]*(?=\r?$)", re.M
)
_HEADING_RE = re.compile(r"^(#{1,6})[ \t]", re.M)
_RULE_RE = re.compile(r"^-{3,}[ \t]*(?=\r?$)", re.M)
_CHECKBOX_RE = re.compile(
    r"^([ \t]*[-*][ \t]*)\[([ xX])\]([ \t]*\**Phase[ \t]+(\d+(?:\.\d+)?)\b.*?)[ \t]*(?=\r?$)", re.M
)
_TABLE_ROW_RE = re.compile(r"^\|\s*(\d+(?:\.\d+)?)\.\s")
_PHASE_REF_RE = re.compile(r"(\bphase\s+)(\d+(?:\.\d+)?)(?!\d)", re.I)
_FILE_REF_RE = re.compile(
    r"\b(\d{2,}(?:\.\d+)?)(-(?:\d{2,}-(?:PLAN|SUMMARY)|CONTEXT|RESEARCH|VERIFICATION|UAT)\b)"
)
_ROW_REF_RE = re.compile(r"^(\|\s*)(\d+(?:\.\d+)?)(\.\s)", re.M)


@dataclass
class PhaseSection:
    """Location of one phase section inside roadmap content."""
    number: str
    name: str
    level: int
    start: int
    end: int

    @property
    def phase_id(self) -> PhaseId:
        return PhaseId.parse(self.number)

    def text(self, content: str) -> str:
        return content[self.start:self.end].rstrip()


def load_roadmap(project_path: Optional[Path] = None) -> Optional[str]:
    return read_planning_file(project_path, ROADMAP_FILE)


def find_phase_sections(content: str) -> List[PhaseSection]:
    """All phase sections in document order."""
    headings = list(_PHASE_HEADING_RE.finditer(content))
    sections = []
    for i, match in enumerate(headings):
        level = len(match.group(1))
        end = headings[i + 1].start() if i + 1 < len(headings) else len(content)

        for other in _HEADING_RE.finditer(content, match.end(), end):
            if len(other.group(1)) < level:
                end = other.start()
                break

        rule = _RULE_RE.search(content, match.end(), end)
        if rule:
            end = rule.start()

        sections.append(PhaseSection(
            number=match.group(2),
            name=match.group(3).strip(),
            level=level,
            start=match.start(),
            end=end,
        ))
    return sections


def find_phase_section(content: str, phase: str) -> Optional[PhaseSection]:
    wanted = parse_phase_id(phase)
    if wanted is None:
        return None
    for section in find_phase_sections(content):
        if section.phase_id == wanted:
            return section
    return None


def extract_field(text: str, label: str) -> Optional[str]:
    """Value of a ``**Label:** value`` line, or None."""
    match = re.search(
        rf"^\*\*{re.escape(label)}:?\*\*:?[ \t]*(.+?)[ \t]*$", text, re.M | re.I
    )
    return match.group(1) if match else None


def checked_phases(content: str) -> Set[PhaseId]:
    """Phases whose roadmap checklist entry is ticked."""
    checked = set()
    for match in _CHECKBOX_RE.finditer(content):
        if match.group(2) in "xX":
            checked.add(PhaseId.parse(match.group(4)))
    return checked


def milestone_info(content: Optional[str]) -> Tuple[str, str]:
    """(version, name) from the first versioned heading, e.g. "## v1.0: MVP"."""
    if content:
        match = re.search(
            r"^#{1,3}[^\n]*?\bv(\d+\.\d+(?:\.\d+)?)\b[: \t-]*([^\n(]*)", content, re.M
        )
        if match:
            return f"v{match.group(1)}", match.group(2).strip() or "milestone"
    return "v1.0", "milestone"


def get_phase(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Look up one phase section."""
    try:
        content = load_roadmap(project_path)
    except UnreadableFileError as e:
        return {"found": False, "error": str(e)}
    if content is None:
        return {"found": False, "error": "ROADMAP.md not found"}

    section = find_phase_section(content, phase)
    if section is None:
        return {"found": False, "phase_number": phase}

    text = section.text(content)
    return {
        "found": True,
        "phase_number": phase,
        "phase_name": section.name,
        "goal": extract_field(text, "Goal"),
        "section": text,
    }


def disk_status(
    dir_name: Optional[str],
    plans: List[str],
    summaries: List[str],
    has_context: bool = False,
    has_research: bool = False,
) -> str:
    """Where a phase stands on disk."""
    if dir_name is None:
        return "no_directory"
    summarized = {plan_id_of(s) for s in summaries}
    if plans and all(plan_id_of(p) in summarized for p in plans):
        return "complete"
    if plans:
        return "planned"
    if has_research:
        return "researched"
    if has_context:
        return "discussed"
    return "empty"


def analyze_roadmap(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Every roadmap phase joined with what exists on disk."""
    try:
        content = load_roadmap(project_path)
    except UnreadableFileError as e:
        return {"error": str(e)}
    if content is None:
        return {"error": "ROADMAP.md not found"}

    phases_dir = get_phases_dir(project_path)
    dirs = list_phase_dirs(project_path)
    checked = checked_phases(content)

    phases = []
    for section in find_phase_sections(content):
        text = section.text(content)
        phase_id = section.phase_id
        dir_name = next((d for d in dirs if parse_phase_id(d) == phase_id), None)
        phase_path = phases_dir / dir_name if dir_name else None

        plans, summaries = phase_files(phase_path) if phase_path else ([], [])
        has_context = bool(phase_path) and has_phase_doc(phase_path, "CONTEXT")
        has_research = bool(phase_path) and has_phase_doc(phase_path, "RESEARCH")

        phases.append({
            "number": section.number,
            "name": section.name,
            "goal": extract_field(text, "Goal"),
            "depends_on": extract_field(text, "Depends on"),
            "plan_count": len(plans),
            "summary_count": len(summaries),
            "has_context": has_context,
            "has_research": has_research,
            "disk_status": disk_status(dir_name, plans, summaries, has_context, has_research),
            "roadmap_complete": phase_id in checked,
        })

    total_plans = sum(p["plan_count"] for p in phases)
    total_summaries = sum(p["summary_count"] for p in phases)
    current = next((p for p in phases if p["disk_status"] != "complete"), None)
    if current is None and phases:
        current = phases[-1]

    return {
        "phases": phases,
        "phase_count": len(phases),
        "completed_phases": sum(1 for p in phases if p["disk_status"] == "complete"),
        "total_plans": total_plans,
        "total_summaries": total_summaries,
        "progress_percent": percent(total_summaries, total_plans),
        "current_phase": current["number"] if current else None,
    }


# ============================================================================
# Text mutations
# ============================================================================

def insert_block(content: str, pos: int, block: str) -> str:
    """Insert a block at pos with exactly one blank line on each side."""
    before = content[:pos].rstrip("\n")
    after = content[pos:].lstrip("\n")
    block = block.strip("\n")
    result = f"{before}\n\n{block}\n" if before else f"{block}\n"
    if after:
        result += f"\n{after}"
    return result


def remove_span(content: str, start: int, end: int) -> str:
    before = content[:start].rstrip("\n")
    after = content[end:].lstrip("\n")
    if not before:
        return after
    return f"{before}\n\n{after}" if after else f"{before}\n"


def _refers_to(line: str, phase_id: PhaseId) -> bool:
    match = _CHECKBOX_RE.match(line) or _TABLE_ROW_RE.match(line)
    if not match:
        return False
    number = match.group(4) if match.re is _CHECKBOX_RE else match.group(1)
    return parse_phase_id(number) == phase_id


def remove_phase_text(content: str, phase_id: PhaseId) -> str:
    """Drop a phase's section plus its checklist and progress-table lines."""
    for section in find_phase_sections(content):
        if section.phase_id == phase_id:
            content = remove_span(content, section.start, section.end)
            break
    return "\n".join(line for line in content.split("\n") if not _refers_to(line, phase_id))


def _render_like(new_id: PhaseId, old_text: str) -> str:
    padded = len(old_text.split(".")[0]) > 1
    return new_id.render(padded=padded)


def renumber_text(content: str, mapping: Dict[PhaseId, PhaseId]) -> str:
    """Rewrite phase references through mapping in a single pass.

    Covers "Phase N" mentions (headings, checklists, depends-on lines),
    plan and document file names, and progress-table rows. Numbers keep
    their original padding style.
    """
    if not mapping:
        return content

    def swap(match: "re.Match", number_group: int) -> str:
        old_text = match.group(number_group)
        new_id = mapping.get(parse_phase_id(old_text))
        if new_id is None:
            return match.group(0)
        groups = list(match.groups())
        groups[number_group - 1] = _render_like(new_id, old_text)
        return "".join(g or "" for g in groups)

    content = _PHASE_REF_RE.sub(lambda m: swap(m, 2), content)
    content = _FILE_REF_RE.sub(lambda m: swap(m, 1), content)
    return _ROW_REF_RE.sub(lambda m: swap(m, 2), content)


def mark_phase_complete(
    content: str,
    phase_id: PhaseId,
    date: str,
    plans_label: Optional[str] = None,
) -> Tuple[str, bool]:
    """Tick a phase's checklist entry and stamp the completion date.

    Args:
        content: Roadmap text
        phase_id: Phase being completed
        date: YYYY-MM-DD stamp appended as "(completed DATE)"
        plans_label: New value for the section's **Plans:** line, if given

    Returns:
        (new content, whether anything changed)
    """
    changed = False

    def tick(match: "re.Match") -> str:
        nonlocal changed
        if parse_phase_id(match.group(4)) != phase_id or match.group(2) != " ":
            return match.group(0)
        changed = True
        rest = match.group(3)
        if "(completed" not in rest:
            rest = f"{rest} (completed {date})"
        return f"{match.group(1)}[x]{rest}"

    content = _CHECKBOX_RE.sub(tick, content)

    if plans_label is not None:
        section = next(
            (s for s in find_phase_sections(content) if s.phase_id == phase_id), None
        )
        if section:
            text = content[section.start:section.end]
            updated = re.sub(
                r"^(\*\*Plans:\*\*[ \t]*).*$",
                lambda m: m.group(1) + plans_label,
                text,
                count=1,
                flags=re.M,
            )
            if updated != text:
                content = content[:section.start] + updated + content[section.end:]
                changed = True

    return content, changed
