"""
Phase directories and the roadmap mutations that keep them in step.

Lookups (list, find, plan index, next decimal) only read the tree.
add/insert/remove/complete edit ROADMAP.md and STATE.md and create,
rename or delete directories under .planning/phases/. Multi-step edits
are planned first and then applied in order; there is no rollback if a
step fails midway.
"""

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.errors import InvalidInputError, MissingResourceError, PreconditionError
from gsdtools.frontmatter import extract_frontmatter
from gsdtools.phase_ids import (
    PHASE_ID_RE,
    PhaseId,
    decimal_siblings,
    next_decimal,
    parse_phase_id,
    split_phase_dir_name,
)
from gsdtools.planning import (
    PLANNING_DIR,
    ROADMAP_FILE,
    find_phase_dir,
    generate_slug,
    get_phases_dir,
    list_phase_dirs,
    phase_files,
    plan_id_of,
    today,
    write_planning_file,
)
from gsdtools.roadmap import (
    PhaseSection,
    find_phase_section,
    find_phase_sections,
    insert_block,
    load_roadmap,
    mark_phase_complete,
    remove_phase_text,
    renumber_text,
)
from gsdtools.state import get_field, load_state_file, save_state_file, update_fields

logger = logging.getLogger(__name__)

_TASK_TAG_RE = re.compile(r"<task[\s>]")
_TASK_HEADING_RE = re.compile(r"^#{2,4}[ \t]*Task[ \t]+\d+", re.M)
_OBJECTIVE_RE = re.compile(r"<objective>(.*?)</objective>", re.S)


def _phase_dir_label(name: str) -> str:
    return f"{PLANNING_DIR}/phases/{name}"


# ============================================================================
# Lookups
# ============================================================================

def list_phases(
    project_path: Optional[Path] = None,
    kind: Optional[str] = None,
    phase: Optional[str] = None,
) -> Dict[str, Any]:
    """Phase directories, or the plan/summary files inside them.

    Args:
        project_path: Project root
        kind: None for directories, "plans" or "summaries" for files
        phase: Restrict to one phase
    """
    names = list_phase_dirs(project_path)
    if phase is not None:
        wanted = parse_phase_id(phase)
        names = [n for n in names if parse_phase_id(n) == wanted]

    if kind is None:
        return {"directories": names, "count": len(names)}
    if kind not in ("plans", "summaries"):
        raise InvalidInputError(f"Unknown file type: {kind}. Available: plans, summaries")

    phases_dir = get_phases_dir(project_path)
    files: List[str] = []
    for name in names:
        plans, summaries = phase_files(phases_dir / name)
        files.extend(plans if kind == "plans" else summaries)

    phase_dir = None
    if phase is not None and names:
        phase_dir = split_phase_dir_name(names[0])[1]
    return {"files": files, "count": len(files), "phase_dir": phase_dir}


def find_phase(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    dir_name = find_phase_dir(project_path, phase)
    if dir_name is None:
        return {"found": False, "directory": None, "phase_number": phase}

    number, slug = split_phase_dir_name(dir_name)
    plans, summaries = phase_files(get_phases_dir(project_path) / dir_name)
    return {
        "found": True,
        "directory": _phase_dir_label(dir_name),
        "phase_number": number,
        "phase_name": slug or None,
        "plans": plans,
        "summaries": summaries,
    }


def count_tasks(body: str) -> int:
    """Number of <task> elements, falling back to "## Task N" headings."""
    tags = len(_TASK_TAG_RE.findall(body))
    return tags if tags else len(_TASK_HEADING_RE.findall(body))


def _objective(fm: Dict[str, Any], content: str) -> Optional[str]:
    if fm.get("objective"):
        return str(fm["objective"])
    match = _OBJECTIVE_RE.search(content)
    if match:
        text = match.group(1).strip()
        return text.split("\n")[0].strip() or None
    return None


def plan_index(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Plans of a phase with their wave, autonomy and completion."""
    dir_name = find_phase_dir(project_path, phase)
    if dir_name is None:
        return {"error": "Phase not found", "phase": phase}

    phase_path = get_phases_dir(project_path) / dir_name
    plans, summaries = phase_files(phase_path)
    summarized = {plan_id_of(s) for s in summaries}

    entries = []
    waves: Dict[str, List[str]] = {}
    for filename in plans:
        content = (phase_path / filename).read_text(encoding="utf-8", errors="replace")
        fm = extract_frontmatter(content)

        wave = fm.get("wave", 1)
        if isinstance(wave, str) and wave.isdigit():
            wave = int(wave)
        autonomous = fm.get("autonomous", True)
        files_modified = fm.get("files_modified", fm.get("files-modified", []))
        if not isinstance(files_modified, list):
            files_modified = [files_modified] if files_modified else []

        plan_id = plan_id_of(filename)
        entries.append({
            "id": plan_id,
            "wave": wave,
            "autonomous": autonomous is not False and autonomous != "false",
            "objective": _objective(fm, content),
            "files_modified": files_modified,
            "task_count": count_tasks(content),
            "has_summary": plan_id in summarized,
        })
        waves.setdefault(str(wave), []).append(plan_id)

    return {
        "phase": split_phase_dir_name(dir_name)[0],
        "plans": entries,
        "waves": waves,
        "incomplete": [p["id"] for p in entries if not p["has_summary"]],
        "has_checkpoints": any(not p["autonomous"] for p in entries),
    }


def next_decimal_phase(project_path: Optional[Path], base: str) -> Dict[str, Any]:
    base_id = PhaseId(PhaseId.parse(base).whole)
    padded = str(base_id)
    names = list_phase_dirs(project_path)
    return {
        "found": any(parse_phase_id(n) == base_id for n in names),
        "base_phase": padded,
        "next": next_decimal(padded, names),
        "existing": [str(s) for s in decimal_siblings(padded, names)],
    }


# ============================================================================
# Add / insert
# ============================================================================

def _require_roadmap(project_path: Optional[Path]) -> str:
    content = load_roadmap(project_path)
    if content is None:
        raise MissingResourceError("ROADMAP.md not found")
    return content


def _phase_block(level: int, heading: str, goal: str, depends_on: Optional[str], plan_ref: str) -> str:
    lines = [f"{'#' * level} Phase {heading}", "", f"**Goal:** {goal}"]
    if depends_on:
        lines.append(f"**Depends on:** Phase {depends_on}")
    lines += [
        "**Plans:** 0 plans",
        "",
        "Plans:",
        f"- [ ] TBD (run /gsd:plan-phase {plan_ref} to break down)",
    ]
    return "\n".join(lines)


def _section_level(sections: List[PhaseSection]) -> int:
    return sections[0].level if sections else 3


def _create_phase_dir(project_path: Optional[Path], name: str) -> str:
    (get_phases_dir(project_path) / name).mkdir(parents=True, exist_ok=True)
    return _phase_dir_label(name)


def add_phase(project_path: Optional[Path], description: str) -> Dict[str, Any]:
    """Append a whole-number phase after the highest one in the roadmap."""
    content = _require_roadmap(project_path)
    sections = find_phase_sections(content)

    highest = max((s.phase_id.whole for s in sections), default=0)
    number = highest + 1
    padded = str(PhaseId(number))
    slug = generate_slug(description)

    block = _phase_block(
        _section_level(sections),
        f"{number}: {description}",
        "[To be planned]",
        str(highest) if highest else None,
        str(number),
    )
    tail = [s for s in sections if s.phase_id.whole == highest]
    pos = max(s.end for s in tail) if tail else len(content)
    write_planning_file(project_path, ROADMAP_FILE, insert_block(content, pos, block))

    return {
        "phase_number": number,
        "padded": padded,
        "name": description,
        "slug": slug,
        "directory": _create_phase_dir(project_path, f"{padded}-{slug}"),
    }


def insert_phase(project_path: Optional[Path], after: str, description: str) -> Dict[str, Any]:
    """Insert a decimal phase right after a whole phase and its existing decimals.

    Raises:
        InvalidInputError: If after is itself a decimal phase
        MissingResourceError: If ROADMAP.md or the target phase is missing
    """
    after_id = PhaseId.parse(after)
    if after_id.is_decimal:
        raise InvalidInputError(f"Cannot insert after decimal phase {after}; use its whole phase")

    content = _require_roadmap(project_path)
    target = find_phase_section(content, after)
    if target is None:
        raise MissingResourceError(f"Phase {after} not found in ROADMAP.md")

    sections = find_phase_sections(content)
    known = list_phase_dirs(project_path) + [s.number for s in sections]
    number = next_decimal(after, known)
    slug = generate_slug(description)

    block = _phase_block(
        target.level,
        f"{number}: {description} (INSERTED)",
        "[Urgent work - to be planned]",
        after,
        number,
    )
    pos = max(s.end for s in sections if s.phase_id.whole == after_id.whole)
    write_planning_file(project_path, ROADMAP_FILE, insert_block(content, pos, block))

    return {
        "phase_number": number,
        "after_phase": after,
        "name": description,
        "slug": slug,
        "directory": _create_phase_dir(project_path, f"{number}-{slug}"),
    }


# ============================================================================
# Remove
# ============================================================================

@dataclass
class PhaseRename:
    """One directory move planned by a phase removal."""
    old_name: str
    new_name: str
    old_id: PhaseId
    new_id: PhaseId


def shifted_id(phase_id: PhaseId, removed: PhaseId) -> Optional[PhaseId]:
    """New id of phase_id once removed is gone, or None if it keeps its id.

    Removing a whole phase moves every later whole phase (and its decimals)
    down by one. Removing a decimal moves only its later decimal siblings.
    """
    if removed.is_decimal:
        if phase_id.whole == removed.whole and phase_id.decimal > removed.decimal:
            return PhaseId(phase_id.whole, phase_id.decimal - 1)
        return None
    if phase_id.whole > removed.whole:
        return PhaseId(phase_id.whole - 1, phase_id.decimal)
    return None


def _rename_prefix(name: str, old_id: PhaseId, new_id: PhaseId) -> Optional[str]:
    """Swap the leading phase id of a file or directory name."""
    match = PHASE_ID_RE.match(name)
    if not match or parse_phase_id(match.group(0)) != old_id:
        return None
    rest = name[match.end():]
    if rest and not rest.startswith("-"):
        return None
    padded = len(match.group(1)) > 1
    return new_id.render(padded=padded) + rest


def plan_phase_renumbering(names: List[str], removed: PhaseId) -> List[PhaseRename]:
    """Directory renames needed after removing a phase, in a collision-free order."""
    renames = []
    for name in names:
        old_id = parse_phase_id(name)
        if old_id is None or old_id == removed:
            continue
        new_id = shifted_id(old_id, removed)
        if new_id is None:
            continue
        new_name = _rename_prefix(name, old_id, new_id)
        if new_name:
            renames.append(PhaseRename(name, new_name, old_id, new_id))
    # Every id moves down, so renaming lowest first never hits an occupied name
    return sorted(renames, key=lambda r: r.old_id)


def _removed_ids(removed: PhaseId, candidates: List[PhaseId]) -> List[PhaseId]:
    """The phase itself plus, for a whole phase, every decimal phase under it."""
    if removed.is_decimal:
        return [removed]
    children = {c for c in candidates if c.whole == removed.whole and c.is_decimal}
    return [removed] + sorted(children)


def remove_phase(project_path: Optional[Path], phase: str, force: bool = False) -> Dict[str, Any]:
    """Delete a phase and close the gap it leaves.

    Removing a whole phase also removes its decimal phases (03.1, 03.2 go
    with 03), so the later phases that shift down never collide with them.

    Raises:
        MissingResourceError: If ROADMAP.md is missing or the phase is unknown
        PreconditionError: If any removed phase has summaries and force is False
    """
    removed = PhaseId.parse(phase)
    content = _require_roadmap(project_path)
    phases_dir = get_phases_dir(project_path)

    dir_name = find_phase_dir(project_path, phase)
    section = find_phase_section(content, phase)
    if dir_name is None and section is None:
        raise MissingResourceError(f"Phase {phase} not found")

    sections = find_phase_sections(content)
    dirs = {parse_phase_id(n): n for n in list_phase_dirs(project_path)}
    doomed = _removed_ids(removed, list(dirs) + [s.phase_id for s in sections])
    doomed_dirs = [dirs[phase_id] for phase_id in doomed if phase_id in dirs]

    if not force:
        executed = sum(len(phase_files(phases_dir / name)[1]) for name in doomed_dirs)
        if executed:
            raise PreconditionError(
                f"Phase {phase} has {executed} executed plan(s) (SUMMARY.md files). "
                "Use --force to remove anyway."
            )
    for name in doomed_dirs:
        shutil.rmtree(phases_dir / name)
        logger.debug(f"Deleted {name}")

    renamed_directories = []
    renamed_files = []
    for rename in plan_phase_renumbering(list_phase_dirs(project_path), removed):
        new_path = phases_dir / rename.new_name
        (phases_dir / rename.old_name).rename(new_path)
        logger.debug(f"Renamed {rename.old_name} -> {rename.new_name}")
        renamed_directories.append({"from": rename.old_name, "to": rename.new_name})

        for entry in sorted(new_path.iterdir()):
            new_file = _rename_prefix(entry.name, rename.old_id, rename.new_id)
            if entry.is_file() and new_file:
                entry.rename(new_path / new_file)
                renamed_files.append({"from": entry.name, "to": new_file})

    mapping = {}
    for phase_id in sorted({s.phase_id for s in sections}):
        if phase_id in doomed:
            continue
        new_id = shifted_id(phase_id, removed)
        if new_id is not None:
            mapping[phase_id] = new_id

    updated = content
    for phase_id in doomed:
        updated = remove_phase_text(updated, phase_id)
    updated = renumber_text(updated, mapping)
    write_planning_file(project_path, ROADMAP_FILE, updated)

    state_updated = False
    state = load_state_file(project_path)
    if state is not None:
        total = get_field(state, "Total Phases")
        if total is not None and total.isdigit():
            state, changed = update_fields(state, {"Total Phases": max(int(total) - 1, 0)})
            if changed:
                save_state_file(project_path, state)
                state_updated = True

    return {
        "removed": phase,
        "directory_deleted": dir_name,
        "directories_deleted": doomed_dirs,
        "renamed_directories": renamed_directories,
        "renamed_files": renamed_files,
        "roadmap_updated": updated != content,
        "state_updated": state_updated,
    }


# ============================================================================
# Complete
# ============================================================================

def complete_phase(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Tick a phase off in the roadmap and point STATE.md at the next one.

    Raises:
        MissingResourceError: If the phase is neither on disk nor in the roadmap
    """
    phase_id = PhaseId.parse(phase)
    content = load_roadmap(project_path)
    sections = find_phase_sections(content) if content else []
    section = next((s for s in sections if s.phase_id == phase_id), None)

    dirs = list_phase_dirs(project_path)
    dir_name = next((d for d in dirs if parse_phase_id(d) == phase_id), None)
    if dir_name is None and section is None:
        raise MissingResourceError(f"Phase {phase} not found")

    plans, summaries = (
        phase_files(get_phases_dir(project_path) / dir_name) if dir_name else ([], [])
    )
    phase_name = section.name if section else split_phase_dir_name(dir_name)[1].replace("-", " ")
    date = today()

    later_dirs = {parse_phase_id(d): d for d in dirs if parse_phase_id(d) > phase_id}
    later_sections = {s.phase_id: s for s in sections if s.phase_id > phase_id}
    next_id = min(set(later_dirs) | set(later_sections), default=None)

    next_phase = next_name = None
    if next_id is not None:
        next_phase = str(next_id)
        if next_id in later_sections:
            next_name = later_sections[next_id].name
        else:
            next_name = split_phase_dir_name(later_dirs[next_id])[1].replace("-", " ")

    roadmap_updated = False
    if content is not None:
        updated, roadmap_updated = mark_phase_complete(
            content, phase_id, date, plans_label=f"{len(summaries)}/{len(plans)} plans complete"
        )
        if roadmap_updated:
            write_planning_file(project_path, ROADMAP_FILE, updated)

    state_updated = False
    state = load_state_file(project_path)
    if state is not None:
        if next_phase:
            values = {
                "Current Phase": next_phase,
                "Current Phase Name": next_name,
                "Status": "Ready to plan",
                "Current Plan": "Not started",
                "Last Activity": date,
                "Last Activity Description": f"Phase {phase} complete, transitioned to Phase {next_phase}",
            }
        else:
            values = {
                "Status": "Milestone complete",
                "Current Plan": "Not started",
                "Last Activity": date,
                "Last Activity Description": f"Phase {phase} complete, milestone finished",
            }
        state, changed = update_fields(state, values)
        if changed:
            save_state_file(project_path, state)
            state_updated = True

    return {
        "completed_phase": phase,
        "phase_name": phase_name,
        "plans_executed": f"{len(summaries)}/{len(plans)}",
        "next_phase": next_phase,
        "next_phase_name": next_name,
        "is_last_phase": next_phase is None,
        "date": date,
        "roadmap_updated": roadmap_updated,
        "state_updated": state_updated,
    }
