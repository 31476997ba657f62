"""
Milestone completion: archive the milestone's planning files and record it.

    .planning/milestones/v1.0-ROADMAP.md
    .planning/milestones/v1.0-REQUIREMENTS.md
    .planning/milestones/v1.0-MILESTONE-AUDIT.md   (when an audit exists)

MILESTONES.md gains one entry per completed milestone; earlier entries are
never rewritten.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.frontmatter import read_document
from gsdtools.planning import (
    MILESTONES_FILE,
    REQUIREMENTS_FILE,
    ROADMAP_FILE,
    get_phases_dir,
    get_planning_dir,
    list_phase_dirs,
    phase_files,
    read_planning_file,
    today,
    write_planning_file,
)
from gsdtools.roadmap import milestone_info
from gsdtools.state import load_state_file, save_state_file, update_fields

logger = logging.getLogger(__name__)

_BOLD_LINE_RE = re.compile(r"^\*\*(.+?)\*\*\s*$", re.M)


def _one_liner(path: Path) -> Optional[str]:
    """A summary's one-liner: frontmatter first, then its first bold line."""
    result = read_document(path)
    if result.ok:
        if result.frontmatter.get("one-liner"):
            return str(result.frontmatter["one-liner"])
        body = result.body
    else:
        logger.debug(f"No frontmatter in {path.name}: {result.reason}")
        try:
            body = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
    match = _BOLD_LINE_RE.search(body)
    return match.group(1).strip() if match else None


def collect_accomplishments(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Phase and plan counts plus every summary one-liner, in phase order."""
    phases_dir = get_phases_dir(project_path)
    dirs = list_phase_dirs(project_path)
    plan_count = 0
    accomplishments: List[str] = []
    for name in dirs:
        plans, summaries = phase_files(phases_dir / name)
        plan_count += len(plans)
        for filename in summaries:
            line = _one_liner(phases_dir / name / filename)
            if line:
                accomplishments.append(line)
    return {"phases": len(dirs), "plans": plan_count, "accomplishments": accomplishments}


def format_milestone_entry(
    version: str,
    name: str,
    date: str,
    phase_count: int,
    plan_count: int,
    accomplishments: List[str],
) -> str:
    lines = [
        f"## {version} {name} (Shipped: {date})",
        "",
        f"**Phases completed:** {phase_count} phases, {plan_count} plans",
        "",
        "**Key accomplishments:**",
    ]
    lines += [f"- {item}" for item in accomplishments] or ["- (none recorded)"]
    lines += ["", "---", ""]
    return "\n".join(lines)


def _archive(planning_dir: Path, name: str, version: str) -> Optional[str]:
    source = planning_dir / name
    if not source.is_file():
        return None
    archive_dir = planning_dir / "milestones"
    archive_dir.mkdir(parents=True, exist_ok=True)
    target = archive_dir / f"{version}-{name}"
    shutil.move(str(source), str(target))
    logger.debug(f"Archived {name} -> {target}")
    return f"milestones/{target.name}"


def _archive_audit(planning_dir: Path, version: str) -> Optional[str]:
    """Move an audit named for its version (v1.0-MILESTONE-AUDIT.md)."""
    source = planning_dir / f"{version}-MILESTONE-AUDIT.md"
    if not source.is_file():
        return None
    target = planning_dir / "milestones" / source.name
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(target))
    return f"milestones/{target.name}"


def complete_milestone(
    project_path: Optional[Path],
    version: str,
    name: Optional[str] = None,
) -> Dict[str, Any]:
    """Archive ROADMAP/REQUIREMENTS and append the milestone to MILESTONES.md."""
    planning_dir = get_planning_dir(project_path)
    roadmap = read_planning_file(project_path, ROADMAP_FILE)
    if not name:
        name = milestone_info(roadmap)[1] if roadmap else version

    date = today()
    summary = collect_accomplishments(project_path)
    entry = format_milestone_entry(
        version, name, date, summary["phases"], summary["plans"], summary["accomplishments"]
    )

    existing = read_planning_file(project_path, MILESTONES_FILE)
    if existing is None:
        milestones = f"# Milestones\n\n{entry}"
    else:
        milestones = existing.rstrip("\n") + "\n\n" + entry
    write_planning_file(project_path, MILESTONES_FILE, milestones)

    archived = {
        "roadmap": _archive(planning_dir, ROADMAP_FILE, version),
        "requirements": _archive(planning_dir, REQUIREMENTS_FILE, version),
        "audit": _archive_audit(planning_dir, version),
    }

    state_updated = False
    state = load_state_file(project_path)
    if state is not None:
        state, changed = update_fields(state, {
            "Status": f"{version} milestone complete",
            "Last Activity": date,
            "Last Activity Description": f"{version} milestone completed and archived",
        })
        if changed:
            save_state_file(project_path, state)
            state_updated = True

    return {
        "version": version,
        "name": name,
        "date": date,
        "phases": summary["phases"],
        "plans": summary["plans"],
        "accomplishments": summary["accomplishments"],
        "archived": archived,
        "milestones_updated": True,
        "state_updated": state_updated,
    }

