"""
Milestone progress across phase directories, as data or rendered text.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from gsdtools.errors import UnreadableFileError
from gsdtools.phase_ids import split_phase_dir_name
from gsdtools.planning import format_progress_bar, get_phases_dir, list_phase_dirs, percent, phase_files
from gsdtools.roadmap import load_roadmap, milestone_info


def phase_progress_status(plans: int, summaries: int) -> str:
    if plans and summaries >= plans:
        return "Complete"
    if summaries:
        return "In Progress"
    if plans:
        return "Planned"
    return "Pending"


def get_progress(project_path: Optional[Path] = None) -> Dict[str, Any]:
    """Plan and summary counts per phase plus the milestone total."""
    try:
        roadmap = load_roadmap(project_path)
    except UnreadableFileError:
        roadmap = None
    version, name = milestone_info(roadmap)
    phases_dir = get_phases_dir(project_path)

    phases = []
    for dir_name in list_phase_dirs(project_path):
        number, slug = split_phase_dir_name(dir_name)
        plans, summaries = phase_files(phases_dir / dir_name)
        phases.append({
            "number": number,
            "name": slug.replace("-", " "),
            "plans": len(plans),
            "summaries": len(summaries),
            "status": phase_progress_status(len(plans), len(summaries)),
        })

    total_plans = sum(p["plans"] for p in phases)
    total_summaries = sum(p["summaries"] for p in phases)
    return {
        "milestone_version": version,
        "milestone_name": name,
        "phases": phases,
        "total_plans": total_plans,
        "total_summaries": total_summaries,
        "percent": percent(total_summaries, total_plans),
    }


def render_bar(progress: Dict[str, Any]) -> str:
    """One line like ``[██████░░░░] 3/5 plans (60%)``."""
    return (
        f"{format_progress_bar(progress['percent'])} "
        f"{progress['total_summaries']}/{progress['total_plans']} plans "
        f"({progress['percent']}%)"
    )


def render_table(progress: Dict[str, Any]) -> str:
    """Markdown report with a header line and one table row per phase."""
    lines = [
        f"# {progress['milestone_version']} {progress['milestone_name']}",
        "",
        f"**Progress:** {render_bar(progress)}",
        "",
        "| Phase | Name | Plans | Status |",
        "|-------|------|-------|--------|",
    ]
    for phase in progress["phases"]:
        lines.append(
            f"| {phase['number']} | {phase['name']} | "
            f"{phase['summaries']}/{phase['plans']} | {phase['status']} |"
        )
    return "\n".join(lines)
