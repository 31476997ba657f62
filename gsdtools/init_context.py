"""
Context bundles for the GSD workflows.

Each ``init`` workflow (execute-phase, plan-phase, quick, ...) starts by
asking for one JSON document holding the models it should spawn, the
relevant config switches, which planning files exist and where the phase
lives on disk. Assembling that here saves every workflow a dozen separate
lookups. ``--include`` adds raw file contents for the files a workflow
would otherwise read itself; a requested file that is missing comes back
as None.

template select picks the summary template that fits a plan.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from gsdtools.config import load_config, resolve_model
from gsdtools.errors import InvalidInputError, UnreadableFileError
from gsdtools.phase_ids import normalize_phase_id, split_phase_dir_name
from gsdtools.phases import count_tasks
from gsdtools.planning import (
    CONFIG_FILE,
    PLANNING_DIR,
    PROJECT_FILE,
    REQUIREMENTS_FILE,
    ROADMAP_FILE,
    STATE_FILE,
    find_phase_dir,
    generate_slug,
    get_phases_dir,
    get_planning_dir,
    has_phase_doc,
    list_phase_dirs,
    phase_files,
    plan_id_of,
    read_text_file,
    timestamp,
    today,
)
from gsdtools.roadmap import load_roadmap, milestone_info
from gsdtools.todos import get_todos_dir, list_todos

logger = logging.getLogger(__name__)

# --include name -> top-level planning file
PLANNING_INCLUDES = {
    "state": STATE_FILE,
    "roadmap": ROADMAP_FILE,
    "requirements": REQUIREMENTS_FILE,
    "project": PROJECT_FILE,
    "config": CONFIG_FILE,
}

# --include name -> suffix of a document inside the phase directory
PHASE_INCLUDES = {
    "context": "CONTEXT.md",
    "research": "RESEARCH.md",
    "verification": "VERIFICATION.md",
    "uat": "UAT.md",
}

AGENT_ID_FILE = "current-agent-id.txt"
QUICK_DIR = "quick"
CODEBASE_DIR = "codebase"

# Files whose presence marks an existing code base
_MANIFESTS = (
    "package.json", "pyproject.toml", "setup.py", "requirements.txt",
    "Cargo.toml", "go.mod", "pom.xml", "build.gradle", "Gemfile", "composer.json",
)
_CODE_SUFFIXES = frozenset({
    ".py", ".js", ".ts", ".tsx", ".jsx", ".go", ".rs", ".java", ".kt",
    ".rb", ".php", ".swift", ".c", ".cc", ".cpp", ".h", ".cs",
})
_SKIP_DIRS = frozenset({"node_modules", "venv", ".venv", "__pycache__", "dist", "build"})

_FILE_REF_RE = re.compile(r"`([^`\s]+\.[A-Za-z0-9]+)`")
_DECISION_RE = re.compile(r"\bdecisions?\b", re.I)


# ============================================================================
# Shared pieces
# ============================================================================

def parse_includes(raw: Optional[str], allowed: Iterable[str]) -> List[str]:
    """Split a comma list of --include names and check them against allowed.

    Raises:
        InvalidInputError: If a name is not one this workflow can include
    """
    if not raw:
        return []
    allowed = list(allowed)
    names = [name.strip() for name in raw.split(",") if name.strip()]
    unknown = [name for name in names if name not in allowed]
    if unknown:
        raise InvalidInputError(
            f"Unknown include: {', '.join(unknown)}. Available: {', '.join(allowed)}"
        )
    return names


def _read_or_none(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return read_text_file(path)
    except UnreadableFileError as e:
        logger.warning(f"Not including {path.name}: {e}")
        return None


def _phase_doc(phase_path: Optional[Path], suffix: str) -> Optional[Path]:
    if phase_path is None or not phase_path.is_dir():
        return None
    matches = sorted(p for p in phase_path.iterdir() if p.is_file() and p.name.endswith(suffix))
    return matches[0] if matches else None


def include_contents(
    project_path: Optional[Path],
    names: List[str],
    phase_path: Optional[Path] = None,
) -> Dict[str, Optional[str]]:
    """``<name>_content`` keys for the requested files."""
    planning_dir = get_planning_dir(project_path)
    contents: Dict[str, Optional[str]] = {}
    for name in names:
        if name in PLANNING_INCLUDES:
            contents[f"{name}_content"] = _read_or_none(planning_dir / PLANNING_INCLUDES[name])
        else:
            doc = _phase_doc(phase_path, PHASE_INCLUDES[name])
            contents[f"{name}_content"] = _read_or_none(doc) if doc else None
    return contents


def _model(agent: str, config: Dict[str, Any]) -> str:
    return resolve_model(agent, config.get("model_profile", "balanced"))["model"]


def _workflow(config: Dict[str, Any], key: str) -> bool:
    workflow = config.get("workflow")
    if not isinstance(workflow, dict):
        return True
    return workflow.get(key, True) is not False


def _exists(project_path: Optional[Path]) -> Dict[str, bool]:
    planning_dir = get_planning_dir(project_path)
    return {
        "planning_exists": planning_dir.is_dir(),
        "project_exists": (planning_dir / PROJECT_FILE).is_file(),
        "roadmap_exists": (planning_dir / ROADMAP_FILE).is_file(),
        "state_exists": (planning_dir / STATE_FILE).is_file(),
        "config_exists": (planning_dir / CONFIG_FILE).is_file(),
    }


def _phase_info(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Where a phase lives and what is in its directory."""
    dir_name = find_phase_dir(project_path, phase)
    if dir_name is None:
        return {
            "phase_found": False,
            "phase_dir": None,
            "phase_number": normalize_phase_id(phase),
            "phase_name": None,
            "phase_slug": None,
            "plans": [],
            "summaries": [],
            "phase_path": None,
        }

    number, slug = split_phase_dir_name(dir_name)
    phase_path = get_phases_dir(project_path) / dir_name
    plans, summaries = phase_files(phase_path)
    return {
        "phase_found": True,
        "phase_dir": f"{PLANNING_DIR}/phases/{dir_name}",
        "phase_number": number,
        "phase_name": slug.replace("-", " ") or None,
        "phase_slug": slug or None,
        "plans": plans,
        "summaries": summaries,
        "phase_path": phase_path,
    }


def _doc_flags(phase_path: Optional[Path]) -> Dict[str, bool]:
    if phase_path is None:
        return {"has_research": False, "has_context": False, "has_verification": False, "has_uat": False}
    return {
        "has_research": has_phase_doc(phase_path, "RESEARCH"),
        "has_context": has_phase_doc(phase_path, "CONTEXT"),
        "has_verification": has_phase_doc(phase_path, "VERIFICATION"),
        "has_uat": has_phase_doc(phase_path, "UAT"),
    }


def _milestone(project_path: Optional[Path]) -> Dict[str, str]:
    try:
        roadmap = load_roadmap(project_path)
    except UnreadableFileError:
        roadmap = None
    version, name = milestone_info(roadmap)
    return {"milestone_version": version, "milestone_name": name}


# ============================================================================
# Phase workflows
# ============================================================================

def init_execute_phase(
    project_path: Optional[Path],
    phase: str,
    includes: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Context for executing the plans of one phase."""
    config = load_config(project_path)
    info = _phase_info(project_path, phase)
    summarized = {plan_id_of(s) for s in info["summaries"]}
    incomplete = [p for p in info["plans"] if plan_id_of(p) not in summarized]

    result: Dict[str, Any] = {
        "executor_model": _model("gsd-executor", config),
        "verifier_model": _model("gsd-verifier", config),
        "commit_docs": config.get("commit_docs", True),
        "parallelization": config.get("parallelization", True),
        "branching_strategy": config.get("branching_strategy", "none"),
        "verifier_enabled": _workflow(config, "verifier"),
        "phase_found": info["phase_found"],
        "phase_dir": info["phase_dir"],
        "phase_number": info["phase_number"],
        "phase_name": info["phase_name"],
        "plans": info["plans"],
        "summaries": info["summaries"],
        "plan_count": len(info["plans"]),
        "incomplete_plans": incomplete,
        "incomplete_count": len(incomplete),
        **_milestone(project_path),
        **_exists(project_path),
    }
    result.update(include_contents(project_path, includes or [], info["phase_path"]))
    return result


def init_plan_phase(
    project_path: Optional[Path],
    phase: str,
    includes: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Context for researching and planning one phase."""
    config = load_config(project_path)
    info = _phase_info(project_path, phase)

    result: Dict[str, Any] = {
        "researcher_model": _model("gsd-phase-researcher", config),
        "planner_model": _model("gsd-planner", config),
        "checker_model": _model("gsd-plan-checker", config),
        "research_enabled": _workflow(config, "research"),
        "plan_checker_enabled": _workflow(config, "plan_check"),
        "commit_docs": config.get("commit_docs", True),
        "phase_found": info["phase_found"],
        "phase_dir": info["phase_dir"],
        "phase_number": info["phase_number"],
        "phase_name": info["phase_name"],
        "phase_slug": info["phase_slug"],
        "padded_phase": normalize_phase_id(phase),
        "has_plans": bool(info["plans"]),
        "plan_count": len(info["plans"]),
        **_doc_flags(info["phase_path"]),
        **_exists(project_path),
    }
    result.update(include_contents(project_path, includes or [], info["phase_path"]))
    return result


def init_verify_work(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Context for user acceptance testing of a phase."""
    config = load_config(project_path)
    info = _phase_info(project_path, phase)
    flags = _doc_flags(info["phase_path"])
    return {
        "planner_model": _model("gsd-planner", config),
        "checker_model": _model("gsd-plan-checker", config),
        "commit_docs": config.get("commit_docs", True),
        "phase_found": info["phase_found"],
        "phase_dir": info["phase_dir"],
        "phase_number": info["phase_number"],
        "phase_name": info["phase_name"],
        "has_verification": flags["has_verification"],
        "has_uat": flags["has_uat"],
    }


def init_phase_op(project_path: Optional[Path], phase: str) -> Dict[str, Any]:
    """Context for the smaller per-phase workflows (discuss, research, ...)."""
    config = load_config(project_path)
    info = _phase_info(project_path, phase)
    exists = _exists(project_path)
    return {
        "commit_docs": config.get("commit_docs", True),
        "phase_found": info["phase_found"],
        "phase_dir": info["phase_dir"],
        "phase_number": info["phase_number"],
        "phase_name": info["phase_name"],
        "phase_slug": info["phase_slug"],
        "padded_phase": normalize_phase_id(phase),
        "has_plans": bool(info["plans"]),
        "plan_count": len(info["plans"]),
        **_doc_flags(info["phase_path"]),
        "roadmap_exists": exists["roadmap_exists"],
        "planning_exists": exists["planning_exists"],
    }


# ============================================================================
# Project workflows
# ============================================================================

def detect_existing_code(project_path: Path, max_depth: int = 3) -> Dict[str, bool]:
    """Look for a package manifest or source files below the project root.

    Hidden directories and dependency/build directories are skipped.
    """
    has_manifest = any((project_path / name).is_file() for name in _MANIFESTS)

    has_code = False
    pending = [(project_path, 0)]
    while pending and not has_code:
        directory, depth = pending.pop()
        try:
            entries = list(directory.iterdir())
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith(".") or entry.name in _SKIP_DIRS:
                continue
            if entry.is_file() and entry.suffix in _CODE_SUFFIXES:
                has_code = True
                break
            if entry.is_dir() and depth < max_depth:
                pending.append((entry, depth + 1))

    return {"has_existing_code": has_code, "has_package_file": has_manifest}


def init_new_project(project_path: Path) -> Dict[str, Any]:
    """Context for starting a project, including brownfield detection."""
    config = load_config(project_path)
    code = detect_existing_code(project_path)
    exists = _exists(project_path)
    return {
        "researcher_model": _model("gsd-project-researcher", config),
        "synthesizer_model": _model("gsd-research-synthesizer", config),
        "roadmapper_model": _model("gsd-roadmapper", config),
        "commit_docs": config.get("commit_docs", True),
        "project_exists": exists["project_exists"],
        "planning_exists": exists["planning_exists"],
        "has_codebase_map": (get_planning_dir(project_path) / CODEBASE_DIR).is_dir(),
        **code,
        "is_brownfield": code["has_existing_code"] or code["has_package_file"],
        "has_git": (project_path / ".git").exists(),
    }


def init_new_milestone(project_path: Optional[Path]) -> Dict[str, Any]:
    """Context for opening the next milestone."""
    config = load_config(project_path)
    milestone = _milestone(project_path)
    exists = _exists(project_path)
    return {
        "researcher_model": _model("gsd-project-researcher", config),
        "synthesizer_model": _model("gsd-research-synthesizer", config),
        "roadmapper_model": _model("gsd-roadmapper", config),
        "commit_docs": config.get("commit_docs", True),
        "research_enabled": _workflow(config, "research"),
        "current_milestone": milestone["milestone_version"],
        "current_milestone_name": milestone["milestone_name"],
        "project_exists": exists["project_exists"],
        "roadmap_exists": exists["roadmap_exists"],
        "state_exists": exists["state_exists"],
    }


def _next_quick_number(quick_dir: Path) -> int:
    numbers = []
    if quick_dir.is_dir():
        for entry in quick_dir.iterdir():
            match = re.match(r"^(\d+)-", entry.name)
            if entry.is_dir() and match:
                numbers.append(int(match.group(1)))
    return max(numbers, default=0) + 1


def init_quick(project_path: Optional[Path], description: str) -> Dict[str, Any]:
    """Context for an ad-hoc task tracked under .planning/quick/.

    Raises:
        InvalidInputError: If the description is empty
    """
    description = description.strip()
    if not description:
        raise InvalidInputError("Description required for quick task")

    config = load_config(project_path)
    quick_dir = get_planning_dir(project_path) / QUICK_DIR
    next_num = _next_quick_number(quick_dir)
    slug = generate_slug(description)[:40].strip("-")
    return {
        "planner_model": _model("gsd-planner", config),
        "executor_model": _model("gsd-executor", config),
        "commit_docs": config.get("commit_docs", True),
        "description": description,
        "slug": slug,
        "next_num": next_num,
        "date": today(),
        "timestamp": timestamp(),
        "quick_dir": f"{PLANNING_DIR}/{QUICK_DIR}",
        "task_dir": f"{PLANNING_DIR}/{QUICK_DIR}/{next_num:03d}-{slug}",
        "roadmap_exists": _exists(project_path)["roadmap_exists"],
        "planning_exists": _exists(project_path)["planning_exists"],
    }


def init_resume(project_path: Optional[Path]) -> Dict[str, Any]:
    """Context for picking up where the last session stopped."""
    config = load_config(project_path)
    agent_file = get_planning_dir(project_path) / AGENT_ID_FILE
    agent_id = _read_or_none(agent_file)
    agent_id = agent_id.strip() if agent_id else None
    exists = _exists(project_path)
    return {
        "state_exists": exists["state_exists"],
        "roadmap_exists": exists["roadmap_exists"],
        "project_exists": exists["project_exists"],
        "planning_exists": exists["planning_exists"],
        "has_interrupted_agent": bool(agent_id),
        "interrupted_agent_id": agent_id or None,
        "commit_docs": config.get("commit_docs", True),
    }


def init_progress(project_path: Optional[Path], includes: Optional[List[str]] = None) -> Dict[str, Any]:
    """Context for the progress report and routing to the next workflow."""
    config = load_config(project_path)
    phases_dir = get_phases_dir(project_path)

    phases = []
    current = next_phase = None
    for dir_name in list_phase_dirs(project_path):
        number, slug = split_phase_dir_name(dir_name)
        plans, summaries = phase_files(phases_dir / dir_name)
        if plans and len(summaries) >= len(plans):
            status = "complete"
        elif plans:
            status = "in_progress"
        else:
            status = "pending"
        entry = {
            "number": number,
            "name": slug.replace("-", " "),
            "directory": f"{PLANNING_DIR}/phases/{dir_name}",
            "status": status,
            "plan_count": len(plans),
            "summary_count": len(summaries),
        }
        phases.append(entry)
        if status == "in_progress" and current is None:
            current = entry
        if status == "pending" and next_phase is None:
            next_phase = entry

    result: Dict[str, Any] = {
        "executor_model": _model("gsd-executor", config),
        "planner_model": _model("gsd-planner", config),
        "commit_docs": config.get("commit_docs", True),
        **_milestone(project_path),
        "phases": phases,
        "phase_count": len(phases),
        "completed_count": sum(1 for p in phases if p["status"] == "complete"),
        "in_progress_count": sum(1 for p in phases if p["status"] == "in_progress"),
        "current_phase": current,
        "next_phase": next_phase,
        "has_work_in_progress": current is not None,
        **_exists(project_path),
    }
    result.update(include_contents(project_path, includes or []))
    return result


def init_todos(project_path: Optional[Path], area: Optional[str] = None) -> Dict[str, Any]:
    """Context for reviewing pending todos."""
    config = load_config(project_path)
    listing = list_todos(project_path, area)
    todos_dir = get_todos_dir(project_path)
    return {
        "commit_docs": config.get("commit_docs", True),
        "date": today(),
        "timestamp": timestamp(),
        "todo_count": listing["count"],
        "todos": listing["todos"],
        "area_filter": area,
        "planning_exists": _exists(project_path)["planning_exists"],
        "todos_dir": f"{PLANNING_DIR}/todos",
        "pending_dir": f"{PLANNING_DIR}/todos/pending",
        "completed_dir": f"{PLANNING_DIR}/todos/completed",
        "todos_dir_exists": todos_dir.is_dir(),
    }


def init_milestone_op(project_path: Optional[Path]) -> Dict[str, Any]:
    """Context for auditing or completing the current milestone."""
    config = load_config(project_path)
    phases_dir = get_phases_dir(project_path)
    dirs = list_phase_dirs(project_path)
    completed = sum(1 for name in dirs if phase_files(phases_dir / name)[1])

    archive_dir = get_planning_dir(project_path) / "milestones"
    archived = []
    if archive_dir.is_dir():
        for entry in sorted(archive_dir.iterdir()):
            match = re.match(r"^(v\d+(?:\.\d+)*)-ROADMAP\.md$", entry.name)
            if match:
                archived.append(match.group(1))

    exists = _exists(project_path)
    return {
        "commit_docs": config.get("commit_docs", True),
        **_milestone(project_path),
        "phase_count": len(dirs),
        "completed_phases": completed,
        "all_phases_complete": bool(dirs) and completed == len(dirs),
        "archived_milestones": archived,
        "archive_count": len(archived),
        "project_exists": exists["project_exists"],
        "roadmap_exists": exists["roadmap_exists"],
        "state_exists": exists["state_exists"],
    }


def init_map_codebase(project_path: Optional[Path]) -> Dict[str, Any]:
    """Context for mapping an existing code base into .planning/codebase/."""
    config = load_config(project_path)
    codebase_dir = get_planning_dir(project_path) / CODEBASE_DIR
    maps = sorted(p.name for p in codebase_dir.glob("*.md")) if codebase_dir.is_dir() else []
    return {
        "mapper_model": _model("gsd-codebase-mapper", config),
        "commit_docs": config.get("commit_docs", True),
        "search_gitignored": config.get("search_gitignored", False),
        "parallelization": config.get("parallelization", True),
        "codebase_dir": f"{PLANNING_DIR}/{CODEBASE_DIR}",
        "existing_maps": maps,
        "has_maps": bool(maps),
        "planning_exists": _exists(project_path)["planning_exists"],
        "codebase_dir_exists": codebase_dir.is_dir(),
    }


# ============================================================================
# Templates
# ============================================================================

def _template_result(kind: str) -> Dict[str, Any]:
    return {"template": f"templates/summary-{kind}.md", "type": kind}


def select_template(path: Path) -> Dict[str, Any]:
    """Pick the summary template that fits a plan.

    minimal: at most 2 tasks and 3 files, no decisions.
    complex: decisions mentioned, more than 5 tasks, or more than 6 files.
    standard: everything else, and the fallback when the plan is unreadable.
    """
    if not path.is_file():
        return {**_template_result("standard"), "error": "File not found"}
    try:
        content = read_text_file(path)
    except UnreadableFileError as e:
        return {**_template_result("standard"), "error": str(e)}

    task_count = count_tasks(content)
    file_count = len(set(_FILE_REF_RE.findall(content)))
    has_decisions = bool(_DECISION_RE.search(content))

    if has_decisions or task_count > 5 or file_count > 6:
        kind = "complex"
    elif task_count <= 2 and file_count <= 3:
        kind = "minimal"
    else:
        kind = "standard"

    return {
        **_template_result(kind),
        "taskCount": task_count,
        "fileCount": file_count,
        "hasDecisions": has_decisions,
    }
