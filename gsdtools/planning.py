"""
Locations and listings for the .planning/ tree.

    .planning/
        ROADMAP.md  STATE.md  REQUIREMENTS.md  PROJECT.md  MILESTONES.md
        config.json
        phases/
            01-foundation/
                01-01-PLAN.md  01-01-SUMMARY.md  01-CONTEXT.md
            01.1-hotfix/
        milestones/
        todos/pending/  todos/completed/
"""

import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from gsdtools.errors import UnreadableFileError
from gsdtools.phase_ids import parse_phase_id, sort_phase_names

PLANNING_DIR = ".planning"
ROADMAP_FILE = "ROADMAP.md"
STATE_FILE = "STATE.md"
REQUIREMENTS_FILE = "REQUIREMENTS.md"
PROJECT_FILE = "PROJECT.md"
MILESTONES_FILE = "MILESTONES.md"
CONFIG_FILE = "config.json"

PLAN_SUFFIX = "-PLAN.md"
SUMMARY_SUFFIX = "-SUMMARY.md"


def get_planning_dir(project_path: Optional[Path] = None) -> Path:
    """Get the .planning directory for a project."""
    if project_path is None:
        project_path = Path.cwd()
    return Path(project_path) / PLANNING_DIR


def ensure_planning_dir(project_path: Optional[Path] = None) -> Path:
    """Ensure .planning directory exists."""
    planning_dir = get_planning_dir(project_path)
    planning_dir.mkdir(parents=True, exist_ok=True)
    return planning_dir


def get_phases_dir(project_path: Optional[Path] = None) -> Path:
    return get_planning_dir(project_path) / "phases"


def read_text_file(path: Path) -> str:
    """Read UTF-8 text with line endings as stored.

    Raises:
        UnreadableFileError: If the file is not valid UTF-8
    """
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise UnreadableFileError(f"{path.name} is not valid UTF-8 text") from e


def write_text_file(path: Path, content: str) -> None:
    """Write text without translating "\\n" to the platform line ending."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def read_planning_file(project_path: Optional[Path], name: str) -> Optional[str]:
    """Read a top-level planning file, or None if it does not exist."""
    path = get_planning_dir(project_path) / name
    if not path.is_file():
        return None
    return read_text_file(path)


def write_planning_file(project_path: Optional[Path], name: str, content: str) -> Path:
    path = ensure_planning_dir(project_path) / name
    write_text_file(path, content)
    return path


def list_phase_dirs(project_path: Optional[Path] = None) -> List[str]:
    """Phase directory names in numeric phase order."""
    phases_dir = get_phases_dir(project_path)
    if not phases_dir.is_dir():
        return []
    names = [
        entry.name for entry in phases_dir.iterdir()
        if entry.is_dir() and parse_phase_id(entry.name) is not None
    ]
    return sort_phase_names(names)


def find_phase_dir(project_path: Optional[Path], phase: str) -> Optional[str]:
    """Name of the directory holding a phase ("3", "03" and "03-" all match 03-api)."""
    wanted = parse_phase_id(phase)
    if wanted is None:
        return None
    for name in list_phase_dirs(project_path):
        if parse_phase_id(name) == wanted:
            return name
    return None


def is_plan(filename: str) -> bool:
    return filename.endswith(PLAN_SUFFIX) or filename == "PLAN.md"


def is_summary(filename: str) -> bool:
    return filename.endswith(SUMMARY_SUFFIX) or filename == "SUMMARY.md"


def plan_id_of(filename: str) -> str:
    """Plan id shared by 03-02-PLAN.md and 03-02-SUMMARY.md, e.g. "03-02"."""
    for suffix in (PLAN_SUFFIX, SUMMARY_SUFFIX):
        if filename.endswith(suffix):
            return filename[:-len(suffix)]
    return filename.rsplit(".", 1)[0]


def phase_files(phase_path: Path) -> Tuple[List[str], List[str]]:
    """Sorted (plans, summaries) filenames in a phase directory."""
    if not phase_path.is_dir():
        return [], []
    names = sorted(entry.name for entry in phase_path.iterdir() if entry.is_file())
    return [n for n in names if is_plan(n)], [n for n in names if is_summary(n)]


def has_phase_doc(phase_path: Path, kind: str) -> bool:
    """True when the phase has a CONTEXT/RESEARCH/VERIFICATION/UAT document."""
    if not phase_path.is_dir():
        return False
    suffix = f"{kind}.md"
    return any(entry.name.endswith(suffix) for entry in phase_path.iterdir())


def generate_slug(text: str) -> str:
    """Lowercase, non-alphanumerics collapsed to single hyphens."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def timestamp() -> str:
    """Get current ISO timestamp."""
    return datetime.now().isoformat(timespec="seconds")


def today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def percent(done: int, total: int) -> int:
    """Rounded percentage, half up; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(100 * done / total + 0.5)


def format_progress_bar(pct: int, width: int = 10) -> str:
    """Format a progress bar.

    Args:
        pct: Progress percentage (0-100)
        width: Bar width in characters

    Returns:
        Progress bar string like [████████░░]
    """
    filled = int(width * min(max(pct, 0), 100) / 100)
    empty = width - filled
    return f"[{'█' * filled}{'░' * empty}]"


