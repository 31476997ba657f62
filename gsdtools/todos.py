"""
Project todos under .planning/todos/.

Each todo is one markdown file in pending/ and moves to completed/ when
done. The file opens with ``key: value`` lines (title, area, created),
with or without ``---`` delimiters.
"""

import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from gsdtools.errors import MissingResourceError
from gsdtools.frontmatter import split_frontmatter
from gsdtools.planning import PLANNING_DIR, get_planning_dir, read_text_file, timestamp, write_text_file

_FIELD_RE = r"^{}:[ \t]*(.+?)[ \t]*$"


def get_todos_dir(project_path: Optional[Path] = None) -> Path:
    return get_planning_dir(project_path) / "todos"


@dataclass
class Todo:
    """A pending todo file."""
    file: str
    created: Optional[str]
    title: str
    area: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _field(content: str, name: str) -> Optional[str]:
    match = re.search(_FIELD_RE.format(name), content, re.M)
    return match.group(1) if match else None


def read_todo(path: Path) -> Todo:
    content = path.read_text(encoding="utf-8", errors="replace")
    return Todo(
        file=path.name,
        created=_field(content, "created"),
        title=_field(content, "title") or "Untitled",
        area=_field(content, "area") or "general",
        path=f"{PLANNING_DIR}/todos/pending/{path.name}",
    )


def list_todos(project_path: Optional[Path] = None, area: Optional[str] = None) -> Dict[str, Any]:
    """Pending todos, optionally limited to one area."""
    pending = get_todos_dir(project_path) / "pending"
    todos: List[Todo] = []
    if pending.is_dir():
        for path in sorted(pending.glob("*.md")):
            todo = read_todo(path)
            if area is None or todo.area == area:
                todos.append(todo)
    return {"count": len(todos), "todos": [t.to_dict() for t in todos]}


def complete_todo(project_path: Optional[Path], filename: str) -> Dict[str, Any]:
    """Move a todo to completed/ and stamp it.

    Raises:
        MissingResourceError: If no pending todo has that file name
    """
    todos_dir = get_todos_dir(project_path)
    source = todos_dir / "pending" / filename
    if not source.is_file():
        raise MissingResourceError(f"Todo not found: {filename}")

    stamp = timestamp()
    content = read_text_file(source)
    fm_text, body = split_frontmatter(content)
    if fm_text is not None:
        content = f"---\ncompleted: {stamp}\n{fm_text}\n---\n{body}"
    else:
        content = f"completed: {stamp}\n{content}"

    completed_dir = todos_dir / "completed"
    completed_dir.mkdir(parents=True, exist_ok=True)
    target = completed_dir / filename
    write_text_file(target, content)
    source.unlink()
    return {"completed": True, "file": filename, "date": stamp}
