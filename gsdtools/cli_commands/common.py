"""
Shared output helpers for command modules.

Every command prints exactly one JSON document on stdout; errors go to
stderr with exit code 1.
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn

import click

from gsdtools.errors import GsdError


def emit(result: Any) -> None:
    click.echo(json.dumps(result, indent=2, ensure_ascii=False, default=str))


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def project_root(obj: Any) -> Path:
    """Project root chosen with --cwd on the top-level group."""
    if isinstance(obj, dict) and obj.get("root") is not None:
        return obj["root"]
    return Path.cwd()


def run(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call an operation, turning a GsdError into an error exit."""
    try:
        return func(*args, **kwargs)
    except GsdError as e:
        fail(str(e))


def run_and_emit(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    emit(run(func, *args, **kwargs))


def resolve_path(obj: Any, file: str) -> Path:
    """FILE relative to the project root unless absolute."""
    path = Path(file)
    return path if path.is_absolute() else project_root(obj) / path
