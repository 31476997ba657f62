"""
Phase numbering.

Phases are whole numbers rendered with two digits ("01", "02", "10") or
decimal insertions after a whole phase ("01.1", "01.2", "01.10"). They are
always ordered by their numeric (whole, decimal) pair, never as strings,
so "01.9" < "01.10" < "02".
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from gsdtools.errors import InvalidInputError

PHASE_ID_RE = re.compile(r"^(\d+)(?:\.(\d+))?")


@dataclass(frozen=True, order=True)
class PhaseId:
    """Numeric phase identifier; decimal is 0 for whole phases."""
    whole: int
    decimal: int = 0

    @classmethod
    def parse(cls, text: str) -> "PhaseId":
        """Parse "3", "03", "03.1" or a directory name like "03.1-fix-auth"."""
        phase_id = parse_phase_id(text)
        if phase_id is None:
            raise InvalidInputError(f"Invalid phase number: {text}")
        return phase_id

    @property
    def is_decimal(self) -> bool:
        return self.decimal > 0

    def render(self, padded: bool = True) -> str:
        whole = f"{self.whole:02d}" if padded else str(self.whole)
        return f"{whole}.{self.decimal}" if self.decimal else whole

    def __str__(self) -> str:
        return self.render()


def parse_phase_id(text: str) -> Optional[PhaseId]:
    """Read the leading phase number of text, or None if it has none."""
    match = PHASE_ID_RE.match(str(text).strip())
    if not match:
        return None
    decimal = int(match.group(2)) if match.group(2) else 0
    return PhaseId(int(match.group(1)), decimal)


def normalize_phase_id(text: str) -> str:
    """Zero-pad the whole part: "1" -> "01", "1.2" -> "01.2"."""
    phase_id = parse_phase_id(text)
    return str(phase_id) if phase_id else str(text)


def compare_phase_ids(a: str, b: str) -> int:
    """Three-way numeric comparison of two phase identifiers."""
    pa, pb = PhaseId.parse(a), PhaseId.parse(b)
    return (pa > pb) - (pa < pb)


def phase_sort_key(name: str) -> Tuple[int, int, int, str]:
    """Sort key for phase ids and phase directory names.

    Names without a leading phase number sort after all numbered ones.
    """
    phase_id = parse_phase_id(name)
    if phase_id is None:
        return (1, 0, 0, name)
    return (0, phase_id.whole, phase_id.decimal, name)


def sort_phase_names(names: Iterable[str]) -> List[str]:
    return sorted(names, key=phase_sort_key)


def split_phase_dir_name(name: str) -> Tuple[str, str]:
    """Split "03.1-fix-auth" into ("03.1", "fix-auth")."""
    match = re.match(r"^(\d+(?:\.\d+)?)(?:-(.*))?$", name)
    if not match:
        return "", name
    return match.group(1), match.group(2) or ""


def decimal_siblings(base: str, names: Iterable[str]) -> List[PhaseId]:
    """Decimal phases under base found in a directory listing, in numeric order."""
    base_id = PhaseId.parse(base)
    siblings = set()
    for name in names:
        phase_id = parse_phase_id(name)
        if phase_id and phase_id.whole == base_id.whole and phase_id.is_decimal:
            siblings.add(phase_id)
    return sorted(siblings)


def next_decimal(base: str, names: Iterable[str]) -> str:
    """Next decimal phase after base: one past the highest existing decimal.

    Gaps are never filled: with 06.1 and 06.3 on disk the result is 06.4.
    """
    base_id = PhaseId.parse(base)
    siblings = decimal_siblings(base, names)
    highest = max((s.decimal for s in siblings), default=0)
    return str(PhaseId(base_id.whole, highest + 1))
