"""
Tests for phase numbering: parsing, ordering and decimal allocation.
"""

import pytest

from gsdtools.errors import InvalidInputError
from gsdtools.phase_ids import (
    PhaseId,
    compare_phase_ids,
    decimal_siblings,
    next_decimal,
    normalize_phase_id,
    parse_phase_id,
    sort_phase_names,
    split_phase_dir_name,
)


class TestPhaseId:
    """Tests for parsing and rendering."""

    def test_parse_whole(self):
        """Whole numbers parse with decimal 0."""
        assert parse_phase_id("3") == PhaseId(3, 0)
        assert parse_phase_id("03") == PhaseId(3, 0)

    def test_parse_decimal(self):
        """Decimal phases keep their decimal part."""
        assert parse_phase_id("03.1") == PhaseId(3, 1)
        assert parse_phase_id("3.12") == PhaseId(3, 12)

    def test_parse_directory_name(self):
        """A directory name yields its leading number."""
        assert parse_phase_id("03.1-fix-auth") == PhaseId(3, 1)

    def test_parse_rejects_non_numbers(self):
        """Text without a leading number gives None."""
        assert parse_phase_id("notes") is None
        with pytest.raises(InvalidInputError):
            PhaseId.parse("abc")

    def test_render(self):
        """Rendering pads the whole part unless asked not to."""
        assert PhaseId(1).render() == "01"
        assert PhaseId(1, 2).render() == "01.2"
        assert PhaseId(12).render() == "12"
        assert PhaseId(1, 2).render(padded=False) == "1.2"

    def test_normalize(self):
        """normalize_phase_id pads and leaves junk alone."""
        assert normalize_phase_id("1") == "01"
        assert normalize_phase_id("1.1") == "01.1"
        assert normalize_phase_id("xyz") == "xyz"


class TestOrdering:
    """Tests for numeric ordering."""

    def test_decimal_ordering_is_numeric(self):
        """01.9 sorts before 01.10, and both before 02."""
        names = ["02-api", "01.10-late", "01-setup", "01.9-fix", "01.2-patch"]
        assert sort_phase_names(names) == [
            "01-setup", "01.2-patch", "01.9-fix", "01.10-late", "02-api",
        ]

    def test_unnumbered_names_last(self):
        """Names without a number sort after numbered ones."""
        assert sort_phase_names(["misc", "02-b", "01-a"]) == ["01-a", "02-b", "misc"]

    def test_compare(self):
        """compare_phase_ids is a three-way comparison."""
        assert compare_phase_ids("1", "2") == -1
        assert compare_phase_ids("02", "2") == 0
        assert compare_phase_ids("1.10", "1.9") == 1


class TestDirectoryNames:
    """Tests for splitting directory names."""

    def test_split(self):
        """Number and slug are separated at the first hyphen."""
        assert split_phase_dir_name("03.1-fix-auth") == ("03.1", "fix-auth")
        assert split_phase_dir_name("04") == ("04", "")
        assert split_phase_dir_name("notes") == ("", "notes")


class TestNextDecimal:
    """Tests for decimal allocation."""

    def test_first_decimal(self):
        """With no decimals on disk the next one is .1."""
        assert next_decimal("6", ["06-api", "07-ui"]) == "06.1"

    def test_gaps_not_filled(self):
        """The next decimal is one past the highest, not the first gap."""
        assert next_decimal("06", ["06-api", "06.1-a", "06.3-b"]) == "06.4"

    def test_numeric_max(self):
        """06.10 beats 06.9 when finding the highest."""
        names = ["06.9-a", "06.10-b", "06.2-c"]
        assert next_decimal("06", names) == "06.11"

    def test_siblings_sorted_numerically(self):
        """Siblings of other wholes are ignored and the rest sorted."""
        names = ["06.10-b", "07.1-x", "06.9-a", "06-base"]
        assert decimal_siblings("6", names) == [PhaseId(6, 9), PhaseId(6, 10)]
