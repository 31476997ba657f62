"""
Tests for milestone progress reporting.
"""

from gsdtools.progress import get_progress, phase_progress_status, render_bar, render_table


def make_project(tmp_path):
    planning = tmp_path / ".planning"
    phases = planning / "phases"
    layout = {
        "01-foundation": ["01-01-PLAN.md", "01-01-SUMMARY.md"],
        "02-auth-flow": ["02-01-PLAN.md", "02-02-PLAN.md", "02-01-SUMMARY.md"],
        "03-ui": [],
    }
    for name, files in layout.items():
        (phases / name).mkdir(parents=True)
        for file_name in files:
            (phases / name / file_name).write_text("x\n")
    (planning / "ROADMAP.md").write_text("# Roadmap\n\n## v1.1: Hardening\n")
    return planning


class TestProgress:
    """Tests for get_progress and its renderings."""

    def test_status(self):
        assert phase_progress_status(2, 2) == "Complete"
        assert phase_progress_status(2, 1) == "In Progress"
        assert phase_progress_status(2, 0) == "Planned"
        assert phase_progress_status(0, 0) == "Pending"

    def test_counts(self, tmp_path):
        make_project(tmp_path)
        progress = get_progress(tmp_path)

        assert progress["milestone_version"] == "v1.1"
        assert progress["milestone_name"] == "Hardening"
        assert [p["status"] for p in progress["phases"]] == ["Complete", "In Progress", "Pending"]
        assert progress["phases"][1]["name"] == "auth flow"
        assert progress["total_plans"] == 3
        assert progress["total_summaries"] == 2
        assert progress["percent"] == 67

    def test_no_project(self, tmp_path):
        progress = get_progress(tmp_path)
        assert progress["milestone_version"] == "v1.0"
        assert progress["phases"] == []
        assert progress["percent"] == 0

    def test_bar(self, tmp_path):
        make_project(tmp_path)
        assert render_bar(get_progress(tmp_path)) == "[██████░░░░] 2/3 plans (67%)"

    def test_table(self, tmp_path):
        make_project(tmp_path)
        table = render_table(get_progress(tmp_path))
        lines = table.split("\n")
        assert lines[0] == "# v1.1 Hardening"
        assert "| 02 | auth flow | 1/2 | In Progress |" in lines
        assert lines[-1] == "| 03 | ui | 0/0 | Pending |"
