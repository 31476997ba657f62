"""
Tests for the gsd-tools command line.
"""

import json
import re

from click.testing import CliRunner

from gsdtools.cli import cli

ROADMAP = """# Roadmap

## v1.0: MVP

- [ ] **Phase 1: Foundation**
- [ ] **Phase 2: API**

### Phase 1: Foundation
**Goal:** Skeleton
**Plans:** 1 plan

### Phase 2: API
**Goal:** Endpoints
**Depends on:** Phase 1
"""

STATE = """# Project State

## Current Position

**Current Phase:** 01
**Current Plan:** 1
**Total Plans in Phase:** 2
**Status:** In progress

### Blockers/Concerns

None yet.
"""


def invoke(tmp_path, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--cwd", str(tmp_path)] + list(args))


def make_project(tmp_path):
    planning = tmp_path / ".planning"
    phase_dir = planning / "phases" / "01-foundation"
    phase_dir.mkdir(parents=True)
    (phase_dir / "01-01-PLAN.md").write_text("---\nwave: 1\n---\n<task>x</task>\n")
    (phase_dir / "01-02-PLAN.md").write_text("---\nwave: 2\n---\n<task>y</task>\n")
    (phase_dir / "01-01-SUMMARY.md").write_text("---\none-liner: Skeleton up\n---\n")
    (planning / "phases" / "01.1-hotfix").mkdir()
    (planning / "phases" / "02-api").mkdir()
    (planning / "ROADMAP.md").write_text(ROADMAP)
    (planning / "STATE.md").write_text(STATE)
    return planning


class TestCLIBasics:
    """Tests for top-level CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "phase" in result.output
        assert "install" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestStateCLI:
    """Tests for state commands."""

    def test_get_without_state(self, tmp_path):
        """A missing STATE.md is an error exit naming the file."""
        result = invoke(tmp_path, "state", "get")
        assert result.exit_code != 0
        assert "STATE.md" in result.output

    def test_snapshot_of_binary_state(self, tmp_path):
        """An undecodable STATE.md gives an error field, not a traceback."""
        planning = make_project(tmp_path)
        (planning / "STATE.md").write_bytes(b"\xff\xfe\x00garbage\x80\x81")
        result = invoke(tmp_path, "state-snapshot")
        assert result.exit_code == 0
        assert "not valid UTF-8" in json.loads(result.output)["error"]

    def test_get_field(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "state", "get", "Status")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"Status": "In progress"}

    def test_patch(self, tmp_path):
        """--Label value pairs update several fields."""
        planning = make_project(tmp_path)
        result = invoke(tmp_path, "state", "patch", "--Status", "Blocked", "--Current Plan", "2")
        assert result.exit_code == 0
        state = (planning / "STATE.md").read_text()
        assert "**Status:** Blocked" in state
        assert "**Current Plan:** 2" in state

    def test_patch_needs_pairs(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "state", "patch", "--Status")
        assert result.exit_code == 1
        assert "Missing value" in result.output

    def test_add_blocker(self, tmp_path):
        planning = make_project(tmp_path)
        result = invoke(tmp_path, "state", "add-blocker", "--text", "Waiting on keys")
        assert result.exit_code == 0
        state = (planning / "STATE.md").read_text()
        assert "- Waiting on keys" in state
        assert "None yet." not in state


class TestPhaseCLI:
    """Tests for phase commands."""

    def test_find_phase_pads(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "find-phase", "1.1")
        assert result.exit_code == 0
        assert json.loads(result.output)["phase_number"] == "01.1"

    def test_list_plans(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "phases", "list", "--type", "plans", "--phase", "01")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["phase_dir"] == "foundation"
        assert data["files"] == ["01-01-PLAN.md", "01-02-PLAN.md"]

    def test_add_joins_words(self, tmp_path):
        """Unquoted multi-word descriptions are joined."""
        make_project(tmp_path)
        result = invoke(tmp_path, "phase", "add", "Billing", "and", "invoices")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["phase_number"] == 3
        assert data["slug"] == "billing-and-invoices"

    def test_insert_unknown_phase(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "phase", "insert", "99", "Nope")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_remove_executed_phase(self, tmp_path):
        """Executed phases need --force."""
        make_project(tmp_path)
        result = invoke(tmp_path, "phase", "remove", "1")
        assert result.exit_code == 1
        assert "executed plan" in result.output

        result = invoke(tmp_path, "phase", "remove", "1", "--force")
        assert result.exit_code == 0
        assert json.loads(result.output)["directory_deleted"] == "01-foundation"

    def test_plan_index(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "phase-plan-index", "1")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["waves"] == {"1": ["01-01"], "2": ["01-02"]}
        assert data["incomplete"] == ["01-02"]


class TestRoadmapCLI:
    """Tests for roadmap and progress commands."""

    def test_get_phase(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "roadmap", "get-phase", "2")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["phase_name"] == "API"
        assert data["goal"] == "Endpoints"

    def test_progress_formats(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "progress")
        assert result.exit_code == 0
        assert json.loads(result.output)["percent"] == 50

        result = invoke(tmp_path, "progress", "bar", "--raw")
        assert result.exit_code == 0
        assert result.output.strip() == "[█████░░░░░] 1/2 plans (50%)"


class TestFrontmatterCLI:
    """Tests for frontmatter commands."""

    def test_missing_file(self, tmp_path):
        """A missing file is reported in the JSON, not as an error exit."""
        result = invoke(tmp_path, "frontmatter", "get", "nope.md")
        assert result.exit_code == 0
        assert json.loads(result.output)["error"] == "File not found"

    def test_set_and_get(self, tmp_path):
        doc = tmp_path / "PLAN.md"
        doc.write_text("---\nphase: 01\nwave: 1\n---\n\nBody\n")

        result = invoke(tmp_path, "frontmatter", "set", "PLAN.md", "--field", "wave", "--value", "2")
        assert result.exit_code == 0

        result = invoke(tmp_path, "frontmatter", "get", "PLAN.md", "--field", "wave")
        assert json.loads(result.output) == {"wave": 2}
        assert doc.read_text().endswith("\n---\n\nBody\n")

    def test_set_on_binary_file(self, tmp_path):
        (tmp_path / "blob.md").write_bytes(b"\xff\xfe\x00garbage\x80\x81")
        result = invoke(tmp_path, "frontmatter", "set", "blob.md", "--field", "a", "--value", "1")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_merge_invalid_json(self, tmp_path):
        (tmp_path / "PLAN.md").write_text("---\nphase: 01\n---\n")
        result = invoke(tmp_path, "frontmatter", "merge", "PLAN.md", "--data", "not-json")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_validate_unknown_schema(self, tmp_path):
        (tmp_path / "PLAN.md").write_text("---\nphase: 01\n---\n")
        result = invoke(tmp_path, "frontmatter", "validate", "PLAN.md", "--schema", "unknown")
        assert result.exit_code == 1
        assert "Unknown schema" in result.output


class TestConfigCLI:
    """Tests for config commands."""

    def test_resolve_model_uses_config_profile(self, tmp_path):
        invoke(tmp_path, "config-ensure-section")
        result = invoke(tmp_path, "config-set", "model_profile", "budget")
        assert result.exit_code == 0

        result = invoke(tmp_path, "resolve-model", "gsd-phase-researcher")
        assert json.loads(result.output) == {"model": "haiku", "profile": "budget"}

        result = invoke(tmp_path, "resolve-model", "gsd-phase-researcher", "--profile", "quality")
        assert json.loads(result.output)["model"] == "opus"

    def test_set_on_broken_config_fails(self, tmp_path):
        """config-set exits 1 and leaves an unparseable config.json alone."""
        planning = tmp_path / ".planning"
        planning.mkdir()
        (planning / "config.json").write_text("{ broken")

        result = invoke(tmp_path, "config-set", "commit_docs", "false")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert (planning / "config.json").read_text() == "{ broken"


class TestUtilityCLI:
    """Tests for small utility commands."""

    def test_generate_slug(self, tmp_path):
        result = invoke(tmp_path, "generate-slug", "Hello, World!")
        assert json.loads(result.output) == {"slug": "hello-world"}

    def test_generate_slug_requires_text(self, tmp_path):
        result = invoke(tmp_path, "generate-slug")
        assert result.exit_code == 1
        assert "text required" in result.output

    def test_timestamp_formats(self, tmp_path):
        date = json.loads(invoke(tmp_path, "current-timestamp", "date").output)["timestamp"]
        assert re.match(r"^\d{4}-\d{2}-\d{2}$", date)

        name = json.loads(invoke(tmp_path, "current-timestamp", "filename").output)["timestamp"]
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}$", name)

        full = json.loads(invoke(tmp_path, "current-timestamp").output)["timestamp"]
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}$", full)

    def test_complete_missing_todo(self, tmp_path):
        result = invoke(tmp_path, "todo", "complete", "nonexistent.md")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_history_digest(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "history-digest")
        assert result.exit_code == 0
        assert "01" in json.loads(result.output)["phases"]


class TestInstallCLI:
    """Tests for install and convert."""

    def test_local_install(self, tmp_path):
        """--local installs under the project root."""
        source = tmp_path / "src"
        (source / "commands" / "gsd").mkdir(parents=True)
        (source / "commands" / "gsd" / "help.md").write_text("---\ndescription: Help\n---\n\nHi\n")

        result = invoke(tmp_path, "install", "gemini", "--local", "--source", str(source))
        assert result.exit_code == 0
        assert (tmp_path / ".gemini" / "commands" / "gsd" / "help.toml").is_file()

    def test_convert(self, tmp_path):
        doc = tmp_path / "agent.md"
        doc.write_text("---\nname: x\ntools: Read\ncolor: cyan\n---\n\nBody\n")
        result = invoke(tmp_path, "convert", str(doc), "--to", "opencode")
        assert result.exit_code == 0
        assert 'color: "#00FFFF"' in result.output
        assert "name: x" not in result.output
