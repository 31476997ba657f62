"""
Tests for workflow context bundles and template selection.
"""

import json

import pytest
from click.testing import CliRunner

from gsdtools.cli import cli
from gsdtools.errors import InvalidInputError
from gsdtools.init_context import (
    detect_existing_code,
    init_execute_phase,
    init_map_codebase,
    init_milestone_op,
    init_new_milestone,
    init_new_project,
    init_phase_op,
    init_plan_phase,
    init_progress,
    init_quick,
    init_resume,
    init_todos,
    init_verify_work,
    parse_includes,
    select_template,
)

ROADMAP = """# Roadmap

## v1.2: Billing

### Phase 1: Foundation
**Goal:** Skeleton

### Phase 2: API
**Goal:** Endpoints
"""


def make_project(tmp_path):
    planning = tmp_path / ".planning"
    foundation = planning / "phases" / "01-foundation"
    foundation.mkdir(parents=True)
    (foundation / "01-01-PLAN.md").write_text("<task>a</task>\n")
    (foundation / "01-02-PLAN.md").write_text("<task>b</task>\n")
    (foundation / "01-01-SUMMARY.md").write_text("---\none-liner: done\n---\n")
    (foundation / "01-CONTEXT.md").write_text("Decisions so far\n")
    (planning / "phases" / "02-api").mkdir()
    (planning / "ROADMAP.md").write_text(ROADMAP)
    (planning / "STATE.md").write_text("# Project State\n")
    return planning


def invoke(tmp_path, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--cwd", str(tmp_path)] + list(args))


class TestIncludes:
    """Tests for --include parsing."""

    def test_split_and_trim(self):
        assert parse_includes(" state, roadmap ,", ["state", "roadmap"]) == ["state", "roadmap"]

    def test_empty(self):
        assert parse_includes(None, ["state"]) == []

    def test_unknown_name(self):
        with pytest.raises(InvalidInputError, match="Unknown include: bogus"):
            parse_includes("state,bogus", ["state"])


class TestPhaseWorkflows:
    """Tests for the per-phase bundles."""

    def test_execute_phase(self, tmp_path):
        make_project(tmp_path)
        result = init_execute_phase(tmp_path, "1")

        assert result["phase_found"] is True
        assert result["phase_dir"] == ".planning/phases/01-foundation"
        assert result["phase_number"] == "01"
        assert result["phase_name"] == "foundation"
        assert result["plan_count"] == 2
        assert result["incomplete_plans"] == ["01-02-PLAN.md"]
        assert result["incomplete_count"] == 1
        assert result["executor_model"] == "sonnet"
        assert result["verifier_model"] == "sonnet"
        assert result["commit_docs"] is True
        assert result["milestone_version"] == "v1.2"

    def test_execute_missing_phase(self, tmp_path):
        make_project(tmp_path)
        result = init_execute_phase(tmp_path, "7")
        assert result["phase_found"] is False
        assert result["phase_dir"] is None
        assert result["phase_number"] == "07"
        assert result["plans"] == []

    def test_includes(self, tmp_path):
        """Requested contents come back as <name>_content, missing files as None."""
        make_project(tmp_path)
        result = init_execute_phase(tmp_path, "1", ["state", "context", "requirements", "research"])
        assert result["state_content"] == "# Project State\n"
        assert result["context_content"] == "Decisions so far\n"
        assert result["requirements_content"] is None
        assert result["research_content"] is None
        assert "roadmap_content" not in result

    def test_plan_phase(self, tmp_path):
        make_project(tmp_path)
        result = init_plan_phase(tmp_path, "01")
        assert result["planner_model"] == "opus"
        assert result["checker_model"] == "sonnet"
        assert result["researcher_model"] == "sonnet"
        assert result["research_enabled"] is True
        assert result["plan_checker_enabled"] is True
        assert result["has_context"] is True
        assert result["has_research"] is False
        assert result["has_plans"] is True
        assert result["padded_phase"] == "01"

    def test_plan_phase_respects_workflow_switches(self, tmp_path):
        planning = make_project(tmp_path)
        (planning / "config.json").write_text(
            '{"model_profile": "quality", "workflow": {"research": false}}'
        )
        result = init_plan_phase(tmp_path, "2")
        assert result["research_enabled"] is False
        assert result["plan_checker_enabled"] is True
        assert result["researcher_model"] == "opus"
        assert result["has_plans"] is False

    def test_verify_work(self, tmp_path):
        planning = make_project(tmp_path)
        (planning / "phases" / "01-foundation" / "01-VERIFICATION.md").write_text("ok\n")
        result = init_verify_work(tmp_path, "1")
        assert result["has_verification"] is True
        assert init_verify_work(tmp_path, "9")["phase_dir"] is None

    def test_phase_op(self, tmp_path):
        make_project(tmp_path)
        result = init_phase_op(tmp_path, "2")
        assert result["phase_found"] is True
        assert result["phase_slug"] == "api"
        assert result["plan_count"] == 0
        assert init_phase_op(tmp_path, "5")["plan_count"] == 0


class TestProjectWorkflows:
    """Tests for the project-level bundles."""

    def test_new_project_greenfield(self, tmp_path):
        result = init_new_project(tmp_path)
        assert result["is_brownfield"] is False
        assert result["has_git"] is False
        assert result["project_exists"] is False
        assert result["planning_exists"] is False
        assert result["roadmapper_model"] == "sonnet"

    def test_new_project_brownfield(self, tmp_path):
        (tmp_path / ".git").mkdir()
        (tmp_path / "src" / "app").mkdir(parents=True)
        (tmp_path / "src" / "app" / "main.py").write_text("print('hi')\n")
        result = init_new_project(tmp_path)
        assert result["is_brownfield"] is True
        assert result["has_existing_code"] is True
        assert result["has_git"] is True

    def test_detect_skips_dependency_dirs(self, tmp_path):
        (tmp_path / "node_modules" / "lib").mkdir(parents=True)
        (tmp_path / "node_modules" / "lib" / "index.js").write_text("")
        assert detect_existing_code(tmp_path) == {
            "has_existing_code": False,
            "has_package_file": False,
        }

    def test_detect_manifest(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[project]\n")
        assert detect_existing_code(tmp_path)["has_package_file"] is True

    def test_new_milestone(self, tmp_path):
        make_project(tmp_path)
        result = init_new_milestone(tmp_path)
        assert result["current_milestone"] == "v1.2"
        assert result["current_milestone_name"] == "Billing"
        assert result["roadmap_exists"] is True
        assert result["project_exists"] is False

    def test_quick_numbers_after_existing(self, tmp_path):
        quick = tmp_path / ".planning" / "quick"
        (quick / "001-first").mkdir(parents=True)
        (quick / "004-fourth").mkdir()
        result = init_quick(tmp_path, "Fix the login button")
        assert result["next_num"] == 5
        assert result["slug"] == "fix-the-login-button"
        assert result["task_dir"] == ".planning/quick/005-fix-the-login-button"
        assert result["quick_dir"] == ".planning/quick"

    def test_quick_requires_description(self, tmp_path):
        with pytest.raises(InvalidInputError, match="Description required"):
            init_quick(tmp_path, "  ")

    def test_resume(self, tmp_path):
        planning = make_project(tmp_path)
        assert init_resume(tmp_path)["has_interrupted_agent"] is False

        (planning / "current-agent-id.txt").write_text("agent-42\n")
        result = init_resume(tmp_path)
        assert result["has_interrupted_agent"] is True
        assert result["interrupted_agent_id"] == "agent-42"
        assert result["state_exists"] is True

    def test_progress(self, tmp_path):
        make_project(tmp_path)
        result = init_progress(tmp_path, ["roadmap"])
        assert result["phase_count"] == 2
        assert result["in_progress_count"] == 1
        assert result["current_phase"]["number"] == "01"
        assert result["next_phase"]["number"] == "02"
        assert result["roadmap_content"].startswith("# Roadmap")

    def test_todos(self, tmp_path):
        pending = tmp_path / ".planning" / "todos" / "pending"
        pending.mkdir(parents=True)
        (pending / "a.md").write_text("title: Add caching\narea: api\n")
        (pending / "b.md").write_text("title: Fix docs\narea: docs\n")

        result = init_todos(tmp_path)
        assert result["todo_count"] == 2
        assert result["pending_dir"] == ".planning/todos/pending"

        result = init_todos(tmp_path, "api")
        assert [t["title"] for t in result["todos"]] == ["Add caching"]

    def test_milestone_op(self, tmp_path):
        planning = make_project(tmp_path)
        (planning / "milestones").mkdir()
        (planning / "milestones" / "v1.0-ROADMAP.md").write_text("old\n")
        (planning / "milestones" / "v1.1-ROADMAP.md").write_text("old\n")

        result = init_milestone_op(tmp_path)
        assert result["phase_count"] == 2
        assert result["completed_phases"] == 1
        assert result["all_phases_complete"] is False
        assert result["archived_milestones"] == ["v1.0", "v1.1"]
        assert result["archive_count"] == 2

    def test_map_codebase(self, tmp_path):
        codebase = tmp_path / ".planning" / "codebase"
        codebase.mkdir(parents=True)
        (codebase / "STACK.md").write_text("x\n")
        result = init_map_codebase(tmp_path)
        assert result["mapper_model"] == "haiku"
        assert result["existing_maps"] == ["STACK.md"]
        assert result["has_maps"] is True
        assert result["codebase_dir"] == ".planning/codebase"


class TestSelectTemplate:
    """Tests for picking a summary template."""

    def test_minimal(self, tmp_path):
        plan = tmp_path / "PLAN.md"
        plan.write_text("<task>Edit `src/a.py`</task>\n")
        assert select_template(plan) == {
            "template": "templates/summary-minimal.md",
            "type": "minimal",
            "taskCount": 1,
            "fileCount": 1,
            "hasDecisions": False,
        }

    def test_standard(self, tmp_path):
        plan = tmp_path / "PLAN.md"
        plan.write_text("<task>a</task>\n<task>b</task>\n<task>c</task>\n")
        assert select_template(plan)["type"] == "standard"

    def test_decisions_make_complex(self, tmp_path):
        plan = tmp_path / "PLAN.md"
        plan.write_text("<task>a</task>\nRecord the Decision on caching.\n")
        result = select_template(plan)
        assert result["type"] == "complex"
        assert result["hasDecisions"] is True

    def test_many_files_make_complex(self, tmp_path):
        plan = tmp_path / "PLAN.md"
        refs = " ".join(f"`src/m{i}.py`" for i in range(7))
        plan.write_text(f"<task>{refs}</task>\n")
        assert select_template(plan)["fileCount"] == 7
        assert select_template(plan)["type"] == "complex"

    def test_missing_file(self, tmp_path):
        assert select_template(tmp_path / "nope.md") == {
            "template": "templates/summary-standard.md",
            "type": "standard",
            "error": "File not found",
        }


class TestInitCLI:
    """Tests for the init and template commands."""

    def test_execute_phase(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "init", "execute-phase", "1", "--include", "state")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["incomplete_plans"] == ["01-02-PLAN.md"]
        assert data["state_content"] == "# Project State\n"

    def test_unknown_include(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "init", "plan-phase", "1", "--include", "nope")
        assert result.exit_code == 1
        assert "Unknown include" in result.output

    def test_progress_rejects_phase_include(self, tmp_path):
        make_project(tmp_path)
        result = invoke(tmp_path, "init", "progress", "--include", "context")
        assert result.exit_code == 1

    def test_quick_joins_words(self, tmp_path):
        result = invoke(tmp_path, "init", "quick", "Tidy", "the", "README")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["next_num"] == 1
        assert data["task_dir"] == ".planning/quick/001-tidy-the-readme"

    def test_quick_without_description(self, tmp_path):
        result = invoke(tmp_path, "init", "quick")
        assert result.exit_code == 1
        assert "Description required" in result.output

    def test_template_select(self, tmp_path):
        (tmp_path / "PLAN.md").write_text("<task>a</task>\n")
        result = invoke(tmp_path, "template", "select", "PLAN.md")
        assert result.exit_code == 0
        assert json.loads(result.output)["type"] == "minimal"
