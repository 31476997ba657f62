"""
Tests for must_haves parsing and verification.
"""

from gsdtools.must_haves import (
    Artifact,
    KeyLink,
    check_artifact,
    parse_must_haves,
    verify_artifacts,
    verify_key_links,
)

PLAN = """---
phase: 03-chat
plan: 1
must_haves:
  truths:
    - "User can see existing messages"
    - User can send a message
  artifacts:
    - path: src/components/Chat.tsx
      provides: Message list rendering
      min_lines: 3
    - path: src/api/chat.ts
      contains: export async function
      exports: [GET, POST]
  key_links:
    - from: src/components/Chat.tsx
      to: /api/chat
      via: fetch in useEffect
      pattern: "fetch\\\\(.*api/chat"
    - from: src/api/chat.ts
      to: src/db.ts
---

<tasks/>
"""


def write_plan(tmp_path, content=PLAN):
    path = tmp_path / "03-01-PLAN.md"
    path.write_text(content)
    return path


def write_file(tmp_path, rel, content):
    path = tmp_path / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestParse:
    """Tests for parse_must_haves."""

    def test_truths(self):
        """Truths are plain strings with quotes removed."""
        assert parse_must_haves(PLAN).truths == [
            "User can see existing messages",
            "User can send a message",
        ]

    def test_artifacts(self):
        """Artifacts are small mappings."""
        artifacts = parse_must_haves(PLAN).artifacts
        assert artifacts[0] == Artifact(
            path="src/components/Chat.tsx", provides="Message list rendering", min_lines=3,
        )
        assert artifacts[1].contains == "export async function"
        assert artifacts[1].exports == ["GET", "POST"]

    def test_key_links(self):
        """Key links keep from/to/via/pattern."""
        links = parse_must_haves(PLAN).key_links
        assert links[0] == KeyLink(
            from_path="src/components/Chat.tsx",
            to="/api/chat",
            via="fetch in useEffect",
            pattern="fetch\\(.*api/chat",
        )
        assert links[1].pattern is None
        assert links[0].to_dict()["from"] == "src/components/Chat.tsx"

    def test_extra_indentation(self):
        """The block is found at deeper indentation too."""
        text = (
            "---\nverification:\n    must_haves:\n        artifacts:\n"
            "            - path: a.py\n              min_lines: 10\n---\n"
        )
        artifacts = parse_must_haves(text).artifacts
        assert artifacts == [Artifact(path="a.py", min_lines=10)]

    def test_absent(self):
        """No block, or no frontmatter, gives empty must-haves."""
        assert parse_must_haves("---\nphase: 1\n---\n").to_dict() == {
            "truths": [], "artifacts": [], "key_links": [],
        }
        assert parse_must_haves("no frontmatter").artifacts == []

    def test_plain_path_items(self):
        """A bare string item is an artifact path."""
        text = "---\nmust_haves:\n  artifacts:\n    - src/index.ts\n---\n"
        assert parse_must_haves(text).artifacts == [Artifact(path="src/index.ts")]


class TestVerifyArtifacts:
    """Tests for artifact checks."""

    def test_all_pass(self, tmp_path):
        """Existing files meeting every condition pass."""
        plan = write_plan(tmp_path)
        write_file(tmp_path, "src/components/Chat.tsx", "a\nb\nc\n")
        write_file(tmp_path, "src/api/chat.ts", "export async function GET() {}\nexport async function POST() {}\n")
        result = verify_artifacts(plan, tmp_path)
        assert result["all_passed"] is True
        assert result["passed"] == 2
        assert result["total"] == 2

    def test_failures(self, tmp_path):
        """Short files, missing exports and missing files are reported."""
        plan = write_plan(tmp_path)
        write_file(tmp_path, "src/components/Chat.tsx", "one line\n")
        result = verify_artifacts(plan, tmp_path)
        assert result["all_passed"] is False
        assert result["passed"] == 0
        assert result["artifacts"][0]["issues"] == ["Only 1 lines, need 3"]
        assert result["artifacts"][1]["exists"] is False
        assert result["artifacts"][1]["issues"] == ["File not found"]

    def test_check_artifact_exports(self, tmp_path):
        """Each missing export is listed."""
        write_file(tmp_path, "x.ts", "export const a = 1\n")
        result = check_artifact(Artifact(path="x.ts", exports=["a", "b"]), tmp_path)
        assert result["issues"] == ["Missing export: b"]

    def test_no_block(self, tmp_path):
        """A plan without artifacts is an error dict."""
        plan = write_plan(tmp_path, "---\nphase: 1\n---\n")
        assert verify_artifacts(plan, tmp_path)["error"] == "No must_haves.artifacts found in frontmatter"

    def test_missing_plan(self, tmp_path):
        """A missing plan file is an error dict."""
        assert verify_artifacts(tmp_path / "nope.md", tmp_path)["error"] == "File not found"


class TestVerifyKeyLinks:
    """Tests for key link checks."""

    def test_pattern_and_reference(self, tmp_path):
        """A pattern match or a plain reference verifies a link."""
        plan = write_plan(tmp_path)
        write_file(tmp_path, "src/components/Chat.tsx", "useEffect(() => { fetch('/api/chat') })\n")
        write_file(tmp_path, "src/api/chat.ts", "import { db } from '../db'\n")
        result = verify_key_links(plan, tmp_path)
        assert result["total"] == 2
        assert result["links"][0]["verified"] is True
        assert result["links"][0]["detail"] == "Pattern found in source"
        assert result["links"][1]["verified"] is False
        assert result["links"][1]["detail"] == "Target not referenced in source"
        assert result["all_verified"] is False

    def test_missing_source(self, tmp_path):
        """A missing source file fails the link."""
        plan = write_plan(tmp_path)
        result = verify_key_links(plan, tmp_path)
        assert result["verified"] == 0
        assert result["links"][0]["detail"] == "Source file not found"

    def test_no_block(self, tmp_path):
        """A plan without key links is an error dict."""
        plan = write_plan(tmp_path, "---\nphase: 1\n---\n")
        assert verify_key_links(plan, tmp_path)["error"] == "No must_haves.key_links found in frontmatter"
