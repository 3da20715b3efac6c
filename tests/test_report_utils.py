"""
Tests for plan file handling and run reports.
"""

import json

import pytest

from ghcr_cleanup.error_utils import ConfigValidationError
from ghcr_cleanup.models import DeletePlan, DeletionFailure, DeletionResult, ImagePlan, PlannedVersion, ScanResult
from ghcr_cleanup.report_utils import (
    append_step_summary,
    format_deletion_table,
    format_scan_table,
    format_selection,
    load_plan,
    render_delete_summary,
    render_plan_summary,
    save_plan,
    set_output,
)


@pytest.fixture
def plan():
    return DeletePlan(
        generated_at="2026-03-01T12:00:00.000Z",
        older_than_days=7,
        cutoff_iso="2026-02-22T12:00:00.000Z",
        selected_prs=["100", "12"],
        images=[
            ImagePlan(
                image="acme/api",
                owner="acme",
                package_name="api",
                versions=[PlannedVersion(id=1, tags=["api-pr12-abc1234"], updated_at="2026-02-01T00:00:00Z")],
            )
        ],
    )


class TestPlanFile:
    """Tests for saving and loading the plan"""

    def test_save_then_load(self, tmp_path, plan):
        path = tmp_path / "nested" / "delete-plan.json"
        save_plan(str(path), plan)

        data = json.loads(path.read_text())
        assert data["cutoffIso"] == "2026-02-22T12:00:00.000Z"
        assert data["images"][0]["packageName"] == "api"
        assert load_plan(str(path)) == plan

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigValidationError) as exc_info:
            load_plan(str(tmp_path / "missing.json"))
        assert "file not found" in exc_info.value.message

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text("{not json")
        with pytest.raises(ConfigValidationError):
            load_plan(str(path))

    def test_malformed_plan(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"images": [{"image": "acme/api"}]}))
        with pytest.raises(ConfigValidationError):
            load_plan(str(path))


class TestStepOutputs:
    def test_set_output_appends(self, tmp_path):
        output = tmp_path / "output"
        output.write_text("existing=1\n")
        set_output(str(output), "candidate_count", 3)
        assert output.read_text() == "existing=1\ncandidate_count=3\n"

    def test_set_output_without_file_logs_only(self, tmp_path):
        set_output(None, "candidate_count", 3)

    def test_append_step_summary(self, tmp_path):
        summary = tmp_path / "summary.md"
        append_step_summary(str(summary), "## one\n")
        append_step_summary(str(summary), "## two\n")
        assert summary.read_text() == "## one\n## two\n"


class TestFormatSelection:
    def test_sorted_numerically(self):
        assert format_selection(["100", "12", "9"]) == "9, 12, 100"

    def test_empty_is_all(self):
        assert format_selection([]) == "ALL"


class TestPlanSummary:
    """Tests for the plan stage summary"""

    def test_renders_header_and_images(self, plan):
        results = [
            ScanResult(image="acme/api", versions_scanned=5, candidates=1, protected_mixed=2, skipped_by_age=2),
            ScanResult(image="acme/web", error="status=500 message=boom"),
        ]
        markdown = render_plan_summary(plan, results, ["ghcr.io/acme/api", "ghcr.io/acme/web"])

        assert markdown.startswith("## GHCR PR image cleanup plan (stage 1)\n")
        assert "Images: `ghcr.io/acme/api, ghcr.io/acme/web`" in markdown
        assert "Mode: `dry-run`" in markdown
        assert "Selection: `12, 100`" in markdown
        assert "Cutoff (UTC): `2026-02-22T12:00:00.000Z`" in markdown
        assert "Total candidates: `1`" in markdown
        assert "### acme/api" in markdown
        assert "Protected (mixed PR/non-PR tags): `2`" in markdown
        assert "Error: `status=500 message=boom`" in markdown

    def test_error_line_only_for_failed_images(self, plan):
        markdown = render_plan_summary(plan, [ScanResult(image="acme/api")], ["ghcr.io/acme/api"])
        assert "Error:" not in markdown


class TestDeleteSummary:
    def test_lists_failures(self, plan):
        results = [
            DeletionResult(
                image="acme/api", planned=2, deleted=1, failures=[DeletionFailure(id=7, error="status=500")]
            )
        ]
        markdown = render_delete_summary(plan, results, "stage 2")

        assert markdown.startswith("## GHCR PR image cleanup delete (stage 2)\n")
        assert "Planned at: `2026-03-01T12:00:00.000Z`" in markdown
        assert "Failed: `1`" in markdown
        assert "- `7`: status=500" in markdown

    def test_dry_run_heading(self, plan):
        markdown = render_delete_summary(plan, [], "stage 2", dry_run=True)
        assert markdown.startswith("## GHCR PR image cleanup delete (stage 2) [dry-run]")


class TestTables:
    def test_scan_table(self):
        table = format_scan_table([ScanResult(image="acme/api", versions_scanned=3, candidates=1)])
        assert "acme/api" in table
        assert "Candidates" in table

    def test_deletion_table(self):
        table = format_deletion_table([DeletionResult(image="acme/api", planned=2, deleted=2)])
        assert "acme/api" in table
        assert "Deleted" in table
