"""
Tests for the plan/delete entry points and the stage dispatcher.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

import delete_planned_versions
import main as dispatcher
import plan_cleanup
from ghcr_cleanup.github_client import RegistryAPIError

WORKFLOW_ENV_VARS = (
    "IMAGE_NAME",
    "PR_NUMBERS",
    "OLDER_THAN_DAYS",
    "DELETE_MODE",
    "PLAN_FILE",
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "GITHUB_REPOSITORY",
    "GITHUB_OUTPUT",
    "GITHUB_STEP_SUMMARY",
    "CONFIG_FILE",
)


@pytest.fixture
def workflow_env(monkeypatch, tmp_path):
    """Isolated workflow environment with output/summary files in tmp_path"""
    for name in WORKFLOW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("GITHUB_OUTPUT", str(tmp_path / "output"))
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(tmp_path / "summary.md"))
    monkeypatch.setenv("PLAN_FILE", str(tmp_path / "delete-plan.json"))
    return tmp_path


class TestPlanCleanupScript:
    """Tests for plan_cleanup.main"""

    def test_writes_plan_output_and_summary(self, workflow_env, fake_registry, make_version):
        fake_registry.list_responses[("user", "octo", "api")] = [
            make_version(1, ["api-pr12-abc1234"], days_old=400),
            make_version(2, ["api-pr12-abc1234", "latest"], days_old=400),
        ]
        with patch("plan_cleanup.create_github_client", return_value=fake_registry):
            code = plan_cleanup.main(["--image-name", "ghcr.io/octo/api", "--pr-numbers", "12"])

        assert code == 0
        plan = json.loads((workflow_env / "delete-plan.json").read_text())
        assert plan["selectedPrs"] == ["12"]
        assert plan["images"][0]["owner"] == "octo"
        assert [v["id"] for v in plan["images"][0]["versions"]] == [1]
        assert (workflow_env / "output").read_text() == "candidate_count=1\n"
        summary = (workflow_env / "summary.md").read_text()
        assert "Protected (mixed PR/non-PR tags): `1`" in summary

    def test_invalid_age_fails_before_listing(self, workflow_env):
        with patch("plan_cleanup.create_github_client") as mock_client:
            code = plan_cleanup.main(["--image-name", "ghcr.io/octo/api", "--older-than-days", "-1"])
        assert code == 1
        mock_client.assert_not_called()
        assert not (workflow_env / "delete-plan.json").exists()

    def test_huge_age_fails_before_listing(self, workflow_env):
        """Test an age too large for a cutoff date is a configuration error"""
        with patch("plan_cleanup.create_github_client") as mock_client:
            code = plan_cleanup.main(["--image-name", "ghcr.io/octo/api", "--older-than-days", "1000000"])
        assert code == 1
        mock_client.assert_not_called()
        assert not (workflow_env / "delete-plan.json").exists()

    def test_tag_variants_of_one_package_planned_once(self, workflow_env, fake_registry, make_version):
        """Test candidates are not duplicated when the same package is named twice"""
        fake_registry.list_responses[("org", "octo", "api")] = [make_version(1, ["api-pr12-abc1234"], days_old=400)]
        with patch("plan_cleanup.create_github_client", return_value=fake_registry):
            code = plan_cleanup.main(["--image-name", "ghcr.io/octo/api:1,ghcr.io/octo/api:2"])

        assert code == 0
        plan = json.loads((workflow_env / "delete-plan.json").read_text())
        assert len(plan["images"]) == 1
        assert (workflow_env / "output").read_text() == "candidate_count=1\n"
        assert fake_registry.calls == [("list", "org", "octo", "api")]

    def test_missing_token_fails(self, workflow_env, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN")
        assert plan_cleanup.main(["--image-name", "ghcr.io/octo/api"]) == 1

    def test_image_failure_still_writes_plan(self, workflow_env, fake_registry, make_version):
        fake_registry.list_responses[("org", "acme", "api")] = RegistryAPIError(500, "boom")
        fake_registry.list_responses[("org", "acme", "web")] = [make_version(5, ["web-pr3-abcdef0"], days_old=400)]
        with patch("plan_cleanup.create_github_client", return_value=fake_registry):
            code = plan_cleanup.main(["--image-name", "ghcr.io/acme/api,ghcr.io/acme/web"])

        assert code == 1
        plan = json.loads((workflow_env / "delete-plan.json").read_text())
        assert [image["image"] for image in plan["images"]] == ["acme/web"]
        assert "Error: `status=500 message=boom`" in (workflow_env / "summary.md").read_text()


class TestDeletePlannedVersionsScript:
    """Tests for delete_planned_versions.main"""

    @pytest.fixture
    def plan_file(self, workflow_env):
        path = workflow_env / "delete-plan.json"
        path.write_text(
            json.dumps(
                {
                    "generatedAt": "2026-03-01T12:00:00.000Z",
                    "olderThanDays": 7,
                    "cutoffIso": "2026-02-22T12:00:00.000Z",
                    "selectedPrs": [],
                    "images": [
                        {
                            "image": "acme/api",
                            "owner": "acme",
                            "packageName": "api",
                            "versions": [
                                {"id": 1, "tags": ["api-pr1-abcdef0"], "updatedAt": None},
                                {"id": 2, "tags": ["api-pr2-abcdef0"], "updatedAt": None},
                            ],
                        }
                    ],
                }
            )
        )
        return path

    def test_deletes_all_planned_versions(self, plan_file, fake_registry, workflow_env):
        with patch("delete_planned_versions.create_github_client", return_value=fake_registry):
            code = delete_planned_versions.main([])

        assert code == 0
        assert [call[4] for call in fake_registry.calls] == [1, 2]
        summary = (workflow_env / "summary.md").read_text()
        assert summary.startswith("## GHCR PR image cleanup delete (stage 2)")
        assert "Deleted: `2`" in summary

    def test_any_failure_exits_non_zero(self, plan_file, fake_registry):
        fake_registry.delete_responses[("org", "acme", "api", 1)] = RegistryAPIError(500, "boom")
        with patch("delete_planned_versions.create_github_client", return_value=fake_registry):
            code = delete_planned_versions.main(["--mode", "nightly"])

        assert code == 1
        assert [call[4] for call in fake_registry.calls] == [1, 2]

    def test_missing_plan_file(self, workflow_env):
        assert delete_planned_versions.main(["--plan-file", str(workflow_env / "nope.json")]) == 1

    def test_dry_run_needs_no_token(self, plan_file, workflow_env, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN")
        with patch("delete_planned_versions.create_github_client") as mock_client:
            code = delete_planned_versions.main(["--dry-run"])
        assert code == 0
        mock_client.assert_not_called()
        assert "[dry-run]" in (workflow_env / "summary.md").read_text()


class TestDispatcher:
    """Tests for main.py"""

    def test_no_stage_prints_help(self, capsys):
        assert dispatcher.main([]) == 1
        assert "Available stages" in capsys.readouterr().out

    def test_runs_stage_script_with_remaining_args(self):
        with patch("main.subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
            code = dispatcher.main(["plan", "--pr-numbers", "12"])

        assert code == 0
        command = mock_run.call_args.args[0]
        assert command[1].endswith("plan_cleanup.py")
        assert command[2:] == ["--pr-numbers", "12"]

    def test_propagates_exit_code(self):
        with patch("main.subprocess.run", return_value=MagicMock(returncode=1)):
            assert dispatcher.main(["delete"]) == 1

    def test_missing_script(self, tmp_path):
        assert dispatcher.run_script(str(tmp_path / "missing.py"), []) == 1
