"""
Utility functions for the plan artifact and run reports.

This module provides functions to:
- Save and load the delete plan JSON file
- Render Markdown run summaries for the job summary page
- Render console tables of per-image counts
- Publish step outputs for downstream gating
"""
import json
from pathlib import Path
from typing import Any, List, Optional

from tabulate import tabulate

from ghcr_cleanup.error_utils import create_plan_file_error
from ghcr_cleanup.logging_utils import get_logger
from ghcr_cleanup.models import DeletePlan, DeletionResult, ScanResult

logger = get_logger(__name__)


# ============================================================================
# Plan File
# ============================================================================

def save_json(path: str, data: Any) -> str:
    """
    Write JSON data to a file with indentation.

    Args:
        path: Path to save the JSON file
        data: Data to save

    Returns:
        Path to the saved file
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Saved JSON to {p}")
    return str(p)


def save_plan(path: str, plan: DeletePlan) -> str:
    return save_json(path, plan.to_dict())


def load_plan(path: str) -> DeletePlan:
    """
    Read a delete plan written by the plan stage.

    Raises:
        ConfigValidationError: If the file is missing, not JSON, or malformed
    """
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise create_plan_file_error(path, "file not found")
    except (OSError, ValueError) as e:
        raise create_plan_file_error(path, str(e))

    try:
        return DeletePlan.from_dict(data)
    except ValueError as e:
        raise create_plan_file_error(path, str(e))


# ============================================================================
# Step Outputs and Summaries
# ============================================================================

def set_output(output_file: Optional[str], name: str, value: Any) -> None:
    """Append `name=value` to the step output file, if one is configured."""
    if not output_file:
        logger.info(f"Output {name}={value}")
        return
    with open(output_file, "a") as f:
        f.write(f"{name}={value}\n")


def append_step_summary(summary_file: Optional[str], markdown: str) -> None:
    """Append Markdown to the job summary file, or log it when there is none."""
    if not summary_file:
        logger.info("Run summary:\n" + markdown)
        return
    with open(summary_file, "a") as f:
        f.write(markdown)


def format_selection(selected_prs: List[str]) -> str:
    """Numerically sorted PR list, or ALL when no allow-list was given."""
    if not selected_prs:
        return "ALL"
    return ", ".join(sorted(selected_prs, key=int))


def render_plan_summary(plan: DeletePlan, results: List[ScanResult], image_names: List[str]) -> str:
    lines = [
        "## GHCR PR image cleanup plan (stage 1)",
        "",
        f"Images: `{', '.join(image_names)}`  ",
        "Mode: `dry-run`  ",
        f"Selection: `{format_selection(plan.selected_prs)}`  ",
        f"Older than days: `{plan.older_than_days}`  ",
        f"Cutoff (UTC): `{plan.cutoff_iso}`  ",
        f"Total candidates: `{plan.candidate_count}`",
        "",
    ]
    for result in results:
        lines.extend(
            [
                f"### {result.image}",
                f"Versions scanned: `{result.versions_scanned}`  ",
                f"Candidates: `{result.candidates}`  ",
                f"Protected (mixed PR/non-PR tags): `{result.protected_mixed}`  ",
                f"Skipped (partial selection overlap): `{result.skipped_by_selection}`  ",
                f"Skipped (newer than cutoff): `{result.skipped_by_age}`  ",
                f"Skipped (missing/invalid timestamp): `{result.skipped_no_timestamp}`  ",
            ]
        )
        if result.error:
            lines.append(f"Error: `{result.error}`  ")
        lines.append("")
    return "\n".join(lines) + "\n"


def render_delete_summary(plan: DeletePlan, results: List[DeletionResult], mode: str, dry_run: bool = False) -> str:
    heading = f"## GHCR PR image cleanup delete ({mode})"
    if dry_run:
        heading += " [dry-run]"
    lines = [
        heading,
        "",
        f"Planned at: `{plan.generated_at}`  ",
        f"Cutoff (UTC): `{plan.cutoff_iso}`",
        "",
    ]
    for result in results:
        lines.extend(
            [
                f"### {result.image}",
                f"Planned: `{result.planned}`  ",
                f"Deleted: `{result.deleted}`  ",
                f"Failed: `{result.failed}`  ",
            ]
        )
        for failure in result.failures:
            lines.append(f"- `{failure.id}`: {failure.error}")
        lines.append("")
    return "\n".join(lines) + "\n"


def format_scan_table(results: List[ScanResult]) -> str:
    headers = ["Image", "Scanned", "Candidates", "Protected", "Partial PRs", "Too new", "No timestamp", "Error"]
    rows = [
        [
            r.image,
            r.versions_scanned,
            r.candidates,
            r.protected_mixed,
            r.skipped_by_selection,
            r.skipped_by_age,
            r.skipped_no_timestamp,
            r.error or "",
        ]
        for r in results
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def format_deletion_table(results: List[DeletionResult]) -> str:
    headers = ["Image", "Planned", "Deleted", "Failed"]
    rows = [[r.image, r.planned, r.deleted, r.failed] for r in results]
    return tabulate(rows, headers=headers, tablefmt="grid")
