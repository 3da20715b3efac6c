#!/usr/bin/env python3
"""
Plan deletion of old pull-request images in GitHub Container Registry (stage 1).

This script never deletes anything. It lists the versions of each image,
selects versions whose tags all look like `<name>-pr<number>-<sha>` and
whose last update is older than the cutoff, and writes them to a plan file
for the delete stage.

Workflow:
- Validate OLDER_THAN_DAYS, PR_NUMBERS and IMAGE_NAME (fail before any API call)
- List versions per image (org scope, then user scope)
- Apply the selection policy and record per-image counts
- Write delete-plan.json, the candidate_count output and the job summary

Usage examples:
  # Plan for the current repository's image (from GITHUB_REPOSITORY)
  python plan_cleanup.py

  # Plan for specific images and PRs
  python plan_cleanup.py --image-name ghcr.io/acme/api,ghcr.io/acme/web --pr-numbers 12,57

  # Only versions older than 30 days, custom plan file
  python plan_cleanup.py --older-than-days 30 --plan-file /tmp/plan.json
"""

import argparse
import sys
from typing import List, Optional

from ghcr_cleanup.config_manager import ConfigManager, create_github_client
from ghcr_cleanup.error_utils import ConfigValidationError
from ghcr_cleanup.logging_utils import get_logger, log_banner, log_exception, setup_cli_logging
from ghcr_cleanup.planner import CleanupPlanner
from ghcr_cleanup.report_utils import (
    append_step_summary,
    format_scan_table,
    render_plan_summary,
    save_plan,
    set_output,
)

logger = get_logger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Plan deletion of old PR-tagged GHCR image versions (dry-run only)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--image-name",
        help="Comma-separated ghcr.io/<owner>/<package> names (default: IMAGE_NAME env or current repository)",
    )
    parser.add_argument(
        "--pr-numbers",
        help="Comma-separated PR numbers to restrict cleanup to (default: PR_NUMBERS env or all PRs)",
    )
    parser.add_argument(
        "--older-than-days",
        help="Only plan versions last updated more than N days ago (default: OLDER_THAN_DAYS env or 7)",
    )
    parser.add_argument("--plan-file", help="Where to write the plan (default: PLAN_FILE env or delete-plan.json)")
    parser.add_argument("--config", help="Path to config.yaml (default: CONFIG_FILE env or config.yaml)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function"""
    args = parse_arguments(argv)
    setup_cli_logging(args.verbose)

    try:
        manager = ConfigManager(args.config)
        config = manager.build_plan_config(
            image_name=args.image_name,
            pr_numbers=args.pr_numbers,
            older_than_days=args.older_than_days,
            plan_file=args.plan_file,
        )
        client = create_github_client(config)
    except ConfigValidationError as e:
        logger.error(str(e))
        return 1

    log_banner(logger, "Planning GHCR PR image cleanup (dry-run)")
    manager.print_config(config)

    try:
        outcome = CleanupPlanner(client, config).build_plan()
        save_plan(config.plan_file, outcome.plan)
        set_output(config.output_file, "candidate_count", outcome.candidate_count)
        append_step_summary(
            config.summary_file, render_plan_summary(outcome.plan, outcome.results, config.image_names)
        )
    except Exception as e:
        log_exception(logger, "Error in main", exc_info=e)
        return 1

    logger.info("\n" + format_scan_table(outcome.results))
    logger.info(f"Total candidates: {outcome.candidate_count}")

    if outcome.failed_images:
        logger.error(f"❌ Failed to process {len(outcome.failed_images)} image(s). Check logs/summary.")
        return 1

    logger.info("✓ Plan complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
