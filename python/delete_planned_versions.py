#!/usr/bin/env python3
"""
Delete the GHCR image versions listed in a plan file (stage 2).

The plan written by plan_cleanup.py is trusted as-is. Each version is
deleted under the organization scope first and, if the owner turns out to
be a user account (404/422), under the user scope. Every version is
attempted; the script exits non-zero if any deletion failed.

Usage examples:
  # Delete everything in ./delete-plan.json
  python delete_planned_versions.py

  # Custom plan file and report heading
  python delete_planned_versions.py --plan-file /tmp/plan.json --mode "manual approval"

  # Show what would be deleted without calling the API
  python delete_planned_versions.py --dry-run
"""

import argparse
import sys
from typing import List, Optional

from ghcr_cleanup.config_manager import ConfigManager, create_github_client
from ghcr_cleanup.deleter import PlanDeleter, total_failures
from ghcr_cleanup.error_utils import ConfigValidationError
from ghcr_cleanup.logging_utils import get_logger, log_banner, log_exception, setup_cli_logging
from ghcr_cleanup.report_utils import append_step_summary, format_deletion_table, load_plan, render_delete_summary

logger = get_logger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Delete GHCR package versions listed in a delete plan",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--plan-file", help="Plan to execute (default: PLAN_FILE env or delete-plan.json)")
    parser.add_argument("--mode", help="Label used in the report heading (default: DELETE_MODE env or 'stage 2')")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be deleted without deleting")
    parser.add_argument("--config", help="Path to config.yaml (default: CONFIG_FILE env or config.yaml)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function"""
    args = parse_arguments(argv)
    setup_cli_logging(args.verbose)

    try:
        manager = ConfigManager(args.config)
        config = manager.build_delete_config(plan_file=args.plan_file, delete_mode=args.mode)
        plan = load_plan(config.plan_file)
        client = None if args.dry_run else create_github_client(config)
    except ConfigValidationError as e:
        logger.error(str(e))
        return 1

    log_banner(logger, f"Deleting planned GHCR versions ({config.delete_mode}){' [dry-run]' if args.dry_run else ''}")
    logger.info(f"Plan file: {config.plan_file}")
    logger.info(f"Planned at: {plan.generated_at}, cutoff: {plan.cutoff_iso}")
    logger.info(f"Versions in plan: {plan.candidate_count}")

    try:
        results = PlanDeleter(client, dry_run=args.dry_run).execute(plan)
        append_step_summary(
            config.summary_file, render_delete_summary(plan, results, config.delete_mode, dry_run=args.dry_run)
        )
    except Exception as e:
        log_exception(logger, "Error in main", exc_info=e)
        return 1
    if results:
        logger.info("\n" + format_deletion_table(results))

    failed = total_failures(results)
    if failed > 0:
        logger.error(f"❌ Failed to delete {failed} package version(s). Check logs/summary.")
        return 1

    logger.info("✓ Delete stage complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
