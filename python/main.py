import argparse
import logging
import os
import subprocess
import sys

from ghcr_cleanup.logging_utils import setup_logging


def load_script_paths():
    return {
        "plan": "plan_cleanup.py",
        "delete": "delete_planned_versions.py",
    }

def get_script_descriptions():
    return {
        "plan": "Stage 1: list PR-tagged GHCR versions older than a cutoff and write a delete plan (never deletes)",
        "delete": "Stage 2: delete the versions listed in a delete plan (org scope, then user scope)",
    }

def run_script(script_path, args):
    """Run a stage script with the given arguments and return its exit code"""
    if not os.path.exists(script_path):
        logging.error(f"Script not found: {script_path}")
        return 1

    logging.info(f"Running script: {script_path}")
    logging.info(f"Arguments: {args}")

    completed = subprocess.run([sys.executable, script_path] + list(args))
    if completed.returncode != 0:
        logging.error(f"Script {script_path} exited with code {completed.returncode}")
    return completed.returncode

def main(argv=None):
    setup_logging()
    script_paths = load_script_paths()
    descriptions = get_script_descriptions()

    epilog_lines = ["Available stages:"]
    epilog_lines.extend(f"  {name:<8} {descriptions[name]}" for name in script_paths)
    epilog_lines.extend(
        [
            "",
            "Examples:",
            "  # Plan cleanup for PRs 12 and 57 older than 14 days",
            "   python main.py plan --pr-numbers 12,57 --older-than-days 14",
            "",
            "  # Execute the plan after review",
            "   python main.py delete --plan-file delete-plan.json",
            "",
            "Safety Notes:",
            "  - plan never deletes anything; review its summary before running delete",
            "  - delete trusts the plan completely and does not re-check tags or age",
        ]
    )

    parser = argparse.ArgumentParser(
        description="GHCR pull-request image cleanup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="\n".join(epilog_lines),
    )
    parser.add_argument(
        'stage',
        nargs='?',
        choices=script_paths.keys(),
        help="Stage to run"
    )
    parser.add_argument(
        'additional_args',
        nargs=argparse.REMAINDER,
        help="Additional arguments for the stage script"
    )
    args = parser.parse_args(argv)

    if not args.stage:
        parser.print_help()
        return 1

    # Build full path to script (in same directory as main.py)
    script_dir = os.path.dirname(os.path.abspath(__file__))
    script_path = os.path.join(script_dir, script_paths[args.stage])

    return run_script(script_path, args.additional_args)

if __name__ == '__main__':
    sys.exit(main())
