#!/usr/bin/env python3
"""
Tag matching utilities for pull-request image tags.

PR builds are tagged `<name>-pr<number>-<short sha>`, for example
`app-pr123-1a2b3c4`. The sha part is at least 7 hex characters and the
match is case-insensitive.
"""

import re
from typing import Iterable, List, Optional

PR_TAG_PATTERN = re.compile(r"-pr(\d+)-[0-9a-f]{7,}$", re.IGNORECASE)


def extract_pr_number(tag: Optional[str]) -> Optional[str]:
    """Extract the PR number from a PR build tag.

    Args:
        tag: Image tag (e.g., "app-pr123-1a2b3c4")

    Returns:
        PR number as a digit string (e.g., "123"), or None if the tag is not a PR tag
    """
    match = PR_TAG_PATTERN.search(str(tag or ""))
    return match.group(1) if match else None


def extract_pr_numbers(tags: Iterable[str]) -> List[Optional[str]]:
    """Extract the PR number of every tag, keeping None for non-PR tags."""
    return [extract_pr_number(tag) for tag in tags]


def unique_pr_numbers(pr_numbers: Iterable[Optional[str]]) -> List[str]:
    """De-duplicate PR numbers preserving first-seen order, dropping None."""
    seen = []
    for pr in pr_numbers:
        if pr and pr not in seen:
            seen.append(pr)
    return seen
