#!/usr/bin/env python3
"""
Configuration Manager for GHCR PR image cleanup

This module handles loading configuration from config.yaml and environment
variables, parsing the workflow inputs (IMAGE_NAME, PR_NUMBERS,
OLDER_THAN_DAYS, DELETE_MODE) and turning them into an immutable
CleanupConfig that is passed explicitly into each stage.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ghcr_cleanup.error_utils import ConfigValidationError, create_config_error
from ghcr_cleanup.github_client import GitHubPackagesClient
from ghcr_cleanup.models import ImageReference

_DIGITS = re.compile(r"^[0-9]+$")


def parse_older_than_days(value: Any) -> int:
    """Parse the age threshold in days

    Raises:
        ConfigValidationError: If the value is not a non-negative integer,
            or so large the cutoff date would fall before year 1
    """
    text = str(value if value is not None else "").strip()
    if not _DIGITS.match(text):
        raise create_config_error(
            "OLDER_THAN_DAYS", value, f"older_than_days must be a non-negative integer. Received: {text}"
        )
    days = int(text)
    try:
        datetime.now(timezone.utc) - timedelta(days=days)
    except OverflowError:
        raise create_config_error(
            "OLDER_THAN_DAYS", value, f"older_than_days is too large to compute a cutoff date. Received: {text}"
        )
    return days


def parse_pr_numbers(value: Optional[str]) -> Tuple[str, ...]:
    """Parse a comma-separated PR allow-list

    An empty or missing value means "all PRs" and returns an empty tuple.
    A value that is present but yields no PR numbers (e.g. ",") is an error
    rather than "all", since the intent is ambiguous.

    Raises:
        ConfigValidationError: On a non-numeric entry or an empty parse result
    """
    text = (value or "").strip()
    if not text:
        return ()

    selected: List[str] = []
    for raw in text.split(","):
        pr = raw.strip()
        if not pr:
            continue
        if not _DIGITS.match(pr):
            raise create_config_error(
                "PR_NUMBERS", value, f'Invalid PR number "{pr}". Use comma-separated integers, e.g. 123,456'
            )
        if pr not in selected:
            selected.append(pr)

    if not selected:
        raise create_config_error("PR_NUMBERS", value, "pr_numbers was provided but no valid PR numbers were parsed.")
    return tuple(selected)


def parse_image_names(value: Optional[str], default_image: Optional[str] = None) -> Tuple[str, ...]:
    """Split and de-duplicate a comma-separated image list, preserving order

    Args:
        value: Raw IMAGE_NAME input
        default_image: Used when value is empty

    Raises:
        ConfigValidationError: If the value is present but contains no names,
            or no default can be resolved
    """
    text = (value or "").strip()
    if not text:
        if not default_image:
            raise create_config_error(
                "IMAGE_NAME", value, "Could not resolve image_name. Provide image_name directly."
            )
        return (default_image,)

    names: List[str] = []
    for raw in text.split(","):
        name = raw.strip()
        if name and name not in names:
            names.append(name)

    if not names:
        raise create_config_error("IMAGE_NAME", value, "image_name was provided but no valid values were parsed.")
    return tuple(names)


def unique_images(
    image_names: Tuple[str, ...], registry_host: str
) -> Tuple[Tuple[ImageReference, ...], Tuple[str, ...]]:
    """Parse image names and keep the first name per package

    Names differing only by tag or digest point at the same package; each
    package is scanned once.

    Returns:
        Tuple of (parsed images, the names they came from)

    Raises:
        ConfigValidationError: If a name is malformed
    """
    images: List[ImageReference] = []
    names: List[str] = []
    seen = set()
    for name in image_names:
        image = ImageReference.parse(name, registry_host)
        key = (image.owner, image.package_name)
        if key in seen:
            logging.info(f"Ignoring {name}: package {image.label} is already listed")
            continue
        seen.add(key)
        images.append(image)
        names.append(name)
    return tuple(images), tuple(names)


def resolve_default_image_name(registry_host: str, default_owner: str, github_repository: str) -> Optional[str]:
    """Derive `<host>/<owner>/<repo>` for the current repository

    The owner is the configured default namespace, falling back to the owner
    half of GITHUB_REPOSITORY. GHCR image names are lowercase.
    """
    repository = (github_repository or "").strip()
    repo_owner, _, repo_name = repository.partition("/")
    owner = (default_owner or "").strip() or repo_owner
    if not owner or not repo_name:
        return None
    return f"{registry_host}/{owner}/{repo_name}".lower()


@dataclass(frozen=True)
class CleanupConfig:
    """Everything a stage needs, resolved once at start-up"""
    images: Tuple[ImageReference, ...] = ()
    image_names: Tuple[str, ...] = ()
    selected_prs: Tuple[str, ...] = ()
    older_than_days: int = 7
    delete_mode: str = "stage 2"
    plan_file: str = "delete-plan.json"
    output_file: Optional[str] = None
    summary_file: Optional[str] = None
    token: Optional[str] = field(default=None, repr=False)
    api_url: str = "https://api.github.com"
    timeout: int = 30
    per_page: int = 100
    api_version: str = "2022-11-28"
    registry_host: str = "ghcr.io"


class ConfigManager:
    """Manages configuration for the GHCR cleanup workflow"""

    def __init__(self, config_file: str = None):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to CONFIG_FILE env var or config.yaml)
        """
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "registry": {"host": "ghcr.io", "default_owner": ""},
            "github": {
                "api_url": "https://api.github.com",
                "timeout": 30,
                "per_page": 100,
                "api_version": "2022-11-28",
            },
            "cleanup": {
                "older_than_days": 7,
                "plan_file": "delete-plan.json",
                "delete_mode": "stage 2",
            },
        }

        if not os.path.exists(self.config_file):
            logging.debug(f"Config file {self.config_file} not found, using defaults")
            return default_config

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}")

        if not isinstance(user_config, dict):
            raise ConfigValidationError(f"Config file {self.config_file} must contain a mapping at the top level")
        return self._merge_config(default_config, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    # Registry configuration
    def get_registry_host(self) -> str:
        return self.config["registry"]["host"]

    def get_default_owner(self) -> str:
        return self.config["registry"].get("default_owner") or ""

    def get_github_repository(self) -> str:
        return os.environ.get("GITHUB_REPOSITORY", "")

    # GitHub API configuration
    def get_api_url(self) -> str:
        """Get API URL from environment or config"""
        return os.environ.get("GITHUB_API_URL") or self.config["github"]["api_url"]

    def get_token(self) -> Optional[str]:
        return os.environ.get("GITHUB_TOKEN") or None

    def get_timeout(self) -> int:
        """Get request timeout from config, with type coercion"""
        timeout = self.config["github"]["timeout"]
        try:
            return int(timeout)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"github.timeout must be an integer, got: {timeout} (type: {type(timeout).__name__})"
            )

    def get_per_page(self) -> int:
        """Get page size from config, with type coercion"""
        per_page = self.config["github"]["per_page"]
        try:
            return int(per_page)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"github.per_page must be an integer, got: {per_page} (type: {type(per_page).__name__})"
            )

    def get_api_version(self) -> str:
        return str(self.config["github"]["api_version"])

    # Workflow inputs
    def get_image_name_input(self) -> str:
        return os.environ.get("IMAGE_NAME", "")

    def get_pr_numbers_input(self) -> str:
        return os.environ.get("PR_NUMBERS", "")

    def get_older_than_days_input(self) -> Any:
        return os.environ.get("OLDER_THAN_DAYS", "").strip() or self.config["cleanup"]["older_than_days"]

    def get_delete_mode(self) -> str:
        return os.environ.get("DELETE_MODE") or self.config["cleanup"]["delete_mode"]

    def get_plan_file(self) -> str:
        return os.environ.get("PLAN_FILE") or self.config["cleanup"]["plan_file"]

    # Runner integration
    def get_output_file(self) -> Optional[str]:
        return os.environ.get("GITHUB_OUTPUT") or None

    def get_summary_file(self) -> Optional[str]:
        return os.environ.get("GITHUB_STEP_SUMMARY") or None

    def validate_github_settings(self) -> None:
        """Validate GitHub API settings

        Raises:
            ConfigValidationError: If settings are invalid
        """
        errors = []

        api_url = self.get_api_url()
        if not api_url or not api_url.startswith(("http://", "https://")):
            errors.append(f"GitHub API URL must be an http(s) URL, got: {api_url!r}")

        timeout = self.get_timeout()
        if timeout < 1:
            errors.append(f"github.timeout must be a positive integer (seconds), got: {timeout}")

        per_page = self.get_per_page()
        if per_page < 1 or per_page > 100:
            errors.append(f"github.per_page must be between 1 and 100, got: {per_page}")

        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            logging.error(error_msg)
            raise ConfigValidationError(error_msg)

    def _base_settings(self) -> Dict[str, Any]:
        self.validate_github_settings()
        return {
            "output_file": self.get_output_file(),
            "summary_file": self.get_summary_file(),
            "token": self.get_token(),
            "api_url": self.get_api_url(),
            "timeout": self.get_timeout(),
            "per_page": self.get_per_page(),
            "api_version": self.get_api_version(),
            "registry_host": self.get_registry_host(),
        }

    def build_plan_config(
        self,
        image_name: Optional[str] = None,
        pr_numbers: Optional[str] = None,
        older_than_days: Optional[str] = None,
        plan_file: Optional[str] = None,
    ) -> CleanupConfig:
        """Resolve and validate plan stage inputs

        Explicit arguments (command-line flags) win over environment
        variables, which win over config.yaml.

        Raises:
            ConfigValidationError: On any malformed input
        """
        days = parse_older_than_days(
            older_than_days if older_than_days is not None else self.get_older_than_days_input()
        )
        selected_prs = parse_pr_numbers(pr_numbers if pr_numbers is not None else self.get_pr_numbers_input())

        registry_host = self.get_registry_host()
        default_image = resolve_default_image_name(
            registry_host, self.get_default_owner(), self.get_github_repository()
        )
        image_names = parse_image_names(
            image_name if image_name is not None else self.get_image_name_input(), default_image
        )
        images, image_names = unique_images(image_names, registry_host)

        return CleanupConfig(
            images=images,
            image_names=image_names,
            selected_prs=selected_prs,
            older_than_days=days,
            delete_mode=self.get_delete_mode(),
            plan_file=plan_file or self.get_plan_file(),
            **self._base_settings(),
        )

    def build_delete_config(self, plan_file: Optional[str] = None, delete_mode: Optional[str] = None) -> CleanupConfig:
        """Resolve delete stage settings"""
        return CleanupConfig(
            delete_mode=delete_mode or self.get_delete_mode(),
            plan_file=plan_file or self.get_plan_file(),
            **self._base_settings(),
        )

    def print_config(self, config: CleanupConfig) -> None:
        """Log the resolved configuration"""
        logging.info("Current Configuration:")
        logging.info(f"  Config File: {self.config_file}")
        logging.info(f"  Registry Host: {config.registry_host}")
        logging.info(f"  GitHub API URL: {config.api_url}")
        if config.image_names:
            logging.info(f"  Images: {', '.join(config.image_names)}")
            logging.info(f"  PR Selection: {', '.join(config.selected_prs) or 'ALL'}")
            logging.info(f"  Older Than Days: {config.older_than_days}")
        logging.info(f"  Plan File: {config.plan_file}")
        logging.info(f"  Delete Mode: {config.delete_mode}")
        logging.info(f"  GitHub Token: {'set' if config.token else 'Not set'}")


def create_github_client(config: CleanupConfig) -> GitHubPackagesClient:
    """Create the registry API client for a resolved configuration

    Raises:
        ConfigValidationError: If no token is available
    """
    if not config.token:
        raise ConfigValidationError(
            "GITHUB_TOKEN environment variable is not set.",
            suggestions=["Pass secrets.GITHUB_TOKEN (or a PAT with package scopes) as GITHUB_TOKEN"],
        )
    return GitHubPackagesClient(
        token=config.token,
        api_url=config.api_url,
        timeout=config.timeout,
        per_page=config.per_page,
        api_version=config.api_version,
    )
