"""
Error message utilities for providing actionable guidance to users.

This module provides functions to create helpful error messages with
suggested fixes and troubleshooting steps.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    RESOURCE = "resource"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class ConfigValidationError(ActionableError):
    """Raised when configuration or run inputs fail validation"""

    def __init__(self, message: str, suggestions: Optional[List[str]] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.CONFIGURATION, suggestions, details)


def create_permission_error(owner: str, package_name: str, status: Optional[int] = None) -> ActionableError:
    """Create actionable error for a forbidden package version listing"""
    return ActionableError(
        message=(
            f"Forbidden while listing GHCR package versions for {owner}/{package_name}. "
            "Ensure this repository has package admin access and GITHUB_TOKEN can manage package versions."
        ),
        category=ErrorCategory.PERMISSION,
        suggestions=[
            f"Grant this repository 'Admin' access in the package settings of {owner}/{package_name}",
            "Add 'packages: write' to the workflow job permissions",
            "Use a token with read:packages and delete:packages scopes if GITHUB_TOKEN cannot be granted access",
        ],
        details={"owner": owner, "package": package_name, "status": status if status is not None else "unknown"},
    )


def create_registry_connection_error(api_url: str, error: Exception) -> ActionableError:
    """Create actionable error for failures to reach the GitHub API"""
    error_str = str(error).lower()

    suggestions = [
        f"Verify the API URL is correct: {api_url}",
        "Check network connectivity from the runner",
        "Retry the workflow; GitHub API outages are usually short",
    ]

    if "timeout" in error_str or "timed out" in error_str:
        suggestions.insert(1, "Increase github.timeout in config.yaml")

    return ActionableError(
        message=f"Failed to connect to the GitHub API at {api_url}",
        category=ErrorCategory.CONNECTION,
        suggestions=suggestions,
        details={
            "api_url": api_url,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_config_error(field: str, value: Any, reason: str) -> ConfigValidationError:
    """Create actionable error for configuration validation failures"""
    suggestions = [
        f"Check the '{field}' value passed to the workflow or set in config.yaml",
        "Check config-example.yaml for the expected format",
    ]

    if field.upper() == "OLDER_THAN_DAYS":
        suggestions.insert(0, "Use a whole number of days, e.g. 7")
    elif field.upper() == "PR_NUMBERS":
        suggestions.insert(0, "Use comma-separated integers, e.g. 123,456, or leave empty for all PRs")
    elif field.upper() == "IMAGE_NAME":
        suggestions.insert(0, "Use ghcr.io/<owner>/<package>, optionally comma-separated")

    return ConfigValidationError(
        message=f"Configuration error: Invalid value for '{field}': {reason}",
        suggestions=suggestions,
        details={
            "field": field,
            "value": value,
            "reason": reason,
        },
    )


def create_plan_file_error(path: str, reason: str) -> ConfigValidationError:
    """Create actionable error for a missing or malformed delete plan"""
    return ConfigValidationError(
        message=f"Could not read delete plan from {path}: {reason}",
        suggestions=[
            "Run the plan stage first and pass its artifact to the delete stage",
            "Check that PLAN_FILE (or --plan-file) points at the downloaded artifact",
        ],
        details={"plan_file": path},
    )
