"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides fakes for the registry API.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

from ghcr_cleanup.github_client import RegistryAPIError  # noqa: E402
from ghcr_cleanup.models import PackageVersion  # noqa: E402

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRegistry:
    """In-memory stand-in for GitHubPackagesClient

    list_responses / delete_responses map (scope_label, owner, package[, id])
    to either a value or a RegistryAPIError to raise. Unmapped deletes succeed.
    """

    def __init__(self):
        self.list_responses = {}
        self.delete_responses = {}
        self.calls = []

    def list_versions(self, owner, package_name, scope):
        self.calls.append(("list", scope.label, owner, package_name))
        response = self.list_responses.get((scope.label, owner, package_name), RegistryAPIError(404, "Not Found"))
        if isinstance(response, Exception):
            raise response
        return list(response)

    def delete_version(self, owner, package_name, version_id, scope):
        self.calls.append(("delete", scope.label, owner, package_name, version_id))
        response = self.delete_responses.get((scope.label, owner, package_name, version_id))
        if isinstance(response, Exception):
            raise response


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fake_registry():
    return FakeRegistry()


@pytest.fixture
def make_version():
    """Factory for PackageVersion updated `days_old` days before FIXED_NOW"""
    def _make(version_id, tags, days_old=10, updated_at="auto", created_at=None):
        if updated_at == "auto":
            updated_at = (FIXED_NOW - timedelta(days=days_old)).strftime("%Y-%m-%dT%H:%M:%SZ")
        return PackageVersion(id=version_id, tags=list(tags), updated_at=updated_at, created_at=created_at)
    return _make
