"""
GitHub Packages API client for container package versions.

Only the two calls the cleanup needs are implemented: listing the versions
of a container package and deleting one version. Both exist in an
organization and a user variant; which one applies cannot be told from
the image name, so callers pick an OwnerScope explicitly.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ghcr_cleanup.logging_utils import get_logger
from ghcr_cleanup.models import PackageVersion

logger = get_logger(__name__)

# Statuses that mean "this owner is not that kind of account"
WRONG_SCOPE_STATUSES = (404, 422)


class OwnerScope(Enum):
    """Account type owning a package; value is the API path segment"""
    ORG = "orgs"
    USER = "users"

    @property
    def label(self) -> str:
        return "org" if self is OwnerScope.ORG else "user"


# Fixed order in which scopes are tried
OWNER_SCOPES = (OwnerScope.ORG, OwnerScope.USER)


class RegistryAPIError(Exception):
    """Error response (or transport failure) from the GitHub Packages API"""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"status={status if status is not None else 'unknown'} message={message}")

    @property
    def is_wrong_scope(self) -> bool:
        return self.status in WRONG_SCOPE_STATUSES


class GitHubPackagesClient:
    """Thin requests-based client for the container package endpoints"""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: int = 30,
        per_page: int = 100,
        api_version: str = "2022-11-28",
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.per_page = per_page
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": api_version,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _versions_url(self, owner: str, package_name: str, scope: OwnerScope) -> str:
        return (
            f"{self.api_url}/{scope.value}/{quote(owner, safe='')}/packages/container/"
            f"{quote(package_name, safe='')}/versions"
        )

    def _request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        try:
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise RegistryAPIError(None, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise RegistryAPIError(response.status_code, self._error_message(response))
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text or response.reason or f"HTTP {response.status_code}"

    def list_versions(self, owner: str, package_name: str, scope: OwnerScope) -> List[PackageVersion]:
        """List every version of a container package, following pagination

        Args:
            owner: Organization or user name
            package_name: Container package name (may contain '/')
            scope: Which API variant to call

        Returns:
            List of PackageVersion

        Raises:
            RegistryAPIError: On any non-2xx response or transport failure
        """
        url: Optional[str] = self._versions_url(owner, package_name, scope)
        params: Optional[Dict[str, Any]] = {"per_page": self.per_page}
        versions: List[PackageVersion] = []
        page = 1

        while url:
            logger.debug(f"GET {url} (page {page}, scope={scope.label})")
            response = self._request("GET", url, params=params)
            data = response.json()
            if not isinstance(data, list):
                raise RegistryAPIError(response.status_code, "unexpected response body when listing versions")
            versions.extend(PackageVersion.from_api(item) for item in data)

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None
            page += 1

        return versions

    def delete_version(self, owner: str, package_name: str, version_id: Any, scope: OwnerScope) -> None:
        """Delete one package version

        Raises:
            RegistryAPIError: On any non-2xx response or transport failure
        """
        url = f"{self._versions_url(owner, package_name, scope)}/{quote(str(version_id), safe='')}"
        logger.debug(f"DELETE {url} (scope={scope.label})")
        self._request("DELETE", url)
