"""
Delete stage: execute a DeletePlan produced by the plan stage.

The plan is trusted as-is; no tag or age checks are repeated here. Each
version is deleted under the org scope first and, on 404/422, once more
under the user scope. Failures are recorded per version and never stop
the remaining work.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from ghcr_cleanup.github_client import OWNER_SCOPES, GitHubPackagesClient, RegistryAPIError
from ghcr_cleanup.logging_utils import get_logger
from ghcr_cleanup.models import DeletePlan, DeletionFailure, DeletionResult, ImagePlan

logger = get_logger(__name__)


@dataclass
class VersionDeletion:
    """Result of deleting a single version"""
    deleted: bool
    scope: Optional[str] = None
    attempted_scopes: tuple = ()
    error: Optional[RegistryAPIError] = None

    def failure_message(self) -> str:
        status = "unknown"
        message = "unknown"
        if self.error is not None:
            status = self.error.status if self.error.status is not None else "unknown"
            message = self.error.message or "unknown"
        scopes = "/".join(self.attempted_scopes) or "none"
        return f"Delete failed in owner scope(s) {scopes}. Last status={status} message={message}"


def delete_version(client: GitHubPackagesClient, owner: str, package_name: str, version_id: Any) -> VersionDeletion:
    """Delete one version, falling back from org to user scope on 404/422

    Any other error stops the attempt immediately; the last error seen is
    kept on the result.
    """
    attempted = []
    last_error: Optional[RegistryAPIError] = None

    for scope in OWNER_SCOPES:
        attempted.append(scope.label)
        try:
            client.delete_version(owner, package_name, version_id, scope)
        except RegistryAPIError as e:
            last_error = e
            if not e.is_wrong_scope:
                break
            continue
        return VersionDeletion(deleted=True, scope=scope.label, attempted_scopes=tuple(attempted))

    return VersionDeletion(deleted=False, attempted_scopes=tuple(attempted), error=last_error)


class PlanDeleter:
    """Deletes every version listed in a plan and aggregates the outcome"""

    def __init__(self, client: Optional[GitHubPackagesClient], dry_run: bool = False):
        if client is None and not dry_run:
            raise ValueError("A registry client is required unless running in dry-run mode")
        self.client = client
        self.dry_run = dry_run

    def delete_image(self, image_plan: ImagePlan) -> DeletionResult:
        """Delete the planned versions of one image"""
        result = DeletionResult(image=image_plan.image, planned=len(image_plan.versions))
        label = f"{image_plan.owner}/{image_plan.package_name}"

        for version in image_plan.versions:
            tags = ", ".join(version.tags)
            if self.dry_run:
                logger.info(f"[dry-run] [{label}] Would delete version {version.id} ({tags})")
                continue

            outcome = delete_version(self.client, image_plan.owner, image_plan.package_name, version.id)
            if outcome.deleted:
                result.deleted += 1
                logger.info(f"[{label}] Deleted version {version.id} ({tags}) via {outcome.scope} scope")
            else:
                message = outcome.failure_message()
                result.failures.append(DeletionFailure(id=version.id, error=message))
                logger.warning(f"[{label}] Failed to delete version {version.id}: {message}")

        return result

    def execute(self, plan: DeletePlan) -> List[DeletionResult]:
        """Process every image in plan order"""
        results = []
        for image_plan in plan.images:
            logger.info(f"Processing {image_plan.image}: {len(image_plan.versions)} planned version(s)")
            results.append(self.delete_image(image_plan))
        return results


def total_failures(results: List[DeletionResult]) -> int:
    return sum(result.failed for result in results)
