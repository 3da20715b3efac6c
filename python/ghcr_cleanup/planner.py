"""
Plan stage: pick PR-tagged image versions older than a cutoff.

Nothing is deleted here. For each image the versions are listed (org scope
first, user scope on 404/422), classified by the selection policy, and the
surviving candidates are written into a DeletePlan for the delete stage.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ghcr_cleanup.config_manager import CleanupConfig
from ghcr_cleanup.error_utils import create_permission_error, create_registry_connection_error
from ghcr_cleanup.github_client import GitHubPackagesClient, OwnerScope, RegistryAPIError
from ghcr_cleanup.logging_utils import get_logger
from ghcr_cleanup.models import (
    DeletePlan,
    ImagePlan,
    ImageReference,
    PackageVersion,
    PlannedVersion,
    ScanResult,
    SelectionCriteria,
    parse_timestamp,
    to_iso8601,
)
from ghcr_cleanup.tag_matching import extract_pr_numbers, unique_pr_numbers

logger = get_logger(__name__)


class VersionDecision(Enum):
    """Outcome of the selection policy for a single version"""
    UNTAGGED = "untagged"
    NOT_PR = "not_pr"
    PROTECTED_MIXED = "protected_mixed"
    OUT_OF_SELECTION = "out_of_selection"
    SKIPPED_BY_SELECTION = "skipped_by_selection"
    SKIPPED_NO_TIMESTAMP = "skipped_no_timestamp"
    SKIPPED_BY_AGE = "skipped_by_age"
    CANDIDATE = "candidate"


def classify_version(version: PackageVersion, criteria: SelectionCriteria) -> Tuple[VersionDecision, List[str]]:
    """Apply the selection policy to one version

    Checks run in a fixed order: tags present, PR tags present, no mixed
    PR/non-PR tags, PR allow-list, timestamp validity, age.

    Returns:
        Tuple of (decision, unique PR numbers found in the version's tags)
    """
    if not version.tags:
        return VersionDecision.UNTAGGED, []

    extracted = extract_pr_numbers(version.tags)
    if not any(extracted):
        return VersionDecision.NOT_PR, []

    prs = unique_pr_numbers(extracted)
    if not all(extracted):
        return VersionDecision.PROTECTED_MIXED, prs

    if criteria.has_selection:
        selected = set(criteria.selected_prs)
        if not all(pr in selected for pr in prs):
            if any(pr in selected for pr in prs):
                return VersionDecision.SKIPPED_BY_SELECTION, prs
            return VersionDecision.OUT_OF_SELECTION, prs

    timestamp = parse_timestamp(version.timestamp)
    if timestamp is None:
        return VersionDecision.SKIPPED_NO_TIMESTAMP, prs

    if timestamp >= criteria.cutoff:
        return VersionDecision.SKIPPED_BY_AGE, prs

    return VersionDecision.CANDIDATE, prs


@dataclass
class VersionSelection:
    """Versions of one image grouped by selection outcome"""
    candidates: List[PackageVersion] = field(default_factory=list)
    protected_mixed: List[PackageVersion] = field(default_factory=list)
    skipped_by_selection: List[PackageVersion] = field(default_factory=list)
    skipped_by_age: List[PackageVersion] = field(default_factory=list)
    skipped_no_timestamp: List[PackageVersion] = field(default_factory=list)


def select_versions(versions: List[PackageVersion], criteria: SelectionCriteria) -> VersionSelection:
    """Group versions by decision; untagged, non-PR and out-of-selection versions are dropped"""
    selection = VersionSelection()
    buckets = {
        VersionDecision.CANDIDATE: selection.candidates,
        VersionDecision.PROTECTED_MIXED: selection.protected_mixed,
        VersionDecision.SKIPPED_BY_SELECTION: selection.skipped_by_selection,
        VersionDecision.SKIPPED_BY_AGE: selection.skipped_by_age,
        VersionDecision.SKIPPED_NO_TIMESTAMP: selection.skipped_no_timestamp,
    }
    for version in versions:
        decision, _ = classify_version(version, criteria)
        bucket = buckets.get(decision)
        if bucket is not None:
            bucket.append(version)
    return selection


def fetch_versions(client: GitHubPackagesClient, image: ImageReference) -> List[PackageVersion]:
    """List versions of an image, trying the org scope first

    404/422 from the org endpoint means the owner is a user account, so the
    user endpoint is tried next. 403 from either endpoint becomes an
    actionable permission error; anything else is raised unchanged.
    """
    try:
        return client.list_versions(image.owner, image.package_name, OwnerScope.ORG)
    except RegistryAPIError as e:
        if e.status == 403:
            raise create_permission_error(image.owner, image.package_name, e.status) from e
        if not e.is_wrong_scope:
            raise
        logger.debug(f"[{image.label}] org lookup returned {e.status}, trying user scope")

    try:
        return client.list_versions(image.owner, image.package_name, OwnerScope.USER)
    except RegistryAPIError as e:
        if e.status == 403:
            raise create_permission_error(image.owner, image.package_name, e.status) from e
        raise


@dataclass
class PlanOutcome:
    plan: DeletePlan
    results: List[ScanResult]

    @property
    def candidate_count(self) -> int:
        return self.plan.candidate_count

    @property
    def failed_images(self) -> List[ScanResult]:
        return [result for result in self.results if result.error]


class CleanupPlanner:
    """Builds a DeletePlan for every configured image"""

    def __init__(
        self,
        client: GitHubPackagesClient,
        config: CleanupConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.config = config
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def scan_image(self, image: ImageReference, criteria: SelectionCriteria) -> Tuple[ImagePlan, ScanResult]:
        """List and classify the versions of one image"""
        versions = fetch_versions(self.client, image)
        selection = select_versions(versions, criteria)

        for version in selection.protected_mixed:
            logger.info(
                f"[{image.label}] Protecting version {version.id} with mixed PR/non-PR tags ({', '.join(version.tags)})"
            )
        for version in selection.candidates:
            logger.info(
                f"[dry-run] [{image.label}] Would delete version {version.id} ({', '.join(version.tags)}) "
                f"updated_at={version.timestamp}"
            )

        image_plan = ImagePlan(
            image=image.label,
            owner=image.owner,
            package_name=image.package_name,
            versions=[
                PlannedVersion(id=version.id, tags=list(version.tags), updated_at=version.timestamp)
                for version in selection.candidates
            ],
        )
        result = ScanResult(
            image=image.label,
            versions_scanned=len(versions),
            candidates=len(selection.candidates),
            protected_mixed=len(selection.protected_mixed),
            skipped_by_selection=len(selection.skipped_by_selection),
            skipped_by_age=len(selection.skipped_by_age),
            skipped_no_timestamp=len(selection.skipped_no_timestamp),
        )
        return image_plan, result

    def build_plan(self) -> PlanOutcome:
        """Scan every image; a failing image is recorded and the rest still run"""
        now = self.clock()
        criteria = SelectionCriteria.build(self.config.selected_prs, self.config.older_than_days, now)
        plan = DeletePlan(
            generated_at=to_iso8601(now),
            older_than_days=criteria.older_than_days,
            cutoff_iso=criteria.cutoff_iso,
            selected_prs=list(criteria.selected_prs),
        )
        results: List[ScanResult] = []

        for image in self.config.images:
            logger.info(f"Scanning {image.label}...")
            try:
                image_plan, result = self.scan_image(image, criteria)
            except Exception as e:
                if isinstance(e, RegistryAPIError):
                    message = str(e)
                    if e.status is None:
                        logger.warning(create_registry_connection_error(self.config.api_url, e).format_message())
                else:
                    message = getattr(e, "message", None) or str(e)
                logger.warning(f"[{image.label}] {message}")
                results.append(ScanResult(image=image.label, error=message))
                continue
            plan.images.append(image_plan)
            results.append(result)

        return PlanOutcome(plan=plan, results=results)
