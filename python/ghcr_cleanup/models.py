"""
Data classes shared by the plan and delete stages.

The delete plan is the only artifact passed between the two stages, so its
JSON field names (camelCase) are fixed here in one place.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ghcr_cleanup.error_utils import create_config_error

_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(timestamp_str: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp string to an aware datetime

    Args:
        timestamp_str: ISO format timestamp string (may end with 'Z')

    Returns:
        datetime in UTC, or None if missing or unparseable
    """
    if not timestamp_str or not isinstance(timestamp_str, str):
        return None
    try:
        text = timestamp_str.strip().replace("Z", "+00:00").replace("z", "+00:00")
        # fromisoformat before 3.11 only takes 3 or 6 fractional digits
        text = _FRACTION.sub(lambda m: f"{m.group(1)}.{(m.group(2) + '000000')[:6]}", text)
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso8601(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ImageReference:
    """Owner and package of a container image, parsed from `host/owner/package[:tag|@digest]`"""
    owner: str
    package_name: str
    source: str = ""

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.package_name}"

    @classmethod
    def parse(cls, image_name: str, registry_host: str = "ghcr.io") -> "ImageReference":
        """Parse an image name into owner and package

        Tag and digest suffixes are stripped; the package part may itself
        contain slashes (e.g. ghcr.io/acme/tools/builder).

        Raises:
            ConfigValidationError: If the name does not look like host/owner/package
        """
        prefix = f"{registry_host}/"
        if not image_name.startswith(prefix):
            raise create_config_error(
                "IMAGE_NAME", image_name, f"image name must start with {prefix}"
            )

        owner, _, package_name = image_name[len(prefix):].partition("/")
        package_name = package_name.split("@", 1)[0].split(":", 1)[0]
        if not owner or not package_name:
            raise create_config_error(
                "IMAGE_NAME", image_name, f"image name must look like {prefix}<owner>/<package>"
            )
        return cls(owner=owner, package_name=package_name, source=image_name)


@dataclass
class PackageVersion:
    """A container package version as returned by the registry (read-only)"""
    id: Any
    tags: List[str] = field(default_factory=list)
    updated_at: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def timestamp(self) -> Optional[str]:
        """Last-updated time, falling back to creation time"""
        return self.updated_at or self.created_at

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PackageVersion":
        container = (data.get("metadata") or {}).get("container") or {}
        tags = container.get("tags") or []
        if not isinstance(tags, list):
            tags = []
        return cls(
            id=data.get("id"),
            tags=[str(tag) for tag in tags],
            updated_at=data.get("updated_at"),
            created_at=data.get("created_at"),
        )


@dataclass(frozen=True)
class SelectionCriteria:
    """PR allow-list and age cutoff used to pick deletion candidates

    An empty selected_prs tuple means every PR is in scope.
    """
    selected_prs: Tuple[str, ...]
    older_than_days: int
    cutoff: datetime

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_prs)

    @property
    def cutoff_iso(self) -> str:
        return to_iso8601(self.cutoff)

    @classmethod
    def build(cls, selected_prs: Tuple[str, ...], older_than_days: int, now: datetime) -> "SelectionCriteria":
        return cls(
            selected_prs=tuple(selected_prs),
            older_than_days=older_than_days,
            cutoff=now - timedelta(days=older_than_days),
        )


@dataclass
class PlannedVersion:
    id: Any
    tags: List[str]
    updated_at: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "tags": list(self.tags), "updatedAt": self.updated_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannedVersion":
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError(f"plan version entry has no id: {data!r}")
        tags = data.get("tags")
        return cls(id=data["id"], tags=list(tags) if isinstance(tags, list) else [], updated_at=data.get("updatedAt"))


@dataclass
class ImagePlan:
    image: str
    owner: str
    package_name: str
    versions: List[PlannedVersion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image": self.image,
            "owner": self.owner,
            "packageName": self.package_name,
            "versions": [version.to_dict() for version in self.versions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImagePlan":
        if not isinstance(data, dict):
            raise ValueError(f"plan image entry must be an object: {data!r}")
        owner = data.get("owner")
        package_name = data.get("packageName")
        if not owner or not package_name:
            raise ValueError(f"plan image entry needs owner and packageName: {data!r}")
        versions = data.get("versions")
        return cls(
            image=data.get("image") or f"{owner}/{package_name}",
            owner=owner,
            package_name=package_name,
            versions=[PlannedVersion.from_dict(v) for v in versions] if isinstance(versions, list) else [],
        )


@dataclass
class DeletePlan:
    """The handoff artifact written by the plan stage and read by the delete stage"""
    generated_at: str
    older_than_days: int
    cutoff_iso: str
    selected_prs: List[str] = field(default_factory=list)
    images: List[ImagePlan] = field(default_factory=list)

    @property
    def candidate_count(self) -> int:
        return sum(len(image.versions) for image in self.images)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "olderThanDays": self.older_than_days,
            "cutoffIso": self.cutoff_iso,
            "selectedPrs": list(self.selected_prs),
            "images": [image.to_dict() for image in self.images],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeletePlan":
        """Build a plan from parsed JSON

        A missing images list is treated as an empty plan.

        Raises:
            ValueError: If the document or one of its entries is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("plan must be a JSON object")
        images = data.get("images")
        selected = data.get("selectedPrs")
        return cls(
            generated_at=data.get("generatedAt") or "unknown",
            older_than_days=data.get("olderThanDays"),
            cutoff_iso=data.get("cutoffIso") or "unknown",
            selected_prs=[str(pr) for pr in selected] if isinstance(selected, list) else [],
            images=[ImagePlan.from_dict(image) for image in images] if isinstance(images, list) else [],
        )


@dataclass
class ScanResult:
    """Per-image outcome of the plan stage"""
    image: str
    versions_scanned: int = 0
    candidates: int = 0
    protected_mixed: int = 0
    skipped_by_selection: int = 0
    skipped_by_age: int = 0
    skipped_no_timestamp: int = 0
    error: Optional[str] = None


@dataclass
class DeletionFailure:
    id: Any
    error: str


@dataclass
class DeletionResult:
    """Per-image outcome of the delete stage"""
    image: str
    planned: int
    deleted: int = 0
    failures: List[DeletionFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)
