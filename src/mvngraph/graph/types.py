"""Value types returned by the read API."""

from __future__ import annotations
from dataclasses import dataclass

SNAPSHOT_SUFFIX = "-SNAPSHOT"


def _none_first(value: str | None) -> tuple[int, str]:
    return (0, "") if value is None else (1, value)


@dataclass(frozen=True)
class MavenArtifact:
    """A Maven coordinate as recorded for a build."""
    group_id: str
    artifact_id: str
    version: str
    type: str
    base_version: str | None = None
    classifier: str | None = None
    extension: str | None = None
    repository_url: str | None = None

    @property
    def is_snapshot(self) -> bool:
        return (self.base_version or self.version).endswith(SNAPSHOT_SUFFIX)

    @property
    def id(self) -> str:
        """``groupId:artifactId:type[:classifier]:version``"""
        parts = [self.group_id, self.artifact_id, self.type]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.base_version or self.version)
        return ":".join(parts)

    @property
    def short_description(self) -> str:
        if self.classifier:
            return f"{self.artifact_id}:{self.classifier}:{self.type}"
        return f"{self.artifact_id}:{self.type}"

    def sort_key(self) -> tuple:
        return (
            self.group_id,
            self.artifact_id,
            self.version,
            _none_first(self.classifier),
            self.type,
        )

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "version": self.version,
            "base_version": self.base_version,
            "type": self.type,
            "classifier": self.classifier,
            "extension": self.extension,
            "repository_url": self.repository_url,
        }


@dataclass(frozen=True)
class MavenDependency(MavenArtifact):
    """A coordinate consumed by a build."""
    scope: str | None = None
    ignore_upstream_triggers: bool = False

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["scope"] = self.scope
        d["ignore_upstream_triggers"] = self.ignore_upstream_triggers
        return d


def sort_artifacts(artifacts):
    """Deterministic ordering by (groupId, artifactId, version, classifier)."""
    return sorted(artifacts, key=lambda a: a.sort_key())
