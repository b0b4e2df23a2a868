"""Typed relationships between builds and Maven coordinates."""

from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from mvngraph.core.database import Base


class MavenDependencyEdge(Base):
    """A build declared/consumed a coordinate."""
    __tablename__ = "maven_dependencies"

    build_id: Mapped[int] = mapped_column(Integer, ForeignKey("builds.id"), primary_key=True)
    maven_artifact_id: Mapped[int] = mapped_column(Integer, ForeignKey("maven_artifacts.id"), primary_key=True, index=True)
    scope: Mapped[str] = mapped_column(String(64), nullable=False)
    ignore_upstream_triggers: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class MavenParentProjectEdge(Base):
    """A pom processed by a build has this parent (type ``pom``, no classifier)."""
    __tablename__ = "maven_parent_projects"

    build_id: Mapped[int] = mapped_column(Integer, ForeignKey("builds.id"), primary_key=True)
    maven_artifact_id: Mapped[int] = mapped_column(Integer, ForeignKey("maven_artifacts.id"), primary_key=True, index=True)
    ignore_upstream_triggers: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class GeneratedArtifactEdge(Base):
    """A build produced a coordinate, optionally deployed to a repository."""
    __tablename__ = "generated_maven_artifacts"

    build_id: Mapped[int] = mapped_column(Integer, ForeignKey("builds.id"), primary_key=True)
    maven_artifact_id: Mapped[int] = mapped_column(Integer, ForeignKey("maven_artifacts.id"), primary_key=True, index=True)
    repository_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)  # None if not deployed
    extension: Mapped[str | None] = mapped_column(String(64), nullable=True)
    skip_downstream_triggers: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class BuildUpstreamCause(Base):
    """The orchestrator saw the upstream build trigger the downstream build."""
    __tablename__ = "build_upstream_causes"

    upstream_build_id: Mapped[int] = mapped_column(Integer, ForeignKey("builds.id"), primary_key=True)
    downstream_build_id: Mapped[int] = mapped_column(Integer, ForeignKey("builds.id"), primary_key=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
