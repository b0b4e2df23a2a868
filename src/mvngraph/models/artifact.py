"""Maven coordinate model — one row per distinct coordinate tuple."""

import hashlib
import json

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from mvngraph.core.database import Base


def coordinate_key(
    group_id: str,
    artifact_id: str,
    version: str,
    base_version: str | None,
    type: str,
    classifier: str | None,
) -> str:
    """SHA-256 of the canonical JSON coordinate; keeps ``None`` distinct from ``""``."""
    canonical = json.dumps([group_id, artifact_id, version, base_version, type, classifier], separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class MavenArtifactRecord(Base):
    __tablename__ = "maven_artifacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coordinate_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    group_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    artifact_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    version: Mapped[str] = mapped_column(String(255), nullable=False)
    base_version: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    classifier: Mapped[str | None] = mapped_column(String(255), nullable=True)
