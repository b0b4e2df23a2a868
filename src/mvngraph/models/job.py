"""Job and build models."""

from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Integer, BigInteger, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from mvngraph.core.database import Base
import enum

# utf8mb4 keys are limited to 3072 bytes on InnoDB
JOB_NAME_MAX_LENGTH = 768


class BuildResult(enum.IntEnum):
    """Build result ordinals as reported by the orchestrator."""
    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2
    NOT_BUILT = 3
    ABORTED = 4


class Job(Base):
    """A CI job, identified by its full hierarchical name (e.g. ``folder/my-app``)."""
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(JOB_NAME_MAX_LENGTH), unique=True, nullable=False, index=True)
    last_build_number: Mapped[int | None] = mapped_column(Integer, nullable=True)  # last completed
    last_successful_build_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Build(Base):
    __tablename__ = "builds"
    __table_args__ = (UniqueConstraint("job_id", "number", name="uq_builds_job_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    result_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # BuildResult ordinal
    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
