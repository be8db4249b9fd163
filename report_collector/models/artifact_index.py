"""Artifact index record: per (org, app) map of report locations."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from report_collector.database import Base


class ArtifactIndexRecord(Base):
    """Shared record mapping versions to the reports uploaded for them."""

    __tablename__ = "artifact_index_records"

    __table_args__ = (UniqueConstraint("org", "app", name="uq_artifact_index_org_app"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org: Mapped[str] = mapped_column(String(255), nullable=False)
    app: Mapped[str] = mapped_column(String(255), nullable=False)

    # {"<version>": [{"filename": ..., "url": ...}, ...]}
    versions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Optimistic concurrency token, bumped on every write
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ArtifactIndexRecord(id={self.id}, org='{self.org}', "
            f"app='{self.app}', revision={self.revision})>"
        )
