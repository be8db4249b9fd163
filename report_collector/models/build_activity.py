"""Build activity record, owned by the build system."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from report_collector.database import Base


class BuildActivityRecord(Base):
    """Per-build record annotated with links to uploaded reports."""

    __tablename__ = "build_activity_records"

    __table_args__ = (
        UniqueConstraint(
            "org", "app", "branch", "build_number", name="uq_build_activity_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org: Mapped[str] = mapped_column(String(255), nullable=False)
    app: Mapped[str] = mapped_column(String(255), nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    build_number: Mapped[str] = mapped_column(String(100), nullable=False)

    # [{"filename": ..., "url": ...}, ...], append-only
    annotations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

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
            f"<BuildActivityRecord(id={self.id}, org='{self.org}', app='{self.app}', "
            f"branch='{self.branch}', build_number='{self.build_number}')>"
        )
