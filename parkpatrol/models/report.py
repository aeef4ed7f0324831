"""Report model for user-submitted parking patrol sightings."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from parkpatrol.database import Base


class Report(Base):
    """
    A single alert dropped on the map.

    Rows are append/delete only; nothing updates a report after creation.
    """

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True)

    # UTC creation time
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Reverse-geocoded place name, None when unresolved
    location: Mapped[str | None] = mapped_column(String(255))

    __table_args__ = (
        # Newest-first listing and cursor pagination
        Index("idx_reports_cursor", timestamp.desc(), id.desc()),
        Index("idx_reports_coords", latitude, longitude),
    )

    def __repr__(self) -> str:
        return f"<Report {self.id}: {self.latitude}, {self.longitude}>"
