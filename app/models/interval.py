from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, text

from ..db.session import Base

OPEN_INTERVAL_INDEX = "uq_sessions_open_per_user"
USER_DATE_INDEX = "idx_sessions_user_date"


class WorkInterval(Base):
    __tablename__ = "sessions"
    __table_args__ = (
        # At most one open interval per user; the database enforces it.
        Index(
            OPEN_INTERVAL_INDEX,
            "user_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
        Index(USER_DATE_INDEX, "user_id", "start_time"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.end_time is None
