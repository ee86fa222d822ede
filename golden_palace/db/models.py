from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Reservation(Base):
    """A table booking. Rows are written once and never updated."""

    __tablename__ = "reservation"
    # the phone pattern check lives in the migration; it is PostgreSQL-only
    __table_args__ = (
        CheckConstraint("first_name <> '' AND last_name <> ''", name="reservation_names_present"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(30), nullable=False)
    last_name: Mapped[str] = mapped_column(String(30), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    phone: Mapped[str] = mapped_column(String(15), nullable=False)
    # stored exactly as submitted
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    time: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.id} {self.first_name} {self.last_name} {self.date} {self.time}>"
