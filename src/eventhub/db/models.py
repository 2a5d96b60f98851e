"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Column types are the dialect-neutral ones
(Uuid, DateTime) so the same models run on PostgreSQL and SQLite.

Key concepts:
- UUID primary keys for entities (instances create rows independently)
- Integer autoincrement ids for change_notifications: the id IS the
  log order every instance tails
- Python-side timestamp defaults, so SQLite and PostgreSQL agree on tz handling
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


PARTICIPANT_STATUSES = ("registered", "confirmed", "cancelled", "waitlisted")


# ══════════════════════════════════════════════════════════════
# Entities
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """A scheduled event people can register for."""

    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="valid_time_range"),
        CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="valid_max_participants",
        ),
        Index("idx_events_start_time", "start_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    participants: Mapped[list["Participant"]] = relationship(
        back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )


class Participant(Base):
    """A person registered for one event.

    Learn: (event_id, email) is unique — the same email can register for
    many events but only once per event. Deleting the event cascades.
    """

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="unique_event_participant"),
        Index("idx_participants_event_id", "event_id"),
        Index("idx_participants_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="registered"
    )  # registered, confirmed, cancelled, waitlisted
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    event: Mapped["Event"] = relationship(back_populates="participants")


# ══════════════════════════════════════════════════════════════
# Cross-instance change log
# ══════════════════════════════════════════════════════════════


class ChangeNotification(Base):
    """Append-only change log shared by every API instance.

    Learn: Rows are never updated. Ids are assigned by the database on
    insert and never reused (AUTOINCREMENT on SQLite, a sequence on
    PostgreSQL). The only delete is the age-based prune.
    """

    __tablename__ = "change_notifications"
    __table_args__ = (
        Index("idx_change_notifications_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
