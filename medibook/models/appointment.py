"""Appointment model definitions."""

from enum import Enum

from sqlalchemy import Column, DateTime, Index, Integer, String, text

from medibook.database import Base


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


class Appointment(Base):
    """Represents a reservation of one provider slot by a requester."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_provider_time', 'provider_id', 'scheduled_at'),
        # At most one live booking per provider and grid cell.
        Index(
            'uq_appointments_provider_slot_active',
            'provider_id',
            'slot_start',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    scheduled_at = Column(DateTime, nullable=False)  # naive UTC
    slot_start = Column(DateTime, nullable=False)  # naive UTC
    note = Column(String)
    provider_id = Column(Integer, nullable=False, index=True)
    requester_id = Column(Integer, nullable=False, index=True)
