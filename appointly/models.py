from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled")


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(String(255), index=True, nullable=False)  # Subject of the owner's JWT
    name = Column(String(255), nullable=False)
    username = Column(String(50), unique=True, index=True, nullable=False)  # Public booking link slug
    timezone = Column(String(64), nullable=False, default="UTC")  # IANA name, drives day boundaries
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branches = relationship("Branch", back_populates="business", cascade="all, delete-orphan")
    workers = relationship("Worker", back_populates="business", cascade="all, delete-orphan")


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)

    business = relationship("Business", back_populates="branches")


class Worker(Base):
    __tablename__ = "workers"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)

    business = relationship("Business", back_populates="workers")


class ScheduleRule(Base):
    """Weekly recurring availability window for one calendar"""

    __tablename__ = "schedule_rules"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=True)
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="CASCADE"), nullable=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday ... 6=Saturday
    start_time = Column(Time, nullable=False)  # Wall clock in the business timezone
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_schedule_rules_business_day", "business_id", "day_of_week"),)


class ExceptionRule(Base):
    """Date-specific override: full closure or a custom open window replacing the weekly one"""

    __tablename__ = "exception_rules"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=True)
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="CASCADE"), nullable=True)
    date = Column(Date, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=True)  # Ignored when is_closed
    end_time = Column(Time, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (Index("ix_exception_rules_business_date", "business_id", "date"),)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String(100), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(20), nullable=True)
    start_time = Column(DateTime, nullable=False)  # Naive UTC
    end_time = Column(DateTime, nullable=False)  # Naive UTC
    status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, cancelled
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business")
    tokens = relationship("TemporaryToken", back_populates="appointment", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_appointments_business_start", "business_id", "start_time"),
        Index("ix_appointments_status", "status"),
    )


class TemporaryToken(Base):
    """Single-use credential letting an unauthenticated client manage one appointment"""

    __tablename__ = "temporary_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, index=True, nullable=False)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_email = Column(String(255), nullable=False)
    expires_at = Column(DateTime, nullable=False)  # Naive UTC
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="tokens")


class PrecomputedSlot(Base):
    """Cached compute_slots output for one (scope, date). Disposable."""

    __tablename__ = "precomputed_slots"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, nullable=True)
    worker_id = Column(Integer, nullable=True)
    date = Column(Date, nullable=False)  # Business-local date
    start_time = Column(DateTime, nullable=False)  # Naive UTC
    end_time = Column(DateTime, nullable=False)
    slot_branch_id = Column(Integer, nullable=True)  # Branch the slot belongs to, if any
    slot_worker_id = Column(Integer, nullable=True)  # Worker the slot belongs to, if any

    __table_args__ = (Index("ix_precomputed_slots_business_date", "business_id", "date"),)


class PrecomputedDay(Base):
    """Marks a (scope, date) as materialised so empty days are distinguishable from missing ones"""

    __tablename__ = "precomputed_days"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, nullable=True)
    worker_id = Column(Integer, nullable=True)
    date = Column(Date, nullable=False)
    computed_at = Column(DateTime, nullable=False)  # Naive UTC

    __table_args__ = (Index("ix_precomputed_days_business_date", "business_id", "date"),)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(50), nullable=False)  # create, update, delete
    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=False)
    business_id = Column(Integer, nullable=True, index=True)
    user_id = Column(String(255), nullable=True)  # None when the actor is a token-holding client
    created_at = Column(DateTime, server_default=func.now(), index=True)
