from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Organisation(Base):
    __tablename__ = "organisations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    api_keys = relationship("ApiKey", back_populates="organisation", cascade="all, delete-orphan")
    opening_hours = relationship(
        "OpeningHours", back_populates="organisation", cascade="all, delete-orphan"
    )


class ApiKey(Base):
    """Only the Argon2id hash of the full credential is stored; the plaintext is shown once."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    key_id = Column(String(36), unique=True, index=True, nullable=False)
    hashed_key = Column(String(255), nullable=False)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    organisation = relationship("Organisation", back_populates="api_keys")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)  # stored lowercase
    phone_number = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    bookings = relationship("Booking", back_populates="client")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False)


class TreatmentCategory(Base):
    __tablename__ = "treatment_categories"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    treatments = relationship("Treatment", back_populates="category")


class Treatment(Base):
    __tablename__ = "treatments"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("treatment_categories.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True)  # sale price including tax
    duration_in_minutes = Column(Integer, nullable=False)
    show_on_web = Column(Boolean, default=True, nullable=False)

    category = relationship("TreatmentCategory", back_populates="treatments")


class OpeningHours(Base):
    __tablename__ = "opening_hours"
    __table_args__ = (UniqueConstraint("organisation_id", "day", name="uq_opening_hours_day"),)

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=False, index=True)
    day = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    opens_at = Column(String(20), nullable=False)  # "HH:MM[:SS][+TZ]", tenant wall-clock
    closes_at = Column(String(20), nullable=False)

    organisation = relationship("Organisation", back_populates="opening_hours")


class Booking(Base):
    __tablename__ = "bookings"
    # Backstop for two requests racing past the start-time conflict check
    __table_args__ = (
        UniqueConstraint(
            "organisation_id", "appointment_start_time", name="uq_booking_org_start_time"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(Integer, ForeignKey("organisations.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    treatment_id = Column(Integer, ForeignKey("treatments.id"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=True)
    # Naive tenant-local wall-clock times
    appointment_start_time = Column(DateTime, nullable=False, index=True)
    appointment_end_time = Column(DateTime, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(20), default="requested", nullable=False)  # requested, confirmed, partial
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    client = relationship("Client", back_populates="bookings")
    treatment = relationship("Treatment")
