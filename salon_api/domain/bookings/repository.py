"""Booking repository - Database operations for bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Treatment


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def find_by_start_time(db: Session, organisation_id: int, start: datetime) -> Optional[Booking]:
        """Exact match on the appointment start time within the tenant"""
        return (
            db.query(Booking)
            .filter(
                Booking.organisation_id == organisation_id,
                Booking.appointment_start_time == start,
            )
            .first()
        )

    @staticmethod
    def get_treatment(db: Session, organisation_id: int, treatment_id: int) -> Optional[Treatment]:
        return (
            db.query(Treatment)
            .filter(Treatment.id == treatment_id, Treatment.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def create_booking(db: Session, organisation_id: int, **booking_data) -> Booking:
        """Insert a booking; the session is rolled back if the insert fails"""
        booking = Booking(organisation_id=organisation_id, **booking_data)
        db.add(booking)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

    @staticmethod
    def _with_relations(db: Session):
        return db.query(Booking).options(joinedload(Booking.client), joinedload(Booking.treatment))

    @staticmethod
    def get_bookings(db: Session, organisation_id: int, offset: int, limit: int) -> tuple[list[Booking], int]:
        """One page of bookings, soonest first, plus the total count"""
        total = db.query(Booking).filter(Booking.organisation_id == organisation_id).count()
        bookings = (
            BookingRepository._with_relations(db)
            .filter(Booking.organisation_id == organisation_id)
            .order_by(Booking.appointment_start_time.asc(), Booking.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return bookings, total

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: int, organisation_id: int) -> Optional[Booking]:
        return (
            BookingRepository._with_relations(db)
            .filter(Booking.id == booking_id, Booking.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def get_bookings_by_client(db: Session, client_id: int, organisation_id: int) -> list[Booking]:
        return (
            BookingRepository._with_relations(db)
            .filter(Booking.client_id == client_id, Booking.organisation_id == organisation_id)
            .order_by(Booking.appointment_start_time.asc())
            .all()
        )

    @staticmethod
    def update_status(db: Session, booking: Booking, status: str) -> Booking:
        booking.status = status
        db.commit()
        db.refresh(booking)
        return booking
