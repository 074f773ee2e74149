"""
Booking service - Booking creation orchestration and booking reads

Creating a booking runs these steps in order:

1. resolve the client by email, then phone, otherwise insert a new one
2. reject an existing booking with the identical start time (409)
3. look up the treatment duration and derive the end time
4. insert the booking
5. email the confirmation
6. invalidate booking and availability caches

A failed insert deletes a client created in step 1. A failed email deletes
the booking but keeps the client. Any new client that is kept, whichever
step failed, invalidates the client list. The start-time check is advisory: two
concurrent requests can both pass it, and the unique constraint on
(organisation_id, appointment_start_time) rejects the second insert.
"""

import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...background import BackgroundDispatcher
from ...cache import Cache
from ...email_service import send_booking_confirmation
from ...errors import EmailSendFailed, InternalError, NotFoundError, SlotTaken, TreatmentNotFound
from ...invalidation import CacheEvent, emit
from ...models import Booking, Client
from ...shared.pagination import Pagination
from ..clients.repository import ClientRepository
from ..clients.schemas import serialize_client
from .repository import BookingRepository
from .schemas import BookingCreate, serialize_booking

logger = logging.getLogger(__name__)

Notifier = Callable[..., Awaitable[object]]


class BookingService:
    """Service layer for booking business logic"""

    def __init__(
        self,
        db: Session,
        cache: Optional[Cache] = None,
        dispatcher: Optional[BackgroundDispatcher] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.clients = ClientRepository()
        self.cache = cache
        self.dispatcher = dispatcher
        self.notifier = notifier or send_booking_confirmation

    def _invalidate(self, event: CacheEvent) -> None:
        if self.cache is not None and self.dispatcher is not None:
            emit(event, self.cache, self.dispatcher)

    # ========================================================================
    # CREATE
    # ========================================================================

    def _resolve_client(self, organisation_id: int, data: BookingCreate) -> tuple[Client, bool]:
        """Existing client by email, then by phone, otherwise a new one"""
        client = None
        if data.email:
            try:
                client = self.clients.find_by_email(self.db, organisation_id, data.email)
            except SQLAlchemyError as e:
                logger.error(f"❌ Client lookup by email failed: {e}")
                raise InternalError("Failed to query client by email", details=str(e)) from e

        if client is None and data.phone:
            try:
                client = self.clients.find_by_phone(self.db, organisation_id, data.phone)
            except SQLAlchemyError as e:
                logger.error(f"❌ Client lookup by phone failed: {e}")
                raise InternalError("Failed to query client by phone", details=str(e)) from e

        if client is not None:
            return client, False

        try:
            client = self.clients.create_client(
                self.db,
                organisation_id,
                name=data.name,
                email=data.email,
                phone_number=data.phone,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Client creation failed: {e}")
            raise InternalError("Failed to create client", details=str(e)) from e

        logger.info(f"👤 New client {client.id} created for organisation {organisation_id}")
        return client, True

    def _compensate_client(self, client: Client) -> bool:
        try:
            self.clients.delete_client(self.db, client)
            logger.info(f"↩️ Rolled back new client {client.id}")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to roll back client {client.id}: {e}")
            return False

    def _compensate_booking(self, booking: Booking) -> None:
        try:
            self.repo.delete_booking(self.db, booking)
            logger.info(f"↩️ Rolled back booking {booking.id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to roll back booking {booking.id}: {e}")

    async def create_booking(self, organisation_id: int, data: BookingCreate) -> dict:
        """
        Create a booking and send its confirmation.

        Raises:
            SlotTaken: a booking with the same start time already exists
            TreatmentNotFound: treatment missing for the tenant
            EmailSendFailed: confirmation could not be sent (booking removed)
            InternalError: persistence failure
        """
        logger.info(f"📥 Booking request for organisation {organisation_id}, treatment {data.treatmentId}")

        client, new_client_created = self._resolve_client(organisation_id, data)
        client_removed = False
        start = data.appointmentStartTime

        try:
            try:
                conflicting = self.repo.find_by_start_time(self.db, organisation_id, start)
            except SQLAlchemyError as e:
                raise InternalError("Failed to verify booking availability", details=str(e)) from e
            if conflicting:
                logger.warning(f"⚠️ Start time {start.isoformat()} already booked for organisation {organisation_id}")
                raise SlotTaken()

            try:
                treatment = self.repo.get_treatment(self.db, organisation_id, data.treatmentId)
            except SQLAlchemyError as e:
                raise InternalError("Failed to fetch treatment duration", details=str(e)) from e
            if not treatment:
                raise TreatmentNotFound()

            end = start + timedelta(minutes=treatment.duration_in_minutes)

            try:
                booking = self.repo.create_booking(
                    self.db,
                    organisation_id,
                    client_id=client.id,
                    treatment_id=treatment.id,
                    staff_id=data.staffId,
                    appointment_start_time=start,
                    appointment_end_time=end,
                    message=data.message,
                )
            except IntegrityError as e:
                logger.warning(f"⚠️ Booking insert rejected by unique constraint: {e}")
                if new_client_created:
                    client_removed = self._compensate_client(client)
                raise SlotTaken() from e
            except SQLAlchemyError as e:
                logger.error(f"❌ Booking insert failed: {e}")
                if new_client_created:
                    client_removed = self._compensate_client(client)
                raise InternalError("Failed to create booking", details=str(e)) from e

            try:
                await self.notifier(
                    to=data.email,
                    name=data.name,
                    treatment_name=treatment.name,
                    price=treatment.price,
                    appointment_start=start,
                    message=data.message,
                )
            except Exception as e:
                logger.error(f"❌ Error sending booking confirmation for booking {booking.id}: {e}")
                # The client stays even if it was created for this booking
                self._compensate_booking(booking)
                raise EmailSendFailed() from e

            self._invalidate(CacheEvent.BOOKING_CREATED)
        finally:
            # A new client outlives a 409, a 404 and a failed email
            if new_client_created and not client_removed:
                self._invalidate(CacheEvent.CLIENT_CREATED)

        logger.info(f"✅ Booking {booking.id} created for client {client.id}")
        booking_payload = {
            "id": booking.id,
            "message": booking.message,
            "client": serialize_client(client),
            "treatmentId": booking.treatment_id,
            "appointmentStartTime": booking.appointment_start_time.isoformat(),
            "appointmentEndTime": booking.appointment_end_time.isoformat(),
            "newClient": new_client_created,
        }
        if booking.staff_id is not None:
            booking_payload["staffId"] = booking.staff_id
        return {"message": "Booking created", "booking": booking_payload}

    # ========================================================================
    # READ / UPDATE
    # ========================================================================

    def list_bookings(self, organisation_id: int, pagination: Pagination) -> dict:
        bookings, total = self.repo.get_bookings(
            self.db, organisation_id, pagination.offset, pagination.per_page
        )
        return {
            "bookings": [serialize_booking(b) for b in bookings],
            "meta": pagination.meta(total),
        }

    def get_booking(self, booking_id: int, organisation_id: int) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, booking_id, organisation_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_client_bookings(self, client_id: int, organisation_id: int) -> dict:
        bookings = self.repo.get_bookings_by_client(self.db, client_id, organisation_id)
        return {"clientId": client_id, "bookings": [serialize_booking(b) for b in bookings]}

    def update_status(self, booking_id: int, organisation_id: int, status: str) -> Booking:
        booking = self.get_booking(booking_id, organisation_id)
        booking = self.repo.update_status(self.db, booking, status)
        self._invalidate(CacheEvent.BOOKING_UPDATED)
        logger.info(f"✅ Booking {booking_id} status -> {status}")
        return booking
