"""Client service - Business logic for client operations"""

import logging

from sqlalchemy.orm import Session

from ...errors import ConflictError, NotFoundError
from ...models import Client
from ...shared.pagination import Pagination
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate, serialize_client

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def list_clients(self, organisation_id: int, pagination: Pagination) -> dict:
        clients, total = self.repo.get_clients(
            self.db, organisation_id, pagination.offset, pagination.per_page
        )
        return {
            "clients": [serialize_client(c) for c in clients],
            "meta": pagination.meta(total),
        }

    def get_client(self, client_id: int, organisation_id: int) -> Client:
        """Get a specific client"""
        client = self.repo.get_client_by_id(self.db, client_id, organisation_id)
        if not client:
            raise NotFoundError("Client not found")
        return client

    def create_client(self, data: ClientCreate, organisation_id: int) -> Client:
        """Create a new client, rejecting a duplicate email within the tenant"""
        if data.email and self.repo.find_by_email(self.db, organisation_id, data.email):
            logger.warning(f"⚠️ Client already exists for organisation {organisation_id}: {data.email}")
            raise ConflictError("Client already exists")

        logger.info(f"📥 Creating client for organisation_id: {organisation_id}")
        return self.repo.create_client(
            self.db,
            organisation_id,
            name=data.name,
            email=data.email,
            phone_number=data.phoneNumber,
        )

    def update_client(self, client_id: int, data: ClientUpdate, organisation_id: int) -> Client:
        """Update a client"""
        client = self.get_client(client_id, organisation_id)

        if data.email and data.email != client.email:
            existing = self.repo.find_by_email(self.db, organisation_id, data.email)
            if existing and existing.id != client.id:
                raise ConflictError("Client already exists")

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.email is not None:
            updates["email"] = data.email
        if data.phoneNumber is not None:
            updates["phone_number"] = data.phoneNumber

        return self.repo.update_client(self.db, client, **updates)
