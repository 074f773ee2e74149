"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_clients(db: Session, organisation_id: int, offset: int, limit: int) -> tuple[list[Client], int]:
        """One page of a tenant's clients plus the total count"""
        query = db.query(Client).filter(Client.organisation_id == organisation_id)
        total = query.count()
        clients = query.order_by(Client.id.asc()).offset(offset).limit(limit).all()
        return clients, total

    @staticmethod
    def get_client_by_id(db: Session, client_id: int, organisation_id: int) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def find_by_email(db: Session, organisation_id: int, email: str) -> Optional[Client]:
        """Exact match on the stored (lowercase) email"""
        return (
            db.query(Client)
            .filter(Client.organisation_id == organisation_id, Client.email == email)
            .order_by(Client.id.asc())
            .first()
        )

    @staticmethod
    def find_by_phone(db: Session, organisation_id: int, phone_number: str) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.organisation_id == organisation_id, Client.phone_number == phone_number)
            .order_by(Client.id.asc())
            .first()
        )

    @staticmethod
    def create_client(db: Session, organisation_id: int, **client_data) -> Client:
        """Create a new client"""
        client = Client(organisation_id=organisation_id, **client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        """Delete a client"""
        db.delete(client)
        db.commit()
