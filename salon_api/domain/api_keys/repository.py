"""API key repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ApiKey, Organisation


class ApiKeyRepository:

    @staticmethod
    def get_organisation(db: Session, organisation_id: int) -> Optional[Organisation]:
        return db.query(Organisation).filter(Organisation.id == organisation_id).first()

    @staticmethod
    def create_organisation(db: Session, name: str, contact_email: Optional[str]) -> Organisation:
        organisation = Organisation(name=name, contact_email=contact_email)
        db.add(organisation)
        db.commit()
        db.refresh(organisation)
        return organisation

    @staticmethod
    def create_api_key(db: Session, key_id: str, hashed_key: str, organisation_id: int) -> ApiKey:
        api_key = ApiKey(key_id=key_id, hashed_key=hashed_key, organisation_id=organisation_id)
        db.add(api_key)
        db.commit()
        db.refresh(api_key)
        return api_key

    @staticmethod
    def get_api_keys(db: Session, organisation_id: int) -> list[ApiKey]:
        return (
            db.query(ApiKey)
            .filter(ApiKey.organisation_id == organisation_id)
            .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
            .all()
        )

    @staticmethod
    def get_api_key(db: Session, key_id: str, organisation_id: int) -> Optional[ApiKey]:
        return (
            db.query(ApiKey)
            .filter(ApiKey.key_id == key_id, ApiKey.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def delete_api_key(db: Session, api_key: ApiKey) -> None:
        db.delete(api_key)
        db.commit()
