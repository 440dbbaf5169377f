"""Client service - minimal create/read so quotes have an owner."""

from uuid import UUID

from sqlalchemy.orm import Session

from backoffice.db.models import Client
from backoffice.schemas.client import ClientCreate
from backoffice.services.errors import NotFoundError


def create_client(db: Session, data: ClientCreate) -> Client:
    client = Client(**data.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def get_client(db: Session, client_id: UUID) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError("Client not found")
    return client


def list_clients(db: Session) -> list[Client]:
    return db.query(Client).order_by(Client.name).all()
