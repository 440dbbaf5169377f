"""Client endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.schemas.client import ClientCreate, ClientRead
from backoffice.services import client_service
from backoffice.services.errors import NotFoundError

router = APIRouter()


@router.get("", response_model=list[ClientRead])
def list_clients(db: Session = Depends(get_db)):
    return client_service.list_clients(db)


@router.post("", response_model=ClientRead, status_code=201)
def create_client(data: ClientCreate, db: Session = Depends(get_db)):
    return client_service.create_client(db, data)


@router.get("/{client_id}", response_model=ClientRead)
def get_client(client_id: UUID, db: Session = Depends(get_db)):
    try:
        return client_service.get_client(db, client_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
