"""
Client API Endpoints
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from onlinebank.db import get_session
from onlinebank.models import Currency, Nationality
from onlinebank.schemas import ClientCreate, ClientOut, ClientUpdate, Page
from onlinebank.services.clients import ClientService

router = APIRouter()


def _nationality_filter(value: Optional[str]) -> Optional[Nationality]:
    if not value:
        return None
    try:
        return Nationality(value.upper())
    except ValueError:
        # Unknown ISO codes fall back to OTHER
        return Nationality.from_code(value)


def _page(items, total: int, total_pages: int, page: int, size: int) -> Page[ClientOut]:
    return Page[ClientOut](
        content=[ClientOut.from_client(c) for c in items],
        page=page,
        size=size,
        total_elements=total,
        total_pages=total_pages,
    )


@router.get("", response_model=Page[ClientOut])
def list_clients(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    sort: str = "lastName",
    direction: str = "ASC",
    session: Session = Depends(get_session),
) -> Any:
    items, total, total_pages = ClientService(session).list_clients(page, size, sort, direction)
    return _page(items, total, total_pages, page, size)


@router.get("/search", response_model=Page[ClientOut])
def search_clients(
    query: Optional[str] = None,
    currency: Optional[Currency] = None,
    nationality: Optional[str] = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
) -> Any:
    """
    Filter by name/account/phone term, currency and nationality.

    ``nationality`` is either the enum name (KAZAKHSTAN) or an ISO code (KZ).
    """
    items, total, total_pages = ClientService(session).search(
        query, currency, _nationality_filter(nationality), page, size
    )
    return _page(items, total, total_pages, page, size)


@router.get("/recent", response_model=List[ClientOut])
def recent_clients(session: Session = Depends(get_session)) -> Any:
    """Ten most recently registered clients."""
    return [ClientOut.from_client(c) for c in ClientService(session).recent()]


@router.get("/statistics/currency", response_model=Dict[str, int])
def currency_statistics(session: Session = Depends(get_session)) -> Any:
    return ClientService(session).currency_statistics()


@router.get("/statistics/nationality", response_model=Dict[str, int])
def nationality_statistics(session: Session = Depends(get_session)) -> Any:
    return ClientService(session).nationality_statistics()


@router.get("/age", response_model=List[ClientOut])
def clients_by_age(
    min_age: int = Query(..., ge=0),
    max_age: int = Query(..., ge=0),
    session: Session = Depends(get_session),
) -> Any:
    return [ClientOut.from_client(c) for c in ClientService(session).by_age(min_age, max_age)]


@router.get("/account/{account_number}", response_model=ClientOut)
def get_by_account_number(account_number: str, session: Session = Depends(get_session)) -> Any:
    return ClientOut.from_client(ClientService(session).get_by_account_number(account_number))


@router.get("/unique/{unique_id}", response_model=ClientOut)
def get_by_unique_id(unique_id: str, session: Session = Depends(get_session)) -> Any:
    return ClientOut.from_client(ClientService(session).get_by_unique_id(unique_id))


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: int, session: Session = Depends(get_session)) -> Any:
    return ClientOut.from_client(ClientService(session).get(client_id))


@router.post("", response_model=ClientOut, status_code=201)
def create_client(data: ClientCreate, session: Session = Depends(get_session)) -> Any:
    """Create a client; unique id and account number are generated when absent."""
    return ClientOut.from_client(ClientService(session).create(data))


@router.put("/{client_id}", response_model=ClientOut)
def update_client(client_id: int, data: ClientUpdate, session: Session = Depends(get_session)) -> Any:
    return ClientOut.from_client(ClientService(session).update(client_id, data))


@router.delete("/{client_id}", status_code=204)
def delete_client(client_id: int, session: Session = Depends(get_session)) -> Response:
    ClientService(session).delete(client_id)
    return Response(status_code=204)
