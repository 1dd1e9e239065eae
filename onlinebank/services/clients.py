"""
Client Service

Record-store operations behind the /api/clients endpoints. Every method
works on the session it was given; commits happen only in the mutating
methods.
"""

import math
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from onlinebank.core.exceptions import ClientAlreadyExistsError, ClientNotFoundError
from onlinebank.models import Client, Currency, Nationality
from onlinebank.schemas import ClientCreate, ClientUpdate

logger = structlog.get_logger(__name__)

FIRST_ACCOUNT_NUMBER = "10000000000000000001"
ACCOUNT_NUMBER_LENGTH = 20
RECENT_LIMIT = 10
MAX_PAGE_SIZE = 100

# API sort keys (both spellings accepted) -> column
SORTABLE_FIELDS = {
    "id": Client.id,
    "lastName": Client.last_name,
    "last_name": Client.last_name,
    "firstName": Client.first_name,
    "first_name": Client.first_name,
    "birthDate": Client.birth_date,
    "birth_date": Client.birth_date,
    "accountNumber": Client.account_number,
    "account_number": Client.account_number,
    "currency": Client.currency,
    "nationality": Client.nationality,
    "createdAt": Client.created_at,
    "created_at": Client.created_at,
}


def _years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


def next_account_number(current_max: Optional[str]) -> str:
    """
    Account number following ``current_max``.

    Numbers are "1" followed by 19 zero-padded digits; an absent or
    malformed maximum restarts the sequence at 10000000000000000001.
    """
    if (
        not current_max
        or len(current_max) != ACCOUNT_NUMBER_LENGTH
        or not current_max.isdigit()
        or not current_max.startswith("1")
    ):
        return FIRST_ACCOUNT_NUMBER
    return "1" + str(int(current_max[1:]) + 1).zfill(ACCOUNT_NUMBER_LENGTH - 1)


class ClientService:
    def __init__(self, session: Session):
        self.session = session

    # ================================================================ queries

    def _paginate(self, statement, count_statement, page: int, size: int) -> Tuple[List[Client], int, int]:
        if page < 0:
            raise ValueError("page must be >= 0")
        if size < 1 or size > MAX_PAGE_SIZE:
            raise ValueError(f"size must be between 1 and {MAX_PAGE_SIZE}")

        total = self.session.exec(count_statement).one()
        items = self.session.exec(statement.offset(page * size).limit(size)).all()
        total_pages = math.ceil(total / size) if total else 0
        return list(items), total, total_pages

    def list_clients(
        self, page: int = 0, size: int = 20, sort: str = "lastName", direction: str = "ASC"
    ) -> Tuple[List[Client], int, int]:
        """Returns (items, total_elements, total_pages)."""
        column = SORTABLE_FIELDS.get(sort)
        if column is None:
            raise ValueError(f"Cannot sort by '{sort}'")
        if direction.upper() not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort direction '{direction}'")

        order = column.desc() if direction.upper() == "DESC" else column.asc()
        statement = select(Client).order_by(order, Client.id)
        count_statement = select(func.count()).select_from(Client)
        return self._paginate(statement, count_statement, page, size)

    def search(
        self,
        query: Optional[str] = None,
        currency: Optional[Currency] = None,
        nationality: Optional[Nationality] = None,
        page: int = 0,
        size: int = 20,
    ) -> Tuple[List[Client], int, int]:
        """
        Filter by free-text term, currency and nationality.

        The term matches names case-insensitively and account/phone numbers
        by substring. Missing filters are ignored.
        """
        conditions = []
        if query and query.strip():
            term = query.strip()
            pattern = f"%{term.lower()}%"
            conditions.append(
                or_(
                    func.lower(Client.last_name).like(pattern),
                    func.lower(Client.first_name).like(pattern),
                    func.lower(Client.middle_name).like(pattern),
                    Client.account_number.contains(term),
                    Client.phone_number.contains(term),
                )
            )
        if currency is not None:
            conditions.append(Client.currency == currency)
        if nationality is not None:
            conditions.append(Client.nationality == nationality)

        statement = select(Client).where(*conditions).order_by(Client.last_name, Client.id)
        count_statement = select(func.count()).select_from(Client).where(*conditions)
        return self._paginate(statement, count_statement, page, size)

    def get(self, client_id: int) -> Client:
        client = self.session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError.by_id(client_id)
        return client

    def get_by_unique_id(self, unique_id: str) -> Client:
        client = self.session.exec(select(Client).where(Client.unique_id == unique_id)).first()
        if client is None:
            raise ClientNotFoundError(f"Client with unique ID {unique_id} not found")
        return client

    def get_by_account_number(self, account_number: str) -> Client:
        client = self.session.exec(select(Client).where(Client.account_number == account_number)).first()
        if client is None:
            raise ClientNotFoundError(f"Client with account number {account_number} not found")
        return client

    def account_number_exists(self, account_number: str) -> bool:
        return self.session.exec(
            select(Client.id).where(Client.account_number == account_number)
        ).first() is not None

    def phone_number_exists(self, phone_number: str) -> bool:
        return self.session.exec(
            select(Client.id).where(Client.phone_number == phone_number)
        ).first() is not None

    def by_age(self, min_age: int, max_age: int) -> List[Client]:
        """Clients whose age in full years is within [min_age, max_age]."""
        if min_age < 0 or max_age < 0:
            raise ValueError("age bounds must be non-negative")
        if min_age > max_age:
            raise ValueError("min_age must not exceed max_age")

        today = date.today()
        latest_birth = _years_ago(today, min_age)
        earliest_birth = _years_ago(today, max_age + 1) + timedelta(days=1)
        statement = (
            select(Client)
            .where(Client.birth_date >= earliest_birth, Client.birth_date <= latest_birth)
            .order_by(Client.birth_date.desc(), Client.id)
        )
        return list(self.session.exec(statement).all())

    def recent(self, limit: int = RECENT_LIMIT) -> List[Client]:
        statement = select(Client).order_by(Client.created_at.desc(), Client.id.desc()).limit(limit)
        return list(self.session.exec(statement).all())

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(Client)).one()

    def currency_statistics(self) -> Dict[str, int]:
        rows = self.session.exec(select(Client.currency, func.count()).group_by(Client.currency)).all()
        return {currency.value: count for currency, count in rows}

    def nationality_statistics(self) -> Dict[str, int]:
        """Counts per nationality, most common first."""
        count = func.count().label("count")
        rows = self.session.exec(
            select(Client.nationality, count).group_by(Client.nationality).order_by(count.desc())
        ).all()
        return {nationality.value: n for nationality, n in rows}

    def next_account_number(self) -> str:
        current_max = self.session.exec(
            select(func.max(Client.account_number)).where(
                Client.account_number.like("1%"),
                func.length(Client.account_number) == ACCOUNT_NUMBER_LENGTH,
            )
        ).one()
        return next_account_number(current_max)

    # ============================================================== mutations

    def create(self, data: ClientCreate) -> Client:
        logger.info("Creating client", last_name=data.last_name, first_name=data.first_name)

        if data.account_number and self.account_number_exists(data.account_number):
            raise ClientAlreadyExistsError(f"Client with account number {data.account_number} already exists")
        if self.phone_number_exists(data.phone_number):
            raise ClientAlreadyExistsError(f"Client with phone number {data.phone_number} already exists")

        client = Client(
            unique_id=data.unique_id or str(uuid.uuid4()),
            last_name=data.last_name,
            first_name=data.first_name,
            middle_name=data.middle_name,
            birth_date=data.birth_date,
            account_number=data.account_number or self.next_account_number(),
            currency=data.currency,
            nationality=data.nationality,
            phone_number=data.phone_number,
        )
        self._commit(client)
        logger.info("Client created", client_id=client.id)
        return client

    def update(self, client_id: int, data: ClientUpdate) -> Client:
        logger.info("Updating client", client_id=client_id)
        client = self.get(client_id)

        if (
            data.account_number
            and data.account_number != client.account_number
            and self.account_number_exists(data.account_number)
        ):
            raise ClientAlreadyExistsError(f"Client with account number {data.account_number} already exists")
        if data.phone_number != client.phone_number and self.phone_number_exists(data.phone_number):
            raise ClientAlreadyExistsError(f"Client with phone number {data.phone_number} already exists")

        client.last_name = data.last_name
        client.first_name = data.first_name
        client.middle_name = data.middle_name
        client.birth_date = data.birth_date
        client.currency = data.currency
        client.nationality = data.nationality
        client.phone_number = data.phone_number
        # Account number and unique id normally never change
        if data.account_number:
            client.account_number = data.account_number
        client.updated_at = datetime.now(timezone.utc)

        self._commit(client)
        return client

    def delete(self, client_id: int) -> None:
        logger.info("Deleting client", client_id=client_id)
        client = self.get(client_id)
        self.session.delete(client)
        self.session.commit()

    def delete_all(self) -> int:
        """Remove every client. Returns the number of rows deleted."""
        clients = self.session.exec(select(Client)).all()
        for client in clients:
            self.session.delete(client)
        self.session.commit()
        return len(clients)

    def _commit(self, client: Client) -> None:
        self.session.add(client)
        try:
            self.session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same account number or unique id
            self.session.rollback()
            raise ClientAlreadyExistsError("Client with the same account number or unique ID already exists") from e
        self.session.refresh(client)
