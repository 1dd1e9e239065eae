from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from onlinebank.models.enums import Currency, Nationality

T = TypeVar("T")

# Letters (any script), whitespace, apostrophes and hyphens
NAME_PATTERN = r"^(?:[^\W\d_]|[\s'-])+$"
ACCOUNT_NUMBER_PATTERN = r"^\d{20}$"
E164_PATTERN = r"^\+[1-9]\d{1,14}$"


class ClientBase(BaseModel):
    last_name: str = Field(min_length=2, max_length=100, pattern=NAME_PATTERN)
    first_name: str = Field(min_length=2, max_length=100, pattern=NAME_PATTERN)
    middle_name: Optional[str] = Field(default=None, max_length=100, pattern=NAME_PATTERN)
    birth_date: date
    account_number: Optional[str] = Field(default=None, pattern=ACCOUNT_NUMBER_PATTERN)
    currency: Currency
    nationality: Nationality
    phone_number: str = Field(pattern=E164_PATTERN)

    @field_validator("last_name", "first_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("middle_name")
    @classmethod
    def blank_middle_name_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_past(cls, value: date) -> date:
        if value >= date.today():
            raise ValueError("birth date must be in the past")
        return value


class ClientCreate(ClientBase):
    unique_id: Optional[str] = Field(default=None, max_length=36)


class ClientUpdate(ClientBase):
    pass


class ClientOut(BaseModel):
    id: int
    unique_id: str
    last_name: str
    first_name: str
    middle_name: Optional[str] = None
    full_name: str
    short_name: str
    birth_date: date
    age: int
    account_number: str
    formatted_account_number: str
    currency: Currency
    currency_display: str
    currency_numeric_code: str
    nationality: Nationality
    nationality_code: str
    nationality_display: str
    is_cis_citizen: bool
    is_eu_citizen: bool
    phone_number: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_client(cls, client) -> "ClientOut":
        account = client.account_number
        if len(account) == 20:
            # XXXX XXXX XXXX XXXX XXXX
            formatted = " ".join(account[i:i + 4] for i in range(0, 20, 4))
        else:
            formatted = account

        return cls(
            id=client.id,
            unique_id=client.unique_id,
            last_name=client.last_name,
            first_name=client.first_name,
            middle_name=client.middle_name,
            full_name=client.full_name,
            short_name=client.short_name,
            birth_date=client.birth_date,
            age=client.age,
            account_number=account,
            formatted_account_number=formatted,
            currency=client.currency,
            currency_display=client.currency.label,
            currency_numeric_code=client.currency.numeric_code,
            nationality=client.nationality,
            nationality_code=client.nationality.code,
            nationality_display=f"{client.nationality.flag} {client.nationality.short_name}",
            is_cis_citizen=client.nationality.is_cis,
            is_eu_citizen=client.nationality.is_eu,
            phone_number=client.phone_number,
            created_at=client.created_at,
            updated_at=client.updated_at,
        )


class Page(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
