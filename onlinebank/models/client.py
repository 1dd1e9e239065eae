"""
Bank client record.

The health subsystem only counts rows of this table; everything else is
owned by the client API.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Column, Enum as SAEnum, Integer
from sqlmodel import Field, SQLModel

from onlinebank.models.enums import Currency, Nationality

CLIENTS_TABLE = "clients"

# Shared with __mapper_args__ so the ORM bumps it and checks it on UPDATE
_version_column = Column("version", Integer, nullable=False)


def _utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class Client(SQLModel, table=True):
    __tablename__ = CLIENTS_TABLE

    id: Optional[int] = Field(default=None, primary_key=True)
    unique_id: str = Field(max_length=36, unique=True, index=True)

    last_name: str = Field(max_length=100, index=True)
    first_name: str = Field(max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100, nullable=True)
    birth_date: date

    account_number: str = Field(max_length=20, unique=True, index=True)
    # Stored as VARCHAR so the bootstrap script needs no native enum types
    currency: Currency = Field(sa_column=Column(SAEnum(Currency, native_enum=False, length=10), nullable=False))
    nationality: Nationality = Field(
        sa_column=Column(SAEnum(Nationality, native_enum=False, length=50), nullable=False)
    )
    phone_number: str = Field(max_length=50, index=True)

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    version: Optional[int] = Field(default=None, sa_column=_version_column)

    __mapper_args__ = {"version_id_col": _version_column}

    @property
    def full_name(self) -> str:
        parts = [self.last_name, self.first_name]
        if self.middle_name and self.middle_name.strip():
            parts.append(self.middle_name)
        return " ".join(parts)

    @property
    def short_name(self) -> str:
        """Last name plus initials, e.g. "Ivanov I.P."."""
        name = f"{self.last_name} {self.first_name[:1]}."
        if self.middle_name and self.middle_name.strip():
            name += f"{self.middle_name[:1]}."
        return name

    @property
    def age(self) -> int:
        today = date.today()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years
