from .client import Client, CLIENTS_TABLE
from .enums import Currency, Nationality

__all__ = [
    "Client",
    "CLIENTS_TABLE",
    "Currency",
    "Nationality",
]
