"""
Tests for ClientService queries and mutations against an in-memory database.
"""

from datetime import date

import pytest
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session

from onlinebank.core.exceptions import ClientAlreadyExistsError, ClientNotFoundError
from onlinebank.models import Client, Currency, Nationality
from onlinebank.schemas import ClientCreate, ClientUpdate
from onlinebank.services.clients import ClientService, next_account_number


class TestNextAccountNumber:
    def test_first_value(self):
        assert next_account_number(None) == "10000000000000000001"

    def test_increments_and_pads(self):
        assert next_account_number("10000000000000000009") == "10000000000000000010"
        assert next_account_number("10000000000000099999") == "10000000000000100000"

    def test_malformed_restarts(self):
        assert next_account_number("123") == "10000000000000000001"
        assert next_account_number("2000000000000000000x") == "10000000000000000001"

    def test_from_table(self, test_session, sample_clients):
        assert ClientService(test_session).next_account_number() == "10000000000000000006"


class TestQueries:
    def test_get(self, test_session, sample_clients):
        service = ClientService(test_session)
        assert service.get(sample_clients[0].id).last_name == "Иванов"
        with pytest.raises(ClientNotFoundError):
            service.get(9999)

    def test_list_sorted(self, test_session, sample_clients):
        items, total, pages = ClientService(test_session).list_clients(sort="birthDate", direction="ASC", size=2)
        assert total == 5
        assert pages == 3
        assert [c.last_name for c in items] == ["Smith", "Иванов"]

    def test_list_rejects_unknown_direction(self, test_session):
        with pytest.raises(ValueError):
            ClientService(test_session).list_clients(direction="SIDEWAYS")

    def test_search_filters_combine(self, test_session, sample_clients):
        service = ClientService(test_session)
        items, total, _ = service.search(currency=Currency.RUB, nationality=Nationality.RUSSIA)
        assert total == 2
        assert {c.last_name for c in items} == {"Иванов", "Сидоров"}

    def test_search_by_account_substring(self, test_session, sample_clients):
        items, total, _ = ClientService(test_session).search(query="0000000003")
        assert total == 1
        assert items[0].last_name == "Smith"

    def test_by_age(self, test_session, sample_clients):
        today = date.today()
        service = ClientService(test_session)
        everyone = service.by_age(0, 150)
        assert len(everyone) == 5

        expected = {c.last_name for c in sample_clients if 30 <= c.age <= 45}
        assert {c.last_name for c in service.by_age(30, 45)} == expected
        assert all(c.birth_date < today for c in everyone)

    def test_by_age_rejects_negative(self, test_session):
        with pytest.raises(ValueError):
            ClientService(test_session).by_age(-1, 10)

    def test_statistics(self, test_session, sample_clients):
        service = ClientService(test_session)
        assert service.currency_statistics() == {"RUB": 3, "USD": 1, "EUR": 1}
        nationality = service.nationality_statistics()
        assert next(iter(nationality.items())) == ("RUSSIA", 2)
        assert sum(nationality.values()) == 5


class TestMutations:
    def _payload(self, **overrides):
        data = {
            "last_name": "Орлова",
            "first_name": "Вера",
            "birth_date": date(1988, 2, 29),
            "currency": Currency.USD,
            "nationality": Nationality.UKRAINE,
            "phone_number": "+380501112233",
        }
        data.update(overrides)
        return data

    def test_create_and_version(self, test_session, sample_clients):
        client = ClientService(test_session).create(ClientCreate(**self._payload()))
        assert client.account_number == "10000000000000000006"
        assert client.version == 1

    def test_create_duplicate_phone(self, test_session, sample_clients):
        with pytest.raises(ClientAlreadyExistsError):
            ClientService(test_session).create(ClientCreate(**self._payload(phone_number="+79160000001")))

    def test_duplicate_unique_id_conflict(self, test_session, sample_clients):
        data = ClientCreate(**self._payload(), unique_id=sample_clients[0].unique_id)
        with pytest.raises(ClientAlreadyExistsError, match="unique ID"):
            ClientService(test_session).create(data)

        # Session usable again after the rollback
        assert ClientService(test_session).count() == 5

    def test_update_bumps_version(self, test_session, sample_clients):
        service = ClientService(test_session)
        target = sample_clients[1]
        updated = service.update(target.id, ClientUpdate(**self._payload(phone_number=target.phone_number)))
        assert updated.last_name == "Орлова"
        assert updated.version == 2
        assert updated.account_number == "10000000000000000002"

    def test_concurrent_update_detected(self, test_engine, sample_clients):
        target_id = sample_clients[0].id
        with Session(test_engine) as first, Session(test_engine) as second:
            stale = first.get(Client, target_id)
            fresh = second.get(Client, target_id)

            fresh.first_name = "Пётр"
            second.add(fresh)
            second.commit()

            stale.first_name = "Павел"
            first.add(stale)
            with pytest.raises(StaleDataError):
                first.commit()

    def test_delete(self, test_session, sample_clients):
        service = ClientService(test_session)
        service.delete(sample_clients[0].id)
        assert service.count() == 4
        with pytest.raises(ClientNotFoundError):
            service.delete(sample_clients[0].id)

    def test_delete_all(self, test_session, sample_clients):
        service = ClientService(test_session)
        assert service.delete_all() == 5
        assert service.count() == 0
