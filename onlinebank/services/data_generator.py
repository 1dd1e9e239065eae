"""
Realistic test data for the clients table.

Names are Russian (male/female forms with patronymics), phone numbers
follow each country's E.164 layout, and currency / nationality follow a
weighted distribution close to the bank's real client base.

Usage:
    generator = ClientDataGenerator(seed=42)
    client = generator.client(account_number="10000000000000000001")
"""

import random
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from onlinebank.models import Client, Currency, Nationality

MIN_AGE = 18
MAX_AGE = 80

MALE_FIRST_NAMES = [
    "Александр", "Сергей", "Владимир", "Андрей", "Алексей", "Дмитрий", "Михаил",
    "Иван", "Максим", "Николай", "Евгений", "Павел", "Артем", "Виктор", "Константин",
    "Игорь", "Олег", "Роман", "Денис", "Антон", "Илья", "Юрий", "Григорий", "Василий",
    "Петр", "Егор", "Георгий", "Кирилл", "Арсений", "Леонид",
]

FEMALE_FIRST_NAMES = [
    "Елена", "Ольга", "Наталья", "Татьяна", "Ирина", "Светлана", "Марина", "Анна",
    "Людмила", "Екатерина", "Мария", "Галина", "Валентина", "Надежда", "Юлия",
    "Александра", "Любовь", "Лариса", "Вера", "Алина", "Дарья", "Анастасия",
    "Виктория", "Ксения", "Полина", "София", "Алиса", "Евгения", "Вероника", "Маргарита",
]

MALE_MIDDLE_NAMES = [
    "Александрович", "Сергеевич", "Владимирович", "Андреевич", "Алексеевич",
    "Дмитриевич", "Михайлович", "Иванович", "Николаевич", "Павлович",
    "Викторович", "Константинович", "Игоревич", "Олегович", "Романович",
    "Денисович", "Антонович", "Ильич", "Юрьевич", "Петрович", "Васильевич",
    "Георгиевич", "Кириллович", "Леонидович", "Артемович",
]

FEMALE_MIDDLE_NAMES = [
    "Александровна", "Сергеевна", "Владимировна", "Андреевна", "Алексеевна",
    "Дмитриевна", "Михайловна", "Ивановна", "Николаевна", "Павловна",
    "Викторовна", "Константиновна", "Игоревна", "Олеговна", "Романовна",
    "Денисовна", "Антоновна", "Ильинична", "Юрьевна", "Петровна", "Васильевна",
    "Георгиевна", "Кирилловна", "Леонидовна", "Артемовна",
]

# Male forms; the female form appends "а"
LAST_NAMES = [
    "Иванов", "Смирнов", "Кузнецов", "Попов", "Васильев", "Петров", "Соколов",
    "Михайлов", "Новиков", "Федоров", "Морозов", "Волков", "Алексеев", "Лебедев",
    "Семенов", "Егоров", "Павлов", "Козлов", "Степанов", "Николаев", "Орлов",
    "Андреев", "Макаров", "Никитин", "Захаров", "Зайцев", "Соловьев", "Борисов",
    "Яковлев", "Григорьев", "Романов", "Воробьев", "Сергеев", "Кузьмин", "Фролов",
    "Александров", "Дмитриев", "Королев", "Гусев", "Киселев", "Максимов", "Поляков",
    "Сорокин", "Виноградов", "Ковалев", "Белов", "Медведев", "Антонов", "Тарасов",
    "Жуков", "Баранов", "Филиппов", "Комаров", "Давыдов", "Беляев", "Герасимов",
]

# Weighted pool for the CIS share of clients
COMMON_NATIONALITIES = [
    Nationality.RUSSIA, Nationality.RUSSIA, Nationality.RUSSIA,
    Nationality.KAZAKHSTAN, Nationality.KAZAKHSTAN,
    Nationality.UZBEKISTAN, Nationality.UZBEKISTAN,
    Nationality.BELARUS,
    Nationality.UKRAINE,
    Nationality.ARMENIA,
    Nationality.KYRGYZSTAN,
]
CIS_SHARE_PERCENT = 80

# Country calling code and subscriber digit count
PHONE_FORMATS = {
    Nationality.RUSSIA: ("+7", 10),
    Nationality.USA: ("+1", 10),
    Nationality.CANADA: ("+1", 10),
    Nationality.UK: ("+44", 10),
    Nationality.GERMANY: ("+49", 10),
    Nationality.FRANCE: ("+33", 9),
    Nationality.ITALY: ("+39", 10),
    Nationality.SPAIN: ("+34", 9),
    Nationality.CHINA: ("+86", 11),
    Nationality.JAPAN: ("+81", 10),
    Nationality.UKRAINE: ("+380", 9),
    Nationality.BELARUS: ("+375", 9),
    Nationality.UZBEKISTAN: ("+998", 9),
}
DEFAULT_PHONE_FORMAT = ("+1", 10)


@dataclass(frozen=True)
class PersonName:
    last_name: str
    first_name: str
    middle_name: Optional[str]


class ClientDataGenerator:
    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def name(self, female: Optional[bool] = None) -> PersonName:
        if female is None:
            female = self._random.random() < 0.5

        last_name = self._random.choice(LAST_NAMES)
        if female:
            return PersonName(
                last_name=last_name + "а",
                first_name=self._random.choice(FEMALE_FIRST_NAMES),
                middle_name=self._random.choice(FEMALE_MIDDLE_NAMES),
            )
        return PersonName(
            last_name=last_name,
            first_name=self._random.choice(MALE_FIRST_NAMES),
            middle_name=self._random.choice(MALE_MIDDLE_NAMES),
        )

    def _digits(self, length: int) -> str:
        # No leading zero
        first = str(self._random.randint(1, 9))
        return first + "".join(str(self._random.randint(0, 9)) for _ in range(length - 1))

    def phone_number(self, nationality: Nationality) -> str:
        if nationality is Nationality.KAZAKHSTAN:
            # +7 7xx / 8xx / 9xx numbering zone
            return "+7" + str(self._random.randint(7, 9)) + self._digits(9)
        prefix, length = PHONE_FORMATS.get(nationality, DEFAULT_PHONE_FORMAT)
        return prefix + self._digits(length)

    def currency(self) -> Currency:
        # 60% RUB, 25% USD, 15% EUR
        roll = self._random.randrange(100)
        if roll < 60:
            return Currency.RUB
        if roll < 85:
            return Currency.USD
        return Currency.EUR

    def nationality(self) -> Nationality:
        if self._random.randrange(100) < CIS_SHARE_PERCENT:
            return self._random.choice(COMMON_NATIONALITIES)
        return self._random.choice(list(Nationality))

    def birth_date(self, today: Optional[date] = None) -> date:
        today = today or date.today()
        age = self._random.randint(MIN_AGE, MAX_AGE)
        try:
            anchor = today.replace(year=today.year - age)
        except ValueError:
            anchor = today.replace(year=today.year - age, day=28)
        return anchor - timedelta(days=self._random.randrange(365))

    def client(self, account_number: str) -> Client:
        name = self.name()
        nationality = self.nationality()
        return Client(
            unique_id=str(uuid.UUID(int=self._random.getrandbits(128), version=4)),
            last_name=name.last_name,
            first_name=name.first_name,
            middle_name=name.middle_name,
            birth_date=self.birth_date(),
            account_number=account_number,
            currency=self.currency(),
            nationality=nationality,
            phone_number=self.phone_number(nationality),
        )

    def clients(self, count: int, first_account_number: str) -> List[Client]:
        """``count`` clients with consecutive account numbers."""
        start = int(first_account_number)
        return [self.client(str(start + i).zfill(len(first_account_number))) for i in range(count)]
