from enum import Enum
from typing import Dict, Tuple


class Currency(str, Enum):
    RUB = "RUB"
    USD = "USD"
    EUR = "EUR"

    @property
    def symbol(self) -> str:
        return _CURRENCY_INFO[self][0]

    @property
    def display_name(self) -> str:
        return _CURRENCY_INFO[self][1]

    @property
    def numeric_code(self) -> str:
        """ISO 4217 numeric code."""
        return _CURRENCY_INFO[self][2]

    @property
    def label(self) -> str:
        return f"{self.display_name} ({self.symbol})"


_CURRENCY_INFO: Dict[Currency, Tuple[str, str, str]] = {
    Currency.RUB: ("₽", "Russian ruble", "643"),
    Currency.USD: ("$", "US dollar", "840"),
    Currency.EUR: ("€", "Euro", "978"),
}


class Nationality(str, Enum):
    # CIS and post-Soviet
    RUSSIA = "RUSSIA"
    UKRAINE = "UKRAINE"
    BELARUS = "BELARUS"
    KAZAKHSTAN = "KAZAKHSTAN"
    UZBEKISTAN = "UZBEKISTAN"
    TAJIKISTAN = "TAJIKISTAN"
    KYRGYZSTAN = "KYRGYZSTAN"
    ARMENIA = "ARMENIA"
    AZERBAIJAN = "AZERBAIJAN"
    MOLDOVA = "MOLDOVA"
    GEORGIA = "GEORGIA"

    # Europe
    GERMANY = "GERMANY"
    FRANCE = "FRANCE"
    ITALY = "ITALY"
    SPAIN = "SPAIN"
    POLAND = "POLAND"
    UK = "UK"
    NETHERLANDS = "NETHERLANDS"
    BELGIUM = "BELGIUM"
    CZECH = "CZECH"
    AUSTRIA = "AUSTRIA"
    SWITZERLAND = "SWITZERLAND"
    SWEDEN = "SWEDEN"
    NORWAY = "NORWAY"
    FINLAND = "FINLAND"
    DENMARK = "DENMARK"

    # Asia
    CHINA = "CHINA"
    JAPAN = "JAPAN"
    SOUTH_KOREA = "SOUTH_KOREA"
    INDIA = "INDIA"
    TURKEY = "TURKEY"
    ISRAEL = "ISRAEL"
    UAE = "UAE"
    SAUDI_ARABIA = "SAUDI_ARABIA"
    SINGAPORE = "SINGAPORE"
    THAILAND = "THAILAND"
    VIETNAM = "VIETNAM"

    # Americas
    USA = "USA"
    CANADA = "CANADA"
    MEXICO = "MEXICO"
    BRAZIL = "BRAZIL"
    ARGENTINA = "ARGENTINA"

    # Oceania
    AUSTRALIA = "AUSTRALIA"
    NEW_ZEALAND = "NEW_ZEALAND"

    OTHER = "OTHER"

    @property
    def code(self) -> str:
        """ISO 3166-1 alpha-2 code (XX for OTHER)."""
        return _NATIONALITY_INFO[self][0]

    @property
    def short_name(self) -> str:
        return _NATIONALITY_INFO[self][1]

    @property
    def is_cis(self) -> bool:
        return self in _CIS

    @property
    def is_eu(self) -> bool:
        return self in _EU

    @property
    def flag(self) -> str:
        if self is Nationality.OTHER:
            return "\U0001F3F3"
        return "".join(chr(0x1F1E6 + ord(ch) - ord("A")) for ch in self.code)

    @classmethod
    def from_code(cls, code: str) -> "Nationality":
        """Unknown codes map to OTHER."""
        for nationality in cls:
            if nationality.code.lower() == code.lower():
                return nationality
        return cls.OTHER


_NATIONALITY_INFO: Dict[Nationality, Tuple[str, str]] = {
    Nationality.RUSSIA: ("RU", "Russia"),
    Nationality.UKRAINE: ("UA", "Ukraine"),
    Nationality.BELARUS: ("BY", "Belarus"),
    Nationality.KAZAKHSTAN: ("KZ", "Kazakhstan"),
    Nationality.UZBEKISTAN: ("UZ", "Uzbekistan"),
    Nationality.TAJIKISTAN: ("TJ", "Tajikistan"),
    Nationality.KYRGYZSTAN: ("KG", "Kyrgyzstan"),
    Nationality.ARMENIA: ("AM", "Armenia"),
    Nationality.AZERBAIJAN: ("AZ", "Azerbaijan"),
    Nationality.MOLDOVA: ("MD", "Moldova"),
    Nationality.GEORGIA: ("GE", "Georgia"),
    Nationality.GERMANY: ("DE", "Germany"),
    Nationality.FRANCE: ("FR", "France"),
    Nationality.ITALY: ("IT", "Italy"),
    Nationality.SPAIN: ("ES", "Spain"),
    Nationality.POLAND: ("PL", "Poland"),
    Nationality.UK: ("GB", "United Kingdom"),
    Nationality.NETHERLANDS: ("NL", "Netherlands"),
    Nationality.BELGIUM: ("BE", "Belgium"),
    Nationality.CZECH: ("CZ", "Czech Republic"),
    Nationality.AUSTRIA: ("AT", "Austria"),
    Nationality.SWITZERLAND: ("CH", "Switzerland"),
    Nationality.SWEDEN: ("SE", "Sweden"),
    Nationality.NORWAY: ("NO", "Norway"),
    Nationality.FINLAND: ("FI", "Finland"),
    Nationality.DENMARK: ("DK", "Denmark"),
    Nationality.CHINA: ("CN", "China"),
    Nationality.JAPAN: ("JP", "Japan"),
    Nationality.SOUTH_KOREA: ("KR", "South Korea"),
    Nationality.INDIA: ("IN", "India"),
    Nationality.TURKEY: ("TR", "Turkey"),
    Nationality.ISRAEL: ("IL", "Israel"),
    Nationality.UAE: ("AE", "UAE"),
    Nationality.SAUDI_ARABIA: ("SA", "Saudi Arabia"),
    Nationality.SINGAPORE: ("SG", "Singapore"),
    Nationality.THAILAND: ("TH", "Thailand"),
    Nationality.VIETNAM: ("VN", "Vietnam"),
    Nationality.USA: ("US", "USA"),
    Nationality.CANADA: ("CA", "Canada"),
    Nationality.MEXICO: ("MX", "Mexico"),
    Nationality.BRAZIL: ("BR", "Brazil"),
    Nationality.ARGENTINA: ("AR", "Argentina"),
    Nationality.AUSTRALIA: ("AU", "Australia"),
    Nationality.NEW_ZEALAND: ("NZ", "New Zealand"),
    Nationality.OTHER: ("XX", "Other"),
}

_CIS = frozenset({
    Nationality.RUSSIA,
    Nationality.UKRAINE,
    Nationality.BELARUS,
    Nationality.KAZAKHSTAN,
    Nationality.UZBEKISTAN,
    Nationality.TAJIKISTAN,
    Nationality.KYRGYZSTAN,
    Nationality.ARMENIA,
    Nationality.AZERBAIJAN,
    Nationality.MOLDOVA,
})

_EU = frozenset({
    Nationality.GERMANY,
    Nationality.FRANCE,
    Nationality.ITALY,
    Nationality.SPAIN,
    Nationality.POLAND,
    Nationality.NETHERLANDS,
    Nationality.BELGIUM,
    Nationality.CZECH,
    Nationality.AUSTRIA,
    Nationality.SWEDEN,
    Nationality.FINLAND,
    Nationality.DENMARK,
})
