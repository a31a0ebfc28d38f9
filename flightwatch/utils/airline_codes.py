"""
Flight number format rules and the IATA -> ICAO airline fallback table.

Some AeroAPI endpoints only index the ICAO designator (BAW74) and return
nothing for the IATA one (BA74), so lookups retry once with the ICAO code.
"""

import re
from types import MappingProxyType
from typing import Optional, Tuple

# 2-3 alphanumeric airline code + 1-5 digits (BA74, AA123, BAW74, P47579)
FLIGHT_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9]{2,3}\d{1,5}$")

_TWO_CHAR_AIRLINE = re.compile(r"^([A-Z0-9]{2})(\d{1,5})$", re.IGNORECASE)
_THREE_CHAR_AIRLINE = re.compile(r"^([A-Z0-9]{3})(\d{1,5})$", re.IGNORECASE)

# Airlines flying into our supported airports
IATA_TO_ICAO = MappingProxyType({
    # International carriers
    "AF": "AFR",  # Air France
    "AT": "RAM",  # Royal Air Maroc
    "BA": "BAW",  # British Airways
    "DL": "DAL",  # Delta Air Lines
    "DT": "DTA",  # TAAG Angola Airlines
    "EK": "UAE",  # Emirates
    "ET": "ETH",  # Ethiopian Airlines
    "EY": "ETD",  # Etihad Airways
    "KL": "KLM",  # KLM Royal Dutch Airlines
    "KQ": "KQA",  # Kenya Airways
    "LH": "DLH",  # Lufthansa
    "ME": "MEA",  # Middle East Airlines
    "MS": "MSR",  # EgyptAir
    "QR": "QTR",  # Qatar Airways
    "RJ": "RJA",  # Royal Jordanian
    "SA": "SAA",  # South African Airways
    "SV": "SVA",  # Saudi Arabian Airlines
    "TK": "THY",  # Turkish Airlines
    "UA": "UAL",  # United Airlines
    "VS": "VIR",  # Virgin Atlantic
    "WB": "RWD",  # RwandAir
    # African regional carriers
    "AW": "AFW",  # Africa World Airlines
    "HF": "VRE",  # Air Cote d'Ivoire
    "KP": "SKK",  # ASKY Airlines
    "OJ": "OLA",  # Overland Airways
    # Nigerian carriers
    "P4": "APK",  # Air Peace
    "VK": "VGN",  # Virgin Nigeria Airways
    "W3": "ARA",  # Arik Air
})


def normalize_flight_number(flight_number: str) -> str:
    return (flight_number or "").strip().upper()


def is_valid_flight_number(flight_number: Optional[str]) -> bool:
    if not flight_number:
        return False
    return FLIGHT_NUMBER_PATTERN.match(flight_number) is not None


def split_flight_number(flight_number: str) -> Optional[Tuple[str, str]]:
    """
    Split into (airline code, numeric suffix).

    A two-character airline code is tried first, so "BAW74" only splits as
    ("BAW", "74") because "W74" is not all digits.
    """
    match = _TWO_CHAR_AIRLINE.match(flight_number) or _THREE_CHAR_AIRLINE.match(flight_number)
    if not match:
        return None
    return match.group(1).upper(), match.group(2)


def convert_iata_to_icao(flight_number: str) -> Optional[str]:
    """BA74 -> BAW74; None when the airline has no known ICAO designator"""
    parts = split_flight_number(flight_number)
    if not parts:
        return None

    airline, digits = parts
    icao = IATA_TO_ICAO.get(airline)
    return f"{icao}{digits}" if icao else None
