"""
Founding/construction year helpers.

Years are stored signed: BC magnitude M is stored as -M, AD magnitude M as +M.
Absent means unknown; 0 is a stored value, not "unknown".
"""

import re

BC_ERAS = ("BC", "BCE")
AD_ERAS = ("AD", "CE")


def year_from_era(era: str, magnitude: int) -> int:
    """
    Convert an era label and a positive magnitude to a signed year.

    >>> year_from_era("BC", 2500)
    -2500
    >>> year_from_era("AD", 1603)
    1603
    """
    era = era.strip().upper().replace(".", "")
    magnitude = abs(int(magnitude))
    if era in BC_ERAS:
        return -magnitude
    if era in AD_ERAS:
        return magnitude
    raise ValueError(f"Unknown era: {era!r}")


def get_year_label(year: int | None) -> str | None:
    """
    Format a signed year for display.

    >>> get_year_label(-2500)
    'BC 2500'
    >>> get_year_label(1603)
    'AD 1603'
    """
    if year is None:
        return None
    if year < 0:
        return f"BC {-year}"
    return f"AD {year}"


def parse_year_text(text: str | None) -> int | None:
    """Parse a free-text year such as "2500 BC", "BC 2500" or "c. 1603 AD".

    Bare numbers are taken as signed years. Returns None when nothing matches.
    """
    if not text:
        return None

    # Strip commas from numbers: "11,000 BC" -> "11000 BC"
    text = re.sub(r"(\d),(\d)", r"\1\2", text).upper()

    patterns = [
        r"(\d+)\s*(BCE|BC|AD|CE)\b",  # 500 BC, 1603 AD
        r"\b(BCE|BC|AD|CE)\s*(\d+)",  # BC 500, AD 1603
    ]
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            first, second = match.groups()
            if first.isdigit():
                return year_from_era(second, int(first))
            return year_from_era(first, int(second))

    match = re.fullmatch(r"\s*C?\.?\s*(-?\d+)\s*", text)
    if match:
        return int(match.group(1))

    return None
