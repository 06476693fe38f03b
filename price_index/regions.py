"""
Region lookup - ISO 3166 alpha-2 country code to index region.

Countries outside Asia, Europe and North America (and providers with no
known location) fall into ``Other``.
"""

from typing import Optional

from price_index.models import Region


ASIA_CODES = frozenset({
    "AE", "AF", "AM", "AZ", "BD", "BH", "BN", "BT", "CN", "CY", "GE", "HK",
    "ID", "IL", "IN", "IQ", "IR", "JO", "JP", "KG", "KH", "KP", "KR", "KW",
    "KZ", "LA", "LB", "LK", "MM", "MN", "MO", "MV", "MY", "NP", "OM", "PH",
    "PK", "PS", "QA", "SA", "SG", "SY", "TH", "TJ", "TL", "TM", "TR", "TW",
    "UZ", "VN", "YE",
})

EUROPE_CODES = frozenset({
    "AD", "AL", "AT", "AX", "BA", "BE", "BG", "BY", "CH", "CZ", "DE", "DK",
    "EE", "ES", "FI", "FO", "FR", "GB", "GG", "GI", "GR", "HR", "HU", "IE",
    "IM", "IS", "IT", "JE", "LI", "LT", "LU", "LV", "MC", "MD", "ME", "MK",
    "MT", "NL", "NO", "PL", "PT", "RO", "RS", "RU", "SE", "SI", "SJ", "SK",
    "SM", "UA", "VA", "XK",
})

NORTH_AMERICA_CODES = frozenset({
    "AG", "AI", "AW", "BB", "BL", "BM", "BQ", "BS", "BZ", "CA", "CR", "CU",
    "CW", "DM", "DO", "GD", "GL", "GP", "GT", "HN", "HT", "JM", "KN", "KY",
    "LC", "MF", "MQ", "MS", "MX", "NI", "PA", "PM", "PR", "SV", "SX", "TC",
    "TT", "US", "VC", "VG", "VI",
})

_CODE_TO_REGION = {
    **{code: Region.ASIA for code in ASIA_CODES},
    **{code: Region.EUROPE for code in EUROPE_CODES},
    **{code: Region.NORTH_AMERICA for code in NORTH_AMERICA_CODES},
}


def iso_code_to_region(code: Optional[str]) -> Region:
    """Map a country code to its region; unknown or missing -> OTHER."""
    if not code:
        return Region.OTHER
    return _CODE_TO_REGION.get(code.strip().upper(), Region.OTHER)


def region_label(code: Optional[str]) -> str:
    """Region label used on quotes."""
    return iso_code_to_region(code).value
