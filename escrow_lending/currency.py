"""
Loan Currency Module

The fixed set of currencies a loan can be denominated in. No conversion
between them is performed; the code is carried on the loan as a label.
"""

from enum import Enum
from typing import Optional, Union


class Currency(Enum):
    """Supported loan currencies"""
    NATIVE_TOKEN = "STX"   # Native chain token
    FIAT_PROXY = "USD"     # Fiat-pegged proxy
    ALT_COIN = "BTC"       # Bridged alt-coin


def parse_currency(value: Union[str, Currency, None]) -> Optional[Currency]:
    """Resolve a currency code, returning None for anything unsupported"""
    if isinstance(value, Currency):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Currency(value)
    except ValueError:
        return None
