# app/models/types.py
"""
Shared Pydantic types.

Money: amounts are Decimals internally (thousandths) but go over the wire
as JSON numbers, which is what the admin UI and tracking page expect.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
