"""Money type shared by the schemas."""

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

# Decimal in Python, a plain number in JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
