"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID, uuid4

from billing.domain.errors import InvalidIdError


@dataclass(frozen=True)
class _Identifier:
    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        try:
            return cls(value=UUID(str(value)))
        except ValueError as exc:
            raise InvalidIdError() from exc

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


class StationId(_Identifier):
    """Unique identifier for a Station."""


class StationTypeId(_Identifier):
    """Unique identifier for a StationType."""


class SessionId(_Identifier):
    """Unique identifier for a Session."""


class LineItemId(_Identifier):
    """Unique identifier for a line item inside a Session."""


class ProductId(_Identifier):
    """Unique identifier for a Product."""


class BillId(_Identifier):
    """Unique identifier for a Bill."""


class PromotionId(_Identifier):
    """Unique identifier for a PromotionRule."""


def round_money(amount: Decimal | int | float) -> int:
    """Round to the smallest currency unit, half away from zero.

    Negative results are clamped to zero; no money amount in the
    billing flow can go below zero.
    """
    rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(rounded))
