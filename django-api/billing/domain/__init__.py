from billing.domain.models import (
    Bill,
    BillingRule,
    LineItem,
    PricingSnapshot,
    Product,
    PromotionRule,
    Session,
    Station,
    StationType,
)
from billing.domain.value_objects import (
    BillId,
    LineItemId,
    ProductId,
    PromotionId,
    SessionId,
    StationId,
    StationTypeId,
)

__all__ = [
    "Bill",
    "BillingRule",
    "LineItem",
    "PricingSnapshot",
    "Product",
    "PromotionRule",
    "Session",
    "Station",
    "StationType",
    "BillId",
    "LineItemId",
    "ProductId",
    "PromotionId",
    "SessionId",
    "StationId",
    "StationTypeId",
]
