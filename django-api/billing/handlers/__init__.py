from billing.handlers.views import (
    BillDetailView,
    BillPayView,
    CheckInView,
    CheckoutView,
    PreviewView,
    PromotionQuoteView,
    SessionDetailView,
    SessionItemDetailView,
    SessionItemListView,
    VoidView,
)

__all__ = [
    "BillDetailView",
    "BillPayView",
    "CheckInView",
    "CheckoutView",
    "PreviewView",
    "PromotionQuoteView",
    "SessionDetailView",
    "SessionItemDetailView",
    "SessionItemListView",
    "VoidView",
]
