from django.urls import path

from billing.handlers import (
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

urlpatterns = [
    path(
        "stations/<str:station_id>/check-in",
        CheckInView.as_view(),
        name="station-check-in",
    ),
    path("sessions/<str:session_id>", SessionDetailView.as_view(), name="session-detail"),
    path(
        "sessions/<str:session_id>/items",
        SessionItemListView.as_view(),
        name="session-item-list",
    ),
    path(
        "sessions/<str:session_id>/items/<str:item_id>",
        SessionItemDetailView.as_view(),
        name="session-item-detail",
    ),
    path("sessions/<str:session_id>/preview", PreviewView.as_view(), name="session-preview"),
    path(
        "sessions/<str:session_id>/promotions",
        PromotionQuoteView.as_view(),
        name="session-promotions",
    ),
    path("sessions/<str:session_id>/checkout", CheckoutView.as_view(), name="session-checkout"),
    path("sessions/<str:session_id>/void", VoidView.as_view(), name="session-void"),
    path("bills/<str:bill_id>", BillDetailView.as_view(), name="bill-detail"),
    path("bills/<str:bill_id>/pay", BillPayView.as_view(), name="bill-pay"),
]
