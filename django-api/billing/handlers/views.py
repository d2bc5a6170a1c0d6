"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.domain.errors import DomainError, ErrorCode
from billing.handlers.serializers import (
    AddItemSerializer,
    BillSerializer,
    CheckInSerializer,
    CheckoutResultSerializer,
    CheckoutSerializer,
    PaySerializer,
    PreviewSerializer,
    PromotionQuoteRequestSerializer,
    PromotionQuoteSerializer,
    QuoteSerializer,
    SessionSerializer,
    UpdateItemSerializer,
    VoidSerializer,
    discount_requests,
)
from billing.services.checkout_service import CheckoutService
from billing.services.session_service import SessionService
from billing.services.settings_service import BillingSettingsService
from billing.stores.django_store import DjangoStore

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INACTIVE: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def session_service() -> SessionService:
    store = DjangoStore()
    return SessionService(
        catalog=store,
        sessions=store,
        billing_settings=BillingSettingsService(store),
    )


def checkout_service() -> CheckoutService:
    store = DjangoStore()
    return CheckoutService(catalog=store, sessions=store, promotions=store)


def _validated(serializer_class, request: Request) -> dict:
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class BillingAPIView(APIView):
    """Base view mapping domain errors to error responses."""

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            return Response(
                {"error": {"code": exc.code.value, "message": exc.message}},
                status=STATUS_BY_CODE[exc.code],
            )
        return super().handle_exception(exc)


class CheckInView(BillingAPIView):
    """Handler for POST /api/stations/{station_id}/check-in"""

    def post(self, request: Request, station_id: str) -> Response:
        data = _validated(CheckInSerializer, request)
        session = session_service().check_in(
            station_id,
            staff_id=data.get("staff_id"),
            start_at=data.get("start_at"),
        )
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionDetailView(BillingAPIView):
    """Handler for GET /api/sessions/{session_id}"""

    def get(self, request: Request, session_id: str) -> Response:
        session = session_service().get_session(session_id)
        return Response(SessionSerializer(session).data)


class SessionItemListView(BillingAPIView):
    """Handler for POST /api/sessions/{session_id}/items"""

    def post(self, request: Request, session_id: str) -> Response:
        data = _validated(AddItemSerializer, request)
        session = session_service().add_item(
            session_id,
            str(data["product_id"]),
            quantity=data["quantity"],
            note=data["note"],
        )
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionItemDetailView(BillingAPIView):
    """Handler for PATCH/DELETE /api/sessions/{session_id}/items/{item_id}"""

    def patch(self, request: Request, session_id: str, item_id: str) -> Response:
        data = _validated(UpdateItemSerializer, request)
        session = session_service().update_item_quantity(session_id, item_id, data["quantity"])
        return Response(SessionSerializer(session).data)

    def delete(self, request: Request, session_id: str, item_id: str) -> Response:
        session = session_service().remove_item(session_id, item_id)
        return Response(SessionSerializer(session).data)


class PreviewView(BillingAPIView):
    """Handler for POST /api/sessions/{session_id}/preview"""

    def post(self, request: Request, session_id: str) -> Response:
        data = _validated(PreviewSerializer, request)
        quote = session_service().preview_close(
            session_id,
            end_at=data.get("end_at"),
            discount_requests=discount_requests(data.get("discount_lines")) or [],
            surcharge=data["surcharge"],
        )
        return Response(QuoteSerializer(quote).data)


class PromotionQuoteView(BillingAPIView):
    """Handler for POST /api/sessions/{session_id}/promotions"""

    def post(self, request: Request, session_id: str) -> Response:
        data = _validated(PromotionQuoteRequestSerializer, request)
        result = checkout_service().quote_promotions(session_id, end_at=data.get("end_at"))
        return Response(PromotionQuoteSerializer(result).data)


class CheckoutView(BillingAPIView):
    """Handler for POST /api/sessions/{session_id}/checkout"""

    def post(self, request: Request, session_id: str) -> Response:
        data = _validated(CheckoutSerializer, request)
        result = checkout_service().checkout(
            session_id,
            staff_id=data.get("staff_id"),
            end_at=data.get("end_at"),
            discount_requests=discount_requests(data.get("discount_lines")),
            surcharge=data["surcharge"],
            payment_method=data["payment_method"],
            paid=data["paid"],
        )
        return Response(CheckoutResultSerializer(result).data, status=status.HTTP_201_CREATED)


class VoidView(BillingAPIView):
    """Handler for POST /api/sessions/{session_id}/void"""

    def post(self, request: Request, session_id: str) -> Response:
        data = _validated(VoidSerializer, request)
        session = session_service().void_session(session_id, staff_id=data.get("staff_id"))
        return Response(SessionSerializer(session).data)


class BillDetailView(BillingAPIView):
    """Handler for GET /api/bills/{bill_id}"""

    def get(self, request: Request, bill_id: str) -> Response:
        bill = checkout_service().get_bill(bill_id)
        return Response(BillSerializer(bill).data)


class BillPayView(BillingAPIView):
    """Handler for PATCH /api/bills/{bill_id}/pay"""

    def patch(self, request: Request, bill_id: str) -> Response:
        data = _validated(PaySerializer, request)
        bill = checkout_service().mark_bill_paid(bill_id, payment_method=data.get("payment_method"))
        return Response(BillSerializer(bill).data)
