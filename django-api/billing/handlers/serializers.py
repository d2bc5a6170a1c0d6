"""Serializers for request parsing and for turning domain models into API responses."""

from rest_framework import serializers

from billing.domain.models import DiscountTarget, DiscountType
from billing.domain.rules import DiscountRequest

# --------------------------------------------------------------------------
# Requests
# --------------------------------------------------------------------------


class CheckInSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    start_at = serializers.DateTimeField(required=False, allow_null=True)


class AddItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(default=1)
    note = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class UpdateItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class DiscountRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=[t.value for t in DiscountType])
    value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    max_amount = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    applies_to = serializers.ChoiceField(
        choices=[t.value for t in DiscountTarget], default=DiscountTarget.BILL.value
    )

    def create(self, validated_data) -> DiscountRequest:
        return DiscountRequest(
            name=validated_data["name"],
            type=DiscountType(validated_data["type"]),
            value=validated_data["value"],
            max_amount=validated_data.get("max_amount"),
            applies_to=DiscountTarget(validated_data["applies_to"]),
        )


def discount_requests(validated: list[dict] | None) -> list[DiscountRequest] | None:
    if validated is None:
        return None
    return [DiscountRequestSerializer().create(data) for data in validated]


class PreviewSerializer(serializers.Serializer):
    end_at = serializers.DateTimeField(required=False, allow_null=True)
    discount_lines = DiscountRequestSerializer(many=True, required=False)
    surcharge = serializers.IntegerField(required=False, default=0)


class PromotionQuoteRequestSerializer(serializers.Serializer):
    end_at = serializers.DateTimeField(required=False, allow_null=True)


class CheckoutSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    end_at = serializers.DateTimeField(required=False, allow_null=True)
    discount_lines = DiscountRequestSerializer(many=True, required=False, allow_null=True)
    surcharge = serializers.IntegerField(required=False, default=0, min_value=0)
    payment_method = serializers.CharField(required=False, default="cash", max_length=20)
    paid = serializers.BooleanField(required=False, default=False)


class VoidSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class PaySerializer(serializers.Serializer):
    payment_method = serializers.CharField(required=False, allow_null=True, max_length=20)


# --------------------------------------------------------------------------
# Responses
# --------------------------------------------------------------------------


class LineItemSerializer(serializers.Serializer):
    """Serializer for LineItem domain model."""

    id = serializers.CharField()
    product_id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.IntegerField()
    quantity = serializers.IntegerField()
    note = serializers.CharField()
    amount = serializers.IntegerField()


class SessionSerializer(serializers.Serializer):
    """Serializer for Session domain model."""

    id = serializers.CharField()
    station_id = serializers.CharField()
    status = serializers.CharField(source="status.value")
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField()
    rate_per_hour = serializers.IntegerField(source="pricing.rate_per_hour")
    rate_source = serializers.CharField(source="pricing.rate_source.value")
    rounding_step = serializers.IntegerField(source="billing_rule.rounding_step")
    rounding_mode = serializers.CharField(source="billing_rule.rounding_mode.value")
    grace_minutes = serializers.IntegerField(source="billing_rule.grace_minutes")
    staff_start = serializers.IntegerField()
    staff_end = serializers.IntegerField()
    items = LineItemSerializer(many=True)
    service_amount = serializers.IntegerField()


class DiscountLineSerializer(serializers.Serializer):
    name = serializers.CharField()
    type = serializers.CharField(source="type.value")
    value = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount = serializers.IntegerField()
    applies_to = serializers.CharField(source="applies_to.value")
    max_amount = serializers.IntegerField()
    meta = serializers.DictField()


class QuoteSerializer(serializers.Serializer):
    end_time = serializers.DateTimeField()
    raw_minutes = serializers.IntegerField()
    bill_minutes = serializers.IntegerField()
    rate_per_hour = serializers.IntegerField()
    play_amount = serializers.IntegerField()
    service_amount = serializers.IntegerField()
    subtotal = serializers.IntegerField()
    discount_lines = DiscountLineSerializer(many=True)
    discount_total = serializers.IntegerField()
    surcharge = serializers.IntegerField()
    total = serializers.IntegerField()


class RemainingPoolsSerializer(serializers.Serializer):
    play = serializers.IntegerField()
    service = serializers.IntegerField()
    bill = serializers.IntegerField()


class PromotionResultSerializer(serializers.Serializer):
    lines = DiscountLineSerializer(many=True)
    discount_total = serializers.IntegerField()
    remaining = RemainingPoolsSerializer()


class PromotionQuoteSerializer(serializers.Serializer):
    quote = QuoteSerializer()
    promotions = PromotionResultSerializer()


class BillLineSerializer(serializers.Serializer):
    kind = serializers.CharField(source="kind.value")
    name = serializers.CharField()
    product_id = serializers.CharField()
    unit_price = serializers.IntegerField()
    quantity = serializers.IntegerField()
    minutes = serializers.IntegerField()
    rate_per_hour = serializers.IntegerField()
    amount = serializers.IntegerField()
    note = serializers.CharField()


class BillSerializer(serializers.Serializer):
    """Serializer for Bill domain model."""

    id = serializers.CharField()
    session_id = serializers.CharField()
    station_id = serializers.CharField()
    station_name = serializers.CharField()
    staff_id = serializers.IntegerField()
    staff_name = serializers.CharField()
    lines = BillLineSerializer(many=True)
    play_minutes = serializers.IntegerField()
    play_amount = serializers.IntegerField()
    service_amount = serializers.IntegerField()
    subtotal = serializers.IntegerField()
    discount_lines = DiscountLineSerializer(many=True)
    discount_total = serializers.IntegerField()
    surcharge = serializers.IntegerField()
    total = serializers.IntegerField()
    payment_method = serializers.CharField()
    paid = serializers.BooleanField()
    paid_at = serializers.DateTimeField()
    created_at = serializers.DateTimeField()
    note = serializers.CharField()


class CheckoutResultSerializer(serializers.Serializer):
    bill = BillSerializer()
    session = SessionSerializer()
