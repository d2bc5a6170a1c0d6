from django.contrib import admin

from billing.models import (
    Bill,
    BillingSetting,
    BillLine,
    DayRate,
    Product,
    Promotion,
    Session,
    SessionItem,
    Station,
    StationType,
)


class DayRateInline(admin.TabularInline):
    model = DayRate
    extra = 1


class SessionItemInline(admin.TabularInline):
    model = SessionItem
    extra = 0


class BillLineInline(admin.TabularInline):
    model = BillLine
    extra = 0
    can_delete = False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(StationType)
class StationTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "base_rate_per_hour", "created_at"]
    search_fields = ["name"]
    inlines = [DayRateInline]


@admin.register(Station)
class StationAdmin(admin.ModelAdmin):
    list_display = ["name", "status", "active", "rate_per_hour", "station_type"]
    list_filter = ["status", "active", "station_type"]
    search_fields = ["name"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "price", "active", "category_id"]
    list_filter = ["active"]
    search_fields = ["name"]


@admin.register(BillingSetting)
class BillingSettingAdmin(admin.ModelAdmin):
    list_display = ["scope", "branch_id", "rounding_step", "rounding_mode", "grace_minutes"]


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ["name", "scope", "active", "apply_order", "stackable", "applies_to"]
    list_filter = ["scope", "active", "branch_id"]
    search_fields = ["name", "code"]


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ["station", "status", "start_time", "end_time", "rate_per_hour"]
    list_filter = ["status", "station"]
    inlines = [SessionItemInline]


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ["station_name", "total", "paid", "payment_method", "created_at"]
    list_filter = ["paid", "payment_method"]
    search_fields = ["station_name", "note"]
    inlines = [BillLineInline]
