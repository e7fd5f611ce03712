from django.contrib import admin, messages

from apps.core.exceptions import BookingEngineError
from apps.core.roles import Requester, Role

from .activation import default_activation
from .models import (
    ActivePass,
    ContentItem,
    OrderStatus,
    PassConsumption,
    PassMonthlyUsage,
    SeasonPass,
    SeasonPassOrder,
)


class ContentItemInline(admin.TabularInline):
    model = ContentItem
    extra = 1
    fields = ['name', 'category', 'service', 'quantity', 'monthly_limit']


@admin.register(SeasonPass)
class SeasonPassAdmin(admin.ModelAdmin):
    list_display = ['name', 'duration_months', 'is_active', 'display_order']
    list_filter = ['is_active']
    list_editable = ['is_active', 'display_order']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [ContentItemInline]


@admin.action(description='Mark selected orders paid and activate passes')
def complete_orders(modeladmin, request, queryset):
    activation = default_activation()
    requester = Requester(id=request.user.get_username(), role=Role.ADMIN)
    done = 0
    for order in queryset.filter(status=OrderStatus.PENDING_PAYMENT):
        try:
            activation.complete_order(str(order.id), requester)
            done += 1
        except BookingEngineError as exc:
            modeladmin.message_user(request, f'{order}: {exc.message}', messages.ERROR)
    modeladmin.message_user(request, f'{done} order(s) completed.', messages.SUCCESS)


@admin.register(SeasonPassOrder)
class SeasonPassOrderAdmin(admin.ModelAdmin):
    list_display = ['pass_name', 'variant_name', 'customer_id', 'price', 'status', 'created_at', 'completed_at']
    list_filter = ['status', 'season_pass']
    search_fields = ['customer_id', 'payment_note']
    readonly_fields = ['id', 'status', 'completed_at', 'created_at', 'updated_at']
    actions = [complete_orders]


class PassMonthlyUsageInline(admin.TabularInline):
    model = PassMonthlyUsage
    extra = 0
    readonly_fields = ['content_item_id', 'month', 'used']
    can_delete = False


class PassConsumptionInline(admin.TabularInline):
    model = PassConsumption
    extra = 0
    readonly_fields = ['content_item_id', 'quantity', 'month', 'booking_id', 'refunded_at', 'created_at']
    can_delete = False


@admin.register(ActivePass)
class ActivePassAdmin(admin.ModelAdmin):
    """remaining_usages is editable here for corrections; the model validator keeps counts ≥ 0."""
    list_display = ['pass_name', 'variant_name', 'customer_id', 'purchase_date', 'expiry_date']
    list_filter = ['season_pass']
    search_fields = ['customer_id', 'pass_name']
    readonly_fields = ['id', 'order', 'created_at', 'updated_at']
    inlines = [PassMonthlyUsageInline, PassConsumptionInline]
