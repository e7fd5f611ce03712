from django.contrib import admin

from .models import Booking, BookingStatusLog


class BookingStatusLogInline(admin.TabularInline):
    model = BookingStatusLog
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Status is read-only here; transitions go through the API so they are guarded and logged."""
    list_display = [
        'short_id', 'customer_id', 'designer', 'start_time', 'duration_minutes',
        'status', 'amount', 'reschedule_count', 'refund_pending',
    ]
    list_filter = ['status', 'designer', 'refund_pending']
    search_fields = ['customer_id', 'contact_email', 'notes']
    readonly_fields = [
        'id', 'status', 'reschedule_count', 'pass_usage_deducted', 'refund_pending',
        'request_key', 'created_at', 'updated_at',
    ]
    date_hierarchy = 'start_time'
    inlines = [BookingStatusLogInline]
    fieldsets = (
        ('Booking', {'fields': ('id', 'customer_id', 'contact_email', 'designer')}),
        ('Services', {'fields': ('service_ids', 'service_names', 'option_item_ids', 'option_names', 'amount')}),
        ('Schedule', {'fields': ('start_time', 'duration_minutes', 'reschedule_count')}),
        ('Status', {'fields': ('status', 'notes', 'feedback')}),
        ('Season pass', {'fields': ('active_pass', 'pass_service_ids', 'pass_usage_deducted', 'refund_pending')}),
        ('Audit', {'fields': ('request_key', 'created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def short_id(self, obj):
        return obj.id_short
    short_id.short_description = 'ID'


@admin.register(BookingStatusLog)
class BookingStatusLogAdmin(admin.ModelAdmin):
    list_display = ['booking', 'from_status', 'to_status', 'changed_by', 'changed_at']
    readonly_fields = ['id', 'booking', 'from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    search_fields = ['booking__customer_id', 'changed_by']
