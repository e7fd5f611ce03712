from django.contrib import admin

from .models import BookingSettings, BusinessHours, Designer


class BusinessHoursInline(admin.TabularInline):
    model = BusinessHours
    extra = 0
    fields = ['date', 'is_closed', 'time_slots']
    ordering = ['-date']


@admin.register(Designer)
class DesignerAdmin(admin.ModelAdmin):
    list_display = ['name', 'title', 'opening_time', 'closing_time', 'booking_deadline', 'is_active', 'display_order']
    list_filter = ['is_active']
    list_editable = ['is_active', 'display_order']
    search_fields = ['name', 'linked_user_id']
    readonly_fields = ['id', 'created_at', 'updated_at']
    fieldsets = (
        ('Profile', {'fields': ('id', 'name', 'title', 'bio', 'linked_user_id')}),
        ('Default Hours', {'fields': ('opening_time', 'closing_time', 'booking_deadline')}),
        ('Status', {'fields': ('is_active', 'display_order')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
    inlines = [BusinessHoursInline]


@admin.register(BusinessHours)
class BusinessHoursAdmin(admin.ModelAdmin):
    list_display = ['designer', 'date', 'is_closed']
    list_filter = ['designer', 'is_closed']
    date_hierarchy = 'date'


@admin.register(BookingSettings)
class BookingSettingsAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'booking_deadline', 'updated_at']

    def has_add_permission(self, request):
        return not BookingSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
