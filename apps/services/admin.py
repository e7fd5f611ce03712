from django.contrib import admin

from .models import Service, ServiceOption, ServiceOptionItem


def get_designers(obj):
    return ', '.join(d.name for d in obj.designers.all()) or '—'
get_designers.short_description = 'Designers'


class ServiceOptionInline(admin.TabularInline):
    model = ServiceOption
    extra = 0
    fields = ['name', 'required', 'multi_select', 'display_order']
    show_change_link = True


class ServiceOptionItemInline(admin.TabularInline):
    model = ServiceOptionItem
    extra = 1
    fields = ['name', 'price', 'duration_minutes', 'display_order']


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', get_designers, 'duration_minutes', 'price', 'platinum_price', 'is_active']
    list_filter = ['category', 'designers', 'is_active']
    search_fields = ['name', 'designers__name']
    list_editable = ['is_active', 'price']
    filter_horizontal = ['designers']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [ServiceOptionInline]
    fieldsets = (
        ('Service Info', {'fields': ('id', 'designers', 'name', 'category', 'description')}),
        ('Timing & Pricing', {'fields': ('duration_minutes', 'price', 'platinum_price')}),
        ('Status', {'fields': ('is_active', 'display_order')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(ServiceOption)
class ServiceOptionAdmin(admin.ModelAdmin):
    list_display = ['name', 'service', 'required', 'multi_select', 'display_order']
    list_filter = ['required', 'multi_select', 'service']
    search_fields = ['name', 'service__name']
    inlines = [ServiceOptionItemInline]
