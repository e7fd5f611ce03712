"""
URL configuration for the Nailbook booking engine.
"""
from django.contrib import admin
from django.conf import settings
from django.urls import path, include

urlpatterns = [
    path(settings.ADMIN_URL, admin.site.urls),
    path('bookings/', include('apps.bookings.urls', namespace='bookings')),
    path('passes/', include('apps.passes.urls', namespace='passes')),
]
