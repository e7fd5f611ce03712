"""
Booking API URLs.

  /bookings/api/slots/                      GET   offerable start times
  /bookings/api/designers/<uuid>/info/      GET   closed dates + booking deadline
  /bookings/api/mine/                       GET   requester's bookings
  /bookings/api/                            POST  create a booking
  /bookings/api/<uuid>/payment-note/        POST  report a bank transfer
  /bookings/api/<uuid>/status/              POST  status transition
  /bookings/api/<uuid>/reschedule/          POST  one-time reschedule
  /bookings/api/<uuid>/feedback/            POST  feedback on a completed booking
"""
from django.urls import path

from . import views

app_name = 'bookings'

urlpatterns = [
    # ── Availability ───────────────────────────────────────────────────────────
    path('api/slots/',                          views.api_slots,          name='api_slots'),
    path('api/designers/<uuid:designer_id>/info/', views.api_designer_info, name='api_designer_info'),

    # ── Bookings ───────────────────────────────────────────────────────────────
    path('api/mine/',                           views.api_my_bookings,    name='api_mine'),
    path('api/',                                views.api_create_booking, name='api_create'),
    path('api/<uuid:booking_id>/payment-note/', views.api_payment_note,   name='api_payment_note'),
    path('api/<uuid:booking_id>/status/',       views.api_set_status,     name='api_status'),
    path('api/<uuid:booking_id>/reschedule/',   views.api_reschedule,     name='api_reschedule'),
    path('api/<uuid:booking_id>/feedback/',     views.api_feedback,       name='api_feedback'),
]
